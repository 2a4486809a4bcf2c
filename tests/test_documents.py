"""
Reading fields from uploaded documents and the upload endpoints.
"""

from datetime import date

import pytest

from bizdesk.services.document_service import (
    confidence_of,
    extract,
    extract_id_card,
    extract_invoice,
    extract_receipt,
    parse_document_date,
    validate_extracted,
)

RECEIPT = """Kisenyi Hardware
Tel: 0772 123456
Receipt No: R-1001
Date: 2024-03-05
Cement bag 2 x 35,000
Nails 1kg 3 x 5,000
Subtotal: 85,000
VAT: 15,300
Total: 100,300
Paid by Mobile Money
"""

INVOICE = """Mukwano Wholesalers
Invoice No: INV-2231
Date: 01/04/2024
Due Date: 30/04/2024
Email: accounts@mukwano.example
Bill To: Kato Retail
Sugar 10 x 4,200
Discount: 2,000
Total: 40,000
"""

ID_CARD = """REPUBLIC OF UGANDA
Surname: Nakato
NIN: CM90012345ABCD
Date of Birth: 12/06/1990
Nationality: Ugandan
"""


def lines_of(text):
    return [line.strip() for line in text.splitlines() if line.strip()]


class TestExtraction:

    def test_receipt_fields(self):
        fields = extract_receipt(lines_of(RECEIPT))
        assert fields["merchantName"] == "Kisenyi Hardware"
        assert fields["merchantPhone"] == "0772 123456"
        assert fields["receiptNumber"] == "R-1001"
        assert fields["date"] == "2024-03-05"
        assert fields["subtotal"] == 85000
        assert fields["tax"] == 15300
        assert fields["total"] == 100300
        assert fields["paymentMethod"] == "Mobile Money"
        assert fields["items"] == [
            {"description": "Cement bag", "quantity": 2, "price": 35000},
            {"description": "Nails 1kg", "quantity": 3, "price": 5000},
        ]

    def test_subtotal_is_not_taken_as_total(self):
        fields = extract_receipt(["Shop", "Subtotal: 900"])
        assert fields["subtotal"] == 900
        assert fields["total"] == 0

    def test_invoice_fields(self):
        fields = extract_invoice(lines_of(INVOICE))
        assert fields["invoiceNumber"] == "INV-2231"
        assert fields["invoiceDate"] == "01/04/2024"
        assert fields["dueDate"] == "30/04/2024"
        assert fields["supplierName"] == "Mukwano Wholesalers"
        assert fields["supplierEmail"] == "accounts@mukwano.example"
        assert fields["customerName"] == "Kato Retail"
        assert fields["discount"] == 2000
        assert fields["total"] == 40000
        assert fields["items"] == [{"description": "Sugar", "quantity": 10, "price": 4200}]

    def test_id_card_fields(self):
        fields = extract_id_card(lines_of(ID_CARD))
        assert fields["fullName"] == "Nakato"
        assert fields["idNumber"] == "CM90012345ABCD"
        assert fields["dateOfBirth"] == "12/06/1990"
        assert fields["nationality"] == "Ugandan"
        assert fields["address"] == ""

    def test_no_text_layer(self):
        result = extract("", "receipt")
        assert result["has_text_layer"] is False
        assert result["confidence"] == 0.0
        assert result["fields"]["total"] == 0

    def test_confidence(self):
        assert confidence_of({}) == 0.0
        assert confidence_of({"a": "x", "b": "", "c": 0, "d": [1]}) == 0.5


class TestValidation:

    def test_receipt_without_total_is_invalid(self):
        report = validate_extracted({"total": 0, "date": "", "items": []}, "receipt")
        assert report["isValid"] is False
        assert report["errors"] == ["Invalid or missing total amount"]
        assert len(report["warnings"]) == 2

    def test_invoice_needs_a_number(self):
        report = validate_extracted({"total": 10, "supplierName": "A"}, "invoice")
        assert report["errors"] == ["Invoice number is required"]

    def test_generic_documents_have_no_rules(self):
        assert validate_extracted({}, "generic") == {"isValid": True, "errors": [], "warnings": []}


@pytest.mark.parametrize(
    "value, expected",
    [("2024-03-05", date(2024, 3, 5)), ("05/03/2024", date(2024, 3, 5)), ("", None), ("soon", None)],
)
def test_parse_document_date(value, expected):
    assert parse_document_date(value) == expected


async def upload(client, hdrs, text, document_type="receipt", name="till.txt", mime="text/plain"):
    content = text.encode() if isinstance(text, str) else text
    return await client.post(
        "/api/documents/upload",
        files={"file": (name, content, mime)},
        data={"document_type": document_type},
        headers=hdrs,
    )


class TestEndpoints:

    async def test_receipt_upload_suggests_links(self, client, factory, tenant, headers):
        await factory.product(tenant["company"], name="Cement Bag")
        response = await upload(client, headers(tenant["sales"]), RECEIPT)
        assert response.status_code == 201
        body = response.json()
        assert body["document"]["document_type"] == "receipt"
        assert body["document"]["extracted_data"]["fields"]["total"] == 100300
        assert body["document"]["extracted_data"]["confidence"] == 1.0
        assert body["validation"]["isValid"] is True

        by_type = {s["type"]: s for s in body["suggestions"]}
        assert by_type["product_match"]["item"] == "Cement bag"
        assert by_type["new_products"]["items"] == [{"name": "Nails 1kg", "price": 5000, "quantity": 3}]

    async def test_image_is_recorded_without_fields(self, client, tenant, headers):
        response = await upload(
            client, headers(tenant["sales"]), b"\x89PNG\r\n\x1a\n", name="scan.png", mime="image/png"
        )
        assert response.status_code == 201
        body = response.json()
        assert body["document"]["mime_type"] == "image/png"
        assert body["document"]["extracted_data"]["has_text_layer"] is False
        assert body["validation"]["isValid"] is False

    async def test_unknown_document_type(self, client, tenant, headers):
        response = await upload(client, headers(tenant["sales"]), RECEIPT, document_type="passport")
        assert response.status_code == 400

    async def test_empty_file(self, client, tenant, headers):
        response = await upload(client, headers(tenant["sales"]), b"")
        assert response.status_code == 400
        assert response.json()["detail"] == "No document file uploaded"

    async def test_receipt_becomes_an_expense_once(self, client, tenant, headers):
        hdrs = headers(tenant["sales"])
        document_id = (await upload(client, hdrs, RECEIPT)).json()["document"]["id"]

        created = await client.post(f"/api/documents/{document_id}/expense", json={}, headers=hdrs)
        assert created.status_code == 201
        expense = created.json()
        assert expense["amount"] == 100300
        assert expense["expense_date"] == "2024-03-05"
        assert expense["category"] == "supplies"
        assert expense["payment_method"] == "Mobile Money"

        document = await client.get(f"/api/documents/{document_id}", headers=hdrs)
        assert document.json()["expense_id"] == expense["id"]

        again = await client.post(f"/api/documents/{document_id}/expense", json={}, headers=hdrs)
        assert again.status_code == 409

    async def test_invoice_cannot_become_an_expense(self, client, tenant, headers):
        hdrs = headers(tenant["sales"])
        document_id = (await upload(client, hdrs, INVOICE, document_type="invoice")).json()["document"]["id"]
        response = await client.post(f"/api/documents/{document_id}/expense", json={}, headers=hdrs)
        assert response.status_code == 400

    async def test_history_is_scoped_to_the_company(self, client, factory, tenant, headers):
        document_id = (await upload(client, headers(tenant["sales"]), RECEIPT)).json()["document"]["id"]
        await upload(client, headers(tenant["sales"]), ID_CARD, document_type="id_card")

        history = await client.get("/api/documents/history", headers=headers(tenant["admin"]))
        assert history.json()["pagination"]["total"] == 2
        receipts = await client.get(
            "/api/documents/history", params={"document_type": "receipt"}, headers=headers(tenant["admin"])
        )
        assert [d["id"] for d in receipts.json()["documents"]] == [document_id]

        other = await factory.company(name="Elsewhere Ltd")
        outsider = await factory.user(other, "admin", is_company_admin=True)
        assert (await client.get(f"/api/documents/{document_id}", headers=headers(outsider))).status_code == 404
        empty = await client.get("/api/documents/history", headers=headers(outsider))
        assert empty.json()["documents"] == []

    async def test_delete_needs_manager_or_admin(self, client, tenant, headers):
        document_id = (await upload(client, headers(tenant["sales"]), RECEIPT)).json()["document"]["id"]
        refused = await client.delete(f"/api/documents/{document_id}", headers=headers(tenant["sales"]))
        assert refused.status_code == 403
        deleted = await client.delete(f"/api/documents/{document_id}", headers=headers(tenant["manager"]))
        assert deleted.status_code == 200
        gone = await client.get(f"/api/documents/{document_id}", headers=headers(tenant["admin"]))
        assert gone.status_code == 404
