"""
services/document_service.py
----------------------------
Receipt, invoice and ID uploads.

Fields are read from the document's text layer. Plain-text and CSV uploads
(exports from till systems and mobile-money statements) carry one; images
and PDFs are accepted and recorded, but no OCR engine is bundled, so their
fields stay empty with confidence 0.

Each upload is checked against a few business rules (a receipt needs a
total, an invoice needs a number) and matched against the company's own
products and customers to suggest links.
"""

import re
from datetime import date, datetime
from difflib import SequenceMatcher
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import Conflict, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.models import Expense, ProcessedDocument
from bizdesk.repositories import CustomerRepository, DocumentRepository, ProductRepository
from bizdesk.schemas.document import ExpenseFromReceipt
from bizdesk.schemas.expense import ExpenseCreate
from bizdesk.services.expense_service import ExpenseService

logger = get_logger(__name__)

MAX_DOCUMENT_BYTES = 5 * 1024 * 1024
MATCH_THRESHOLD = 0.7
MAX_MATCHES = 3

_AMOUNT = r"(\d[\d,]*(?:\.\d{1,2})?)"
_DATE_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4})\b")
_TOTAL_RE = re.compile(r"\b(?:grand\s+)?total\b[^\d\n]*" + _AMOUNT, re.I)
_SUBTOTAL_RE = re.compile(r"\bsub\s*-?\s*total\b[^\d\n]*" + _AMOUNT, re.I)
_TAX_RE = re.compile(r"\b(?:tax|vat)\b[^\d\n]*" + _AMOUNT, re.I)
_DISCOUNT_RE = re.compile(r"\bdiscount\b[^\d\n]*" + _AMOUNT, re.I)
_RECEIPT_NO_RE = re.compile(r"\breceipt\s*(?:no\.?|number|#)\s*[:.]?\s*([A-Z0-9][A-Z0-9-]*)", re.I)
_INVOICE_NO_RE = re.compile(r"\binvoice\s*(?:no\.?|number|#)\s*[:.]?\s*([A-Z0-9][A-Z0-9-]*)", re.I)
_DUE_RE = re.compile(r"\bdue(?:\s+date)?\b[^\d\n]*(\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4})", re.I)
_PHONE_RE = re.compile(r"\b(?:tel|phone)\b[^\d+\n]*(\+?\d[\d -]{6,}\d)", re.I)
_EMAIL_RE = re.compile(r"([\w.+-]+@[\w-]+\.[\w.-]+)")
_PAYMENT_RE = re.compile(r"\b(cash|card|mobile money|bank transfer|cheque)\b", re.I)
_ITEM_RE = re.compile(
    r"^(?P<description>.*?[A-Za-z].*?)\s+(?P<quantity>\d+)\s*[xX@]\s*(?P<price>\d[\d,]*(?:\.\d{1,2})?)$"
)


def _labelled(label: str) -> re.Pattern:
    return re.compile(r"^\s*(?:" + label + r")\s*[:\-]\s*(.+?)\s*$", re.I | re.M)


_BILL_TO_RE = _labelled(r"bill\s+to|customer|client")
_NAME_RE = _labelled(r"(?:full\s+)?name|surname")
_ID_NUMBER_RE = _labelled(r"(?:id|nin|national\s+id)\s*(?:no\.?|number)?")
_DOB_RE = _labelled(r"dob|date\s+of\s+birth")
_EXPIRY_RE = _labelled(r"expiry(?:\s+date)?|expires")
_NATIONALITY_RE = _labelled(r"nationality")
_ADDRESS_RE = _labelled(r"address")


def _first(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def _last_amount(pattern: re.Pattern, text: str) -> float:
    matches = pattern.findall(text)
    return to_amount(matches[-1]) if matches else 0.0


def to_amount(value: str) -> float:
    return round(float(value.replace(",", "")), 2)


def extract_items(lines: List[str]) -> List[Dict[str, Any]]:
    """Lines shaped like `Cement bag 2 x 35,000`."""
    items = []
    for line in lines:
        match = _ITEM_RE.match(line)
        if match:
            items.append(
                {
                    "description": match.group("description").strip(),
                    "quantity": int(match.group("quantity")),
                    "price": to_amount(match.group("price")),
                }
            )
    return items


def extract_receipt(lines: List[str]) -> Dict[str, Any]:
    text = "\n".join(lines)
    return {
        "merchantName": lines[0] if lines else "",
        "merchantPhone": _first(_PHONE_RE, text),
        "items": extract_items(lines),
        "subtotal": _last_amount(_SUBTOTAL_RE, text),
        "tax": _last_amount(_TAX_RE, text),
        "total": _last_amount(_TOTAL_RE, text),
        "date": _first(_DATE_RE, text),
        "receiptNumber": _first(_RECEIPT_NO_RE, text),
        "paymentMethod": _first(_PAYMENT_RE, text).title(),
    }


def extract_invoice(lines: List[str]) -> Dict[str, Any]:
    text = "\n".join(lines)
    return {
        "invoiceNumber": _first(_INVOICE_NO_RE, text),
        "invoiceDate": _first(_DATE_RE, text),
        "dueDate": _first(_DUE_RE, text),
        "supplierName": lines[0] if lines else "",
        "supplierPhone": _first(_PHONE_RE, text),
        "supplierEmail": _first(_EMAIL_RE, text),
        "customerName": _first(_BILL_TO_RE, text),
        "items": extract_items(lines),
        "subtotal": _last_amount(_SUBTOTAL_RE, text),
        "tax": _last_amount(_TAX_RE, text),
        "discount": _last_amount(_DISCOUNT_RE, text),
        "total": _last_amount(_TOTAL_RE, text),
    }


def extract_id_card(lines: List[str]) -> Dict[str, Any]:
    text = "\n".join(lines)
    return {
        "fullName": _first(_NAME_RE, text),
        "idNumber": _first(_ID_NUMBER_RE, text),
        "dateOfBirth": _first(_DOB_RE, text),
        "address": _first(_ADDRESS_RE, text),
        "expiryDate": _first(_EXPIRY_RE, text),
        "nationality": _first(_NATIONALITY_RE, text),
    }


def extract_generic(lines: List[str]) -> Dict[str, Any]:
    return {"lines": lines}


EXTRACTORS: Dict[str, Callable[[List[str]], Dict[str, Any]]] = {
    "receipt": extract_receipt,
    "invoice": extract_invoice,
    "id_card": extract_id_card,
    "generic": extract_generic,
}


def confidence_of(fields: Dict[str, Any]) -> float:
    """Share of fields that came out non-empty."""
    if not fields:
        return 0.0
    filled = sum(1 for value in fields.values() if value not in ("", 0, 0.0, [], None))
    return round(filled / len(fields), 2)


def extract(text: str, document_type: str) -> Dict[str, Any]:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    fields = EXTRACTORS[document_type](lines)
    return {
        "text": text,
        "fields": fields,
        "confidence": confidence_of(fields) if lines else 0.0,
        "has_text_layer": bool(lines),
    }


def validate_extracted(fields: Dict[str, Any], document_type: str) -> Dict[str, Any]:
    errors: List[str] = []
    warnings: List[str] = []

    if document_type == "receipt":
        if not fields.get("total"):
            errors.append("Invalid or missing total amount")
        if not fields.get("date"):
            warnings.append("Receipt date not found")
        if not fields.get("items"):
            warnings.append("No items extracted from receipt")
    elif document_type == "invoice":
        if not fields.get("invoiceNumber"):
            errors.append("Invoice number is required")
        if not fields.get("total"):
            errors.append("Invalid or missing total amount")
        if not fields.get("supplierName"):
            warnings.append("Supplier name not found")

    return {"isValid": not errors, "errors": errors, "warnings": warnings}


def similarity(a: str, b: str) -> float:
    return SequenceMatcher(None, a.lower().strip(), b.lower().strip()).ratio()


def best_matches(term: str, candidates: List[Any], key: Callable[[Any], str]) -> List[tuple[Any, float]]:
    scored = [(c, similarity(term, key(c))) for c in candidates]
    scored = [(c, s) for c, s in scored if s > MATCH_THRESHOLD]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:MAX_MATCHES]


def suggestions_for(
    fields: Dict[str, Any],
    document_type: str,
    products: List[Any],
    customers: List[Any],
) -> List[Dict[str, Any]]:
    if document_type not in ("receipt", "invoice"):
        return []

    suggestions: List[Dict[str, Any]] = []
    unmatched = []
    for item in fields.get("items") or []:
        matches = best_matches(item["description"], products, key=lambda p: p.name)
        if not matches:
            unmatched.append(item)
            continue
        suggestions.append(
            {
                "type": "product_match",
                "item": item["description"],
                "matches": [
                    {"id": p.id, "name": p.name, "similarity": round(score, 2)} for p, score in matches
                ],
            }
        )

    customer_name = fields.get("customerName")
    if customer_name:
        matches = best_matches(customer_name, customers, key=lambda c: c.name)
        if matches:
            suggestions.append(
                {
                    "type": "customer_match",
                    "extractedName": customer_name,
                    "matches": [{"id": c.id, "name": c.name, "phone": c.phone} for c, _ in matches],
                }
            )

    if unmatched:
        suggestions.append(
            {
                "type": "new_products",
                "items": [
                    {"name": i["description"], "price": i["price"], "quantity": i["quantity"]}
                    for i in unmatched
                ],
            }
        )
    return suggestions


def parse_document_date(value: str) -> Optional[date]:
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


class DocumentService:

    @staticmethod
    async def process(
        db: AsyncSession,
        company_id: str,
        user_id: str,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        document_type: str = "receipt",
    ) -> tuple[ProcessedDocument, Dict[str, Any], List[Dict[str, Any]]]:
        if document_type not in EXTRACTORS:
            raise ValidationFailed(
                f"Unsupported document type. Use one of: {', '.join(EXTRACTORS)}"
            )
        if not content:
            raise ValidationFailed("No document file uploaded")
        if len(content) > MAX_DOCUMENT_BYTES:
            raise ValidationFailed("File too large. Maximum size is 5MB")

        mime_type = (content_type or "application/octet-stream").split(";")[0].strip().lower()
        text = content.decode("utf-8", errors="replace") if mime_type.startswith("text/") else ""
        extracted = extract(text, document_type)
        fields = extracted["fields"]

        products = customers = []
        if fields.get("items"):
            products = await ProductRepository(db).list(company_id=company_id)
        if fields.get("customerName"):
            customers = await CustomerRepository(db).list(company_id=company_id)

        document = await DocumentRepository(db).create(
            company_id=company_id,
            user_id=user_id,
            original_name=(filename or "document")[:255],
            mime_type=mime_type[:100],
            file_size=len(content),
            document_type=document_type,
            extracted_data=extracted,
            status="completed",
        )
        logger.info(
            "Document processed",
            document_id=document.id,
            company_id=company_id,
            document_type=document_type,
            confidence=extracted["confidence"],
        )
        return (
            document,
            validate_extracted(fields, document_type),
            suggestions_for(fields, document_type, products, customers),
        )

    @staticmethod
    async def list_documents(
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        limit: int = 20,
        document_type: Optional[str] = None,
    ) -> tuple[int, list[ProcessedDocument]]:
        criteria = []
        if document_type:
            criteria.append(ProcessedDocument.document_type == document_type)
        return await DocumentRepository(db).page(
            *criteria,
            company_id=company_id,
            order_by=(ProcessedDocument.created_at.desc(),),
            offset=(page - 1) * limit,
            limit=limit,
        )

    @staticmethod
    async def get_document(db: AsyncSession, company_id: str, document_id: str) -> ProcessedDocument:
        return await DocumentRepository(db).get_or_404(document_id, company_id=company_id)

    @staticmethod
    async def delete_document(db: AsyncSession, company_id: str, document_id: str) -> None:
        documents = DocumentRepository(db)
        document = await documents.get_or_404(document_id, company_id=company_id)
        await documents.delete(document.id, company_id=company_id)
        logger.info("Document deleted", document_id=document_id, company_id=company_id)

    @staticmethod
    async def create_expense(
        db: AsyncSession,
        company_id: str,
        document_id: str,
        data: ExpenseFromReceipt,
        user_id: Optional[str] = None,
    ) -> Expense:
        document = await DocumentRepository(db).get_or_404(document_id, company_id=company_id)
        if document.document_type != "receipt":
            raise ValidationFailed("Only receipts can be turned into expenses")
        if document.expense_id:
            raise Conflict("An expense was already created from this document")

        fields = (document.extracted_data or {}).get("fields") or {}
        amount = data.amount or fields.get("total")
        if not amount:
            raise ValidationFailed("Receipt total not found. Provide an amount.")

        merchant = fields.get("merchantName") or "Unknown"
        expense = await ExpenseService.create_expense(
            db,
            company_id,
            ExpenseCreate(
                description=f"Expense from receipt: {merchant}",
                amount=amount,
                category=data.category,
                expense_date=parse_document_date(fields.get("date") or ""),
                payment_method=data.payment_method or fields.get("paymentMethod") or None,
                notes=f"Created from document {document.original_name}",
            ),
            user_id=user_id,
        )
        document.expense_id = expense.id
        await db.flush()
        return expense
