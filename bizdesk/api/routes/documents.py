"""
api/routes/documents.py
-----------------------
Uploaded receipts, invoices and ID scans of the current company.

POST   /documents/upload          — multipart `file` plus `document_type`
GET    /documents/history         — ?page, ?limit, ?document_type
GET    /documents/{id}
POST   /documents/{id}/expense    — book a receipt as an expense
DELETE /documents/{id}            — admin, manager
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from bizdesk.core.permissions import Action
from bizdesk.dependencies import DbSession, Tenant, TenantContext, require
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.document import (
    DocumentList,
    DocumentProcessed,
    DocumentRead,
    ExpenseFromReceipt,
)
from bizdesk.schemas.expense import ExpenseRead
from bizdesk.services.document_service import DocumentService

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.post(
    "/upload",
    response_model=DocumentProcessed,
    status_code=status.HTTP_201_CREATED,
    summary="Upload and read a document",
)
async def upload_document(
    ctx: Tenant,
    db: DbSession,
    file: UploadFile = File(...),
    document_type: str = Form(default="receipt"),
) -> DocumentProcessed:
    content = await file.read()
    document, validation, suggestions = await DocumentService.process(
        db,
        ctx.company_id,
        ctx.user_id,
        filename=file.filename,
        content_type=file.content_type,
        content=content,
        document_type=document_type,
    )
    return DocumentProcessed(
        document=DocumentRead.model_validate(document),
        validation=validation,
        suggestions=suggestions,
    )


@router.get("/history", response_model=DocumentList, summary="Processed documents")
async def document_history(
    ctx: Tenant,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    document_type: Optional[str] = Query(default=None, max_length=20),
) -> DocumentList:
    total, documents = await DocumentService.list_documents(
        db, ctx.company_id, page=page, limit=limit, document_type=document_type
    )
    return DocumentList(
        documents=[DocumentRead.model_validate(d) for d in documents],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{document_id}", response_model=DocumentRead, summary="One processed document")
async def get_document(document_id: str, ctx: Tenant, db: DbSession) -> DocumentRead:
    return DocumentRead.model_validate(
        await DocumentService.get_document(db, ctx.company_id, document_id)
    )


@router.post(
    "/{document_id}/expense",
    response_model=ExpenseRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record a receipt as an expense",
)
async def expense_from_document(
    document_id: str, body: ExpenseFromReceipt, ctx: Tenant, db: DbSession
) -> ExpenseRead:
    expense = await DocumentService.create_expense(
        db, ctx.company_id, document_id, body, user_id=ctx.user_id
    )
    return ExpenseRead.model_validate(expense)


@router.delete("/{document_id}", response_model=MessageResponse, summary="Delete a document")
async def delete_document(
    document_id: str,
    ctx: Annotated[TenantContext, Depends(require(Action.documents_delete))],
    db: DbSession,
) -> MessageResponse:
    await DocumentService.delete_document(db, ctx.company_id, document_id)
    return MessageResponse(message="Document deleted successfully")
