from bizdesk.repositories.base import TenantRepository
from bizdesk.repositories.resources import (
    EXPORTED_REPOSITORIES,
    TENANT_REPOSITORIES,
    AnnouncementReadRepository,
    AuditLogRepository,
    CompanyAnnouncementRepository,
    CustomerRepository,
    DocumentRepository,
    ExpenseRepository,
    InvoiceRepository,
    NotificationRepository,
    ProductRepository,
    ReturnRepository,
    SaleItemRepository,
    SaleRepository,
    StockTransactionRepository,
    SupportTicketRepository,
    TicketMessageRepository,
    UserRepository,
)

__all__ = [
    "EXPORTED_REPOSITORIES",
    "TENANT_REPOSITORIES",
    "AnnouncementReadRepository",
    "AuditLogRepository",
    "CompanyAnnouncementRepository",
    "CustomerRepository",
    "DocumentRepository",
    "ExpenseRepository",
    "InvoiceRepository",
    "NotificationRepository",
    "ProductRepository",
    "ReturnRepository",
    "SaleItemRepository",
    "SaleRepository",
    "StockTransactionRepository",
    "SupportTicketRepository",
    "TicketMessageRepository",
    "TenantRepository",
    "UserRepository",
]
