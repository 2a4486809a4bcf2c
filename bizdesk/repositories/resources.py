"""
repositories/resources.py
-------------------------
Concrete tenant repositories, one per tenant-owned table.
"""

from bizdesk.models import (
    Announcement,
    AnnouncementRead,
    AuditLog,
    Customer,
    Expense,
    Invoice,
    Notification,
    ProcessedDocument,
    Product,
    Sale,
    SaleItem,
    SalesReturn,
    StockTransaction,
    SupportTicket,
    TicketMessage,
    User,
)
from bizdesk.repositories.base import TenantRepository


class UserRepository(TenantRepository[User]):
    model = User
    not_found_message = "User not found"


class ProductRepository(TenantRepository[Product]):
    model = Product
    not_found_message = "Product not found"


class StockTransactionRepository(TenantRepository[StockTransaction]):
    model = StockTransaction


class CustomerRepository(TenantRepository[Customer]):
    model = Customer
    not_found_message = "Customer not found"


class SaleRepository(TenantRepository[Sale]):
    model = Sale
    not_found_message = "Sales order not found"


class SaleItemRepository(TenantRepository[SaleItem]):
    model = SaleItem


class InvoiceRepository(TenantRepository[Invoice]):
    model = Invoice
    not_found_message = "Invoice not found"


class ExpenseRepository(TenantRepository[Expense]):
    model = Expense
    not_found_message = "Expense not found"


class ReturnRepository(TenantRepository[SalesReturn]):
    model = SalesReturn
    not_found_message = "Return not found"


class NotificationRepository(TenantRepository[Notification]):
    model = Notification
    not_found_message = "Notification not found"


class SupportTicketRepository(TenantRepository[SupportTicket]):
    model = SupportTicket
    not_found_message = "Support ticket not found"


class TicketMessageRepository(TenantRepository[TicketMessage]):
    model = TicketMessage


class CompanyAnnouncementRepository(TenantRepository[Announcement]):
    """Announcements addressed to one company; platform-wide ones have no company_id."""

    model = Announcement
    not_found_message = "Announcement not found"


class AnnouncementReadRepository(TenantRepository[AnnouncementRead]):
    model = AnnouncementRead


class DocumentRepository(TenantRepository[ProcessedDocument]):
    model = ProcessedDocument
    not_found_message = "Document not found"


class AuditLogRepository(TenantRepository[AuditLog]):
    model = AuditLog
    not_found_message = "Audit log entry not found"


# Child tables before their parents, so deleting in this order never trips
# a foreign key even where ON DELETE CASCADE is not enforced (SQLite).
TENANT_REPOSITORIES: tuple[type[TenantRepository], ...] = (
    TicketMessageRepository,
    SupportTicketRepository,
    AnnouncementReadRepository,
    NotificationRepository,
    DocumentRepository,
    ReturnRepository,
    InvoiceRepository,
    SaleItemRepository,
    StockTransactionRepository,
    SaleRepository,
    CustomerRepository,
    ProductRepository,
    ExpenseRepository,
    UserRepository,
)

# Everything a company backup carries, parents first. Audit entries and
# targeted announcements are exported but stay out of the tenant delete loop.
EXPORTED_REPOSITORIES: tuple[type[TenantRepository], ...] = (
    CompanyAnnouncementRepository,
    *reversed(TENANT_REPOSITORIES),
    AuditLogRepository,
)
