"""
models/__init__.py
------------------
Re-export all models so a single import registers every table on
Base.metadata:

    from bizdesk.models import Base
"""

from bizdesk.db.base import Base
from bizdesk.models.analytics import VisitorSession
from bizdesk.models.announcement import Announcement, AnnouncementRead
from bizdesk.models.audit_log import AuditLog
from bizdesk.models.company import Company, CompanyStatus
from bizdesk.models.customer import Customer
from bizdesk.models.document import ProcessedDocument
from bizdesk.models.expense import Expense
from bizdesk.models.invoice import Invoice
from bizdesk.models.notification import Notification
from bizdesk.models.platform_setting import PlatformSetting
from bizdesk.models.product import Product, StockTransaction, StockTransactionType
from bizdesk.models.sale import Sale, SaleItem, SaleStatus
from bizdesk.models.sales_return import ReturnStatus, SalesReturn
from bizdesk.models.superadmin import SuperAdmin
from bizdesk.models.support_ticket import SupportTicket, TicketMessage, TicketStatus
from bizdesk.models.user import User, UserStatus

__all__ = [
    "Base",
    "Announcement",
    "AnnouncementRead",
    "AuditLog",
    "Company",
    "CompanyStatus",
    "Customer",
    "Expense",
    "Invoice",
    "Notification",
    "PlatformSetting",
    "ProcessedDocument",
    "Product",
    "ReturnStatus",
    "Sale",
    "SaleItem",
    "SaleStatus",
    "SalesReturn",
    "StockTransaction",
    "StockTransactionType",
    "SuperAdmin",
    "SupportTicket",
    "TicketMessage",
    "TicketStatus",
    "User",
    "UserStatus",
    "VisitorSession",
]
