"""
core/permissions.py
-------------------
Declarative role → capability table and the single authorisation gate.

Routes never compare role strings themselves. They declare the action they
perform via `require(Action.X)` (see dependencies.py) and this module
decides. An admin may also grant individual actions to a user through the
user's `permissions` list; grants outside the known action set are ignored.
"""

from enum import Enum as PyEnum
from typing import Dict, FrozenSet, Iterable, Optional


class Role(str, PyEnum):
    admin = "admin"
    manager = "manager"
    sales = "sales"


class Action(str, PyEnum):
    company_update = "company:update"

    products_create = "products:create"
    products_update = "products:update"
    products_delete = "products:delete"

    customers_delete = "customers:delete"

    sales_update = "sales:update"
    sales_delete = "sales:delete"

    invoices_generate = "invoices:generate"
    invoices_update = "invoices:update"
    invoices_delete = "invoices:delete"

    returns_approve = "returns:approve"
    returns_reject = "returns:reject"
    returns_delete = "returns:delete"

    documents_delete = "documents:delete"

    users_manage = "users:manage"
    backup_export = "backup:export"


_ALL_ACTIONS: FrozenSet[Action] = frozenset(Action)

POLICY: Dict[Role, FrozenSet[Action]] = {
    Role.admin: _ALL_ACTIONS,
    Role.manager: frozenset(
        {
            Action.products_create,
            Action.products_update,
            Action.customers_delete,
            Action.sales_update,
            Action.invoices_generate,
            Action.invoices_update,
            Action.returns_approve,
            Action.returns_reject,
            Action.documents_delete,
        }
    ),
    Role.sales: frozenset(
        {
            Action.sales_update,
            Action.invoices_generate,
            Action.invoices_update,
        }
    ),
}


def actions_for(role: str) -> FrozenSet[Action]:
    try:
        return POLICY[Role(role)]
    except ValueError:
        return frozenset()


def is_allowed(
    role: str,
    action: Action,
    grants: Optional[Iterable[str]] = None,
) -> bool:
    """True when the role, or an explicit per-user grant, permits the action."""
    if action in actions_for(role):
        return True
    return action.value in set(grants or ())


def known_action(value: str) -> bool:
    return value in {a.value for a in _ALL_ACTIONS}
