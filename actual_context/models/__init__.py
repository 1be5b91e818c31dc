"""
Data Models Package

This package contains all Pydantic models used in Actual Context.
All data flowing through the system must conform to these schemas.
"""

from actual_context.models.context import (
    OWNER_ENTITY_ID,
    ContextPredicate,
    ContextQuery,
    EntityContext,
    EntityType,
)
from actual_context.models.ledger import (
    Account,
    BalanceHistory,
    BalanceHistoryPoint,
    BudgetCategoryMonth,
    BudgetGroupMonth,
    BudgetMonth,
    Category,
    CategoryGroup,
    Payee,
    Transaction,
)
from actual_context.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Context models
    "OWNER_ENTITY_ID",
    "ContextPredicate",
    "ContextQuery",
    "EntityContext",
    "EntityType",
    # Ledger models
    "Account",
    "BalanceHistory",
    "BalanceHistoryPoint",
    "BudgetCategoryMonth",
    "BudgetGroupMonth",
    "BudgetMonth",
    "Category",
    "CategoryGroup",
    "Payee",
    "Transaction",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
