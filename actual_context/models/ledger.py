"""
Ledger Models

Read-only views of Actual Budget entities, plus the balance history we
derive from them.

DESIGN DECISION: Amounts stay in integer minor units (cents) everywhere
inside the core. Conversion to decimal major units happens once, at the
edge, in actual_context.conversion. This keeps the arithmetic exact.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class LedgerModel(BaseModel):
    """Shared config: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Account(LedgerModel):
    """A ledger account (checking, savings, credit card, ...)."""

    id: str
    name: str
    offbudget: bool = False
    closed: bool = False


class Category(LedgerModel):
    """A budget category."""

    id: str
    name: str
    group_id: Optional[str] = None
    is_income: bool = False
    hidden: bool = False


class Payee(LedgerModel):
    """A payee. Transfer payees point at the other account."""

    id: str
    name: str
    transfer_account_id: Optional[str] = None


class Transaction(LedgerModel):
    """
    A single ledger transaction.

    Positive amounts are credits (money in), negative are debits.
    """

    id: str
    account_id: str
    date: dt.date
    amount: int = Field(..., description="Integer minor units")
    payee_id: Optional[str] = None
    category_id: Optional[str] = None
    notes: Optional[str] = None
    cleared: bool = False
    subtransactions: list["Transaction"] = Field(default_factory=list)


class BalanceHistoryPoint(LedgerModel):
    """One calendar day of balance history, in integer minor units."""

    date: dt.date
    end_of_day_balance: int
    theoretical_peak_intraday_balance: int


class BalanceHistory(LedgerModel):
    """Day-by-day history for one account over [start_date, end_date)."""

    account: Account
    start_date: dt.date
    end_date: dt.date
    points: list[BalanceHistoryPoint] = Field(default_factory=list)

    @computed_field
    @property
    def days_requested(self) -> int:
        return max((self.end_date - self.start_date).days, 0)

    @computed_field
    @property
    def data_points(self) -> int:
        return len(self.points)


class CategoryGroup(LedgerModel):
    """A group of budget categories."""

    id: str
    name: str
    is_income: bool = False
    hidden: bool = False
    categories: list[Category] = Field(default_factory=list)


class BudgetCategoryMonth(LedgerModel):
    """
    One category's figures for one budget month, in integer minor units.

    `balance` includes carryover from earlier months. Income categories
    report `received` and leave `spent` and `balance` at zero.
    """

    id: str
    name: str
    is_income: bool = False
    hidden: bool = False
    budgeted: int = 0
    spent: int = 0
    balance: int = 0
    received: int = 0
    carryover: bool = False


class BudgetGroupMonth(LedgerModel):
    """A category group's categories for one budget month."""

    id: str
    name: str
    is_income: bool = False
    hidden: bool = False
    categories: list[BudgetCategoryMonth] = Field(default_factory=list)


class BudgetMonth(LedgerModel):
    """
    Budget-versus-actual summary for one month, in integer minor units.

    Envelope-only figures (money carried from last month, held for next
    month, overspending) are zero for tracking budgets.
    """

    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    income_available: int = 0
    last_month_overspent: int = 0
    for_next_month: int = 0
    total_budgeted: int = 0
    to_budget: int = 0
    from_last_month: int = 0
    total_income: int = 0
    total_spent: int = 0
    total_balance: int = 0
    category_groups: list[BudgetGroupMonth] = Field(default_factory=list)

    @property
    def available_income(self) -> int:
        """Income usable this month: carried in, plus received, minus held back."""
        return self.from_last_month + (self.total_income - self.for_next_month)
