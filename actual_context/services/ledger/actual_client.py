"""
Actual Budget Ledger Client

Wraps the `actualpy` SDK behind the LedgerClient interface.

DESIGN DECISION: actualpy is synchronous and keeps the budget in a local
SQLite file opened through SQLAlchemy. SQLite connections must stay on the
thread that opened them, so every SDK call runs on ONE dedicated worker
thread. The event loop never blocks, and SDK calls are naturally
serialized.

TRADEOFFS:
- Concurrent tool calls queue on the worker thread (fine for one user)
- Balances are summed from transactions rather than read from a cache,
  which keeps "as of" semantics exact
"""

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Optional, TypeVar

import structlog
from actual import Actual
from actual.budgets import get_budget_history
from actual.queries import (
    get_accounts,
    get_categories,
    get_category_groups,
    get_payees,
    get_transactions,
)

from actual_context.models.ledger import (
    Account,
    BudgetCategoryMonth,
    BudgetGroupMonth,
    BudgetMonth,
    Category,
    CategoryGroup,
    Payee,
    Transaction,
)
from actual_context.services.ledger.interface import LedgerClient

T = TypeVar("T")

logger = structlog.get_logger(__name__)


def _to_minor(value: Any) -> int:
    """actualpy budget figures are Decimal major units; the core wants cents."""
    if value is None:
        return 0
    return int((Decimal(value) * 100).to_integral_value())


class ActualLedgerClient(LedgerClient):
    """
    LedgerClient backed by an Actual sync server.

    `load_budget` accepts whatever actualpy accepts to select a budget
    file: the Sync ID shown under Settings > Advanced, the file id, or
    the budget name.
    """

    def __init__(self, encryption_password: Optional[str] = None):
        self._encryption_password = encryption_password
        self._executor: Optional[ThreadPoolExecutor] = None
        self._server_url: Optional[str] = None
        self._password: Optional[str] = None
        self._data_dir: Optional[str] = None
        self._stack: Optional[ExitStack] = None
        self._actual: Optional[Actual] = None

    async def _run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking SDK call on the dedicated worker thread."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="actual-sdk"
            )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(fn, *args, **kwargs)
        )

    def _require_budget(self) -> Actual:
        if self._actual is None:
            raise RuntimeError("No budget loaded. Call load_budget() first.")
        return self._actual

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def init(self, server_url: str, password: str, data_dir: str) -> None:
        """Log in once to validate the server address and password."""
        self._server_url = server_url
        self._password = password
        self._data_dir = data_dir
        await self._run(Actual, base_url=server_url, password=password)
        logger.info("actual_server_reachable", server_url=server_url)

    def _open_budget(self, budget_id: str) -> None:
        self._close_budget()
        stack = ExitStack()
        try:
            self._actual = stack.enter_context(
                Actual(
                    base_url=self._server_url,
                    password=self._password,
                    file=budget_id,
                    encryption_password=self._encryption_password,
                    data_dir=self._data_dir,
                )
            )
        except BaseException:
            stack.close()
            self._actual = None
            raise
        self._stack = stack

    def _close_budget(self) -> None:
        stack, self._stack, self._actual = self._stack, None, None
        if stack is not None:
            stack.close()

    async def load_budget(self, budget_id: str) -> None:
        if self._server_url is None:
            raise RuntimeError("Ledger client not initialised. Call init() first.")
        await self._run(self._open_budget, budget_id)
        logger.info("actual_budget_opened", budget_id=budget_id)

    async def shutdown(self) -> None:
        if self._executor is None:
            return
        await self._run(self._close_budget)
        self._executor.shutdown(wait=True)
        self._executor = None

    async def sync(self) -> None:
        actual = self._require_budget()
        await self._run(actual.sync)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _find_account(self, account_id: str):
        actual = self._require_budget()
        for account in get_accounts(actual.session):
            if account.id == account_id:
                return account
        return None

    def _read_accounts(self) -> list[Account]:
        actual = self._require_budget()
        return [
            Account(
                id=a.id,
                name=a.name or "",
                offbudget=bool(getattr(a, "offbudget", False)),
                closed=bool(getattr(a, "closed", False)),
            )
            for a in get_accounts(actual.session)
        ]

    def _read_transactions(
        self,
        account_id: str,
        start: Optional[date],
        end: Optional[date],
    ) -> list[Transaction]:
        actual = self._require_budget()
        account = self._find_account(account_id)
        if account is None:
            return []
        # Fetch one extra day and trim here, so the result does not depend
        # on whether the SDK treats end_date as inclusive.
        rows = get_transactions(
            actual.session,
            start_date=start,
            end_date=end + timedelta(days=2) if end else None,
            account=account,
        )
        transactions = []
        for row in rows:
            row_date = row.get_date()
            if start and row_date < start:
                continue
            if end and row_date > end:
                continue
            transactions.append(
                Transaction(
                    id=row.id,
                    account_id=account_id,
                    date=row_date,
                    amount=int(row.amount or 0),
                    payee_id=getattr(row, "payee_id", None),
                    category_id=getattr(row, "category_id", None),
                    notes=getattr(row, "notes", None),
                    cleared=bool(getattr(row, "cleared", False)),
                )
            )
        return transactions

    def _read_balance(self, account_id: str, as_of: Optional[date]) -> int:
        return sum(t.amount for t in self._read_transactions(account_id, None, as_of))

    @staticmethod
    def _map_category(c) -> Category:
        return Category(
            id=c.id,
            name=c.name or "",
            group_id=getattr(c, "cat_group", None),
            is_income=bool(getattr(c, "is_income", False)),
            hidden=bool(getattr(c, "hidden", False)),
        )

    def _read_categories(self) -> list[Category]:
        actual = self._require_budget()
        return [self._map_category(c) for c in get_categories(actual.session)]

    def _read_category_groups(self) -> list[CategoryGroup]:
        actual = self._require_budget()
        return [
            CategoryGroup(
                id=g.id,
                name=g.name or "",
                is_income=bool(getattr(g, "is_income", False)),
                hidden=bool(getattr(g, "hidden", False)),
                categories=[
                    self._map_category(c) for c in getattr(g, "categories", None) or []
                ],
            )
            for g in get_category_groups(actual.session)
        ]

    @staticmethod
    def _map_expense_group(group) -> BudgetGroupMonth:
        return BudgetGroupMonth(
            id=group.id,
            name=group.name or "",
            is_income=group.is_income,
            hidden=group.hidden,
            categories=[
                BudgetCategoryMonth(
                    id=c.id,
                    name=c.name or "",
                    is_income=c.is_income,
                    hidden=c.hidden,
                    budgeted=_to_minor(c.budgeted),
                    spent=_to_minor(c.spent),
                    balance=_to_minor(c.accumulated_balance),
                    carryover=c.carryover,
                )
                for c in group.categories
            ],
        )

    @staticmethod
    def _map_income_group(group) -> BudgetGroupMonth:
        return BudgetGroupMonth(
            id=group.id,
            name=group.name or "",
            is_income=True,
            hidden=group.hidden,
            categories=[
                BudgetCategoryMonth(
                    id=c.id,
                    name=c.name or "",
                    is_income=True,
                    hidden=c.hidden,
                    budgeted=_to_minor(c.budgeted),
                    received=_to_minor(c.received),
                )
                for c in group.categories
            ],
        )

    def _read_budget_month(self, month: date) -> Optional[BudgetMonth]:
        actual = self._require_budget()
        month = month.replace(day=1)
        budget = get_budget_history(actual.session, month).from_month(month)
        if budget is None:
            return None

        groups = [self._map_expense_group(g) for g in budget.category_groups]
        groups.extend(self._map_income_group(g) for g in budget.income_category_groups)
        # Tracking budgets have no carry-in, hold or to-budget figures
        return BudgetMonth(
            month=month.strftime("%Y-%m"),
            income_available=_to_minor(getattr(budget, "available_funds", budget.received)),
            last_month_overspent=_to_minor(getattr(budget, "last_month_overspent", 0)),
            for_next_month=_to_minor(getattr(budget, "for_next_month", 0)),
            total_budgeted=_to_minor(budget.budgeted),
            to_budget=_to_minor(getattr(budget, "to_budget", 0)),
            from_last_month=_to_minor(getattr(budget, "from_last_month", 0)),
            total_income=_to_minor(budget.received),
            total_spent=_to_minor(budget.spent),
            total_balance=_to_minor(budget.accumulated_balance),
            category_groups=groups,
        )

    def _read_payees(self) -> list[Payee]:
        actual = self._require_budget()
        return [
            Payee(
                id=p.id,
                name=p.name or "",
                transfer_account_id=getattr(p, "transfer_acct", None),
            )
            for p in get_payees(actual.session)
        ]

    async def get_accounts(self) -> list[Account]:
        return await self._run(self._read_accounts)

    async def get_account_balance(
        self,
        account_id: str,
        as_of: Optional[date] = None,
    ) -> int:
        return await self._run(self._read_balance, account_id, as_of)

    async def get_transactions(
        self,
        account_id: str,
        start: date,
        end: date,
    ) -> list[Transaction]:
        return await self._run(self._read_transactions, account_id, start, end)

    async def get_categories(self) -> list[Category]:
        return await self._run(self._read_categories)

    async def get_payees(self) -> list[Payee]:
        return await self._run(self._read_payees)

    async def get_category_groups(self) -> list[CategoryGroup]:
        return await self._run(self._read_category_groups)

    async def get_budget_month(self, month: date) -> Optional[BudgetMonth]:
        return await self._run(self._read_budget_month, month)
