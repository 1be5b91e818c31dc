"""
Shared fixtures.

No network: the ledger is an in-memory fake and MongoDB is mongomock.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest
from mongomock_motor import AsyncMongoMockClient

from actual_context.audit import AuditLogger
from actual_context.config import ActualSettings
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
from actual_context.projections import BalanceProjector
from actual_context.services.ledger import LedgerClient
from actual_context.services.storage import MongoDbContextStorage
from actual_context.session import SessionManager
from actual_context.tools import create_tool_registry


class FakeLedgerClient(LedgerClient):
    """
    In-memory LedgerClient.

    Records every call, can be told to fail, and can hold budget loads open
    on an asyncio.Event so tests control interleavings.
    """

    def __init__(
        self,
        accounts: Optional[list[Account]] = None,
        transactions: Optional[list[Transaction]] = None,
        categories: Optional[list[Category]] = None,
        payees: Optional[list[Payee]] = None,
        category_groups: Optional[list[CategoryGroup]] = None,
        budget_months: Optional[list[BudgetMonth]] = None,
    ):
        self.accounts = list(accounts or [])
        self.transactions = list(transactions or [])
        self.categories = list(categories or [])
        self.payees = list(payees or [])
        self.category_groups = list(category_groups or [])
        self.budget_months = {b.month: b for b in budget_months or []}

        self.calls: list[tuple] = []
        self.loaded_budget: Optional[str] = None
        self.init_error: Optional[Exception] = None
        self.load_errors: dict[str, Exception] = {}
        self.sync_error: Optional[Exception] = None
        self.load_gate: Optional[asyncio.Event] = None
        self.active_loads = 0
        self.max_concurrent_loads = 0

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def init(self, server_url: str, password: str, data_dir: str) -> None:
        self.calls.append(("init", server_url, data_dir))
        if self.init_error is not None:
            raise self.init_error

    async def load_budget(self, budget_id: str) -> None:
        self.calls.append(("load_budget", budget_id))
        self.active_loads += 1
        self.max_concurrent_loads = max(self.max_concurrent_loads, self.active_loads)
        try:
            await asyncio.sleep(0)
            if self.load_gate is not None:
                await self.load_gate.wait()
            if budget_id in self.load_errors:
                raise self.load_errors[budget_id]
            self.loaded_budget = budget_id
        finally:
            self.active_loads -= 1

    async def shutdown(self) -> None:
        self.calls.append(("shutdown",))
        self.loaded_budget = None

    async def sync(self) -> None:
        self.calls.append(("sync", self.loaded_budget))
        if self.sync_error is not None:
            raise self.sync_error

    async def get_accounts(self) -> list[Account]:
        self.calls.append(("get_accounts",))
        return list(self.accounts)

    async def get_account_balance(self, account_id: str, as_of: Optional[date] = None) -> int:
        self.calls.append(("get_account_balance", account_id, as_of))
        return sum(
            t.amount
            for t in self.transactions
            if t.account_id == account_id and (as_of is None or t.date <= as_of)
        )

    async def get_transactions(self, account_id: str, start: date, end: date) -> list[Transaction]:
        self.calls.append(("get_transactions", account_id, start, end))
        return [
            t for t in self.transactions
            if t.account_id == account_id and start <= t.date <= end
        ]

    async def get_categories(self) -> list[Category]:
        self.calls.append(("get_categories",))
        return list(self.categories)

    async def get_payees(self) -> list[Payee]:
        self.calls.append(("get_payees",))
        return list(self.payees)

    async def get_category_groups(self) -> list[CategoryGroup]:
        self.calls.append(("get_category_groups",))
        return list(self.category_groups)

    async def get_budget_month(self, month: date) -> Optional[BudgetMonth]:
        self.calls.append(("get_budget_month", month))
        return self.budget_months.get(month.strftime("%Y-%m"))


class FakeAdmin:
    def __init__(self, error=None):
        self.error = error
        self.commands: list[str] = []

    async def command(self, name):
        self.commands.append(name)
        if self.error is not None:
            raise self.error
        return {"ok": 1.0}


class FakeMotorClient:
    """Just enough of AsyncIOMotorClient for MongoDbClient."""

    def __init__(self, collection, error=None):
        self.admin = FakeAdmin(error)
        self.closed = False
        self._collection = collection

    def __getitem__(self, db_name):
        return {"entity_contexts": self._collection}

    def close(self):
        self.closed = True


class TickingClock:
    """Returns a strictly increasing, millisecond-aligned UTC time per call."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(milliseconds=1)
        return self.now


def make_transaction(
    transaction_id: str,
    account_id: str,
    day: date,
    amount: int,
    **extra,
) -> Transaction:
    return Transaction(id=transaction_id, account_id=account_id, date=day, amount=amount, **extra)


@pytest.fixture
def checking() -> Account:
    return Account(id="acc-checking", name="Checking")


@pytest.fixture
def savings() -> Account:
    return Account(id="acc-savings", name="Savings", offbudget=True)


@pytest.fixture
def january_budget() -> BudgetMonth:
    """Envelope month: 200 carried in, 5000 received, 1000 held for February."""
    return BudgetMonth(
        month="2024-01",
        income_available=5200,
        for_next_month=1000,
        total_budgeted=3000,
        to_budget=1200,
        from_last_month=200,
        total_income=5000,
        total_spent=-2500,
        total_balance=500,
        category_groups=[
            BudgetGroupMonth(
                id="g-everyday",
                name="Everyday",
                categories=[
                    BudgetCategoryMonth(
                        id="c-food", name="Food", budgeted=3000, spent=-2500, balance=500
                    ),
                ],
            ),
            BudgetGroupMonth(
                id="g-income",
                name="Income",
                is_income=True,
                categories=[
                    BudgetCategoryMonth(id="c-salary", name="Salary", is_income=True, received=5000),
                ],
            ),
        ],
    )


@pytest.fixture
def ledger(checking, savings, january_budget) -> FakeLedgerClient:
    """Checking: 100 before Jan 1, then +50 and -70 on Jan 1 (80 at close)."""
    food = Category(id="c-food", name="Food", group_id="g-everyday")
    return FakeLedgerClient(
        accounts=[checking, savings],
        transactions=[
            make_transaction("t0", checking.id, date(2023, 12, 31), 100),
            make_transaction("t1", checking.id, date(2024, 1, 1), 50, payee_id="p-employer"),
            make_transaction("t2", checking.id, date(2024, 1, 1), -70, category_id="c-food"),
            make_transaction("t3", savings.id, date(2024, 1, 2), 12345),
        ],
        categories=[food],
        payees=[Payee(id="p-employer", name="Employer")],
        category_groups=[CategoryGroup(id="g-everyday", name="Everyday", categories=[food])],
        budget_months=[january_budget],
    )


@pytest.fixture
def actual_settings(tmp_path) -> ActualSettings:
    return ActualSettings(
        server_url="http://actual.test",
        server_password="secret",
        data_dir=str(tmp_path / "actual-data"),
        budget_id="budget-1",
    )


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def session(ledger, actual_settings, audit_logger) -> SessionManager:
    return SessionManager(ledger, actual_settings, audit_logger)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def collection():
    client = AsyncMongoMockClient()
    return client["actual_context_test"]["entity_contexts"]


@pytest.fixture
async def storage(collection, clock) -> MongoDbContextStorage:
    context_storage = MongoDbContextStorage(collection, clock=clock)
    await context_storage.ensure_indexes()
    return context_storage


@pytest.fixture
def projector(ledger) -> BalanceProjector:
    return BalanceProjector(ledger)


@pytest.fixture
def registry(session, storage, projector, audit_logger):
    return create_tool_registry(session, storage, projector, audit_logger)
