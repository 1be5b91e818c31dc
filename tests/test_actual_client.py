"""
Tests for the actualpy-backed ledger client.

The SDK entry points are monkeypatched, so these check our adaptation
(threading, date trimming, model mapping) without an Actual server.
"""

import threading
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from actual_context.models.ledger import Account, Category, CategoryGroup, Payee, Transaction
from actual_context.services.ledger import actual_client
from actual_context.services.ledger.actual_client import ActualLedgerClient


class FakeActual:
    """Stands in for actual.Actual: records construction, acts as a context manager."""

    instances: list["FakeActual"] = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.session = SimpleNamespace(thread=threading.current_thread().name)
        self.closed = False
        self.synced = 0
        FakeActual.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    def sync(self):
        self.synced += 1


class FakeRow(SimpleNamespace):
    def get_date(self) -> date:
        return self.day


ACCOUNT_ROWS = [
    SimpleNamespace(id="a1", name="Checking", offbudget=False, closed=False),
    SimpleNamespace(id="a2", name=None, offbudget=True, closed=True),
]

TRANSACTION_ROWS = {
    "a1": [
        FakeRow(id="t1", day=date(2024, 1, 1), amount=100, payee_id="p1", category_id=None, notes="pay", cleared=True),
        FakeRow(id="t2", day=date(2024, 1, 2), amount=-30, payee_id=None, category_id="c1", notes=None, cleared=False),
        FakeRow(id="t3", day=date(2024, 1, 3), amount=-5, payee_id=None, category_id=None, notes=None, cleared=False),
    ],
}


class FakeHistory(list):
    """Mimics actualpy's BudgetList: months up to `until`, looked up by month."""

    def __init__(self, budgets, until):
        super().__init__(b for b in budgets if b.month <= until)

    def from_month(self, month):
        for budget in self:
            if budget.month == month.replace(day=1):
                return budget
        return None


def budget_category(name, budgeted, spent, balance, carryover=False):
    return SimpleNamespace(
        id=f"c-{name.lower()}",
        name=name,
        is_income=False,
        hidden=False,
        budgeted=Decimal(budgeted),
        spent=Decimal(spent),
        accumulated_balance=Decimal(balance),
        carryover=carryover,
    )


ENVELOPE_MONTH = SimpleNamespace(
    month=date(2024, 1, 1),
    category_groups=[
        SimpleNamespace(
            id="g1",
            name="Everyday",
            is_income=False,
            hidden=False,
            categories=[budget_category("Food", "30.00", "-25.50", "4.50", carryover=True)],
        ),
    ],
    income_category_groups=[
        SimpleNamespace(
            id="g-income",
            name="Income",
            hidden=False,
            categories=[
                SimpleNamespace(
                    id="c-salary",
                    name="Salary",
                    hidden=False,
                    budgeted=Decimal(0),
                    received=Decimal("50.00"),
                ),
            ],
        ),
    ],
    received=Decimal("50.00"),
    budgeted=Decimal("30.00"),
    spent=Decimal("-25.50"),
    accumulated_balance=Decimal("4.50"),
    available_funds=Decimal("52.00"),
    last_month_overspent=Decimal(0),
    for_next_month=Decimal("10.00"),
    to_budget=Decimal("12.00"),
    from_last_month=Decimal("2.00"),
)

# Tracking budgets carry no carry-in, hold or to-budget figures
TRACKING_MONTH = SimpleNamespace(
    month=date(2024, 2, 1),
    category_groups=[],
    income_category_groups=[],
    received=Decimal("40.00"),
    budgeted=Decimal(0),
    spent=Decimal("-12.34"),
    accumulated_balance=Decimal("-12.34"),
)

BUDGET_HISTORY = [ENVELOPE_MONTH, TRACKING_MONTH]


@pytest.fixture
def sdk(monkeypatch):
    FakeActual.instances = []
    threads = []

    def fake_get_accounts(session):
        threads.append(threading.current_thread().name)
        return ACCOUNT_ROWS

    def fake_get_transactions(session, start_date=None, end_date=None, account=None):
        threads.append(threading.current_thread().name)
        # Deliberately unfiltered by date: the client must trim
        return TRANSACTION_ROWS.get(account.id, [])

    def fake_get_categories(session):
        return [SimpleNamespace(id="c1", name="Food", cat_group="g1", is_income=False, hidden=False)]

    def fake_get_payees(session):
        return [SimpleNamespace(id="p1", name="Employer", transfer_acct=None)]

    def fake_get_category_groups(session):
        food = SimpleNamespace(id="c1", name="Food", cat_group="g1", is_income=False, hidden=False)
        return [SimpleNamespace(id="g1", name="Everyday", is_income=0, hidden=False, categories=[food])]

    def fake_get_budget_history(session, until):
        threads.append(threading.current_thread().name)
        return FakeHistory(BUDGET_HISTORY, until)

    monkeypatch.setattr(actual_client, "Actual", FakeActual)
    monkeypatch.setattr(actual_client, "get_accounts", fake_get_accounts)
    monkeypatch.setattr(actual_client, "get_transactions", fake_get_transactions)
    monkeypatch.setattr(actual_client, "get_categories", fake_get_categories)
    monkeypatch.setattr(actual_client, "get_payees", fake_get_payees)
    monkeypatch.setattr(actual_client, "get_category_groups", fake_get_category_groups)
    monkeypatch.setattr(actual_client, "get_budget_history", fake_get_budget_history)
    return SimpleNamespace(threads=threads)


@pytest.fixture
async def client(sdk):
    ledger = ActualLedgerClient(encryption_password="e2e")
    await ledger.init("http://actual.test", "secret", "/tmp/actual")
    await ledger.load_budget("budget-1")
    yield ledger
    await ledger.shutdown()


class TestLifecycle:
    """Tests for init, load_budget and shutdown."""

    async def test_load_before_init(self, sdk):
        """Test that loading a budget requires init first."""
        ledger = ActualLedgerClient()
        with pytest.raises(RuntimeError):
            await ledger.load_budget("budget-1")

    async def test_init_and_load_arguments(self, client):
        """Test what reaches the SDK constructor."""
        login, budget = FakeActual.instances
        assert login.kwargs == {"base_url": "http://actual.test", "password": "secret"}
        assert budget.kwargs["file"] == "budget-1"
        assert budget.kwargs["data_dir"] == "/tmp/actual"
        assert budget.kwargs["encryption_password"] == "e2e"

    async def test_switch_closes_previous_budget(self, client):
        """Test that loading another budget closes the open one."""
        await client.load_budget("budget-2")
        first, second = FakeActual.instances[1:]
        assert first.closed is True
        assert second.closed is False

    async def test_shutdown_closes_budget(self, sdk):
        """Test that shutdown exits the SDK context and can be repeated."""
        ledger = ActualLedgerClient()
        await ledger.init("http://actual.test", "secret", "/tmp/actual")
        await ledger.load_budget("budget-1")
        await ledger.shutdown()
        await ledger.shutdown()
        assert FakeActual.instances[-1].closed is True

    async def test_reads_need_a_budget(self, sdk):
        """Test that reads before load_budget fail clearly."""
        ledger = ActualLedgerClient()
        await ledger.init("http://actual.test", "secret", "/tmp/actual")
        with pytest.raises(RuntimeError):
            await ledger.get_accounts()
        await ledger.shutdown()

    async def test_sync(self, client):
        """Test that sync calls through to the SDK."""
        await client.sync()
        assert FakeActual.instances[-1].synced == 1


class TestReads:
    """Tests for read mapping."""

    async def test_accounts(self, client):
        """Test account mapping, including a missing name."""
        accounts = await client.get_accounts()
        assert accounts == [
            Account(id="a1", name="Checking"),
            Account(id="a2", name="", offbudget=True, closed=True),
        ]

    async def test_transactions_trimmed_inclusive(self, client):
        """Test that rows outside [start, end] are dropped."""
        transactions = await client.get_transactions("a1", date(2024, 1, 2), date(2024, 1, 2))
        assert [t.id for t in transactions] == ["t2"]
        assert isinstance(transactions[0], Transaction)
        assert transactions[0].category_id == "c1"

    async def test_transactions_unknown_account(self, client):
        """Test that an unknown account yields no transactions."""
        assert await client.get_transactions("nope", date(2024, 1, 1), date(2024, 1, 31)) == []

    async def test_balance_as_of_is_end_of_day(self, client):
        """Test that as_of includes that day's transactions."""
        assert await client.get_account_balance("a1", date(2023, 12, 31)) == 0
        assert await client.get_account_balance("a1", date(2024, 1, 2)) == 70
        assert await client.get_account_balance("a1") == 65

    async def test_categories_and_payees(self, client):
        """Test category and payee mapping."""
        assert await client.get_categories() == [Category(id="c1", name="Food", group_id="g1")]
        assert await client.get_payees() == [Payee(id="p1", name="Employer")]

    async def test_sdk_calls_share_one_thread(self, client, sdk):
        """Test that every SDK call runs on the same worker thread."""
        await client.get_accounts()
        await client.get_transactions("a1", date(2024, 1, 1), date(2024, 1, 3))
        await client.get_account_balance("a1")
        assert len(set(sdk.threads)) == 1
        assert sdk.threads[0].startswith("actual-sdk")


class TestBudgetReads:
    """Tests for category groups and budget months."""

    async def test_category_groups(self, client):
        """Test group mapping with nested categories."""
        groups = await client.get_category_groups()
        assert groups == [
            CategoryGroup(
                id="g1",
                name="Everyday",
                categories=[Category(id="c1", name="Food", group_id="g1")],
            )
        ]

    async def test_envelope_month_in_minor_units(self, client):
        """Test that Decimal major units become integer cents."""
        budget = await client.get_budget_month(date(2024, 1, 15))

        assert budget.month == "2024-01"
        assert budget.total_income == 5000
        assert budget.total_spent == -2550
        assert budget.for_next_month == 1000
        assert budget.from_last_month == 200
        assert budget.to_budget == 1200
        assert budget.available_income == 4200

        everyday, income = budget.category_groups
        food = everyday.categories[0]
        assert (food.budgeted, food.spent, food.balance) == (3000, -2550, 450)
        assert food.carryover is True
        assert income.is_income is True
        assert income.categories[0].received == 5000

    async def test_tracking_month_has_no_envelope_figures(self, client):
        """Test that a tracking month maps with zero carry-in and hold."""
        budget = await client.get_budget_month(date(2024, 2, 1))
        assert budget.total_income == 4000
        assert budget.total_spent == -1234
        assert budget.income_available == 4000
        assert budget.for_next_month == 0
        assert budget.to_budget == 0

    async def test_month_without_data(self, client):
        """Test that a month before the first budget month is None."""
        assert await client.get_budget_month(date(2023, 12, 1)) is None

    async def test_budget_reads_on_sdk_thread(self, client, sdk):
        """Test that budget history is computed on the SDK worker thread."""
        await client.get_budget_month(date(2024, 1, 1))
        assert sdk.threads[-1].startswith("actual-sdk")
