"""
Abstract Ledger Interface

DESIGN DECISION: The ledger SDK sits behind an abstract interface.
This allows us to:
1. Swap the Actual SDK for another ledger (or a newer SDK) later
2. Use an in-memory fake for testing
3. Keep session and projection logic free of SDK types

All amounts cross this boundary as integer minor units.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from actual_context.models.ledger import (
    Account,
    BudgetMonth,
    Category,
    CategoryGroup,
    Payee,
    Transaction,
)


class LedgerClient(ABC):
    """
    Abstract interface for ledger operations.

    Read operations act on the currently loaded budget. Loading and
    switching budgets is the SessionManager's job, not the caller's.
    """

    @abstractmethod
    async def init(self, server_url: str, password: str, data_dir: str) -> None:
        """
        Connect to the ledger server.

        Raises:
            Exception: Any failure; the SessionManager wraps it
        """
        pass

    @abstractmethod
    async def load_budget(self, budget_id: str) -> None:
        """
        Download (or refresh) and open a budget, replacing the current one.

        Raises:
            Exception: Any failure; the SessionManager wraps it
        """
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Close the open budget and the server connection."""
        pass

    @abstractmethod
    async def sync(self) -> None:
        """Pull the latest changes for the open budget from the server."""
        pass

    @abstractmethod
    async def get_accounts(self) -> list[Account]:
        """List all accounts in the open budget."""
        pass

    @abstractmethod
    async def get_account_balance(
        self,
        account_id: str,
        as_of: Optional[date] = None,
    ) -> int:
        """
        Get an account balance in minor units.

        Args:
            account_id: The account
            as_of: Balance at the end of this day (inclusive).
                   None means the current balance.
        """
        pass

    @abstractmethod
    async def get_transactions(
        self,
        account_id: str,
        start: date,
        end: date,
    ) -> list[Transaction]:
        """
        Get an account's transactions dated between start and end, inclusive.
        """
        pass

    @abstractmethod
    async def get_categories(self) -> list[Category]:
        """List all categories in the open budget."""
        pass

    @abstractmethod
    async def get_payees(self) -> list[Payee]:
        """List all payees in the open budget."""
        pass

    @abstractmethod
    async def get_category_groups(self) -> list[CategoryGroup]:
        """List all category groups, each with its categories."""
        pass

    @abstractmethod
    async def get_budget_month(self, month: date) -> Optional[BudgetMonth]:
        """
        Get budgeted, spent and balance figures for one month.

        Args:
            month: Any day in the month

        Returns:
            The month's figures, or None if the budget has no data for it
        """
        pass
