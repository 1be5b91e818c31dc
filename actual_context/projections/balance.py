"""
Balance History Projection

Rebuilds a day-by-day balance history for one account from ledger reads.

For each day we report two numbers:
- end_of_day_balance: what the ledger says the balance was at close
- theoretical_peak_intraday_balance: the previous close plus every credit
  of the day, i.e. the balance if all money in arrived before any money
  went out

The peak is a deliberately conservative upper bound for exposure checks
(overdraft limits, FBAR-style maximum-value reporting). It may never have
existed as a real balance, and the tool payload says so.

DESIGN DECISION: The projector is pure with respect to session state. It
only reads from the ledger, so cancelling a long projection cannot leave
anything half-updated.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Iterator

import structlog

from actual_context.errors import NotFoundError
from actual_context.models.ledger import (
    Account,
    BalanceHistory,
    BalanceHistoryPoint,
    Transaction,
)
from actual_context.services.ledger import LedgerClient


logger = structlog.get_logger(__name__)


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    """Yield each day in [start_date, end_date)."""
    current = start_date
    while current < end_date:
        yield current
        current += timedelta(days=1)


def group_by_day(transactions: list[Transaction]) -> dict[date, list[Transaction]]:
    grouped: dict[date, list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        grouped[transaction.date].append(transaction)
    return grouped


def credits_total(transactions: list[Transaction]) -> int:
    """Sum of strictly positive amounts. Debits and zero entries are ignored."""
    return sum(t.amount for t in transactions if t.amount > 0)


class BalanceProjector:
    """Builds BalanceHistory objects from a LedgerClient."""

    def __init__(self, ledger: LedgerClient):
        self._ledger = ledger

    async def find_account(self, account_id: str) -> Account:
        """
        Look up an account in the open budget.

        Raises:
            NotFoundError: If no account has this id
        """
        for account in await self._ledger.get_accounts():
            if account.id == account_id:
                return account
        raise NotFoundError("account", account_id, operation="find_account")

    async def project(
        self,
        account_id: str,
        start_date: date,
        end_date: date,
    ) -> BalanceHistory:
        """
        Day-level balance history over [start_date, end_date).

        Raises:
            NotFoundError: Unknown account (checked before any per-day read)
            ValueError: start_date is after end_date
        """
        account = await self.find_account(account_id)

        if start_date > end_date:
            raise ValueError(
                f"start_date {start_date} is after end_date {end_date}"
            )

        history = BalanceHistory(
            account=account,
            start_date=start_date,
            end_date=end_date,
        )
        if start_date == end_date:
            return history

        last_day = end_date - timedelta(days=1)
        transactions = await self._ledger.get_transactions(
            account_id, start_date, last_day
        )
        by_day = group_by_day(transactions)

        day_before_balance = await self._ledger.get_account_balance(
            account_id, start_date - timedelta(days=1)
        )

        for day in iter_days(start_date, end_date):
            end_of_day_balance = await self._ledger.get_account_balance(account_id, day)
            peak = day_before_balance + credits_total(by_day.get(day, []))
            history.points.append(
                BalanceHistoryPoint(
                    date=day,
                    end_of_day_balance=end_of_day_balance,
                    theoretical_peak_intraday_balance=peak,
                )
            )
            day_before_balance = end_of_day_balance

        logger.debug(
            "balance_history_projected",
            account_id=account_id,
            days=len(history.points),
            transactions=len(transactions),
        )
        return history
