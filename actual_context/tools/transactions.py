"""
Transaction Tool

Returns transactions for a date range together with the lookup tables
(accounts, categories, payees) the caller needs to read them, so one call
is enough to answer "what did I spend on groceries last month".
"""

import asyncio
from datetime import date
from typing import Optional

from pydantic import Field, model_validator

from actual_context.conversion import add_currency_warning, convert_amounts
from actual_context.errors import NotFoundError
from actual_context.session import SessionManager
from actual_context.tools.shared import (
    ToolConfig,
    ToolParams,
    budget_id_field,
    date_field,
)


class GetTransactionsParams(ToolParams):
    start_date: date = date_field("First day to include")
    end_date: date = date_field("Last day to include")
    account_id: Optional[str] = Field(
        default=None,
        description="Only return transactions for this account (all accounts if omitted)",
    )
    limit: Optional[int] = Field(
        default=None,
        gt=0,
        description="Maximum number of transactions to return, most recent first",
    )
    budget_id: Optional[str] = budget_id_field()

    @model_validator(mode="after")
    def dates_in_order(self) -> "GetTransactionsParams":
        if self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


def build_transaction_tools(session: SessionManager) -> list[ToolConfig]:
    ledger = session.ledger

    async def get_transactions(params: GetTransactionsParams) -> dict:
        await session.ensure_budget_loaded(params.budget_id)

        accounts, categories, payees = await asyncio.gather(
            ledger.get_accounts(),
            ledger.get_categories(),
            ledger.get_payees(),
        )

        if params.account_id is None:
            targets = accounts
        else:
            targets = [a for a in accounts if a.id == params.account_id]
            if not targets:
                raise NotFoundError(
                    "account", params.account_id, operation="get_transactions"
                )

        per_account = await asyncio.gather(
            *(
                ledger.get_transactions(a.id, params.start_date, params.end_date)
                for a in targets
            )
        )
        transactions = [t for batch in per_account for t in batch]
        transactions.sort(key=lambda t: (t.date, t.id), reverse=True)

        total = len(transactions)
        if params.limit is not None:
            transactions = transactions[:params.limit]

        return add_currency_warning({
            "transactions": convert_amounts(
                [t.model_dump(mode="json", by_alias=True) for t in transactions]
            ),
            "accounts": [a.model_dump(mode="json", by_alias=True) for a in accounts],
            "categories": [c.model_dump(mode="json", by_alias=True) for c in categories],
            "payees": [p.model_dump(mode="json", by_alias=True) for p in payees],
            "queryInfo": {
                "startDate": params.start_date.isoformat(),
                "endDate": params.end_date.isoformat(),
                "accountId": params.account_id,
                "accountsQueried": len(targets),
                "totalTransactions": total,
                "returnedTransactions": len(transactions),
            },
        })

    return [
        ToolConfig(
            name="get_transactions",
            description=(
                "Get transactions in a date range (inclusive) across all "
                "accounts or one account, with accounts, categories and "
                "payees for lookup."
            ),
            parameters=GetTransactionsParams,
            execute=get_transactions,
        ),
    ]
