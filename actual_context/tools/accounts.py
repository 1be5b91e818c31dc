"""
Account Tools

Account listing, balance history and account annotations. Every account
payload carries the stored AIContext (when there is one) so the caller
sees what it was told earlier about the account, e.g. its currency.
"""

import asyncio
from datetime import date
from typing import Optional

from pydantic import Field, JsonValue

from actual_context.audit import AuditLogger
from actual_context.conversion import (
    add_currency_warning,
    convert_amounts,
    integer_to_amount,
    with_ai_context,
)
from actual_context.models.context import EntityType
from actual_context.models.ledger import Account
from actual_context.projections import BalanceProjector
from actual_context.services.storage import ContextStorageInterface
from actual_context.session import SessionManager
from actual_context.tools.shared import (
    ToolConfig,
    ToolParams,
    budget_id_field,
    context_field,
    date_field,
)


HISTORY_AMOUNT_FIELDS = ("endOfDayBalance", "theoreticalPeakIntradayBalance")

FIELD_DEFINITIONS = {
    "endOfDayBalance": (
        "The account balance at the close of the day, as recorded by Actual."
    ),
    "theoreticalPeakIntradayBalance": (
        "The previous day's closing balance plus every credit of this day, "
        "i.e. the balance if all money in arrived before any money went out. "
        "This is a conservative upper bound useful for maximum-value reporting "
        "(e.g. FBAR) or overdraft checks. The account may never actually have "
        "held this amount."
    ),
}


class GetAccountsParams(ToolParams):
    budget_id: Optional[str] = budget_id_field()


class GetAccountBalanceHistoryParams(ToolParams):
    account_id: str = Field(..., min_length=1, description="Account ID")
    start_date: date = date_field("First day of the history (inclusive)")
    end_date: date = date_field("Day after the last day of the history (exclusive)")
    budget_id: Optional[str] = budget_id_field()


class SetAccountContextParams(ToolParams):
    account_id: str = Field(..., min_length=1, description="Account ID")
    context: dict[str, JsonValue] = context_field()
    budget_id: Optional[str] = budget_id_field()


def build_account_tools(
    session: SessionManager,
    storage: ContextStorageInterface,
    projector: BalanceProjector,
    audit_logger: AuditLogger,
) -> list[ToolConfig]:
    ledger = session.ledger

    async def describe_account(account: Account, budget_id: str) -> dict:
        balance, record = await asyncio.gather(
            ledger.get_account_balance(account.id),
            storage.get_context(EntityType.ACCOUNT, account.id, budget_id),
        )
        payload = account.model_dump(mode="json", by_alias=True)
        payload["currentBalance"] = integer_to_amount(balance)
        return with_ai_context(payload, record)

    async def get_accounts(params: GetAccountsParams) -> dict:
        budget_id = await session.ensure_budget_loaded(params.budget_id)
        accounts = await ledger.get_accounts()
        described = await asyncio.gather(
            *(describe_account(account, budget_id) for account in accounts)
        )
        return add_currency_warning({"accounts": list(described)})

    async def get_account_balance_history(
        params: GetAccountBalanceHistoryParams,
    ) -> dict:
        budget_id = await session.ensure_budget_loaded(params.budget_id)
        history = await projector.project(
            params.account_id, params.start_date, params.end_date
        )
        record = await storage.get_context(
            EntityType.ACCOUNT, params.account_id, budget_id
        )

        account = with_ai_context(
            history.account.model_dump(mode="json", by_alias=True), record
        )
        points = [point.model_dump(mode="json", by_alias=True) for point in history.points]

        return add_currency_warning({
            "account": account,
            "history": convert_amounts(points, HISTORY_AMOUNT_FIELDS),
            "queryInfo": {
                "accountId": params.account_id,
                "startDate": params.start_date.isoformat(),
                "endDate": params.end_date.isoformat(),
                "daysRequested": history.days_requested,
                "dataPoints": history.data_points,
            },
            "fieldDefinitions": FIELD_DEFINITIONS,
        })

    async def set_account_context(params: SetAccountContextParams) -> str:
        budget_id = await session.ensure_budget_loaded(params.budget_id)
        account = await projector.find_account(params.account_id)
        await storage.set_context(
            EntityType.ACCOUNT, account.id, budget_id, params.context
        )
        audit_logger.log_context_set(
            EntityType.ACCOUNT.value,
            account.id,
            budget_id,
            list(params.context),
        )
        return f"Context stored successfully for account {account.name}."

    return [
        ToolConfig(
            name="get_accounts",
            description=(
                "List all accounts in the budget with current balances and "
                "any stored AI context."
            ),
            parameters=GetAccountsParams,
            execute=get_accounts,
        ),
        ToolConfig(
            name="get_account_balance_history",
            description=(
                "Day-by-day balance history for one account, with end-of-day "
                "balances and a theoretical peak intraday balance per day."
            ),
            parameters=GetAccountBalanceHistoryParams,
            execute=get_account_balance_history,
        ),
        ToolConfig(
            name="set_account_context",
            description=(
                "Store context about an account (currency, account type, "
                "purpose). Replaces any previous context for the account."
            ),
            parameters=SetAccountContextParams,
            execute=set_account_context,
        ),
    ]
