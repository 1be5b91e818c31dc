"""
Budget Tools

Budget-versus-actual figures per month. `get_budget_month` is the
one-month summary the caller reads first; `get_budget_months` returns the
raw monthly figures over a range for trend questions.
"""

import asyncio
from datetime import date, timedelta
from typing import Optional

from pydantic import model_validator

from actual_context.conversion import (
    AMOUNT_FIELDS,
    add_currency_warning,
    convert_amounts,
    integer_to_amount,
)
from actual_context.errors import NotFoundError
from actual_context.models.ledger import BudgetMonth
from actual_context.session import SessionManager
from actual_context.tools.shared import (
    ToolConfig,
    ToolParams,
    budget_id_field,
    month_field,
)


BUDGET_MONTH_AMOUNT_FIELDS = AMOUNT_FIELDS | {
    "incomeAvailable",
    "lastMonthOverspent",
    "forNextMonth",
    "totalBudgeted",
    "toBudget",
    "fromLastMonth",
    "totalIncome",
    "totalSpent",
    "totalBalance",
    "received",
}


def parse_month(value: str) -> date:
    """'2024-03' -> date(2024, 3, 1)"""
    return date.fromisoformat(f"{value}-01")


def month_starts(start: date, end: date) -> list[date]:
    """First day of every month from start to end, both included."""
    months = []
    current = start.replace(day=1)
    while current <= end:
        months.append(current)
        current = (current.replace(day=28) + timedelta(days=4)).replace(day=1)
    return months


class GetBudgetMonthParams(ToolParams):
    month: str = month_field("Month")
    budget_id: Optional[str] = budget_id_field()


class GetBudgetMonthsParams(ToolParams):
    start_month: str = month_field("First month")
    end_month: str = month_field("Last month")
    budget_id: Optional[str] = budget_id_field()

    @model_validator(mode="after")
    def months_in_order(self) -> "GetBudgetMonthsParams":
        if self.start_month > self.end_month:
            raise ValueError("startMonth must not be after endMonth")
        return self


def summarize_month(budget: BudgetMonth) -> dict:
    groups = []
    for group in budget.category_groups:
        groups.append({
            "id": group.id,
            "name": group.name,
            "hidden": group.hidden,
            "categories": [
                {
                    "id": c.id,
                    "name": c.name,
                    "isIncome": c.is_income,
                    "isHidden": c.hidden,
                    "budgeted": integer_to_amount(c.budgeted),
                    "spent": integer_to_amount(c.spent),
                    "balance": integer_to_amount(c.balance),
                    "received": integer_to_amount(c.received),
                }
                for c in group.categories
            ],
        })

    return {
        "month": budget.month,
        "totals": {
            "income": integer_to_amount(budget.available_income),
            "spent": integer_to_amount(budget.total_spent),
            "balance": integer_to_amount(budget.total_balance),
            "budgeted": integer_to_amount(budget.total_budgeted),
            "unbudgeted": integer_to_amount(budget.to_budget),
        },
        "categoryGroups": groups,
    }


def build_budget_tools(session: SessionManager) -> list[ToolConfig]:
    ledger = session.ledger

    async def get_budget_month(params: GetBudgetMonthParams) -> dict:
        await session.ensure_budget_loaded(params.budget_id)
        budget = await ledger.get_budget_month(parse_month(params.month))
        if budget is None:
            raise NotFoundError(
                "budget month", params.month, operation="get_budget_month"
            )
        return add_currency_warning(summarize_month(budget))

    async def get_budget_months(params: GetBudgetMonthsParams) -> dict:
        await session.ensure_budget_loaded(params.budget_id)
        months = month_starts(
            parse_month(params.start_month), parse_month(params.end_month)
        )

        categories, category_groups = await asyncio.gather(
            ledger.get_categories(),
            ledger.get_category_groups(),
        )

        budget_data = {}
        for month in months:
            key = month.strftime("%Y-%m")
            budget = await ledger.get_budget_month(month)
            if budget is None:
                budget_data[key] = None
            else:
                budget_data[key] = convert_amounts(
                    budget.model_dump(mode="json", by_alias=True),
                    BUDGET_MONTH_AMOUNT_FIELDS,
                )

        return add_currency_warning({
            "budgetData": budget_data,
            "categories": [c.model_dump(mode="json", by_alias=True) for c in categories],
            "categoryGroups": [
                g.model_dump(mode="json", by_alias=True) for g in category_groups
            ],
            "months": list(budget_data),
            "queryInfo": {
                "startMonth": params.start_month,
                "endMonth": params.end_month,
                "monthCount": len(months),
            },
        })

    return [
        ToolConfig(
            name="get_budget_month",
            description=(
                "Budget versus actual for one month: income, spent, budgeted "
                "and unbudgeted totals plus per-category figures."
            ),
            parameters=GetBudgetMonthParams,
            execute=get_budget_month,
        ),
        ToolConfig(
            name="get_budget_months",
            description=(
                "Monthly budget figures over a range of months for trend "
                "analysis. Months with no budget data are null."
            ),
            parameters=GetBudgetMonthsParams,
            execute=get_budget_months,
        ),
    ]
