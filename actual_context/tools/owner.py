"""
Owner and Sync Tools

The owner annotation describes the person behind the budget: base
currency, country of residence, goals. It is a singleton per budget,
stored under the fixed entity id "owner".
"""

from typing import Optional

from pydantic import JsonValue

from actual_context.audit import AuditLogger
from actual_context.models.context import EntityType, OWNER_ENTITY_ID
from actual_context.services.storage import ContextStorageInterface
from actual_context.session import SessionManager
from actual_context.tools.shared import (
    ToolConfig,
    ToolParams,
    budget_id_field,
    context_field,
)


class SyncDataContextParams(ToolParams):
    budget_id: Optional[str] = budget_id_field()


class GetOwnerContextParams(ToolParams):
    budget_id: Optional[str] = budget_id_field()


class SetOwnerContextParams(ToolParams):
    context: dict[str, JsonValue] = context_field()
    budget_id: Optional[str] = budget_id_field()


def build_owner_tools(
    session: SessionManager,
    storage: ContextStorageInterface,
    audit_logger: AuditLogger,
) -> list[ToolConfig]:

    async def sync_data_context(params: SyncDataContextParams) -> str:
        budget_id = await session.sync(params.budget_id)
        return f"Data synced successfully for budget {budget_id}."

    async def get_owner_context(params: GetOwnerContextParams) -> Optional[dict]:
        budget_id = await session.ensure_budget_loaded(params.budget_id)
        record = await storage.get_context(EntityType.OWNER, OWNER_ENTITY_ID, budget_id)
        if record is None:
            return None
        return record.to_response_dict()

    async def set_owner_context(params: SetOwnerContextParams) -> str:
        budget_id = await session.ensure_budget_loaded(params.budget_id)
        await storage.set_context(
            EntityType.OWNER, OWNER_ENTITY_ID, budget_id, params.context
        )
        audit_logger.log_context_set(
            EntityType.OWNER.value,
            OWNER_ENTITY_ID,
            budget_id,
            list(params.context),
        )
        return "Owner context stored successfully."

    return [
        ToolConfig(
            name="sync_data_context",
            description=(
                "Sync the loaded budget with the Actual server so later reads "
                "see the latest transactions."
            ),
            parameters=SyncDataContextParams,
            execute=sync_data_context,
        ),
        ToolConfig(
            name="get_owner_context",
            description=(
                "Get stored context about the budget owner (base currency, "
                "country, financial goals). Read this before any analysis."
            ),
            parameters=GetOwnerContextParams,
            execute=get_owner_context,
        ),
        ToolConfig(
            name="set_owner_context",
            description=(
                "Store context about the budget owner. Replaces any previous "
                "owner context for this budget."
            ),
            parameters=SetOwnerContextParams,
            execute=set_owner_context,
        ),
    ]
