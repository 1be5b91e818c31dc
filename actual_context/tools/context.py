"""
Generic Entity Context Tools

Read, write, clear and search annotations on any entity type. The owner
and account tools are convenience wrappers over the same storage; these
cover budgets, categories and transactions too.
"""

from typing import Optional

from pydantic import Field, JsonValue, model_validator

from actual_context.audit import AuditLogger
from actual_context.models.context import (
    ContextPredicate,
    ContextQuery,
    EntityType,
    OWNER_ENTITY_ID,
)
from actual_context.services.storage import ContextStorageInterface
from actual_context.session import SessionManager
from actual_context.tools.shared import (
    ToolConfig,
    ToolParams,
    budget_id_field,
    context_field,
)


class EntityKeyParams(ToolParams):
    entity_type: EntityType = Field(..., description="Kind of entity")
    entity_id: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Entity ID (omit for the owner)",
    )
    budget_id: Optional[str] = budget_id_field()

    @model_validator(mode="after")
    def resolve_entity_id(self) -> "EntityKeyParams":
        if self.entity_type == EntityType.OWNER:
            if self.entity_id not in (None, OWNER_ENTITY_ID):
                raise ValueError(f"The owner entity id is always {OWNER_ENTITY_ID!r}")
            self.entity_id = OWNER_ENTITY_ID
        elif self.entity_id is None:
            raise ValueError("entityId is required for this entity type")
        return self


class GetEntityContextParams(EntityKeyParams):
    pass


class SetEntityContextParams(EntityKeyParams):
    context: dict[str, JsonValue] = context_field()


class ClearEntityContextParams(EntityKeyParams):
    pass


class SearchEntityContextParams(ToolParams):
    entity_type: Optional[EntityType] = Field(default=None, description="Filter by entity kind")
    entity_id: Optional[str] = Field(default=None, min_length=1, description="Filter by entity ID")
    budget_id: Optional[str] = budget_id_field()
    all_budgets: bool = Field(
        default=False,
        description="Search every budget instead of only the loaded one",
    )
    matches: dict[str, JsonValue] = Field(
        default_factory=dict,
        description=(
            "Context fields that must equal the given values. Use dotted "
            "paths for nested fields (e.g. {'currency': 'GBP', 'goals.primary': 'house'})"
        ),
    )


def build_context_tools(
    session: SessionManager,
    storage: ContextStorageInterface,
    audit_logger: AuditLogger,
) -> list[ToolConfig]:

    async def get_entity_context(params: GetEntityContextParams) -> Optional[dict]:
        budget_id = await session.ensure_budget_loaded(params.budget_id)
        record = await storage.get_context(params.entity_type, params.entity_id, budget_id)
        if record is None:
            return None
        return record.to_response_dict()

    async def set_entity_context(params: SetEntityContextParams) -> dict:
        budget_id = await session.ensure_budget_loaded(params.budget_id)
        record = await storage.set_context(
            params.entity_type, params.entity_id, budget_id, params.context
        )
        audit_logger.log_context_set(
            params.entity_type.value,
            params.entity_id,
            budget_id,
            list(params.context),
        )
        return record.to_response_dict()

    async def clear_entity_context(params: ClearEntityContextParams) -> dict:
        budget_id = await session.ensure_budget_loaded(params.budget_id)
        existed = await storage.clear_context(
            params.entity_type, params.entity_id, budget_id
        )
        audit_logger.log_context_cleared(
            params.entity_type.value,
            params.entity_id,
            budget_id,
            existed,
        )
        return {
            "cleared": existed,
            "entityType": params.entity_type.value,
            "entityId": params.entity_id,
            "budgetId": budget_id,
        }

    async def search_entity_context(params: SearchEntityContextParams) -> dict:
        if params.all_budgets and params.budget_id is None:
            budget_id = None
        else:
            budget_id = await session.ensure_budget_loaded(params.budget_id)

        query = ContextQuery(
            entity_type=params.entity_type,
            entity_id=params.entity_id,
            budget_id=budget_id,
            predicates=[
                ContextPredicate(path=path, value=value)
                for path, value in params.matches.items()
            ],
        )
        records = await storage.search_context(query)
        return {
            "results": [record.to_response_dict() for record in records],
            "count": len(records),
        }

    return [
        ToolConfig(
            name="get_entity_context",
            description="Get stored AI context for any entity (owner, account, budget, category, transaction).",
            parameters=GetEntityContextParams,
            execute=get_entity_context,
        ),
        ToolConfig(
            name="set_entity_context",
            description="Store AI context for any entity. Replaces previous context for that entity.",
            parameters=SetEntityContextParams,
            execute=set_entity_context,
        ),
        ToolConfig(
            name="clear_entity_context",
            description="Delete stored AI context for an entity.",
            parameters=ClearEntityContextParams,
            execute=clear_entity_context,
        ),
        ToolConfig(
            name="search_entity_context",
            description=(
                "Find stored AI context records by entity kind, entity ID and "
                "exact values inside the context."
            ),
            parameters=SearchEntityContextParams,
            execute=search_entity_context,
        ),
    ]
