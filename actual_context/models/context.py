"""
Annotation ("context") Models

An annotation is a free-form JSON object that an AI caller attaches to a
ledger entity: the currency of an account, the owner's savings goals, why
a transaction was unusual. We never interpret the payload. It is stored,
returned and compared for equality, nothing else.

DESIGN DECISION: One record per (entity type, entity id, budget id).
Budgets are the unit of scoping, so the same account id in two budgets
carries two independent annotations.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class EntityType(str, Enum):
    """Ledger entities an annotation can be attached to."""
    OWNER = "owner"
    ACCOUNT = "account"
    BUDGET = "budget"
    TRANSACTION = "transaction"
    CATEGORY = "category"


# The owner is a singleton per budget, so it always uses this entity id.
OWNER_ENTITY_ID = "owner"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntityContext(BaseModel):
    """
    A stored annotation.

    Serializes with camelCase aliases (entityType, createdAt, ...), which is
    both the document layout in Mongo and the shape tools return.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: Optional[str] = Field(
        default=None,
        description="Storage identifier (Mongo ObjectId as a string)"
    )
    entity_type: EntityType
    entity_id: str = Field(..., min_length=1)
    budget_id: str = Field(..., min_length=1)
    context: dict[str, JsonValue] = Field(
        default_factory=dict,
        description="Arbitrary caller-supplied data, order preserved"
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Mongo hands back naive datetimes unless the client is tz-aware."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_response_dict(self) -> dict:
        """JSON-safe dict for tool payloads."""
        return self.model_dump(mode="json", by_alias=True)


class ContextPredicate(BaseModel):
    """
    An equality test against a field inside `context`.

    `path` is dotted for nested objects: "goals.primary" matches
    {"goals": {"primary": ...}}.
    """

    path: str = Field(..., min_length=1)
    value: JsonValue = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        segments = v.split(".")
        if any(not segment for segment in segments):
            raise ValueError(f"Invalid context path: {v!r}")
        if any(segment.startswith("$") for segment in segments):
            raise ValueError(f"Context path segments cannot start with '$': {v!r}")
        return v


class ContextQuery(BaseModel):
    """
    A search over stored annotations.

    Two parts:
    - structured filters on the record key (all optional)
    - equality predicates against `context` fields (all must match)

    An empty query matches every record.
    """

    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    budget_id: Optional[str] = None
    predicates: list[ContextPredicate] = Field(default_factory=list)

    @classmethod
    def for_budget(cls, budget_id: str, **context_matches: JsonValue) -> "ContextQuery":
        """Convenience constructor: one budget plus top-level context matches."""
        return cls(
            budget_id=budget_id,
            predicates=[
                ContextPredicate(path=path, value=value)
                for path, value in context_matches.items()
            ],
        )

    @model_validator(mode="after")
    def no_blank_filters(self) -> "ContextQuery":
        if self.entity_id is not None and not self.entity_id:
            raise ValueError("entity_id filter cannot be empty")
        if self.budget_id is not None and not self.budget_id:
            raise ValueError("budget_id filter cannot be empty")
        return self
