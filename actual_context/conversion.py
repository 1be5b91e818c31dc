"""
Response Conversion Utilities

Actual stores money as integer minor units (cents). AI callers get decimal
major units. All rescaling goes through this module so there is exactly
one place that knows the factor and the field names.

Amounts are currency-agnostic: 1234 becomes 12.34 whether it was USD, GBP
or EUR. The currency note attached to every payload says so.
"""

from typing import Any, Iterable, Optional

from actual_context.models.context import EntityContext


# Keys whose integer values are minor units, wherever they appear
AMOUNT_FIELDS = frozenset({"amount", "balance", "budgeted", "spent"})

MINOR_UNITS_PER_MAJOR = 100

CURRENCY_NOTE = (
    "All amounts from Actual Budget are currency-agnostic numbers. Unless "
    "specified in stored AI context, ask the user to specify currencies for "
    "accurate financial analysis."
)


def _is_minor_amount(value: Any) -> bool:
    # bool is an int subclass; True is not one cent
    return isinstance(value, int) and not isinstance(value, bool)


def integer_to_amount(value: int) -> float:
    """Convert minor units to major units (1234 -> 12.34)."""
    return round(value / MINOR_UNITS_PER_MAJOR, 2)


def convert_amounts(tree: Any, fields: Optional[Iterable[str]] = None) -> Any:
    """
    Recursively rescale amount fields from minor to major units.

    Walks dicts and lists. Any integer stored under a key in `fields`
    (default AMOUNT_FIELDS) is divided by 100; everything else is copied.
    The input is not modified.
    """
    field_set = AMOUNT_FIELDS if fields is None else frozenset(fields)
    return _convert(tree, field_set)


def _convert(node: Any, fields: frozenset) -> Any:
    if isinstance(node, dict):
        converted = {}
        for key, value in node.items():
            if key in fields and _is_minor_amount(value):
                converted[key] = integer_to_amount(value)
            else:
                converted[key] = _convert(value, fields)
        return converted
    if isinstance(node, (list, tuple)):
        return [_convert(item, fields) for item in node]
    return node


def add_currency_warning(data: dict[str, Any]) -> dict[str, Any]:
    """Prefix a payload with the currency note."""
    return {"IMPORTANT_CURRENCY_NOTE": CURRENCY_NOTE, **data}


def with_ai_context(data: dict[str, Any], context: Optional[EntityContext]) -> dict[str, Any]:
    """Attach stored annotations to an entity payload, if there are any."""
    if context is None:
        return data
    return {"AIContext": context.context, **data}
