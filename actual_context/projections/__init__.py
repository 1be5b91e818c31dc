"""Balance projection package."""

from actual_context.projections.balance import BalanceProjector

__all__ = ["BalanceProjector"]
