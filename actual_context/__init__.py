"""
Actual Context - Source Package

An MCP server that exposes an Actual Budget ledger to AI assistants and
lets them attach their own notes ("context") to ledger entities.

DESIGN PRINCIPLES:
1. The ledger is read through, never copied - only annotations are persisted
2. One budget is active at a time, and switching budgets is serialized
3. Fail early, fail visibly - every error reaches the caller as data
4. Derived numbers say what they are (a theoretical peak is not a balance)
5. Storage and ledger backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Actual Context Team"
