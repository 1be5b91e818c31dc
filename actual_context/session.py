"""
Ledger Session Management

Only one budget can be open in the ledger client at a time, and every tool
call in the process shares that client. This module owns that shared state.

State machine:
    UNINITIALIZED --ensure_connection--> CONNECTED --load ok--> READY(budget)
    READY(a) --switch to b--> CONNECTED --load ok--> READY(b)
    CONNECTED --load fails--> stays CONNECTED (unloaded)

DESIGN DECISION: Every transition runs under one asyncio.Lock.
- Two callers asking for the same budget trigger one download; the
  second finds it cached when it gets the lock.
- Two callers asking for different budgets are linearized, so downloads
  never overlap and the cache never names a budget whose load did not
  finish.

DESIGN DECISION: A failed or cancelled switch leaves the session UNLOADED
(CONNECTED), not pointing at the previous budget. After a failed download
we cannot know what the ledger client has open, so the next call reloads.
"""

import asyncio
from enum import Enum
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, model_validator

from actual_context.audit import AuditLogger
from actual_context.config import ActualSettings
from actual_context.errors import ConfigError, ConnectionError
from actual_context.services.ledger import LedgerClient


logger = structlog.get_logger(__name__)


class SessionStatus(str, Enum):
    """Lifecycle of the ledger session."""
    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"  # client initialised, no budget loaded
    READY = "ready"  # budget_id is loaded


class SessionState(BaseModel):
    """Immutable snapshot of the session. budget_id is set iff READY."""
    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.UNINITIALIZED
    budget_id: Optional[str] = None

    @model_validator(mode="after")
    def budget_only_when_ready(self) -> "SessionState":
        if (self.status == SessionStatus.READY) != (self.budget_id is not None):
            raise ValueError("budget_id must be set exactly when status is READY")
        return self

    @classmethod
    def uninitialized(cls) -> "SessionState":
        return cls()

    @classmethod
    def connected(cls) -> "SessionState":
        return cls(status=SessionStatus.CONNECTED)

    @classmethod
    def ready(cls, budget_id: str) -> "SessionState":
        return cls(status=SessionStatus.READY, budget_id=budget_id)


class SessionManager:
    """
    Mediates budget selection against the ledger client.

    Create one per process and inject it into every tool.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        settings: Optional[ActualSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._settings = settings or ActualSettings()
        self._audit_logger = audit_logger or AuditLogger()
        self._state = SessionState.uninitialized()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_budget_id(self) -> Optional[str]:
        return self._state.budget_id

    @property
    def ledger(self) -> LedgerClient:
        return self._ledger

    async def _connect_locked(self) -> None:
        if self._state.status != SessionStatus.UNINITIALIZED:
            return

        data_dir = Path(self._settings.data_dir)
        if data_dir.exists():
            logger.debug("data_dir_exists", data_dir=str(data_dir))
        else:
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info("data_dir_created", data_dir=str(data_dir))

        server_url = self._settings.server_url
        try:
            await self._ledger.init(
                server_url,
                self._settings.server_password,
                str(data_dir),
            )
        except Exception as e:
            self._audit_logger.log_ledger_connection_failed(server_url, e)
            raise ConnectionError(
                f"Failed to connect to Actual server at {server_url}: {e}",
                operation="ensure_connection",
                cause=e,
            ) from e

        self._state = SessionState.connected()
        self._audit_logger.log_ledger_connected(server_url, str(data_dir))

    async def ensure_connection(self) -> None:
        """Initialise the ledger client once. Later calls do nothing."""
        async with self._lock:
            await self._connect_locked()

    def _resolve(self, budget_id: Optional[str], operation: str) -> str:
        target = budget_id or self._settings.budget_id
        if not target:
            raise ConfigError(
                "No budget ID provided. Set ACTUAL_BUDGET_ID or pass budgetId. "
                "You can find your budget ID in Actual Budget > Settings > Advanced.",
                operation=operation,
                details={"budget_id": budget_id},
            )
        return target

    async def _load_locked(self, target: str) -> str:
        await self._connect_locked()

        if self._state.budget_id == target:
            logger.debug("budget_already_loaded", budget_id=target)
            return target

        previous = self._state.budget_id
        self._state = SessionState.connected()
        logger.info("budget_loading", budget_id=target, previous_budget_id=previous)

        try:
            await self._ledger.load_budget(target)
        except Exception as e:
            self._audit_logger.log_budget_load_failed(target, e)
            raise ConnectionError(
                f"Failed to load budget {target}. Check that the budget ID is "
                "correct and accessible. You can find your budget ID in "
                "Actual Budget > Settings > Advanced.",
                budget_id=target,
                operation="ensure_budget_loaded",
                cause=e,
            ) from e

        self._state = SessionState.ready(target)
        self._audit_logger.log_budget_loaded(target, previous)
        return target

    async def ensure_budget_loaded(self, budget_id: Optional[str] = None) -> str:
        """
        Make sure the requested (or default) budget is the open one.

        Args:
            budget_id: Budget to open; falls back to ACTUAL_BUDGET_ID

        Returns:
            The id of the loaded budget

        Raises:
            ConfigError: No budget id given and no default configured
            ConnectionError: The client could not connect or load the budget
        """
        target = self._resolve(budget_id, "ensure_budget_loaded")
        async with self._lock:
            return await self._load_locked(target)

    async def sync(self, budget_id: Optional[str] = None) -> str:
        """
        Pull the latest server changes into the requested budget.

        Load and sync share one critical section, so a queued switch cannot
        swap the budget in between.
        """
        target = self._resolve(budget_id, "sync")
        async with self._lock:
            loaded = await self._load_locked(target)
            try:
                await self._ledger.sync()
            except Exception as e:
                raise ConnectionError(
                    f"Failed to sync budget {loaded}: {e}",
                    budget_id=loaded,
                    operation="sync",
                    cause=e,
                ) from e
        self._audit_logger.log_ledger_synced(loaded)
        return loaded

    async def shutdown(self) -> None:
        """Tear down the ledger connection. Safe to call repeatedly."""
        async with self._lock:
            if self._state.status == SessionStatus.UNINITIALIZED:
                return
            previous = self._state.budget_id
            try:
                await self._ledger.shutdown()
            finally:
                self._state = SessionState.uninitialized()
                self._audit_logger.log_session_shutdown(previous)
