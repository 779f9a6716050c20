"""
Batch execution orchestrator.

Runs an action against many records and tracks a per-item lifecycle status
while handlers report progress asynchronously. Each run is a `BatchSession`
tagged with a token; status callbacks carry the token of the run that created
them, so a callback that fires after its session was closed (or replaced) is
dropped instead of leaking into newer state.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from billbrowse.core.actions import ActionDescriptor, maybe_await
from billbrowse.core.errors import BatchAbort

logger = logging.getLogger(__name__)


class ItemState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ItemState.COMPLETED, ItemState.FAILED)


@dataclass(frozen=True)
class ItemStatus:
    state: ItemState = ItemState.PENDING
    message: Optional[str] = None


@dataclass(frozen=True)
class StatusUpdate:
    """Structured status report; bypasses the free-text classifier."""

    state: ItemState
    message: Optional[str] = None


StatusMessage = Union[str, StatusUpdate]
StatusCallback = Callable[[str, StatusMessage], None]
ItemObserver = Callable[[str, ItemStatus], None]

# Substring rules handlers already rely on; keep them verbatim.
_FAILED_PREFIX = "ERROR:"
_FAILED_MARKERS = ("failed",)
_COMPLETED_MARKERS = ("completed successfully", "No migration required")


def classify_status(message: str) -> ItemState:
    """
    Map a free-text progress message to a lifecycle state.

    Examples:
        "ERROR: timeout"                   -> FAILED
        "Migration completed successfully" -> COMPLETED
        "retrying, attempt 2"              -> IN_PROGRESS
    """
    text = message or ""
    if text.startswith(_FAILED_PREFIX) or any(m in text for m in _FAILED_MARKERS):
        return ItemState.FAILED
    if any(m in text for m in _COMPLETED_MARKERS):
        return ItemState.COMPLETED
    return ItemState.IN_PROGRESS


def _to_status(update: StatusMessage) -> ItemStatus:
    if isinstance(update, StatusUpdate):
        return ItemStatus(state=update.state, message=update.message)
    text = str(update)
    return ItemStatus(state=classify_status(text), message=text)


class BatchSession:
    """Status map for one batch run. Keys are fixed at creation."""

    def __init__(self, token: int, ids: Sequence[str]) -> None:
        self.token = token
        self.ids: Tuple[str, ...] = tuple(dict.fromkeys(ids))
        self._statuses: Dict[str, ItemStatus] = {i: ItemStatus() for i in self.ids}
        self.finished: bool = False
        self.abort: Optional[BatchAbort] = None

    @property
    def statuses(self) -> Dict[str, ItemStatus]:
        return dict(self._statuses)

    def status(self, item_id: str) -> Optional[ItemStatus]:
        return self._statuses.get(item_id)

    def counts(self) -> Dict[ItemState, int]:
        out = {s: 0 for s in ItemState}
        for st in self._statuses.values():
            out[st.state] += 1
        return out

    def apply(self, item_id: str, status: ItemStatus) -> bool:
        """
        Record a status for `item_id`.

        Unknown ids are ignored, and an item that already reached a terminal
        state keeps it.

        Returns:
            True if the map changed
        """
        current = self._statuses.get(item_id)
        if current is None:
            logger.debug("Ignoring status for id %s outside batch %s", item_id, self.token)
            return False
        if current.state.terminal:
            return False
        self._statuses[item_id] = status
        return True

    def fail_remaining(self, message: str) -> List[str]:
        """Force every pending/in-progress item to FAILED; terminal items are untouched."""
        failed: List[str] = []
        for item_id, st in self._statuses.items():
            if not st.state.terminal:
                self._statuses[item_id] = ItemStatus(state=ItemState.FAILED, message=message)
                failed.append(item_id)
        return failed


class BatchOrchestrator:
    """
    Runs batch actions and owns the active `BatchSession`.

    Only one session is active at a time. Closing it (or starting a new one)
    turns every callback bound to the old token into a no-op.
    """

    def __init__(self, *, on_change: Optional[Callable[[], None]] = None) -> None:
        self._tokens = itertools.count(1)
        self._active: Optional[BatchSession] = None
        self._on_change = on_change

    @property
    def active(self) -> Optional[BatchSession]:
        return self._active

    def is_current(self, token: int) -> bool:
        return self._active is not None and self._active.token == token

    def start(self, ids: Sequence[str]) -> BatchSession:
        """Create a new session with every id pending (replaces any active one)."""
        session = BatchSession(next(self._tokens), ids)
        self._active = session
        self._notify()
        return session

    def close(self) -> None:
        """Discard the active session. In-flight handlers keep running."""
        if self._active is not None:
            logger.debug("Closing batch session %s", self._active.token)
        self._active = None
        self._notify()

    def status_callback(
        self,
        token: int,
        on_item_status: Optional[ItemObserver] = None,
    ) -> StatusCallback:
        """Build the per-item status callback for session `token`."""

        def _callback(item_id: str, update: StatusMessage) -> None:
            session = self._active
            if session is None or session.token != token:
                logger.debug("Dropping stale status for %s (session %s)", item_id, token)
                return
            status = _to_status(update)
            if session.apply(item_id, status):
                if on_item_status is not None:
                    on_item_status(item_id, status)
                self._notify()

        return _callback

    async def run_batch(
        self,
        action: ActionDescriptor,
        ids: Sequence[str],
        records: Sequence[Any],
        on_item_status: Optional[ItemObserver] = None,
    ) -> BatchSession:
        """Start a session for `ids` and execute `action` against it."""
        session = self.start(ids)
        await self.execute(session, action, ids, records, on_item_status)
        return session

    async def execute(
        self,
        session: BatchSession,
        action: ActionDescriptor,
        ids: Sequence[str],
        records: Sequence[Any],
        on_item_status: Optional[ItemObserver] = None,
    ) -> None:
        """
        Execute `action` for an already started session.

        With a batch handler, the handler gets every id/record at once and owns
        status reporting. Otherwise the single handler runs once per item,
        strictly one after another. Any exception ends the run and marks every
        non-terminal item failed with the exception message.
        """
        callback = self.status_callback(session.token, on_item_status)
        try:
            if action.batch_handler is not None:
                await maybe_await(action.batch_handler(list(ids), list(records), callback))
            else:
                await self._run_sequential(action, ids, records, callback)
        except Exception as exc:
            self._abort(session, action, exc, on_item_status)
        finally:
            session.finished = True
            if self.is_current(session.token):
                self._notify()

    async def _run_sequential(
        self,
        action: ActionDescriptor,
        ids: Sequence[str],
        records: Sequence[Any],
        callback: StatusCallback,
    ) -> None:
        for index, (item_id, record) in enumerate(itertools.zip_longest(ids, records)):
            if not item_id or record is None:
                logger.warning(
                    "Skipping batch item %d for action %s: missing %s",
                    index,
                    action.id,
                    "id" if not item_id else "record",
                )
                continue

            def _item_status(message: StatusMessage, _item_id: str = item_id) -> None:
                callback(_item_id, message)

            await maybe_await(action.single_handler(item_id, record, _item_status))

    def _abort(
        self,
        session: BatchSession,
        action: ActionDescriptor,
        exc: Exception,
        on_item_status: Optional[ItemObserver],
    ) -> None:
        message = str(exc) or "Batch operation failed"
        logger.error("Batch action %s failed: %s", action.id, message, exc_info=exc)
        if not self.is_current(session.token):
            return
        failed = session.fail_remaining(message)
        session.abort = BatchAbort(message, failed_ids=failed, cause=exc)
        if on_item_status is not None:
            for item_id in failed:
                status = session.status(item_id)
                if status is not None:
                    on_item_status(item_id, status)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


__all__ = [
    "BatchOrchestrator",
    "BatchSession",
    "ItemState",
    "ItemStatus",
    "StatusUpdate",
    "classify_status",
]
