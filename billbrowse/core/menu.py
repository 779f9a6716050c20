"""Action menu controller: navigation plus single/batch dispatch."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Coroutine, List, Optional, Sequence, Tuple, Union

from billbrowse.core.actions import ActionDescriptor, ActionResult, resolve_result
from billbrowse.core.batch import BatchOrchestrator

logger = logging.getLogger(__name__)


DEFAULT_ERROR_DISMISS_SECONDS = 2.0


class MenuState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    EXECUTING = "executing"


@dataclass(frozen=True)
class SingleTarget:
    record_id: str
    record: Any


@dataclass(frozen=True)
class BatchTarget:
    ids: Tuple[str, ...]
    records: Tuple[Any, ...]


ExecutionTarget = Union[SingleTarget, BatchTarget]


class ActionMenuController:
    """
    State machine over closed -> open -> executing -> closed.

    `execute_selected` performs its synchronous transitions immediately and
    hands back the coroutine that does the awaiting, so the caller decides
    where it runs (an asyncio task inside the TUI, a direct await in tests).
    """

    def __init__(
        self,
        actions: Sequence[ActionDescriptor],
        orchestrator: BatchOrchestrator,
        *,
        error_dismiss_seconds: float = DEFAULT_ERROR_DISMISS_SECONDS,
        on_result: Optional[Callable[[ActionResult], None]] = None,
        on_batch_start: Optional[Callable[[], None]] = None,
        on_closed: Optional[Callable[[], None]] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.actions: List[ActionDescriptor] = list(actions)
        self.orchestrator = orchestrator
        self.error_dismiss_seconds = float(error_dismiss_seconds)
        self.state: MenuState = MenuState.CLOSED
        self.index: int = 0
        self.status_message: Optional[str] = None
        self.executing_action_id: Optional[str] = None
        self._on_result = on_result
        self._on_batch_start = on_batch_start
        self._on_closed = on_closed
        self._on_change = on_change
        self._dismiss_handle: Optional[asyncio.TimerHandle] = None
        self._disposed = False
        # Each single run gets a number; only the active run may touch the menu.
        self._runs = itertools.count(1)
        self._active_run: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.state is not MenuState.CLOSED

    @property
    def is_executing(self) -> bool:
        return self.state is MenuState.EXECUTING

    @property
    def selected_action(self) -> Optional[ActionDescriptor]:
        if 0 <= self.index < len(self.actions):
            return self.actions[self.index]
        return None

    def open(self) -> None:
        self.state = MenuState.OPEN
        self.index = 0
        self.status_message = None
        self.executing_action_id = None

    def close(self, *, force: bool = False) -> bool:
        """
        Close the menu. Ignored while an action is executing unless `force`.

        Returns:
            True if the menu is closed afterwards
        """
        if self.is_executing and not force:
            return False
        self._reset()
        return True

    def move(self, delta: int) -> None:
        if self.is_executing or not self.actions:
            return
        self.index = max(0, min(self.index + delta, len(self.actions) - 1))

    def execute_selected(self, target: ExecutionTarget) -> Optional[Coroutine[Any, Any, Any]]:
        """
        Run the highlighted action against `target`.

        A BatchTarget goes to the orchestrator (the menu closes and the batch
        session starts right away); a SingleTarget calls the single handler.

        Returns:
            Coroutine finishing the execution, or None if there is nothing to run
        """
        action = self.selected_action
        if action is None or self.is_executing:
            return None

        if isinstance(target, BatchTarget):
            if not target.ids:
                return None
            self._reset()
            session = self.orchestrator.start(target.ids)
            if self._on_batch_start is not None:
                self._on_batch_start()
            return self.orchestrator.execute(session, action, target.ids, target.records)

        self.state = MenuState.EXECUTING
        self.status_message = None
        self.executing_action_id = action.id
        self._active_run = next(self._runs)
        return self._run_single(action, self._active_run, target.record_id, target.record)

    def _is_current(self, run: int) -> bool:
        return not self._disposed and self._active_run == run

    async def _run_single(
        self, action: ActionDescriptor, run: int, record_id: str, record: Any
    ) -> Optional[ActionResult]:
        def _set_status(message: Any) -> None:
            if not self._is_current(run):
                logger.debug("Dropping status from finished run %d of %s", run, action.id)
                return
            self.status_message = str(message)
            self._notify()

        try:
            result = await resolve_result(action.single_handler(record_id, record, _set_status))
        except Exception as exc:
            logger.warning("Action %s failed for %s: %s", action.id, record_id, exc)
            if not self._is_current(run):
                return None
            self.status_message = f"Error: {str(exc) or type(exc).__name__}"
            self._schedule_dismiss()
            self._notify()
            return None

        if not self._is_current(run):
            return result
        self._reset()
        if result.is_render and self._on_result is not None:
            self._on_result(result)
        return result

    def _schedule_dismiss(self) -> None:
        self.cancel_dismiss()
        loop = asyncio.get_running_loop()
        self._dismiss_handle = loop.call_later(self.error_dismiss_seconds, self._dismiss_after_error)

    def _dismiss_after_error(self) -> None:
        self._dismiss_handle = None
        if self._disposed:
            return
        self._reset()

    def cancel_dismiss(self) -> None:
        if self._dismiss_handle is not None:
            self._dismiss_handle.cancel()
            self._dismiss_handle = None

    def dispose(self) -> None:
        """Stop timers; later handler completions no longer touch this controller."""
        self.cancel_dismiss()
        self._disposed = True

    def _reset(self) -> None:
        self.cancel_dismiss()
        was_open = self.is_open
        self.state = MenuState.CLOSED
        self.index = 0
        self.status_message = None
        self.executing_action_id = None
        self._active_run = None
        if was_open and self._on_closed is not None:
            self._on_closed()
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


__all__ = [
    "ActionMenuController",
    "BatchTarget",
    "DEFAULT_ERROR_DISMISS_SECONDS",
    "ExecutionTarget",
    "MenuState",
    "SingleTarget",
]
