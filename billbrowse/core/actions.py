"""
Action descriptors and the handler-result boundary.

Handlers are opaque callables supplied by configuration:

- single: ``handler(item_id, record, set_status) -> None | ActionResult | awaitable``
- batch:  ``batch_handler(item_ids, records, status_callback) -> awaitable``

Whatever a single handler returns is normalized once, here, into an
`ActionResult` so callers branch on `result.kind` instead of inspecting types.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from billbrowse.core.errors import HandlerResolutionError

logger = logging.getLogger(__name__)


SingleHandler = Callable[..., Any]
BatchHandler = Callable[..., Awaitable[None]]


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a single handler call: `done`, or `render` with dialog content."""

    kind: str
    content: Any = None

    DONE = "done"
    RENDER = "render"

    @classmethod
    def done(cls) -> "ActionResult":
        return cls(kind=cls.DONE)

    @classmethod
    def render(cls, content: Any) -> "ActionResult":
        return cls(kind=cls.RENDER, content=content)

    @property
    def is_render(self) -> bool:
        return self.kind == self.RENDER


@dataclass(frozen=True)
class ActionDescriptor:
    id: str
    label: str
    single_handler: SingleHandler
    batch_handler: Optional[BatchHandler] = None
    description: str = ""


async def maybe_await(value: Any) -> Any:
    """Await `value` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def resolve_result(value: Any) -> ActionResult:
    """
    Normalize a single handler's return value.

    None and any non-ActionResult value mean "done"; only an explicit
    ActionResult.render(...) opens a result dialog.
    """
    value = await maybe_await(value)
    if isinstance(value, ActionResult):
        return value
    if value is not None:
        logger.debug("Handler returned %s; treating as done", type(value).__name__)
    return ActionResult.done()


def import_handler(path: str, *, builtins: Optional[Dict[str, Callable[..., Any]]] = None) -> Callable[..., Any]:
    """
    Resolve a handler reference.

    Args:
        path: Built-in action name, or "package.module:attribute" dotted path
        builtins: Mapping of built-in names to callables

    Returns:
        The handler callable

    Raises:
        HandlerResolutionError: If the path cannot be imported or is not callable
    """
    ref = (path or "").strip()
    if not ref:
        raise HandlerResolutionError("Empty handler reference")
    if builtins and ref in builtins:
        return builtins[ref]
    if ":" not in ref:
        known = ", ".join(sorted(builtins or {})) or "none"
        raise HandlerResolutionError(
            f"Handler '{ref}' is not a built-in action ({known}) and not a 'module:attribute' path"
        )
    module_name, _, attr = ref.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise HandlerResolutionError(f"Cannot import module '{module_name}' for handler '{ref}': {e}") from e
    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise HandlerResolutionError(f"Module '{module_name}' has no attribute '{attr}'") from e
    if not callable(target):
        raise HandlerResolutionError(f"Handler '{ref}' is not callable")
    return target


__all__ = [
    "ActionDescriptor",
    "ActionResult",
    "BatchHandler",
    "SingleHandler",
    "import_handler",
    "maybe_await",
    "resolve_result",
]
