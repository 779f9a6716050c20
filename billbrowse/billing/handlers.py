"""Built-in customer actions."""

from __future__ import annotations

import dataclasses
import logging
import webbrowser
from typing import Any, Callable, Dict, Mapping

from billbrowse.billing.render import record_field_table
from billbrowse.core.actions import ActionResult
from billbrowse.core.errors import BillbrowseError

logger = logging.getLogger(__name__)


DEFAULT_DASHBOARD_URL = "https://app.useautumn.com/customers/{id}"


def make_dashboard_handler(url_template: str = DEFAULT_DASHBOARD_URL) -> Callable[..., None]:
    """Handler that opens the customer's dashboard page in the system browser."""

    def open_dashboard(item_id: str, record: Any = None, set_status: Any = None) -> None:
        url = url_template.format(id=item_id)
        if set_status is not None:
            set_status(f"Opening {url}")
        logger.info("Opening dashboard for %s: %s", item_id, url)
        if not webbrowser.open(url):
            raise BillbrowseError(f"No browser available to open {url}")

    return open_dashboard


def _record_fields(record: Any) -> Mapping[str, Any]:
    raw = getattr(record, "raw", None)
    if raw:
        return raw
    if isinstance(record, Mapping):
        return record
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    return {}


def inspect_record(item_id: str, record: Any = None, set_status: Any = None) -> ActionResult:
    """Render every field of the record in the result dialog."""
    return ActionResult.render(record_field_table(_record_fields(record), title=f"Customer {item_id}"))


def builtin_handlers(dashboard_url: str = DEFAULT_DASHBOARD_URL) -> Dict[str, Callable[..., Any]]:
    return {
        "dashboard": make_dashboard_handler(dashboard_url),
        "inspect": inspect_record,
    }


__all__ = [
    "DEFAULT_DASHBOARD_URL",
    "builtin_handlers",
    "inspect_record",
    "make_dashboard_handler",
]
