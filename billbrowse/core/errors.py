"""Exception taxonomy for billbrowse."""

from __future__ import annotations

from typing import Sequence


class BillbrowseError(Exception):
    """Base class for all billbrowse errors."""


class ConfigError(BillbrowseError):
    """Configuration file is missing required structure or holds invalid values."""


class DatasetError(BillbrowseError):
    """Customer dataset could not be read or parsed."""


class HandlerResolutionError(ConfigError):
    """An action handler path could not be imported."""


class BatchAbort(BillbrowseError):
    """
    Record of a batch run that was cut short by a handler exception.

    Never raised out of the orchestrator; it is attached to the batch session so
    the UI (and tests) can inspect what was force-failed.
    """

    def __init__(self, message: str, *, failed_ids: Sequence[str], cause: BaseException) -> None:
        super().__init__(message)
        self.message = message
        self.failed_ids = tuple(failed_ids)
        self.cause = cause


__all__ = [
    "BillbrowseError",
    "ConfigError",
    "DatasetError",
    "HandlerResolutionError",
    "BatchAbort",
]
