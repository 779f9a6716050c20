"""billbrowse - interactive terminal browser for billing customers."""

import logging

__version__ = "1.0.0"
__description__ = "Page, search and run batch actions over billing customers"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from billbrowse.cli import app, main

__all__ = ["app", "main", "__version__"]
