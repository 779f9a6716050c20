"""Textual presentation layer for billbrowse."""
