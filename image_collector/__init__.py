"""Collect image resources referenced by a web page."""

__version__ = "0.1.0"
