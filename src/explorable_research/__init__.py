"""Explorable Research - research papers into sandboxed interactive explorables."""

__version__ = "0.1.0"
