"""Protocol engine for handing documents to a running companion editor."""

__version__ = "2.7.0"
