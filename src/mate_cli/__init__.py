"""Command-line interface for mate."""
