"""Command-line interface for the work log."""
