"""Work - terminal time tracker built on an append-only event log."""

__version__ = "0.1.0"
