"""Local job application tracker: record store, query engine and snapshots."""

__version__ = "0.1.0"
