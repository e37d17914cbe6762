"""RSS aggregator library: SQLite storage, settings file, command handlers and feed fetching."""

__version__ = "0.1.0"