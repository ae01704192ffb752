"""Local-first task timer with SQLite-backed time slots."""

__version__ = "0.1.0"
