"""Terminal client for PostgreSQL, MySQL and SQLite databases."""

__version__ = "0.1.0"
