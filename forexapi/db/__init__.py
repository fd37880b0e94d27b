"""SQLite persistence for currency definitions."""
