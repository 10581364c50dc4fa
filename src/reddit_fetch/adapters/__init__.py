"""Adapters that satisfy the core ports (Reddit API, SQLite, filesystem)."""
