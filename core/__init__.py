"""Shared infrastructure: paths, settings, SQLite and logging helpers."""
