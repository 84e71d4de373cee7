"""File helpers."""
