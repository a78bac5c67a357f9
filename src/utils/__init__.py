"""Shared error and logging utilities."""
