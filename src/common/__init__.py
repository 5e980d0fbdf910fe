"""Shared helpers: errors, logging and execution-context detection."""
