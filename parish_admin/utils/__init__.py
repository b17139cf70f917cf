"""Shared helpers: formatting, filtering, pagination and status messages."""
