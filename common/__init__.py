"""Shared application setup (logging and console output)."""
