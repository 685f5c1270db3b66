"""Logging and id helpers shared across the package."""
