# tenant_overlay/cli/__init__.py
"""Typer command line client for the admin API."""
