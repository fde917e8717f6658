"""Membership service: credentials and OAuth sign-in with intent reconciliation."""

__version__ = "0.1.0"
