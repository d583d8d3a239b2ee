"""
Core app for the Legal Newsroom.

Provides staff roles, typed event channels, error handling, request
metrics and health checks.
"""
