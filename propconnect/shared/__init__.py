"""Shared core, domain and infrastructure for PropConnect clients."""
