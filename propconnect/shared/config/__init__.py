"""Bundled settings and message templates."""
