"""PropConnect client core."""
