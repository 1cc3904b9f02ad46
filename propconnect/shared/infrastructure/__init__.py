"""Infrastructure adapters: HTTP and persistence."""
