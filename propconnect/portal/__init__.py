"""PropConnect portal: store, controllers and entry point."""
