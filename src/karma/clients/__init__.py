"""Platform bindings."""
