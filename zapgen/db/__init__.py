"""Schema and query layer."""
