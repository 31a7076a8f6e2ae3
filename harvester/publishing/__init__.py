"""Publishing of harvested tokens."""
