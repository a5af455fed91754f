"""Per-source collectors and the registry that builds them from configuration."""
