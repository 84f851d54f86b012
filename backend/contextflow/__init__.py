"""ContextFlow: commit-driven service manifest sync."""
