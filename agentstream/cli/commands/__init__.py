"""Command groups discovered by the CLI registry."""
