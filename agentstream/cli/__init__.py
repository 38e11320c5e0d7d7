"""Command line interface for agentstream."""
