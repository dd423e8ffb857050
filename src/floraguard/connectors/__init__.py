"""User-facing connectors."""
