"""CLI commands — one module per entry point, thin wrappers over use cases."""
