"""Command-line interface for ServerWatch."""
