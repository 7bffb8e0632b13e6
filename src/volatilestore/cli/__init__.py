"""Command-line interface for volatilestore."""
