"""Command-line interface for ProjectDesk."""
