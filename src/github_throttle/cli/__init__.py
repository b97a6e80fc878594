"""Command-line interface for GitHub Throttle."""
