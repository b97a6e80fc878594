"""GitHub Throttle - rate-limited GitHub REST API request execution."""

__version__ = "0.1.0"
