"""Extract authentication and authorization memory files from source repositories."""

__version__ = "0.1.0"
