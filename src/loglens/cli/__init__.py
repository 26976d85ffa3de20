"""Command line interface for loglens."""
