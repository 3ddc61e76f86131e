"""Command-line interface for tilebridge."""
