"""Command-line host for the content job scheduler."""
