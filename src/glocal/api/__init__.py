"""HTTP API for the Glocal application."""
