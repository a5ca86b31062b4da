"""Glocal Stage: community notifications and anonymous polls."""

__version__ = "0.1.0"
