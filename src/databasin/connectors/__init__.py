"""Databasin connector tooling - discovery patterns and configuration checks."""

__version__ = "0.1.0"
