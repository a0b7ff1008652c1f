"""Authenticated REST client and local-first sync core for LiftSync."""

__version__ = "0.1.0"
