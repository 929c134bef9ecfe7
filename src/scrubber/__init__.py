"""Scrubber: repository hygiene scanner for secrets, sensitive paths and hint comments."""

__version__ = "0.1.0"
