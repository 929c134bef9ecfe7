"""Error taxonomy for policy-level failures."""

from __future__ import annotations


class ScrubberError(Exception):
    """Base class for errors surfaced to the user."""


class ConfigurationMissing(ScrubberError):
    """A required setting (e.g. scanned file types) is absent."""


class ValidationFailed(ScrubberError, ValueError):
    """User input was rejected before any state changed."""


class GitRepositoryNotFound(ScrubberError, RuntimeError):
    """No git repository (or git binary) is available for the workspace."""


class GitRepositoryTimeout(ScrubberError, RuntimeError):
    """The git repository did not become available in time."""


class FileReadFailure(ScrubberError, OSError):
    """A candidate file could not be read; only that file is skipped."""
