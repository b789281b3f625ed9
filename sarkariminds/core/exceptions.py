from __future__ import annotations


class SarkariMindsError(Exception):
    """Base class for domain errors raised by the account lifecycle code."""


class NetworkError(SarkariMindsError):
    """A follow/connection operation that the current state does not allow."""


class InvalidJobError(SarkariMindsError):
    """A queued job whose type or payload the worker cannot run."""
