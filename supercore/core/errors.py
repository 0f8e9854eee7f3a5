"""Exception types raised inside the engine's collaborators.

None of these escape a prediction cycle: the orchestrator and the signal
wrappers convert them into abstentions or a cold start.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for supercore errors."""


class ExternalSignalError(EngineError):
    """An external prediction call failed or returned unusable output."""


class StateCorruptionError(EngineError):
    """Persisted engine state could not be decoded."""
