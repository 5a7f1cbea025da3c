"""
Exception types raised by the photoredact engine.

Invalid geometry and empty images are never errors; they are handled as
no-ops by the effect applier and the blur kernel.
"""


class RedactionError(Exception):
    """Base exception for redaction errors."""
    pass


class UnsupportedEffectError(RedactionError, ValueError):
    """Raised when an effect outside the supported set reaches the engine."""


class RedactionCancelled(RedactionError):
    """Raised when a blur or composition is cancelled through its event."""
