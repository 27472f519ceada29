"""Exceptions raised while decoding program-database metadata."""

from __future__ import annotations


class MetadataReadError(ValueError):
    """Base class for metadata decode failures."""


class EndOfStreamError(MetadataReadError):
    """Raised when a read needs more bytes than remain before the limit."""


class OutOfRangeError(MetadataReadError):
    """Raised when a seek or truncate target falls outside the stream bounds."""


class InvalidEncodingError(MetadataReadError):
    """Raised when a compressed integer has no valid width tier."""


class AbsentTableError(MetadataReadError):
    """Raised by a strict index resolver when the target table is not loaded."""
