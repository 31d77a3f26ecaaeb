"""Exception types raised by the pyramid build.

Every error carries a single message naming the failing path and
operation, so instances survive the trip back from worker processes.
"""

from __future__ import annotations


class TilerError(Exception):
    """Base class for all gridpyramid failures."""


class ConfigError(TilerError, ValueError):
    """Configuration values are inconsistent or out of range."""


class NameEncodingError(TilerError):
    """A directory entry name cannot be represented as text."""


class PatternParseError(TilerError):
    """A name matched the grid pattern but its coordinates are unusable."""


class EmptyInputError(TilerError):
    """No base images matched while deriving the bounding box."""


class NonSquareGridError(TilerError):
    """The bounding box is not square."""


class DecodeError(TilerError):
    """A base image could not be decoded."""


class EncodeError(TilerError):
    """An output tile could not be encoded."""


class TileWriteError(TilerError, OSError):
    """Creating directories or persisting a tile failed."""
