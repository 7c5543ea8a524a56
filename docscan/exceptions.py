"""
Typed failures raised by the document scanning pipeline.
"""


class DocScanError(Exception):
    """Base class for all pipeline failures."""


class SingularSystemError(DocScanError, ValueError):
    """A linear system (and so a homography) could not be solved.

    Raised for degenerate corner configurations: collinear or coincident
    points.
    """


# Name used throughout the error-handling docs
SingularSystem = SingularSystemError


class DecodeFailure(DocScanError):
    """The image decoder rejected the input bytes."""


class EncodeFailure(DocScanError):
    """The image encoder or drawing surface could not produce output."""


class UnsupportedFormat(DocScanError, ValueError):
    """Input image format is outside the allow-list."""

    def __init__(self, fmt, allowed=()):
        self.format = fmt
        self.allowed = tuple(allowed)
        allowed_str = ", ".join(self.allowed) if self.allowed else "none"
        super().__init__(f"Unsupported image format: {fmt} (allowed: {allowed_str})")
