"""
Error taxonomy for the scanning core.

Every error carries a stable ``code`` string so platform glue can map it to
its own rejection codes without parsing messages.
"""


class ScannerError(Exception):
    """Base error for known scanner failures."""

    code = "scanner_error"


class EmptyInputError(ScannerError, ValueError):
    """Raised when an aggregate operation receives an empty collection."""

    code = "empty_input"


class DegenerateQuadError(ScannerError, ValueError):
    """Raised when a quad cannot define a perspective warp."""

    code = "degenerate_quad"


class CaptureInProgressError(ScannerError):
    """Raised when a capture is requested while another one is running."""

    code = "capture_in_progress"


class CaptureUnavailableError(ScannerError):
    """Raised when a capture is requested before a still source is attached."""

    code = "capture_unavailable"


class ImageCreationFailedError(ScannerError):
    """Raised when an output image cannot be produced or encoded."""

    code = "image_creation_failed"


class FileWriteFailedError(ScannerError):
    """Raised when encoded image bytes cannot be written to disk."""

    code = "file_write_failed"
