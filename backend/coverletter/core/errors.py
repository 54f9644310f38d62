"""Error taxonomy for the cover-letter service.

Every error carries the HTTP status it maps to at the request boundary.
StreamTransportError has no status: by the time it is raised the response
headers are already on the wire.
"""


class CoverLetterError(Exception):
    """Base class for all service errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(CoverLetterError):
    """Missing or invalid upload, or a form field out of bounds."""

    status_code = 400


class ExtractionError(CoverLetterError):
    """The uploaded CV could not be read as a PDF."""


class UpstreamHttpError(CoverLetterError):
    """The completion API answered with a non-2xx status."""

    def __init__(self, upstream_status: int, body: str):
        self.upstream_status = upstream_status
        self.body = body
        super().__init__(f"API error ({upstream_status}): {body}")


class UpstreamFormatError(CoverLetterError):
    """The completion API answered with an unexpected JSON shape."""


class StreamTransportError(CoverLetterError):
    """The upstream stream failed after the downstream response started."""


class UpstreamConnectionError(CoverLetterError):
    """The completion API could not be reached or timed out."""
