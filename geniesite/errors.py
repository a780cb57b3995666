"""Exception hierarchy shared by the relay, the sanitizer and the client."""


class GenieSiteError(Exception):
    """Base class for every error raised by this package."""


class UpstreamError(GenieSiteError):
    """The model stream failed or produced something we cannot use."""


class InvalidDocumentError(UpstreamError):
    """The cleaned generation does not contain an HTML document."""


class GenerationInProgressError(GenieSiteError):
    """A new generation was started while another one is still streaming."""
