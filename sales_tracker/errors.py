"""Exception classes raised by the reporting layer."""


class SalesReportError(Exception):
    """Base exception for salesboard."""
    pass


class ValidationError(SalesReportError):
    """Caller supplied a missing or malformed parameter."""
    pass


class UpstreamFetchError(SalesReportError):
    """The seed feed could not be fetched or parsed."""
    pass


class StoreError(SalesReportError):
    """A query or bulk load against the transaction store failed."""
    pass
