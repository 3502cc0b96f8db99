from typing import List, Optional


class UpstreamError(Exception):
    """
    Base class for failures talking to the Subscan indexer.
    The message is always human-readable and safe to return to API callers.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UpstreamHTTPError(UpstreamError):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"Subscan API error: {status_code} {message}".strip())
        self.status_code = status_code


class UpstreamAPIError(UpstreamError):
    """Non-zero application `code` inside an HTTP 200 envelope."""

    def __init__(self, code: int, message: str):
        super().__init__(f"Subscan error {code}: {message}")
        self.code = code


class UpstreamUnavailableError(UpstreamError):
    pass


class MalformedResponseError(UpstreamError):
    pass


class InvalidRequestError(ValueError):
    """User input rejected before any network activity."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PaginationFailed(Exception):
    """
    A page fetch failed mid-loop.
    Carries what was collected before the failure so the caller can decide
    whether to keep it.
    """

    def __init__(self, cause: UpstreamError, events: List, cursor: Optional[str]):
        super().__init__(cause.message)
        self.cause = cause
        self.events = events
        self.cursor = cursor
        self.message = cause.message
