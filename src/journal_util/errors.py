from __future__ import annotations

from typing import Optional


class JournalUtilError(Exception):
    """Base class for errors surfaced to the operator"""


class ConfigError(JournalUtilError):
    pass


class AuthError(JournalUtilError):
    """Raised when the client-credentials exchange fails"""

    def __init__(self, message: str, correlation_id: Optional[str] = None, category: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.correlation_id = correlation_id
        self.category = category


class ApiClientError(JournalUtilError):
    """Non-2xx (or transport) failure from the webhooks API"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        correlation_id: Optional[str] = None,
        category: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.correlation_id = correlation_id
        self.category = category


class NoContentError(ApiClientError):
    """204 from the API: nothing to return, not a failure"""

    def __init__(self, message: str = "No content available"):
        super().__init__(message, status_code=204)


class JournalDownloadError(JournalUtilError):
    pass


class LinkExpiredError(JournalDownloadError):
    """The signed journal URL answered 403/404"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class StreamStartError(JournalUtilError):
    """The journal stream could not establish its starting offset"""
