"""
Exception hierarchy for the Legal Advisor service.

Every error carries the HTTP status the API should answer with, so handlers
can turn any failure into a JSON body without inspecting exception types.
"""

from typing import Optional

from .language_patterns import ERROR_MESSAGES


class LegalAdvisorError(Exception):
    """Base class for all service errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None, logs: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        # Progress log collected before the failure (ingestion endpoints only)
        self.logs = logs

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.logs is not None:
            body["logs"] = self.logs
        return body


class InputValidationError(LegalAdvisorError):
    """Missing or malformed request input."""

    status_code = 400


class InsufficientContentError(InputValidationError):
    """Normalized text is shorter than the ingestion floor."""

    def __init__(self, content_length: int, logs: Optional[list[str]] = None):
        super().__init__(ERROR_MESSAGES["insufficient_content"], logs=logs)
        self.content_length = content_length


class ConfigurationError(LegalAdvisorError):
    """A required setting (API key, database URL) is missing."""

    status_code = 500


class UpstreamServiceError(LegalAdvisorError):
    """
    An external API (embedding, chat completion, document extraction) failed.

    Rate-limit (429) and credit exhaustion (402) keep their status and get a
    dedicated user-facing message; every other upstream status collapses to 500.
    """

    PASSTHROUGH_STATUSES = (429, 402)

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        logs: Optional[list[str]] = None,
    ):
        self.upstream_status = upstream_status
        if upstream_status == 429:
            message = ERROR_MESSAGES["rate_limited"]
        elif upstream_status == 402:
            message = ERROR_MESSAGES["credits_exhausted"]
        status = upstream_status if upstream_status in self.PASSTHROUGH_STATUSES else 500
        super().__init__(message, status_code=status, logs=logs)


class SourceFetchError(UpstreamServiceError):
    """The source page of a scrape request could not be fetched."""
