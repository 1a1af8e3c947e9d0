"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Dict, Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class SubmissionValidationException(ValidationException):
    """
    Complaint fields failed validation.

    Carries every violated field at once so the caller can surface
    all messages together.
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(
            "Complaint submission is invalid",
            {"errors": self.errors}
        )


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class PermissionDeniedException(DomainException):
    """Actor is not allowed to perform the requested operation."""


class ConflictException(DomainException):
    """Operation conflicts with existing state (e.g. duplicate registration)."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    retriable = False

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class LLMConfigurationException(LLMException):
    """Upstream credential is missing; nothing to retry until an operator fixes it."""


class LLMRateLimitException(LLMException):
    """Upstream rejected the call for rate limiting."""

    retriable = True

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        details: Optional[dict] = None
    ):
        self.retry_after = retry_after
        super().__init__(message, details)


class LLMQuotaException(LLMException):
    """Upstream rejected the call for quota or billing reasons."""


class MalformedLLMResponseException(LLMException):
    """Upstream answered without a usable structured result."""
