"""
HTTP Error Mapping
==================

Translates application exceptions raised by services into HTTPException
at the controller boundary.
"""

import math

from fastapi import HTTPException, status

from complaintdesk.core import (
    ApplicationException,
    ConflictException,
    LLMConfigurationException,
    LLMException,
    LLMQuotaException,
    LLMRateLimitException,
    PermissionDeniedException,
    ResourceNotFoundException,
    SubmissionValidationException,
    ValidationException,
)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
QUOTA_MESSAGE = "AI credits exhausted. Please contact the administrator."
LLM_UNCONFIGURED_MESSAGE = "Complaint analysis is temporarily unavailable."
LLM_FAILURE_MESSAGE = "Complaint analysis failed. Please try again."


def to_http_exception(exc: ApplicationException) -> HTTPException:
    """Map an application exception to the HTTP status users should see."""
    if isinstance(exc, SubmissionValidationException):
        return HTTPException(
            status_code=422,
            detail={"message": exc.message, "errors": exc.errors}
        )
    if isinstance(exc, ValidationException):
        return HTTPException(
            status_code=422,
            detail=exc.message
        )
    if isinstance(exc, ResourceNotFoundException):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, PermissionDeniedException):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)
    if isinstance(exc, ConflictException):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)

    if isinstance(exc, LLMConfigurationException):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=LLM_UNCONFIGURED_MESSAGE
        )
    if isinstance(exc, LLMRateLimitException):
        headers = None
        if exc.retry_after is not None:
            headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after)))}
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=RATE_LIMIT_MESSAGE,
            headers=headers
        )
    if isinstance(exc, LLMQuotaException):
        return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=QUOTA_MESSAGE)
    if isinstance(exc, LLMException):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=LLM_FAILURE_MESSAGE)

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )
