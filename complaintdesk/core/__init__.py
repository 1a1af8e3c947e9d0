"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from complaintdesk.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    SubmissionValidationException,
    ResourceNotFoundException,
    PermissionDeniedException,
    ConflictException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
    LLMConfigurationException,
    LLMRateLimitException,
    LLMQuotaException,
    MalformedLLMResponseException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "SubmissionValidationException",
    "ResourceNotFoundException",
    "PermissionDeniedException",
    "ConflictException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
    "LLMConfigurationException",
    "LLMRateLimitException",
    "LLMQuotaException",
    "MalformedLLMResponseException",
]
