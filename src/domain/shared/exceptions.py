"""
Domain Layer Exceptions

This module defines the exception hierarchy for the Domain Layer.
All domain-specific exceptions inherit from DomainException.

Responsibility:
    - Base exception class for domain errors
    - Client input errors for analysis requests (mapped to HTTP 400)
    - Clear separation from framework and infrastructure exceptions

Architecture Notes:
    - Part of Shared Domain (used across all subdomains)
    - API Layer converts these to HTTP responses in global exception handlers
    - Infrastructure Layer raises its own exceptions (e.g. BrokerError)
"""

from typing import Optional


class DomainException(Exception):
    """
    Base exception for all domain layer errors.

    All domain-specific exceptions inherit from this class to enable
    type-safe error handling in Application and API layers.

    Usage:
        - Catch this in Application Layer to handle all domain errors
        - API Layer converts to appropriate HTTP status codes
        - Infrastructure Layer should not raise DomainException (use own exceptions)

    Examples:
        >>> raise DomainException("Business rule violation")
    """

    def __init__(self, message: str) -> None:
        """
        Initialize domain exception with error message.

        Args:
            message: Human-readable error description
        """
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        """String representation of the exception."""
        return f"{self.__class__.__name__}: {self.message}"

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"{self.__class__.__name__}(message={self.message!r})"


class ClientInputError(DomainException):
    """
    Raised when an analysis request is rejected before reaching the broker.

    Every subclass maps to HTTP 400 Bad Request. Raising it guarantees that
    no job was published for the request.

    Examples:
        >>> raise ClientInputError("Provide exactly one of 'file' or 'text'")
    """


class InvalidAnalysisInputError(ClientInputError):
    """
    Raised when the analysis payload is missing, ambiguous or unusable.

    This exception is raised when:
    - Neither file nor text was supplied
    - Both file and text were supplied
    - The uploaded file is empty
    - The job family does not accept the supplied input kind

    Examples:
        >>> raise InvalidAnalysisInputError("Provide exactly one of 'file' or 'text'")
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        """
        Initialize analysis input error.

        Args:
            message: Error description
            field: Name of the offending form field (optional)
        """
        self.field = field
        super().__init__(message)


class UnsupportedMediaTypeError(ClientInputError):
    """
    Raised when an uploaded file is not an image.

    Examples:
        >>> raise UnsupportedMediaTypeError("File must be an image", "text/plain")
    """

    def __init__(self, message: str, content_type: Optional[str] = None) -> None:
        """
        Initialize media type error.

        Args:
            message: Error description
            content_type: Content type declared by the client (optional)
        """
        self.content_type = content_type
        super().__init__(message)
