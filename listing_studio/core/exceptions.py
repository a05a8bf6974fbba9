"""
Custom exceptions for the application

Every exception carries a stable machine-readable ``code`` and the HTTP
status it maps to, so boundary handlers can render a uniform payload.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base application exception"""
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(AppException):
    """Raised when input is malformed or violates a precondition"""
    code = "validation_error"
    status_code = 422


class MissingPromptError(ValidationError):
    """Raised when neither an override nor a default prompt exists"""
    code = "missing_prompt"


class NotFoundError(AppException):
    """Raised when a resource is not found"""
    code = "not_found"
    status_code = 404


class AuthenticationError(AppException):
    """Raised when the calling actor cannot be identified"""
    code = "authentication_error"
    status_code = 401


class ConfigurationError(AppException):
    """Raised when a required external credential is missing"""
    code = "configuration_error"
    status_code = 500


class ExternalServiceError(AppException):
    """Raised when a generator, storage or marketplace call fails"""
    code = "external_service_error"
    status_code = 502

    def __init__(self, message: str, service: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.service = service
        self.details.setdefault("service", service)


class ExternalServiceTimeout(ExternalServiceError):
    """Raised when an external call exceeds its time budget"""
    code = "external_service_timeout"
    status_code = 504
