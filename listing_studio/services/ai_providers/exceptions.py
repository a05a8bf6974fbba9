"""
Generator provider specific exceptions
"""


class GeneratorError(Exception):
    """Base exception for generator provider errors"""
    pass


class GeneratorTimeout(GeneratorError):
    """Raised when the provider does not answer within the time budget"""
    pass


class RateLimitError(GeneratorError):
    """Raised when API rate limit is exceeded"""
    def __init__(self, message: str, retry_after: int = None):
        super().__init__(message)
        self.retry_after = retry_after


class AuthenticationError(GeneratorError):
    """Raised when API authentication fails"""
    pass
