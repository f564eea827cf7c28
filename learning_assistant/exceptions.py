"""Custom exception classes"""

from typing import List, Optional


class LearningAssistantException(Exception):
    """Base exception for the learning assistant"""
    status_code = 500


class ConfigurationError(LearningAssistantException):
    """No provider credentials configured for a capability"""
    status_code = 503


class ValidationException(LearningAssistantException):
    """Validation errors"""
    status_code = 400


class RateLimitException(LearningAssistantException):
    """Rate limit exceeded"""
    status_code = 429

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after


class CourseNotFoundException(LearningAssistantException):
    """Course does not exist or is inactive"""
    status_code = 404


class CourseAccessDeniedException(LearningAssistantException):
    """Caller is neither teacher nor student of the course"""
    status_code = 403


class DocumentNotFoundException(LearningAssistantException):
    """Document does not exist or was soft-deleted"""
    status_code = 404


class DocumentProcessingError(LearningAssistantException):
    """Chunking/embedding pipeline errors (recorded on the document)"""
    pass


class ProviderError(LearningAssistantException):
    """Upstream AI provider errors"""
    status_code = 503

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class QuotaExceededError(ProviderError):
    """Provider quota or rate limit exhausted"""
    pass


class TransientUpstreamError(ProviderError):
    """Timeouts and 5xx responses from a provider"""
    pass


class AllProvidersFailedError(ProviderError):
    """Every provider in the chain failed"""

    def __init__(self, message: str, errors: List[ProviderError]):
        super().__init__(message)
        self.errors = errors

    @property
    def last_error(self) -> Optional[ProviderError]:
        return self.errors[-1] if self.errors else None

    @property
    def is_quota(self) -> bool:
        """True when every provider failed with a quota error"""
        return bool(self.errors) and all(isinstance(e, QuotaExceededError) for e in self.errors)
