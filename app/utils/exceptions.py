"""
Custom Exception Classes for the Fit Score API
"""
from typing import Dict, Any, Optional
from fastapi import HTTPException


class FitScoreBaseException(Exception):
    """Base exception for the Fit Score API"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Optional[str] = None,
        context: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details
        self.context = context or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for the response body"""
        result = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def reframe(self, message: str) -> None:
        """Replace the public message, keeping the previous one (and its details) as details"""
        self.details = f"{self.message}: {self.details}" if self.details else self.message
        self.message = message
        self.args = (message,)


class ValidationError(FitScoreBaseException):
    """Raised when a required request field is missing or empty"""

    def __init__(self, message: str, field: str = None, **kwargs):
        context = kwargs.pop('context', {})
        if field:
            context['field'] = field
        super().__init__(message, error_code="VALIDATION_ERROR", context=context, **kwargs)


class NotFoundError(FitScoreBaseException):
    """Raised when a job is absent or has no description"""

    def __init__(self, message: str, resource_id: str = None, **kwargs):
        context = kwargs.pop('context', {})
        if resource_id:
            context['resource_id'] = resource_id
        super().__init__(message, error_code="NOT_FOUND", context=context, **kwargs)


class UnsupportedFormatError(FitScoreBaseException):
    """Raised when an upload declares a MIME type we cannot extract"""

    def __init__(self, mime_type: str, **kwargs):
        self.mime_type = mime_type
        context = kwargs.pop('context', {})
        context['mime_type'] = mime_type
        super().__init__(
            "Unsupported file type",
            error_code="UNSUPPORTED_FORMAT",
            details=f"Cannot extract text from '{mime_type}'",
            context=context,
            **kwargs
        )


class ExtractionError(FitScoreBaseException):
    """Raised when a parser fails on a supported document format"""

    def __init__(self, message: str, document_type: str = None, **kwargs):
        context = kwargs.pop('context', {})
        if document_type:
            context['document_type'] = document_type
        super().__init__(message, error_code="EXTRACTION_ERROR", context=context, **kwargs)


class EmbeddingError(FitScoreBaseException):
    """Raised when the embedding provider call fails"""

    def __init__(self, message: str = "Failed to generate embedding", model_name: str = None, status_code: int = None, **kwargs):
        context = kwargs.pop('context', {})
        if model_name:
            context['model_name'] = model_name
        if status_code:
            context['status_code'] = status_code
        super().__init__(message, error_code="EMBEDDING_ERROR", context=context, **kwargs)


class DimensionMismatchError(FitScoreBaseException):
    """Raised when two vectors of unequal length are compared"""

    def __init__(self, left: int, right: int, **kwargs):
        super().__init__(
            "Vectors must be the same length",
            error_code="DIMENSION_MISMATCH",
            details=f"Cannot compare vectors of length {left} and {right}",
            context={"left": left, "right": right},
            **kwargs
        )


class InternalError(FitScoreBaseException):
    """Catch-all for unexpected failures below the orchestration layer"""

    def __init__(self, message: str = "Internal server error", **kwargs):
        super().__init__(message, error_code="INTERNAL_ERROR", **kwargs)


# HTTP Exception Mapping
STATUS_CODE_MAPPING = {
    ValidationError: 400,
    UnsupportedFormatError: 400,
    NotFoundError: 404,
    ExtractionError: 500,
    EmbeddingError: 500,
    DimensionMismatchError: 500,
    InternalError: 500,
}


def map_to_http_exception(exc: FitScoreBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""
    status_code = STATUS_CODE_MAPPING.get(type(exc), 500)
    return HTTPException(status_code=status_code, detail=exc.to_dict())


# Exception context manager for the orchestration layer
class ExceptionContext:
    """
    Context manager for an endpoint operation.

    Client errors (4xx) pass through untouched. Server-side taxonomy errors keep
    their error_code but report the operation's error_message, with their own
    message moved into details. Anything else becomes an InternalError.
    """

    def __init__(self, operation: str, error_message: str = None, logger=None, **context):
        self.operation = operation
        self.error_message = error_message or f"Failed to {operation}"
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            if self.logger:
                self.logger.error(
                    f"Operation failed: {self.operation} - {exc_val}",
                    extra={**self.context, "exception_type": exc_type.__name__}
                )

            if not isinstance(exc_val, Exception):
                return False

            if isinstance(exc_val, FitScoreBaseException):
                if STATUS_CODE_MAPPING.get(type(exc_val), 500) >= 500 and not isinstance(exc_val, InternalError):
                    exc_val.reframe(self.error_message)
                return False

            wrapped_exc = InternalError(
                self.error_message,
                details=str(exc_val),
                context=self.context,
                cause=exc_val
            )
            raise wrapped_exc from exc_val
        else:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)

        return False


# Retry decorator with exponential backoff
def retry_with_logging(
    max_attempts: int = 3,
    backoff_factor: float = 1.0,
    exceptions: tuple = (Exception,),
    logger=None
):
    """Decorator to retry operations with exponential backoff and logging"""
    import asyncio
    import functools
    import inspect
    import time
    from random import uniform

    max_attempts = max(1, max_attempts)

    def _sleep_time(attempt: int) -> float:
        return backoff_factor * (2 ** attempt) + uniform(0, backoff_factor)

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )

                    if attempt < max_attempts - 1:  # Don't sleep on the last attempt
                        await asyncio.sleep(_sleep_time(attempt))
                    else:
                        if logger:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )

                    if attempt < max_attempts - 1:  # Don't sleep on the last attempt
                        time.sleep(_sleep_time(attempt))
                    else:
                        if logger:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator
