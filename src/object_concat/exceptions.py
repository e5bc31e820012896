# src/object_concat/exceptions.py

"""
Shared custom exceptions for the object concatenation job.

Centralizing exception definitions in a separate module prevents circular
import errors between other modules that need to raise or catch them.

Exception Hierarchy:
- ObjectConcatError (base)
  - ConfigurationError      bad flags or environment, raised before any network call
  - StoreConnectionError    the store client could not be constructed
  - NotFoundError           the source listing yielded no objects
  - TransferError           list/fetch/upload failure
    - BucketOwnershipError  target bucket exists but belongs to someone else
  - DataIntegrityError      count/size mismatch while appending
  - FilesystemError         scratch directory create/remove failure

No error is retried: a failed run must be re-invoked by the operator.
"""

from typing import Any, Dict, Optional


class ObjectConcatError(Exception):
    """Base exception for all object concatenation errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = dict(context) if context else {}  # Copy context to prevent mutation
        self.correlation_id = correlation_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "correlation_id": self.correlation_id,
        }


# === Configuration Errors ===

class ConfigurationError(ObjectConcatError):
    """Raised when flags or environment variables are missing or malformed."""

    def __init__(self, message: str, **kwargs):
        if "error_code" not in kwargs:
            kwargs["error_code"] = "CONFIGURATION_ERROR"
        super().__init__(message, **kwargs)


# === Store Errors ===

class StoreConnectionError(ObjectConcatError):
    """Raised when the object store client cannot be constructed."""

    def __init__(self, endpoint: str, reason: str, **kwargs):
        message = f"Failed to create store client for {endpoint}: {reason}"
        context = {"endpoint": endpoint, "reason": reason}
        super().__init__(message, error_code="STORE_CONNECTION_FAILED", context=context, **kwargs)


class NotFoundError(ObjectConcatError):
    """Raised when a source bucket/prefix lists zero objects."""

    def __init__(self, bucket: str, prefix: str, **kwargs):
        message = f"No objects found under s3://{bucket}/{prefix}"
        context = {"bucket": bucket, "prefix": prefix}
        super().__init__(message, error_code="NO_OBJECTS_FOUND", context=context, **kwargs)


class TransferError(ObjectConcatError):
    """Raised when listing, fetching or uploading an object fails."""

    def __init__(self, message: str, **kwargs):
        if "error_code" not in kwargs:
            kwargs["error_code"] = "TRANSFER_FAILED"
        super().__init__(message, **kwargs)


class BucketOwnershipError(TransferError):
    """Raised when the target bucket already exists under another owner."""

    def __init__(self, bucket: str, **kwargs):
        message = f"Bucket already exists and is owned by another account: {bucket}"
        context = {"bucket": bucket}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        super().__init__(message, error_code="BUCKET_OWNERSHIP_CONFLICT", context=context, **kwargs)


# === Processing Errors ===

class DataIntegrityError(ObjectConcatError):
    """Raised when the appended artifact disagrees with what was staged."""

    def __init__(self, check: str, observed: int, expected: int, **kwargs):
        message = f"Integrity check '{check}' failed: observed {observed}, expected {expected}"
        context = {"check": check, "observed": observed, "expected": expected}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        super().__init__(message, error_code="DATA_INTEGRITY_MISMATCH", context=context, **kwargs)
        self.check = check
        self.observed = observed
        self.expected = expected


class FilesystemError(ObjectConcatError):
    """Raised when a scratch directory cannot be created or removed."""

    def __init__(self, operation: str, path: str, **kwargs):
        message = f"Filesystem {operation} failed for {path}"
        context = {"operation": operation, "path": path}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        super().__init__(message, error_code="FILESYSTEM_ERROR", context=context, **kwargs)


# === Utility Functions ===

def get_error_context(error: Exception) -> Dict[str, Any]:
    """Extract error context for logging."""
    if isinstance(error, ObjectConcatError):
        return error.to_dict()
    else:
        return {
            "error_type": error.__class__.__name__,
            "message": str(error),
        }
