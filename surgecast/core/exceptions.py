"""
SurgeCast Errors

Typed failures with a machine-readable kind
"""
import asyncio
from typing import Any, Dict, Optional


class SurgecastError(Exception):
    """Base error; `kind` is stable and machine-readable"""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidLocationError(SurgecastError):
    """Malformed or unrecognised location name"""

    kind = "invalid_location"


class MissingCredentialsError(SurgecastError):
    """A provider was invoked without its API key"""

    kind = "missing_credentials"

    def __init__(self, service: str):
        super().__init__(f"No API key configured for {service}")
        self.service = service


class ProviderError(SurgecastError):
    """
    An external provider rejected the call or returned an unusable payload

    Args:
        message: human-readable description
        status_code: HTTP status, if any
        retry_after: provider-suggested delay in seconds
        details: raw error payload
    """

    kind = "provider_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.status_code is not None:
            result["status_code"] = self.status_code
        return result


class MissingMandatorySignalError(SurgecastError):
    """Weather data could not be obtained for a prediction"""

    kind = "missing_mandatory_signal"


class SynthesisFailureError(SurgecastError):
    """A prediction could not be produced or persisted"""

    kind = "synthesis_failure"


class ImmutableRecordError(SurgecastError):
    """Attempted in-place update of an append-only record"""

    kind = "immutable_record"


# Failures a caller may degrade from when fetching a signal
FETCH_ERRORS = (SurgecastError, OSError, asyncio.TimeoutError)
