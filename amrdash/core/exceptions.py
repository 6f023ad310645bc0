"""
AMR Dashboard error taxonomy

Every failure that reaches the HTTP layer is one of these, each with the
status code it is reported under.
"""
from typing import Any, Dict, Iterable, List, Optional


class SurveillanceError(Exception):
    """Base class for errors with a wire representation"""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Failure envelope body"""
        body: Dict[str, Any] = {
            "success": False,
            "error": self.error,
            "message": self.message,
        }
        body.update(self.details)
        return body


class ConfigurationError(SurveillanceError):
    """Required settings missing at startup; fatal"""

    error = "Configuration error"


class InvalidInputError(SurveillanceError):
    """Caller supplied a column or value outside the allow-list"""

    status_code = 400
    error = "Invalid input"

    def __init__(self, message: str, accepted: Optional[Iterable[Any]] = None, **details: Any):
        self.accepted: List[Any] = list(accepted) if accepted is not None else []
        if accepted is not None:
            details["accepted"] = self.accepted
        super().__init__(message, **details)


class NotFoundError(SurveillanceError):
    """Single-resource lookup matched nothing"""

    status_code = 404
    error = "Not found"


class UpstreamUnavailableError(SurveillanceError):
    """Database unreachable or a fetch exceeded its timeout"""

    status_code = 503
    error = "Database connectivity issue"
