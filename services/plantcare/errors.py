"""Error taxonomy for outbound prediction calls."""

from typing import Optional


class PlantCareError(Exception):
    """Base class for plant-care client errors."""
    pass


class MissingCredential(PlantCareError):
    """No bearer token is available for the outbound call."""

    def __init__(self, message: str = "No token found. Please log in first."):
        super().__init__(message)


class TransportError(PlantCareError):
    """Network failure or timeout on a single attempt."""
    pass


class HttpStatusError(PlantCareError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status_code: int, body: Optional[str] = None, reason: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Status {status_code}: {body or reason}")


class ExhaustedStrategies(PlantCareError):
    """Every encoding (or path) and retry failed."""

    def __init__(self, last_error: Optional[Exception] = None):
        self.last_error = last_error
        super().__init__(str(last_error) if last_error else "All attempts failed")
