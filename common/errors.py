"""
Exceptions shared by the label and tracking workflows.

The web layer maps them onto HTTP responses: `MissingFieldError` becomes a 400,
everything else a 500.
"""


class ShipmentError(Exception):
    """Base class for failures raised by the shipments backend."""


class MissingFieldError(ShipmentError):
    """A required input (an id, an address line, a postcode...) is absent."""


class UpstreamError(ShipmentError):
    """
    The CRM or the carrier failed: network error or a non-2xx response.

    `payload` holds the decoded response body when there was one, otherwise
    the error message, so it can be passed back to the caller unchanged.
    """

    def __init__(self, service, message, status_code=None, payload=None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code
        self.payload = payload if payload is not None else message

    @classmethod
    def from_request_exception(cls, service, exc):
        """Builds an UpstreamError from a `requests` exception."""
        response = getattr(exc, 'response', None)
        if response is None:
            return cls(service, str(exc))
        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        return cls(service, f"HTTP {response.status_code}", response.status_code, payload)
