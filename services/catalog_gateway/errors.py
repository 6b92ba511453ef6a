"""Catalog gateway exceptions for error handling."""

from typing import Optional


class CatalogGatewayError(Exception):
    """Base exception for catalog gateway operations."""

    pass


class ConfigurationError(CatalogGatewayError):
    """Raised when required configuration is missing or invalid."""

    pass


class UpstreamUnavailable(CatalogGatewayError):
    """Raised on transport failures or responses that cannot be parsed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class UpstreamRejected(CatalogGatewayError):
    """Raised when the upstream answers with a structured error body."""

    def __init__(
        self,
        status_code: int,
        message: Optional[str] = None,
        code: Optional[str] = None,
    ):
        self.status_code = status_code
        self.upstream_message = message
        self.code = code
        super().__init__(message or f"Upstream rejected the request (HTTP {status_code})")


class SignatureRejected(UpstreamRejected):
    """Raised when a signed request is refused (bad signature or clock skew)."""

    pass


class StreamUnavailable(CatalogGatewayError):
    """Raised when a track cannot be streamed with the resolved credential."""

    def __init__(self, track_id: int, message: Optional[str] = None):
        self.track_id = track_id
        super().__init__(message or f"Track {track_id} is not streamable for this region")
