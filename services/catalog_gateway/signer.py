"""Request signing for the protected ``track/getFileUrl`` endpoint."""

import hashlib
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict

SIGNED_OPERATION = "trackgetFileUrl"
STREAM_INTENT = "stream"


class SignedRequest(BaseModel):
    """Timestamp/signature pair valid for exactly one request."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    signature: str

    def as_params(self) -> dict[str, str]:
        return {"request_ts": str(self.timestamp), "request_sig": self.signature}


def canonical_string(track_id: int, quality_tier: str, timestamp: int, secret: str) -> str:
    # Order and spelling must match the upstream byte for byte.
    return (
        f"{SIGNED_OPERATION}"
        f"format_id{quality_tier}"
        f"intent{STREAM_INTENT}"
        f"track_id{track_id}"
        f"{timestamp}"
        f"{secret}"
    )


def sign(
    track_id: int,
    quality_tier: str,
    secret: str,
    now: Optional[int] = None,
) -> SignedRequest:
    """Sign a stream-URL request; ``now`` defaults to the current Unix time."""
    timestamp = int(time.time()) if now is None else int(now)
    quality = str(getattr(quality_tier, "value", quality_tier))
    digest = hashlib.md5(
        canonical_string(track_id, quality, timestamp, secret).encode("utf-8")
    ).hexdigest()
    return SignedRequest(timestamp=timestamp, signature=digest)
