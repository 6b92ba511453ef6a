"""Regional credential selection for upstream requests."""

import logging
import random
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from services.catalog_gateway.errors import ConfigurationError

log = logging.getLogger("catalog-gateway.credentials")


class Credential(BaseModel):
    """A user auth token bound to the region (ISO 3166-1 alpha-2) it serves."""

    model_config = ConfigDict(frozen=True)

    region: str
    secret_token: str

    @field_validator("region", "secret_token")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CredentialPool:
    """
    Read-only set of credentials.

    When a regional mapping is configured it takes precedence over the
    fallback tokens entirely; the fallback list is only sampled when no
    region has been configured at all.
    """

    def __init__(
        self,
        regional: Sequence[Credential] = (),
        fallback_tokens: Sequence[str] = (),
        rng: Optional[random.Random] = None,
    ):
        seen: set[str] = set()
        for credential in regional:
            key = credential.region.upper()
            if key in seen:
                raise ConfigurationError(f"Region {credential.region!r} is configured more than once")
            seen.add(key)

        self._regional = tuple(regional)
        self._by_region = {c.region.upper(): c.secret_token for c in self._regional}
        self._fallback = tuple(fallback_tokens)
        self._rng = rng or random.Random()

    @property
    def regions(self) -> list[str]:
        return [c.region for c in self._regional]

    def resolve(self, region_hint: Optional[str] = None) -> str:
        """Return the token to use for a request made on behalf of ``region_hint``."""
        if self._regional:
            if region_hint:
                token = self._by_region.get(region_hint.strip().upper())
                if token is not None:
                    return token
                log.debug(
                    "No credential for region %r; defaulting to %s",
                    region_hint,
                    self._regional[0].region,
                )
            return self._regional[0].secret_token

        if not self._fallback:
            raise ConfigurationError("No credential tokens are configured")
        return self._rng.choice(self._fallback)
