"""
Gateway configuration.

Everything the catalog client needs is read once, at process start, into a
frozen ``GatewayConfig`` that is handed to ``CatalogClient``. Request
handling code never touches the environment.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from services.catalog_gateway.credentials import Credential
from services.catalog_gateway.errors import ConfigurationError
from services.common.logging_utils import mask_secret
from services.common.sidecar_runtime_utils import (
    DEFAULT_REQUEST_TIMEOUT,
    env_float,
    env_json,
    env_str,
)

DEFAULT_RELAY_USER_AGENT = "Qobuz-DL"
DEFAULT_PERMALINK_DOMAIN = "qobuz.com"


class GatewayConfig(BaseModel):
    """Immutable upstream settings shared by every request."""

    model_config = ConfigDict(frozen=True)

    app_id: Optional[str] = None
    secret: Optional[str] = None
    api_base: Optional[str] = None
    auth_tokens: tuple[str, ...] = ()
    token_countries: tuple[Credential, ...] = ()
    socks_proxy: Optional[str] = None
    cors_proxy: Optional[str] = None
    relay_user_agent: str = DEFAULT_RELAY_USER_AGENT
    permalink_domain: str = DEFAULT_PERMALINK_DOMAIN
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)

    @field_validator("auth_tokens")
    @classmethod
    def _drop_blank_tokens(cls, tokens: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(t for t in tokens if t and t.strip())

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """Build the configuration from the deployment's environment variables."""
        try:
            auth_tokens = env_json("QOBUZ_AUTH_TOKENS", [])
            token_countries = env_json("QOBUZ_TOKEN_COUNTRIES", [])
            request_timeout = env_float("QOBUZ_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if not isinstance(auth_tokens, list):
            raise ConfigurationError("QOBUZ_AUTH_TOKENS must be a JSON list of tokens")
        if not isinstance(token_countries, list):
            raise ConfigurationError(
                'QOBUZ_TOKEN_COUNTRIES must be a JSON list of {"code": ..., "token": ...} objects'
            )

        try:
            return cls(
                app_id=env_str("QOBUZ_APP_ID"),
                secret=env_str("QOBUZ_SECRET"),
                api_base=env_str("QOBUZ_API_BASE"),
                auth_tokens=tuple(auth_tokens),
                token_countries=tuple(
                    Credential(region=entry.get("code"), secret_token=entry.get("token"))
                    if isinstance(entry, dict)
                    else entry
                    for entry in token_countries
                ),
                socks_proxy=env_str("SOCKS5_PROXY"),
                cors_proxy=env_str("CORS_PROXY"),
                relay_user_agent=env_str("QOBUZ_RELAY_USER_AGENT", DEFAULT_RELAY_USER_AGENT),
                permalink_domain=env_str("QOBUZ_PERMALINK_DOMAIN", DEFAULT_PERMALINK_DOMAIN),
                request_timeout=request_timeout,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid gateway configuration: {e}") from e

    def validate_requirements(self) -> None:
        """Fail fast when the deployment cannot possibly reach the upstream."""
        missing = []
        if not self.app_id:
            missing.append("QOBUZ_APP_ID")
        if not self.auth_tokens and not self.token_countries:
            missing.append("QOBUZ_AUTH_TOKENS")
        if not self.secret:
            missing.append("QOBUZ_SECRET")
        if not self.api_base:
            missing.append("QOBUZ_API_BASE")
        if missing:
            raise ConfigurationError(
                f"Deployment is missing {', '.join(missing)} environment variable"
                f"{'s' if len(missing) > 1 else ''}."
            )

    def summary(self) -> dict:
        """Loggable view of the configuration with secrets masked."""
        return {
            "app_id": self.app_id,
            "api_base": self.api_base,
            "secret": mask_secret(self.secret),
            "fallback_tokens": len(self.auth_tokens),
            "token_countries": [c.region for c in self.token_countries],
            "socks_proxy": self.socks_proxy or "off",
            "cors_proxy": self.cors_proxy or "off",
            "permalink_domain": self.permalink_domain,
            "request_timeout": self.request_timeout,
        }
