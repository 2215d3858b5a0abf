"""Explicit configuration for the content store and registry clients.

Nothing here is validated for *presence*: a missing store token or
registry address only fails when a client first needs it, with
:class:`~credential_anchor.errors.StoreAuthError` or
:class:`~credential_anchor.errors.RegistryNotReady` respectively.
"""
from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, SecretStr, field_validator

PINATA_PIN_JSON_URL = "https://api.pinata.cloud/pinning/pinJSONToIPFS"

DEFAULT_GATEWAYS: tuple[str, ...] = (
    "https://gateway.pinata.cloud/ipfs/{cid}",
    "https://cloudflare-ipfs.com/ipfs/{cid}",
    "https://{cid}.ipfs.dweb.link/",
    # Older pins wrapped the document in a directory.
    "https://{cid}.ipfs.dweb.link/credential.json",
)

_ENV_PREFIX = "CREDENTIAL_ANCHOR_"


class AnchorConfig(BaseModel):
    """Settings shared by :class:`ContentStoreClient` and :class:`RegistryClient`.

    Parameters
    ----------
    store_endpoint:
        URL of the pinning endpoint that accepts JSON uploads.
    store_auth_token:
        Bearer token for the pinning endpoint.
    registry_address:
        Address of the deployed credential registry contract.
    network_id:
        Chain id the registry is expected on. ``None`` accepts any network.
    gateways:
        Ordered retrieval URL templates; each must contain ``{cid}``.
    request_timeout:
        Per-request timeout in seconds for every HTTP call.
    display_name:
        Name attached to uploaded documents in the pinning service.
    """

    model_config = {"frozen": True}

    store_endpoint: str = PINATA_PIN_JSON_URL
    store_auth_token: SecretStr | None = None
    registry_address: str | None = None
    network_id: int | None = None
    gateways: tuple[str, ...] = Field(default=DEFAULT_GATEWAYS)
    request_timeout: float = Field(default=10.0, gt=0)
    display_name: str = "EChainID-Credential"

    @field_validator("gateways")
    @classmethod
    def validate_gateway_templates(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one retrieval gateway is required.")
        for template in value:
            if "{cid}" not in template:
                raise ValueError(f"gateway template {template!r} has no '{{cid}}' placeholder.")
        return value

    @field_validator("store_auth_token")
    @classmethod
    def blank_token_is_absent(cls, value: SecretStr | None) -> SecretStr | None:
        if value is not None and not value.get_secret_value().strip():
            return None
        return value

    @field_validator("registry_address")
    @classmethod
    def blank_address_is_absent(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value.strip() if value is not None else None

    def token(self) -> str | None:
        """Return the stripped store token, or ``None`` when unset."""
        if self.store_auth_token is None:
            return None
        return self.store_auth_token.get_secret_value().strip()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AnchorConfig":
        """Build a config from ``CREDENTIAL_ANCHOR_*`` environment variables.

        ``PINATA_JWT`` is honoured as a fallback for the store token.
        """
        env = os.environ if environ is None else environ

        def _get(name: str) -> str:
            return env.get(_ENV_PREFIX + name, "").strip()

        values: dict[str, object] = {}
        if _get("STORE_ENDPOINT"):
            values["store_endpoint"] = _get("STORE_ENDPOINT")
        token = _get("STORE_TOKEN") or env.get("PINATA_JWT", "").strip()
        if token:
            values["store_auth_token"] = token
        if _get("REGISTRY_ADDRESS"):
            values["registry_address"] = _get("REGISTRY_ADDRESS")
        if _get("NETWORK_ID"):
            try:
                values["network_id"] = int(_get("NETWORK_ID"))
            except ValueError:
                raise ValueError(
                    f"{_ENV_PREFIX}NETWORK_ID must be an integer (got {_get('NETWORK_ID')!r})"
                ) from None
        if _get("GATEWAYS"):
            values["gateways"] = tuple(
                item.strip() for item in _get("GATEWAYS").split(",") if item.strip()
            )
        if _get("TIMEOUT"):
            values["request_timeout"] = float(_get("TIMEOUT"))
        return cls(**values)
