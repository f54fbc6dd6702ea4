"""
Configuration for :class:`~trustpilot_client.client.TrustpilotClient`.

A :class:`ClientConfig` is immutable once built.  Values are checked
when the object is created so a misconfigured client fails before any
request is made.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional
from urllib.parse import urlsplit

DEFAULT_API_BASE_URL = "https://api.trustpilot.com/v1/"
DEFAULT_INVITATION_API_BASE_URL = "https://invitations-api.trustpilot.com/v1/"
DEFAULT_TOKEN_URL = (
    "https://api.trustpilot.com/v1/oauth/oauth-business-users-for-applications/accesstoken"
)
DEFAULT_TIMEOUT = 30.0

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PasswordGrantConfig:
    """Credentials for the OAuth2 password grant.

    The token endpoint itself is taken from ``ClientConfig.token_url``.
    """

    client_id: str
    client_secret: str = field(repr=False)
    username: str
    password: str = field(repr=False)

    def __post_init__(self) -> None:
        for name in ("client_id", "client_secret", "username", "password"):
            if not getattr(self, name):
                raise ValueError(f"{name} must be provided")


def _check_url(name: str, value: str) -> None:
    parts = urlsplit(value)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ValueError(f"{name} must be an absolute http(s) URL, got {value!r}")


@dataclass(frozen=True)
class ClientConfig:
    """Settings for a Trustpilot client.

    Parameters
    ----------
    api_base_url : str
        Root of the general Trustpilot API.
    invitation_api_base_url : str
        Root of the invitation API.  Both invitation operations are
        resolved against this URL.
    token_url : str
        OAuth2 token endpoint used for the password grant.
    timeout : float
        Default timeout in seconds for every HTTP call, including the
        token exchange.
    debug : bool
        When true, requests and responses are written to the wire
        logger.
    auth : PasswordGrantConfig, optional
        Enables authentication.  Without it requests are sent with no
        ``Authorization`` header.
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    invitation_api_base_url: str = DEFAULT_INVITATION_API_BASE_URL
    token_url: str = DEFAULT_TOKEN_URL
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False
    auth: Optional[PasswordGrantConfig] = None

    def __post_init__(self) -> None:
        _check_url("api_base_url", self.api_base_url)
        _check_url("invitation_api_base_url", self.invitation_api_base_url)
        _check_url("token_url", self.token_url)
        if self.timeout <= 0:
            raise ValueError("timeout must be positive, got %r" % self.timeout)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build a configuration from ``TRUSTPILOT_*`` environment variables.

        Recognised variables are ``TRUSTPILOT_API_BASE_URL``,
        ``TRUSTPILOT_INVITATION_API_BASE_URL``, ``TRUSTPILOT_TOKEN_URL``,
        ``TRUSTPILOT_TIMEOUT``, ``TRUSTPILOT_DEBUG`` and the four
        credentials ``TRUSTPILOT_CLIENT_ID``, ``TRUSTPILOT_CLIENT_SECRET``,
        ``TRUSTPILOT_USERNAME`` and ``TRUSTPILOT_PASSWORD``.  Unset
        variables keep their defaults.  Authentication is enabled only
        when ``TRUSTPILOT_CLIENT_ID`` is set.
        """
        env = os.environ if environ is None else environ
        auth = None
        if env.get("TRUSTPILOT_CLIENT_ID"):
            auth = PasswordGrantConfig(
                client_id=env["TRUSTPILOT_CLIENT_ID"],
                client_secret=env.get("TRUSTPILOT_CLIENT_SECRET", ""),
                username=env.get("TRUSTPILOT_USERNAME", ""),
                password=env.get("TRUSTPILOT_PASSWORD", ""),
            )
        return cls(
            api_base_url=env.get("TRUSTPILOT_API_BASE_URL", DEFAULT_API_BASE_URL),
            invitation_api_base_url=env.get(
                "TRUSTPILOT_INVITATION_API_BASE_URL", DEFAULT_INVITATION_API_BASE_URL
            ),
            token_url=env.get("TRUSTPILOT_TOKEN_URL", DEFAULT_TOKEN_URL),
            timeout=float(env.get("TRUSTPILOT_TIMEOUT", DEFAULT_TIMEOUT)),
            debug=env.get("TRUSTPILOT_DEBUG", "").strip().lower() in _TRUE_VALUES,
            auth=auth,
        )
