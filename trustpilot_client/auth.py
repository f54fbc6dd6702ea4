"""
OAuth2 password grant support.

:class:`PasswordGrantTokenSource` exchanges a resource owner's username
and password plus the application's client credentials for an access
token, caches it, and refreshes it once it is about to expire.  One
instance is shared by every request a client makes, so access to the
cached token is serialised with a lock: concurrent callers either get
the valid cached token or wait for the single exchange in flight.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests
from requests.auth import HTTPBasicAuth

from .config import PasswordGrantConfig
from .exceptions import InternalError, error_for_status

logger = logging.getLogger(__name__)

# A token is treated as expired this many seconds before its real expiry.
EXPIRY_DELTA = 10.0


@dataclass
class Token:
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = field(default=None, repr=False)
    expires_at: Optional[float] = None  # epoch seconds; None never expires

    def valid(self, now: float) -> bool:
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        return now < self.expires_at - EXPIRY_DELTA

    def authorization(self) -> str:
        """Return the ``Authorization`` header value for this token.

        The token type is sent as issued, except that any casing of
        ``bearer`` is normalised to ``Bearer``.
        """
        token_type = self.token_type or "Bearer"
        if token_type.lower() == "bearer":
            token_type = "Bearer"
        return f"{token_type} {self.access_token}"


class PasswordGrantTokenSource:
    """A thread-safe, self-refreshing token cache.

    Parameters
    ----------
    credentials : PasswordGrantConfig
        Client and resource owner credentials.
    token_url : str
        The OAuth2 token endpoint.
    session : requests.Session
        Transport used for token exchanges.
    timeout : float
        Default timeout in seconds for a token exchange.
    clock : callable, optional
        Returns the current epoch time.  Defaults to :func:`time.time`.
    """

    def __init__(
        self,
        credentials: PasswordGrantConfig,
        token_url: str,
        session: requests.Session,
        *,
        timeout: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.credentials = credentials
        self.token_url = token_url
        self.session = session
        self.timeout = timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[Token] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def token(self, *, timeout: Optional[float] = None) -> Token:
        """Return a valid token, refreshing it first if it has expired.

        ``timeout`` bounds both the wait for another thread's exchange
        and the exchange itself.

        Raises
        ------
        TrustpilotError
            The kind mapped from the token endpoint's status code, or
            :class:`InternalError` for transport failures.
        """
        wait = self.timeout if timeout is None else timeout
        start = time.monotonic()
        if not self._lock.acquire(timeout=max(wait, 0)):
            raise InternalError("deadline exceeded waiting for token refresh")
        try:
            if self._token is not None and self._token.valid(self._clock()):
                return self._token
            remaining = wait - (time.monotonic() - start)
            if remaining <= 0:
                raise InternalError("deadline exceeded before token refresh")
            self._token = self._refresh(self._token, timeout=remaining)
            return self._token
        finally:
            self._lock.release()

    def fetch(self, *, timeout: Optional[float] = None) -> Token:
        """Perform the password grant exchange unconditionally."""
        with self._lock:
            self._token = self._password_grant(timeout=self.timeout if timeout is None else timeout)
            return self._token

    # ------------------------------------------------------------------
    # Token endpoint
    # ------------------------------------------------------------------
    def _refresh(self, current: Optional[Token], *, timeout: float) -> Token:
        if current is not None and current.refresh_token:
            logger.debug("Refreshing access token at %s", self.token_url)
            return self._exchange(
                {"grant_type": "refresh_token", "refresh_token": current.refresh_token},
                timeout=timeout,
                previous=current,
            )
        return self._password_grant(timeout=timeout)

    def _password_grant(self, *, timeout: float) -> Token:
        logger.debug(
            "Requesting access token for %s at %s", self.credentials.username, self.token_url
        )
        return self._exchange(
            {
                "grant_type": "password",
                "username": self.credentials.username,
                "password": self.credentials.password,
            },
            timeout=timeout,
        )

    def _exchange(
        self, payload: Dict[str, str], *, timeout: float, previous: Optional[Token] = None
    ) -> Token:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        auth = HTTPBasicAuth(self.credentials.client_id, self.credentials.client_secret)
        try:
            response = self.session.post(
                self.token_url, data=payload, headers=headers, auth=auth, timeout=timeout
            )
        except requests.RequestException as exc:
            raise InternalError(f"cannot fetch token: {exc}") from exc

        if not response.ok:
            error_cls = error_for_status(response.status_code) or InternalError
            raise error_cls(_describe_failure(response), status_code=response.status_code)

        try:
            token_info: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise InternalError(
                f"cannot parse token response: {exc}", status_code=response.status_code
            ) from exc
        if not isinstance(token_info, dict):
            raise InternalError(
                "cannot parse token response: expected a JSON object, got %s"
                % type(token_info).__name__,
                status_code=response.status_code,
            )

        access_token = token_info.get("access_token")
        if not access_token:
            raise InternalError(
                "cannot fetch token: server response missing access_token",
                status_code=response.status_code,
            )

        expires_at = None
        expires_in = token_info.get("expires_in")
        if isinstance(expires_in, str) and expires_in.isdigit():
            expires_in = int(expires_in)
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            expires_at = self._clock() + float(expires_in)

        # A refresh response may omit the refresh token, in which case the old one stays usable.
        refresh_token = token_info.get("refresh_token")
        if not refresh_token and previous is not None:
            refresh_token = previous.refresh_token

        logger.debug("Obtained access token expiring at %s", expires_at)
        return Token(
            access_token=access_token,
            token_type=str(token_info.get("token_type") or "Bearer"),
            refresh_token=refresh_token,
            expires_at=expires_at,
        )


def _describe_failure(response: requests.Response) -> str:
    message = f"cannot fetch token: {response.status_code} {response.reason}".rstrip()
    try:
        err_json = response.json()
    except ValueError:
        err_json = None
    if isinstance(err_json, dict) and err_json.get("error"):
        detail = str(err_json["error"])
        if err_json.get("error_description"):
            detail = f"{detail}: {err_json['error_description']}"
        return f"{message}; {detail}"
    if response.text:
        return f"{message}; {response.text.strip()}"
    return message
