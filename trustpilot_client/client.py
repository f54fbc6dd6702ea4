"""
Client implementation for the Trustpilot invitation API.

This module defines the :class:`TrustpilotClient` class which
optionally authenticates against the Trustpilot authorization server
using the OAuth2 password grant and performs the invitation API calls.
The access token is cached and refreshed automatically when it
expires.

Usage
-----

.. code-block:: python

    from trustpilot_client import PasswordGrantConfig, TrustpilotClient
    from trustpilot_client.models import CreateInvitationRequest

    client = TrustpilotClient(
        auth=PasswordGrantConfig(
            client_id="abc123",
            client_secret="shhsecret",
            username="apiuser@example.com",
            password="hunter2",
        ),
    )

    client.create_invitation(
        CreateInvitationRequest(
            business_unit_id="46d6a890000064000500e0c3",
            consumer_email="john.doe@example.com",
            consumer_name="John Doe",
            reference_number="order-1234",
        )
    )

Every failure is raised as one of the errors in
:mod:`trustpilot_client.exceptions`; nothing is retried.
"""

from __future__ import annotations

import abc
import dataclasses
import logging
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote, urljoin

import requests

from .auth import PasswordGrantTokenSource
from .config import ClientConfig
from .exceptions import (
    DecodeError,
    InternalError,
    InvalidArgumentError,
    error_for_status,
)
from .models import (
    CreateInvitationRequest,
    CreateInvitationResponse,
    ListTemplatesRequest,
    ListTemplatesResponse,
)

logger = logging.getLogger(__name__)
wire_logger = logging.getLogger(__name__.rsplit(".", 1)[0] + ".wire")

INVITATION_PATH = "private/business-units/{business_unit_id}/email-invitations"
TEMPLATES_PATH = "private/business-units/{business_unit_id}/templates"

# Bytes read from a response body between deadline checks.
READ_CHUNK_SIZE = 1024


class Trustpilot(abc.ABC):
    """The operations offered by a Trustpilot client.

    Code that only needs to send invitations or read templates should
    depend on this interface so a fake can be substituted in tests.
    """

    @abc.abstractmethod
    def create_invitation(
        self, request: CreateInvitationRequest, *, timeout: Optional[float] = None
    ) -> CreateInvitationResponse:
        raise NotImplementedError

    @abc.abstractmethod
    def list_templates(
        self, request: ListTemplatesRequest, *, timeout: Optional[float] = None
    ) -> ListTemplatesResponse:
        raise NotImplementedError


def resolve_url(base_url: str, path: str) -> str:
    """Resolve ``path`` against ``base_url``.

    Standard reference resolution applies: a relative path is appended
    to the base path (which should end in ``/``), while a path starting
    with ``/`` replaces the base path entirely.

    >>> resolve_url("https://host/v1/", "private/business-units/123/email-invitations")
    'https://host/v1/private/business-units/123/email-invitations'
    """
    return urljoin(base_url, path)


def dump_request(request: requests.PreparedRequest) -> str:
    """Render a prepared request as it would appear on the wire."""
    lines = [f"{request.method} {request.path_url} HTTP/1.1"]
    lines.extend(f"{key}: {value}" for key, value in request.headers.items())
    body = request.body or b""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return "\r\n".join(lines) + "\r\n\r\n" + body


def dump_response(response: requests.Response) -> str:
    """Render a response status line, headers and body."""
    lines = [f"HTTP/1.1 {response.status_code} {response.reason or ''}".rstrip()]
    lines.extend(f"{key}: {value}" for key, value in response.headers.items())
    return "\r\n".join(lines) + "\r\n\r\n" + response.content.decode("utf-8", errors="replace")


class TrustpilotClient(Trustpilot):
    """A client for the Trustpilot invitation API.

    Parameters
    ----------
    config : ClientConfig, optional
        Base settings.  Defaults to :class:`ClientConfig` defaults.
    session : requests.Session, optional
        Transport to use instead of a private session.  A session
        passed in is not closed by :meth:`close`.
    logger : logging.Logger, optional
        Destination for request and response dumps when ``debug`` is
        enabled.  Defaults to the ``trustpilot_client.wire`` logger.
    **overrides
        Any :class:`ClientConfig` field (``api_base_url``,
        ``invitation_api_base_url``, ``token_url``, ``timeout``,
        ``debug``, ``auth``) overriding the value in ``config``.

    Raises
    ------
    TypeError
        If an override does not name a configuration field.
    ValueError
        If the resulting configuration is invalid.
    TrustpilotError
        If ``auth`` is configured and the initial token exchange fails.
        No client is created in that case.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
        **overrides: Any,
    ) -> None:
        config = config or ClientConfig()
        if overrides:
            config = dataclasses.replace(config, **overrides)
        self.config = config

        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.wire_logger = logger or wire_logger

        # Assume authentication is not required when no credentials are given.
        self.token_source: Optional[PasswordGrantTokenSource] = None
        if config.auth is None:
            return

        token_source = PasswordGrantTokenSource(
            config.auth, config.token_url, self.session, timeout=config.timeout
        )
        try:
            token_source.fetch()
        except Exception:
            self.close()
            raise
        self.token_source = token_source

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "TrustpilotClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def create_invitation(
        self, request: CreateInvitationRequest, *, timeout: Optional[float] = None
    ) -> CreateInvitationResponse:
        """Send an email invitation on behalf of a business unit.

        ``timeout`` is a deadline in seconds for the whole call,
        including any token refresh it triggers.  It defaults to the
        client's configured timeout.
        """
        if not request.consumer_email:
            raise InvalidArgumentError("consumer_email must be provided")
        path = _business_unit_path(INVITATION_PATH, request.business_unit_id)
        return self._request(
            "POST",
            self.config.invitation_api_base_url,
            path,
            CreateInvitationResponse.from_json,
            body=request.to_json(),
            timeout=timeout,
        )

    def list_templates(
        self, request: ListTemplatesRequest, *, timeout: Optional[float] = None
    ) -> ListTemplatesResponse:
        """List the invitation templates available to a business unit."""
        path = _business_unit_path(TEMPLATES_PATH, request.business_unit_id)
        return self._request(
            "GET",
            self.config.invitation_api_base_url,
            path,
            ListTemplatesResponse.from_json,
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # HTTP request helpers
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        base_url: str,
        path: str,
        parse: Callable[[Any], Any],
        *,
        body: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform one API call and return ``parse`` applied to the JSON body.

        Raises
        ------
        TrustpilotError
            The kind mapped from the response status, with the
            server's ``message`` when the error body carries one.
        DecodeError
            If a successful response has a body that is not JSON, or
            JSON that ``parse`` rejects with ``ValueError``.
        InternalError
            On transport failures or when the deadline passes.
        """
        deadline = time.monotonic() + (self.config.timeout if timeout is None else timeout)
        prepared = self._new_request(method, resolve_url(base_url, path), body, deadline=deadline)
        response = self._do(prepared, deadline=deadline)

        error_cls = error_for_status(response.status_code)
        if error_cls is not None:
            raise error_cls(_error_message(response), status_code=response.status_code)
        return self._decode(response, parse)

    def _new_request(
        self, method: str, url: str, body: Optional[Any], *, deadline: float
    ) -> requests.PreparedRequest:
        # requests sets Content-Type: application/json only when a body is given.
        request = requests.Request(method, url, json=body)
        if self.token_source is not None:
            token = self.token_source.token(timeout=deadline - time.monotonic())
            request.headers["Authorization"] = token.authorization()
        return self.session.prepare_request(request)

    def _do(self, prepared: requests.PreparedRequest, *, deadline: float) -> requests.Response:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise InternalError(f"deadline exceeded before {prepared.method} {prepared.url}")

        if self.config.debug:
            self.wire_logger.debug("%s", dump_request(prepared))

        try:
            response = self.session.send(prepared, timeout=remaining, stream=True)
            _read_body(response, deadline, f"{prepared.method} {prepared.url}")
        except requests.Timeout as exc:
            raise InternalError(f"{prepared.method} {prepared.url} timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise InternalError(f"Failed to connect to {prepared.url}: {exc}") from exc

        if self.config.debug:
            self.wire_logger.debug("%s", dump_response(response))
        logger.debug("%s %s -> %s", prepared.method, prepared.url, response.status_code)
        return response

    @staticmethod
    def _decode(response: requests.Response, parse: Callable[[Any], Any]) -> Any:
        try:
            return parse(response.json() if response.content else None)
        except ValueError as exc:
            raise DecodeError(f"cannot decode response body: {exc}", response=response) from exc


def _read_body(response: requests.Response, deadline: float, label: str) -> None:
    """Read the whole body of a streamed response, giving up at ``deadline``.

    The socket timeout only bounds each read, so a server trickling
    bytes is cut off here between chunks.
    """
    chunks = []
    try:
        for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
            chunks.append(chunk)
            if time.monotonic() >= deadline:
                raise InternalError(f"deadline exceeded reading response to {label}")
    except Exception:
        response.close()
        raise
    response._content = b"".join(chunks)


def _business_unit_path(template: str, business_unit_id: str) -> str:
    if not business_unit_id:
        raise InvalidArgumentError("business_unit_id must be provided")
    return template.format(business_unit_id=quote(business_unit_id, safe=""))


def _error_message(response: requests.Response) -> str:
    """Extract the server's ``message`` from an error body, if any."""
    try:
        err_json: Dict[str, Any] = response.json()
    except ValueError:
        return ""
    if isinstance(err_json, dict) and err_json.get("message"):
        return str(err_json["message"])
    return ""
