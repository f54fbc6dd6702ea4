"""
Python client for the Trustpilot invitation API.

This package provides a `TrustpilotClient` class that sends review
invitations and lists invitation templates for a business unit.  When
credentials are supplied it authenticates with the OAuth2 password
grant against the Trustpilot token endpoint, caches the access token
and refreshes it when it expires.

Examples
--------

```python
from trustpilot_client import PasswordGrantConfig, TrustpilotClient
from trustpilot_client.models import ListTemplatesRequest

client = TrustpilotClient(
    auth=PasswordGrantConfig(
        client_id="YOUR_API_KEY",
        client_secret="YOUR_API_SECRET",
        username="apiuser@example.com",
        password="YOUR_PASSWORD",
    ),
    debug=True,  # log requests and responses to "trustpilot_client.wire"
)

templates = client.list_templates(ListTemplatesRequest(business_unit_id="123"))
for template in templates.templates:
    print(template.name, template.locale)
```

Errors are raised as `InvalidArgumentError`, `UnauthenticatedError`,
`NotFoundError` or `InternalError`, all subclasses of `TrustpilotError`.
Their text reads ``"<server message>: <KIND>"``.
"""

from .client import Trustpilot, TrustpilotClient
from .config import ClientConfig, PasswordGrantConfig
from .exceptions import (
    DecodeError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    TrustpilotError,
    UnauthenticatedError,
    error_for_status,
)

__all__ = [
    "ClientConfig",
    "DecodeError",
    "InternalError",
    "InvalidArgumentError",
    "NotFoundError",
    "PasswordGrantConfig",
    "Trustpilot",
    "TrustpilotClient",
    "TrustpilotError",
    "UnauthenticatedError",
    "error_for_status",
]
