"""
Request and response records for the invitation API.

Field names follow Python conventions; :meth:`to_json` and
:meth:`from_json` translate to and from the camelCase keys used on the
wire.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union


def to_utc_string(dt: datetime, *, fmt: str = "%Y-%m-%dT%H:%M:%SZ") -> str:
    """Format a datetime as an ISO 8601 UTC timestamp such as ``"2025-11-07T15:30:00Z"``.

    Naive datetimes are taken to be in UTC already.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(fmt)


def _expect_object(data: Any, what: str, *, optional: bool = False) -> None:
    if data is None and optional:
        return
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object, got {type(data).__name__}")


def _compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    # Empty optional values are left out of the body entirely.
    return {key: value for key, value in payload.items() if value not in (None, "", [], {})}


@dataclass
class ServiceReviewInvitation:
    """Options for the service review part of an invitation.

    ``preferred_send_time`` accepts either an ISO 8601 UTC string or a
    :class:`~datetime.datetime`, which is converted to UTC.
    """

    preferred_send_time: Optional[Union[str, datetime]] = None
    redirect_uri: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    template_id: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        send_time = self.preferred_send_time
        if isinstance(send_time, datetime):
            send_time = to_utc_string(send_time)
        return _compact(
            {
                "preferredSendTime": send_time,
                "redirectUri": self.redirect_uri,
                "tags": list(self.tags),
                "templateId": self.template_id,
            }
        )


@dataclass
class CreateInvitationRequest:
    """An email invitation for one consumer.

    ``business_unit_id`` and ``consumer_email`` are required.  The
    business unit id is sent as part of the URL and is not serialised
    into the body.  ``reference_number`` is the customer's internal
    reference, usually an order number.
    """

    business_unit_id: str
    consumer_email: str
    reply_to: Optional[str] = None
    reference_number: Optional[str] = None
    consumer_name: Optional[str] = None
    locale: Optional[str] = None
    location_id: Optional[str] = None
    sender_email: Optional[str] = None
    sender_name: Optional[str] = None
    service_review_invitation: Optional[ServiceReviewInvitation] = None

    def to_json(self) -> Dict[str, Any]:
        payload = _compact(
            {
                "replyTo": self.reply_to,
                "referenceNumber": self.reference_number,
                "consumerName": self.consumer_name,
                "locale": self.locale,
                "locationId": self.location_id,
                "senderEmail": self.sender_email,
                "senderName": self.sender_name,
            }
        )
        body: Dict[str, Any] = {"consumerEmail": self.consumer_email}
        body.update(payload)
        if self.service_review_invitation is not None:
            body["serviceReviewInvitation"] = self.service_review_invitation.to_json()
        return body


@dataclass
class CreateInvitationResponse:
    """Acknowledgement of a created invitation.  The API returns no fields."""

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> "CreateInvitationResponse":
        _expect_object(data, "invitation response", optional=True)
        return cls()


@dataclass
class ListTemplatesRequest:
    business_unit_id: str


@dataclass
class Template:
    """An invitation template available to a business unit."""

    id: str
    name: str
    is_default_template: bool = False
    locale: Optional[str] = None
    type: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Template":
        _expect_object(data, "template")
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            is_default_template=bool(data.get("isDefaultTemplate", False)),
            locale=data.get("locale"),
            type=data.get("type"),
        )


@dataclass
class ListTemplatesResponse:
    templates: List[Template] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> "ListTemplatesResponse":
        _expect_object(data, "template list", optional=True)
        items = (data or {}).get("templates") or []
        if not isinstance(items, list):
            raise ValueError(f"templates must be a JSON array, got {type(items).__name__}")
        return cls(templates=[Template.from_json(item) for item in items])
