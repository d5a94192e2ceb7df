"""
Versioned notification payloads.

Each notification kind has one frozen payload type. ``to_dict()`` is what
gets stored in ``Notification.data`` and pushed over the socket;
``payload_from_dict()`` rebuilds a payload and rejects unknown kinds or
versions, so producers and consumers agree on one schema per kind.
"""
import dataclasses
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import ClassVar, Dict, Iterable, List, Optional, Type
from uuid import UUID

from django.utils.dateparse import parse_datetime


def _serialize(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return value


@dataclass(frozen=True)
class NotificationPayload:
    kind: ClassVar[str] = ""
    version: ClassVar[int] = 1

    def to_dict(self) -> dict:
        data = {"kind": self.kind, "version": self.version}
        for field in dataclasses.fields(self):
            data[field.name] = _serialize(getattr(self, field.name))
        return data


@dataclass(frozen=True)
class NewRequestPayload(NotificationPayload):
    kind: ClassVar[str] = "new_request"

    rental_request_id: str
    product_id: str
    product_title: str
    customer_name: str
    start_date: str
    end_date: str
    price: str
    currency: str


@dataclass(frozen=True)
class RequestApprovedPayload(NotificationPayload):
    kind: ClassVar[str] = "request_approved"

    rental_request_id: str
    product_title: str
    start_date: str
    end_date: str
    price: str


@dataclass(frozen=True)
class RequestRejectedPayload(NotificationPayload):
    kind: ClassVar[str] = "request_rejected"

    rental_request_id: str
    product_title: str
    reason: str = ""


@dataclass(frozen=True)
class PaymentCompletedPayload(NotificationPayload):
    kind: ClassVar[str] = "payment_completed"

    rental_request_id: str
    payment_id: str
    product_title: str
    customer_name: str
    amount: str
    currency: str


@dataclass(frozen=True)
class PaymentConfirmedPayload(NotificationPayload):
    kind: ClassVar[str] = "payment_confirmed"

    rental_request_id: str
    payment_id: str
    product_title: str
    amount: str
    currency: str


@dataclass(frozen=True)
class ReturnConfirmedPayload(NotificationPayload):
    kind: ClassVar[str] = "return_confirmed"

    rental_request_id: str
    return_id: str
    product_title: str
    return_date: str


@dataclass(frozen=True)
class InvoiceEmailedPayload(NotificationPayload):
    kind: ClassVar[str] = "invoice_emailed"

    rental_request_id: str
    invoice_id: str
    invoice_number: str
    recipient_email: str
    amount: str


@dataclass(frozen=True)
class ConflictingRejectedPayload(NotificationPayload):
    kind: ClassVar[str] = "conflicting_rejected"

    rental_request_id: str
    product_title: str
    start_date: str
    end_date: str


PAYLOAD_TYPES: Dict[str, Type[NotificationPayload]] = {
    payload_type.kind: payload_type
    for payload_type in (
        NewRequestPayload,
        RequestApprovedPayload,
        RequestRejectedPayload,
        PaymentCompletedPayload,
        PaymentConfirmedPayload,
        ReturnConfirmedPayload,
        InvoiceEmailedPayload,
        ConflictingRejectedPayload,
    )
}


def payload_from_dict(data: dict) -> NotificationPayload:
    kind = data.get("kind")
    payload_type = PAYLOAD_TYPES.get(kind)
    if payload_type is None:
        raise ValueError(f"Unknown notification kind: {kind!r}")
    if data.get("version") != payload_type.version:
        raise ValueError(
            f"Unsupported version {data.get('version')!r} for {kind}")
    names = {field.name for field in dataclasses.fields(payload_type)}
    return payload_type(**{k: v for k, v in data.items() if k in names})


def _created_at(item: dict) -> datetime:
    value = item.get("created_at")
    if isinstance(value, str):
        value = parse_datetime(value)
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def merge_notification_feeds(
    live: Iterable[dict],
    polled: Iterable[dict],
    limit: Optional[int] = 20,
) -> List[dict]:
    """
    Union of the items already received live and a polled page.

    Items are keyed by ``id``; a live item is never replaced by its polled
    copy. The result is newest first and holds at most ``limit`` items.
    """
    merged = {}
    for item in live:
        merged[str(item["id"])] = item
    for item in polled:
        merged.setdefault(str(item["id"]), item)

    items = sorted(merged.values(), key=_created_at, reverse=True)
    if limit is not None:
        items = items[:limit]
    return items
