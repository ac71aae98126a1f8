"""
Delivery - webhook dispatch, the rate-limit queue and daily digests.
"""

from .webhook import DeliveryResult, WebhookDispatcher
from .payloads import build_payload, digest_payload, event_payload, promoter_payload
from .queue import DrainResult, dispatch_safely, drain_queued_deliveries, is_rate_limited
from .digest import DigestResult, current_schedule_slot, send_daily_digests

__all__ = [
    "DeliveryResult",
    "WebhookDispatcher",
    "build_payload",
    "digest_payload",
    "event_payload",
    "promoter_payload",
    "DrainResult",
    "dispatch_safely",
    "drain_queued_deliveries",
    "is_rate_limited",
    "DigestResult",
    "current_schedule_slot",
    "send_daily_digests",
]
