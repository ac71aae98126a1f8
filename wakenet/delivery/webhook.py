"""
Webhook dispatcher - signed POSTs to subscriber endpoints.

A single attempt per call; retries are the queue drainer's job.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from ..adapters.base import USER_AGENT
from ..config import config
from ..signing import SIGNATURE_HEADER, encode_payload, sign_payload

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    ok: bool
    http_status: int  # 0 when no response was received


class WebhookDispatcher:
    """Posts canonical JSON bodies signed with the subscription secret."""

    def __init__(self, timeout: float | None = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout or config.WEBHOOK_TIMEOUT_SECONDS)

    async def deliver(self, url: str, payload: Any, secret: str) -> DeliveryResult:
        body = encode_payload(payload)
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            SIGNATURE_HEADER: sign_payload(body, secret),
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, data=body, headers=headers) as resp:
                    ok = 200 <= resp.status < 300
                    if not ok:
                        logger.warning(f"Webhook {url} answered HTTP {resp.status}")
                    return DeliveryResult(ok=ok, http_status=resp.status)
        except asyncio.TimeoutError:
            logger.warning(f"Webhook {url} timed out")
        except aiohttp.ClientError as e:
            logger.warning(f"Webhook {url} failed: {e}")
        return DeliveryResult(ok=False, http_status=0)
