"""
Memory Locks API — Milestone Notifier
======================================

What:  Tells the core API that a lock reached a scan milestone so it can
       push a notification to the owner's phone.
When:  Scheduled as a background task after POST /locks/{lockId}/scan
       returns, so a slow or failing core API never delays the scan.

Payload (POST {CORE_API_BASE_URL}/internal/notifications/milestone):
    {"lockId": 7, "userId": 42, "lockName": "Paris", "scanCount": 25, "milestone": 25}
Header:
    X-Worker-Secret: CORE_API_SHARED_SECRET

Failures are logged, never raised: the scan itself has already been saved.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from memorylocks.config import settings

logger = logging.getLogger(__name__)

MILESTONE_PATH = "/internal/notifications/milestone"


@dataclass(frozen=True)
class MilestoneEvent:
    lock_id: int
    user_id: int
    lock_name: str
    scan_count: int
    milestone: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "lockId": self.lock_id,
            "userId": self.user_id,
            "lockName": self.lock_name,
            "scanCount": self.scan_count,
            "milestone": self.milestone,
        }


class MilestoneNotifier:
    def __init__(
        self,
        base_url: Optional[str] = None,
        shared_secret: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.core_api_base_url).rstrip("/")
        self.shared_secret = (
            shared_secret if shared_secret is not None else settings.core_api_shared_secret
        )
        self.timeout = timeout or settings.notification_timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.shared_secret)

    async def send(self, event: MilestoneEvent) -> bool:
        """Deliver one milestone event. Returns True on a 2xx response."""
        if not self.configured:
            logger.warning(
                "Milestone %s for lock %s not sent: CORE_API_BASE_URL or "
                "CORE_API_SHARED_SECRET is not set",
                event.milestone, event.lock_id,
            )
            return False

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}{MILESTONE_PATH}",
                    json=event.to_payload(),
                    headers={"X-Worker-Secret": self.shared_secret},
                )
        except httpx.HTTPError as e:
            logger.error(
                "Milestone notification for lock %s failed: %s", event.lock_id, e
            )
            return False

        if not 200 <= response.status_code < 300:
            logger.error(
                "Milestone notification for lock %s rejected: HTTP %d",
                event.lock_id, response.status_code,
            )
            return False

        logger.info(
            "Milestone %s notification sent for lock %s (user %s)",
            event.milestone, event.lock_id, event.user_id,
        )
        return True


milestone_notifier = MilestoneNotifier()
