"""Slack PlatformSearchPort adapter over ``conversations.list``."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from researchquest.domain.community import Community, Platform
from researchquest.infrastructure.api_clients.base import APIClient

logger = logging.getLogger(__name__)

SLACK_API_BASE = "https://slack.com/api"


class SlackAPIError(RuntimeError):
    pass


class SlackCommunityAdapter:
    def __init__(self, token: Optional[str] = None, client: Optional[APIClient] = None):
        self._token = token if token is not None else os.getenv("SLACK_BOT_TOKEN", "")
        self._client = client

    @property
    def source_name(self) -> str:
        return Platform.SLACK.value

    def _api(self) -> APIClient:
        if self._client is None:
            self._client = APIClient(
                SLACK_API_BASE, headers={"Authorization": f"Bearer {self._token}"}
            )
        return self._client

    async def search(self, query: str, *, max_results: int = 20) -> List[Community]:
        q = (query or "").strip().lower()
        if len(q) < 2:
            return []
        if not self._token:
            logger.debug("SLACK_BOT_TOKEN not set; skipping Slack search")
            return []

        data = await self._api().get(
            "/conversations.list",
            params={"types": "public_channel", "exclude_archived": "true", "limit": 200},
        )
        if not data.get("ok"):
            # Slack reports errors with HTTP 200 and ok=false
            raise SlackAPIError(data.get("error") or "Slack API error")

        results: List[Community] = []
        for channel in data.get("channels") or []:
            if not isinstance(channel, dict) or not channel.get("id"):
                continue
            purpose = (channel.get("purpose") or {}).get("value") or ""
            topic = (channel.get("topic") or {}).get("value") or ""
            name = channel.get("name") or ""
            if q in name.lower() or q in purpose.lower() or q in topic.lower():
                results.append(self._to_community(channel, purpose or topic))
        return results[:max_results]

    @staticmethod
    def _to_community(channel: Dict[str, Any], blurb: str) -> Community:
        name = channel.get("name") or "Unnamed Channel"
        return Community(
            id=str(channel["id"]),
            name=name,
            platform=Platform.SLACK,
            description=blurb or f"A Slack channel for {name}",
            external_member_count=int(channel.get("num_members") or 0),
            icon_url=(channel.get("icons") or {}).get("image_original"),
            url=f"https://slack.com/app_redirect?channel={channel['id']}",
        )

    async def request_join(self, target_id: str) -> Optional[str]:
        if not target_id:
            return None
        return f"https://slack.com/app_redirect?channel={target_id}"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
