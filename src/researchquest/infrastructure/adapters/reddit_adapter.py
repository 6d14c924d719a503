"""Reddit PlatformSearchPort adapter (OAuth refresh-token flow)."""

from __future__ import annotations

import base64
import logging
import os
import time
from typing import Any, Dict, List, Optional

from researchquest.domain.community import Community, Platform
from researchquest.infrastructure.api_clients.base import APIClient

logger = logging.getLogger(__name__)

REDDIT_OAUTH_BASE = "https://oauth.reddit.com"
REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"


class RedditCommunityAdapter:
    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        client: Optional[APIClient] = None,
    ):
        self._client_id = client_id if client_id is not None else os.getenv("REDDIT_CLIENT_ID", "")
        self._client_secret = (
            client_secret if client_secret is not None else os.getenv("REDDIT_CLIENT_SECRET", "")
        )
        self._refresh_token = (
            refresh_token if refresh_token is not None else os.getenv("REDDIT_REFRESH_TOKEN", "")
        )
        self._client = client
        self._access_token: Optional[str] = None
        self._expires_at = 0.0

    @property
    def source_name(self) -> str:
        return Platform.REDDIT.value

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret and self._refresh_token)

    def _api(self) -> APIClient:
        if self._client is None:
            self._client = APIClient(REDDIT_OAUTH_BASE)
        return self._client

    async def _token(self) -> str:
        if self._access_token and time.time() < self._expires_at:
            return self._access_token
        basic = base64.b64encode(f"{self._client_id}:{self._client_secret}".encode()).decode()
        data = await self._api().post(
            REDDIT_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": self._refresh_token},
            headers={"Authorization": f"Basic {basic}"},
        )
        token = (data or {}).get("access_token")
        if not token:
            raise RuntimeError("Failed to get Reddit access token")
        self._access_token = str(token)
        # refresh a minute early
        self._expires_at = time.time() + max(0, int(data.get("expires_in") or 3600) - 60)
        return self._access_token

    async def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {await self._token()}"}

    async def search(self, query: str, *, max_results: int = 20) -> List[Community]:
        q = (query or "").strip()
        if len(q) < 2:
            return []
        if not self.configured:
            logger.debug("Reddit credentials not set; skipping Reddit search")
            return []

        data = await self._api().get(
            "/subreddits/search",
            params={"q": q, "limit": min(max_results, 25)},
            headers=await self._auth_headers(),
        )
        children = ((data or {}).get("data") or {}).get("children") or []
        return [
            self._to_community(child["data"])
            for child in children
            if isinstance(child, dict) and isinstance(child.get("data"), dict)
        ][:max_results]

    @staticmethod
    def _to_community(sub: Dict[str, Any]) -> Community:
        name = str(sub.get("display_name") or "")
        return Community(
            id=name,
            name=sub.get("display_name_prefixed") or f"r/{name}",
            platform=Platform.REDDIT,
            description=sub.get("public_description") or sub.get("description") or "",
            external_member_count=int(sub.get("subscribers") or 0),
            icon_url=sub.get("icon_img") or sub.get("community_icon") or None,
            url=f"https://reddit.com{sub.get('url') or f'/r/{name}/'}",
        )

    async def request_join(self, target_id: str) -> Optional[str]:
        name = (target_id or "").strip()
        if name.lower().startswith("r/"):
            name = name[2:]
        if not name:
            return None
        if self.configured:
            await self._api().post(
                "/api/subscribe",
                data={"action": "sub", "sr_name": name},
                headers=await self._auth_headers(),
            )
        return f"https://reddit.com/r/{name}/"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
