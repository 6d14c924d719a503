"""Discord PlatformSearchPort adapter (bot token, guild directory)."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from researchquest.domain.community import Community, Platform
from researchquest.infrastructure.api_clients.base import APIClient

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
INVITE_MAX_AGE_SECONDS = 86400
_TEXT_CHANNEL = 0


class DiscordCommunityAdapter:
    """Searches the guilds the bot belongs to and issues single-use invites."""

    def __init__(self, bot_token: Optional[str] = None, client: Optional[APIClient] = None):
        self._token = bot_token if bot_token is not None else os.getenv("DISCORD_BOT_TOKEN", "")
        self._client = client

    @property
    def source_name(self) -> str:
        return Platform.DISCORD.value

    def _api(self) -> APIClient:
        if self._client is None:
            self._client = APIClient(
                DISCORD_API_BASE, headers={"Authorization": f"Bot {self._token}"}
            )
        return self._client

    async def search(self, query: str, *, max_results: int = 20) -> List[Community]:
        q = (query or "").strip().lower()
        if len(q) < 2:
            return []
        if not self._token:
            logger.debug("DISCORD_BOT_TOKEN not set; skipping Discord search")
            return []

        guilds = await self._api().get("/users/@me/guilds", params={"with_counts": "true"})
        results = [
            self._to_community(g)
            for g in guilds or []
            if isinstance(g, dict) and g.get("id") and q in str(g.get("name") or "").lower()
        ]
        return results[:max_results]

    @staticmethod
    def _to_community(guild: Dict[str, Any]) -> Community:
        guild_id = str(guild["id"])
        name = guild.get("name") or "Unnamed Server"
        icon = guild.get("icon")
        vanity = guild.get("vanity_url_code")
        return Community(
            id=guild_id,
            name=name,
            platform=Platform.DISCORD,
            description=guild.get("description") or f"A Discord community for {name}",
            external_member_count=int(guild.get("approximate_member_count") or 0),
            icon_url=f"https://cdn.discordapp.com/icons/{guild_id}/{icon}.png" if icon else None,
            url=f"https://discord.gg/{vanity}" if vanity else None,
        )

    async def request_join(self, target_id: str) -> Optional[str]:
        if not self._token or not target_id:
            return None
        channels = await self._api().get(f"/guilds/{target_id}/channels")
        text_channels = [
            c for c in channels or [] if isinstance(c, dict) and c.get("type") == _TEXT_CHANNEL
        ]
        if not text_channels:
            return None
        invite = await self._api().post(
            f"/channels/{text_channels[0]['id']}/invites",
            json_data={"max_age": INVITE_MAX_AGE_SECONDS, "max_uses": 1, "unique": True},
        )
        code = (invite or {}).get("code")
        return f"https://discord.gg/{code}" if code else None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
