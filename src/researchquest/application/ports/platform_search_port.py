"""PlatformSearchPort: community search/join on an external platform."""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from researchquest.domain.community import Community


@runtime_checkable
class PlatformSearchPort(Protocol):
    """Single community platform (Discord, Slack, Reddit)."""

    @property
    def source_name(self) -> str: ...

    async def search(self, query: str, *, max_results: int = 20) -> List[Community]: ...

    async def request_join(self, target_id: str) -> Optional[str]:
        """Invite URL for ``target_id``, or ``None`` when none can be issued."""
        ...

    async def close(self) -> None: ...
