"""TopicRecommenderPort: suggests research topics for a set of interests."""

from __future__ import annotations

from typing import List, Protocol, Sequence, runtime_checkable

from researchquest.domain.topic import Topic


@runtime_checkable
class TopicRecommenderPort(Protocol):
    async def recommend(self, interests: Sequence[str], *, limit: int = 4) -> List[Topic]: ...
