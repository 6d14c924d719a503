"""ResourceSearchPort: external catalog of papers and datasets."""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from researchquest.domain.community import Resource


@runtime_checkable
class ResourceSearchPort(Protocol):
    @property
    def source_name(self) -> str: ...

    async def search(self, query: str, *, max_results: int = 10) -> List[Resource]: ...

    async def close(self) -> None: ...
