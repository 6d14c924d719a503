"""Europe PMC ResourceSearchPort adapter."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from researchquest.domain.community import Resource
from researchquest.infrastructure.api_clients.base import APIClient

EUROPE_PMC_API_URL = "https://www.ebi.ac.uk/europepmc/webservices/rest"


class EuropePMCAdapter:
    def __init__(self, client: Optional[APIClient] = None):
        self._client = client or APIClient(EUROPE_PMC_API_URL)

    @property
    def source_name(self) -> str:
        return "europepmc"

    async def search(self, query: str, *, max_results: int = 10) -> List[Resource]:
        if not (query or "").strip():
            return []
        data = await self._client.get(
            "/search",
            params={"query": query.strip(), "format": "json", "resultType": "core", "pageSize": max_results},
        )
        results = ((data or {}).get("resultList") or {}).get("result") or []
        return [self._to_resource(r) for r in results if r.get("id") and r.get("title")]

    @staticmethod
    def _to_resource(r: Dict[str, Any]) -> Resource:
        source = r.get("source") or "MED"
        return Resource(
            id=f"europepmc:{source}:{r['id']}",
            title=str(r["title"]).strip(),
            type="paper",
            description=r.get("abstractText") or "",
            author=r.get("authorString") or "Unknown",
            source="Europe PMC",
            url=f"https://europepmc.org/article/{source}/{r['id']}",
            tags=list((r.get("keywordList") or {}).get("keyword") or []),
            created_at=r.get("firstPublicationDate"),
        )

    async def close(self) -> None:
        await self._client.close()
