"""arXiv ResourceSearchPort adapter (Atom API)."""

from __future__ import annotations

import logging
from typing import List, Optional
from xml.etree import ElementTree

from researchquest.domain.community import Resource
from researchquest.infrastructure.api_clients.base import APIClient

logger = logging.getLogger(__name__)

ARXIV_API_URL = "https://export.arxiv.org/api"
_NS = {"atom": "http://www.w3.org/2005/Atom"}


def parse_atom(raw: str) -> List[Resource]:
    """Atom feed -> resources; a malformed feed yields an empty list."""
    try:
        root = ElementTree.fromstring(raw)
    except ElementTree.ParseError:
        logger.warning("arXiv returned malformed Atom XML")
        return []

    resources: List[Resource] = []
    for entry in root.findall("atom:entry", _NS):
        entry_url = (entry.findtext("atom:id", default="", namespaces=_NS) or "").strip()
        title = " ".join((entry.findtext("atom:title", default="", namespaces=_NS) or "").split())
        if not entry_url or not title:
            continue
        authors = [
            (a.findtext("atom:name", default="", namespaces=_NS) or "").strip()
            for a in entry.findall("atom:author", _NS)
        ]
        tags = [c.get("term", "") for c in entry.findall("atom:category", _NS) if c.get("term")]
        summary = " ".join((entry.findtext("atom:summary", default="", namespaces=_NS) or "").split())
        resources.append(
            Resource(
                id=f"arxiv:{entry_url.rsplit('/', 1)[-1]}",
                title=title,
                type="paper",
                description=summary,
                author=", ".join(a for a in authors if a) or "Unknown",
                source="arXiv",
                url=entry_url,
                tags=tags,
                created_at=entry.findtext("atom:published", default=None, namespaces=_NS),
            )
        )
    return resources


class ArxivResourceAdapter:
    def __init__(self, client: Optional[APIClient] = None):
        # arXiv asks for one request every 3 seconds
        self._client = client or APIClient(ARXIV_API_URL, request_interval=3.0)

    @property
    def source_name(self) -> str:
        return "arxiv"

    async def search(self, query: str, *, max_results: int = 10) -> List[Resource]:
        if not (query or "").strip():
            return []
        raw = await self._client.get_text(
            "/query",
            params={"search_query": f"all:{query.strip()}", "start": 0, "max_results": max_results},
        )
        return parse_atom(raw)[:max_results] if raw else []

    async def close(self) -> None:
        await self._client.close()
