"""Topic recommendations from a Hugging Face hosted instruct model."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, List, Optional, Sequence
from uuid import uuid4

from researchquest.domain.topic import Topic
from researchquest.infrastructure.api_clients.base import APIClient

logger = logging.getLogger(__name__)

HF_INFERENCE_URL = "https://api-inference.huggingface.co/models/meta-llama/Llama-3.2-1B-Instruct"

_PROMPT_INTERESTED = (
    'Based on the user\'s interest in "{interests}", suggest {limit} highly relevant research '
    "topics. For each topic provide a title, a relevance score (as a percentage), a brief "
    "description and 3-4 relevant keywords. Format the response as a JSON array of objects "
    'with the keys "title", "relevance", "description" and "keywords".'
)
_PROMPT_BEGINNER = (
    "Suggest {limit} diverse research topics for a beginner researcher. For each topic provide "
    "a title, a relevance score (as a percentage), a brief description and 3-4 relevant "
    'keywords. Format the response as a JSON array of objects with the keys "title", '
    '"relevance", "description" and "keywords".'
)


def parse_recommendations(text: str, limit: int) -> List[Topic]:
    """Pull the first JSON array out of model output."""
    match = re.search(r"\[.*\]", text or "", flags=re.DOTALL)
    if not match:
        raise ValueError("model output contains no JSON array")
    items = json.loads(match.group(0))
    topics: List[Topic] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        relevance = re.sub(r"[^0-9]", "", str(item.get("relevance") or "0")) or "0"
        keywords = item.get("keywords") or []
        if isinstance(keywords, str):
            keywords = [k.strip() for k in keywords.split(",")]
        topics.append(
            Topic(
                id=f"rec-{uuid4().hex[:8]}",
                title=str(item["title"]).strip(),
                description=str(item.get("description") or "").strip(),
                category="recommended",
                relevance=min(100, int(relevance)),
                keywords=[str(k) for k in keywords if str(k).strip()],
            )
        )
    return topics[:limit]


class HuggingFaceTopicRecommender:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        url: Optional[str] = None,
        client: Optional[APIClient] = None,
    ):
        self._api_key = api_key if api_key is not None else os.getenv("HUGGINGFACE_API_KEY", "")
        self._url = url or os.getenv("HUGGINGFACE_INFERENCE_URL", HF_INFERENCE_URL)
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def recommend(self, interests: Sequence[str], *, limit: int = 4) -> List[Topic]:
        if not self._api_key:
            raise RuntimeError("HUGGINGFACE_API_KEY is not set")
        if self._client is None:
            self._client = APIClient(
                self._url, headers={"Authorization": f"Bearer {self._api_key}"}, timeout=60
            )
        cleaned = [i.strip() for i in interests if i and i.strip()]
        template = _PROMPT_INTERESTED if cleaned else _PROMPT_BEGINNER
        prompt = template.format(interests=", ".join(cleaned), limit=limit)
        data: Any = await self._client.post(self._url, json_data={"inputs": prompt})
        generated = ""
        if isinstance(data, list) and data and isinstance(data[0], dict):
            generated = str(data[0].get("generated_text") or "")
        elif isinstance(data, dict):
            generated = str(data.get("generated_text") or "")
        return parse_recommendations(generated, limit)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
