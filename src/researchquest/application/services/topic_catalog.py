"""Suggested research topics and recommendation fallback."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from researchquest.application.ports.topic_recommender_port import TopicRecommenderPort
from researchquest.domain.topic import Topic

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"

CATEGORY_LABELS = {
    "technology": "Technology",
    "psychology": "Psychology",
    "environmental": "Environmental",
    "physics": "Physics",
}

SUGGESTED_TOPICS: List[Topic] = [
    Topic(
        id="1",
        title="Machine Learning",
        description="Explore artificial intelligence and machine learning algorithms.",
        category="technology",
        relevance=95,
        keywords=["AI", "Neural Networks", "Deep Learning"],
        trending=True,
        researchers=1234,
        discussions=456,
        papers=2500,
        citations=45000,
    ),
    Topic(
        id="2",
        title="Data Science",
        description="Analyze and interpret complex data sets.",
        category="technology",
        relevance=88,
        keywords=["Big Data", "Analytics", "Statistics"],
        trending=True,
        researchers=987,
        discussions=234,
        papers=1800,
        citations=32000,
    ),
    Topic(
        id="3",
        title="Cognitive Psychology",
        description="Study mental processes and human behavior.",
        category="psychology",
        relevance=82,
        keywords=["Memory", "Perception", "Learning"],
        trending=False,
        researchers=567,
        discussions=123,
        papers=1500,
        citations=28000,
    ),
    Topic(
        id="4",
        title="Climate Change",
        description="Research environmental impacts and solutions.",
        category="environmental",
        relevance=78,
        keywords=["Environment", "Global Warming", "Sustainability"],
        trending=True,
        researchers=789,
        discussions=345,
        papers=3000,
        citations=55000,
    ),
    Topic(
        id="5",
        title="Quantum Computing",
        description="Explore quantum mechanics and computation.",
        category="physics",
        relevance=75,
        keywords=["Quantum Mechanics", "Computing", "Physics"],
        trending=False,
        researchers=432,
        discussions=167,
        papers=1800,
        citations=35000,
    ),
]


def list_categories() -> List[dict]:
    return [{"id": ALL_CATEGORIES, "label": "All Topics"}] + [
        {"id": key, "label": label} for key, label in CATEGORY_LABELS.items()
    ]


def get_topic(topic_id: str) -> Optional[Topic]:
    for topic in SUGGESTED_TOPICS:
        if topic.id == topic_id:
            return topic
    return None


def search_catalog(query: str = "", category: str = ALL_CATEGORIES) -> List[Topic]:
    category = (category or ALL_CATEGORIES).strip().lower()
    return [
        t
        for t in SUGGESTED_TOPICS
        if (category == ALL_CATEGORIES or t.category == category) and t.matches(query)
    ]


def rank_by_interests(interests: Sequence[str], *, limit: int = 4) -> List[Topic]:
    """Catalog ordered by keyword overlap with ``interests``, then relevance."""
    wanted = {i.strip().lower() for i in interests if i and i.strip()}

    def overlap(topic: Topic) -> int:
        haystack = [topic.title.lower()] + [k.lower() for k in topic.keywords]
        return sum(1 for w in wanted if any(w in h for h in haystack))

    ranked = sorted(SUGGESTED_TOPICS, key=lambda t: (-overlap(t), -t.relevance, t.id))
    return ranked[: max(0, limit)]


async def recommend_topics(
    interests: Sequence[str],
    *,
    limit: int = 4,
    recommender: Optional[TopicRecommenderPort] = None,
    timeout_seconds: float = 20.0,
) -> List[Topic]:
    """Ask the recommender; any failure or empty answer falls back to the catalog."""
    if recommender is not None:
        try:
            topics = await asyncio.wait_for(
                recommender.recommend(list(interests), limit=limit), timeout=timeout_seconds
            )
            if topics:
                return list(topics)[:limit]
        except Exception as exc:
            logger.warning("topic recommender failed, using catalog: %s", exc)
    return rank_by_interests(interests, limit=limit)
