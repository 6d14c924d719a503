"""Research topic domain models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

GOAL_OPTIONS: List[str] = [
    "Publish a paper",
    "Build a prototype",
    "Learn a new field",
    "Collaborate with researchers",
    "Contribute to open data",
]


@dataclass
class TopicSelection:
    """The user's answers to the guided questions for a chosen topic."""

    reason: str = ""
    interests: List[str] = field(default_factory=list)
    goals: List[str] = field(default_factory=list)
    selected_at: Optional[str] = None


@dataclass
class Topic:
    """
    A catalog entry or a denormalized copy embedded in a project.

    Counts are display metadata only.
    """

    id: str
    title: str
    description: str = ""
    category: str = ""
    relevance: int = 0
    keywords: List[str] = field(default_factory=list)
    trending: bool = False
    researchers: int = 0
    discussions: int = 0
    papers: int = 0
    citations: int = 0
    selection: Optional[TopicSelection] = None

    def with_selection(self, selection: TopicSelection) -> "Topic":
        return replace(self, keywords=list(self.keywords), selection=selection)

    def matches(self, query: str) -> bool:
        q = (query or "").strip().lower()
        if not q:
            return True
        return (
            q in self.title.lower()
            or q in self.description.lower()
            or any(q in k.lower() for k in self.keywords)
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "relevance": self.relevance,
            "keywords": list(self.keywords),
            "trending": self.trending,
            "researchers": self.researchers,
            "discussions": self.discussions,
            "papers": self.papers,
            "citations": self.citations,
        }
        if self.selection is not None:
            data.update(
                {
                    "reason": self.selection.reason,
                    "interests": list(self.selection.interests),
                    "goals": list(self.selection.goals),
                    "selected_at": self.selection.selected_at,
                }
            )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Topic":
        selection = None
        if any(k in data for k in ("reason", "interests", "goals")):
            selection = TopicSelection(
                reason=str(data.get("reason") or ""),
                interests=[str(v) for v in data.get("interests") or []],
                goals=[str(v) for v in data.get("goals") or []],
                selected_at=data.get("selected_at"),
            )
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
            relevance=int(data.get("relevance") or 0),
            keywords=[str(k) for k in data.get("keywords") or []],
            trending=bool(data.get("trending")),
            researchers=int(data.get("researchers") or 0),
            discussions=int(data.get("discussions") or 0),
            papers=int(data.get("papers") or 0),
            citations=int(data.get("citations") or 0),
            selection=selection,
        )
