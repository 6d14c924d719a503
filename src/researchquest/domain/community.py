"""Community and resource directory models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Platform(str, Enum):
    DISCORD = "discord"
    SLACK = "slack"
    REDDIT = "reddit"
    CUSTOM = "custom"


EXTERNAL_PLATFORMS = (Platform.DISCORD, Platform.SLACK, Platform.REDDIT)


@dataclass
class Community:
    """
    A directory entry.

    Custom communities are persisted and own their membership list; platform
    results are ephemeral search hits. ``member_count`` of a custom community
    is derived from ``members``.
    """

    id: str
    name: str
    platform: Platform
    description: str = ""
    topics: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)
    creator_id: Optional[str] = None
    external_member_count: int = 0
    url: Optional[str] = None
    icon_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def member_count(self) -> int:
        if self.platform == Platform.CUSTOM:
            return len(self.members)
        return self.external_member_count

    def matches(self, query: str) -> bool:
        q = (query or "").strip().lower()
        if not q:
            return True
        return (
            q in self.name.lower()
            or q in self.description.lower()
            or any(q in t.lower() for t in self.topics)
        )

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Community":
        return cls(
            id=str(record.get("id") or ""),
            name=str(record.get("name") or ""),
            platform=Platform(record.get("platform") or Platform.CUSTOM.value),
            description=str(record.get("description") or ""),
            topics=[str(t) for t in record.get("topics") or []],
            members=[str(m) for m in record.get("members") or []],
            creator_id=record.get("creator_id"),
            external_member_count=int(record.get("external_member_count") or 0),
            url=record.get("url"),
            icon_url=record.get("icon_url"),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "platform": self.platform.value,
            "description": self.description,
            "topics": list(self.topics),
            "member_count": self.member_count,
            "creator_id": self.creator_id,
            "url": self.url,
            "icon_url": self.icon_url,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class JoinResult:
    community_id: str
    platform: Platform
    joined: bool
    already_member: bool = False
    invite_url: Optional[str] = None
    member_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "community_id": self.community_id,
            "platform": self.platform.value,
            "joined": self.joined,
            "already_member": self.already_member,
            "invite_url": self.invite_url,
            "member_count": self.member_count,
        }


RESOURCE_TYPES = ("paper", "dataset", "tool", "template", "guide", "external")


@dataclass
class Resource:
    id: str
    title: str
    type: str = "paper"
    description: str = ""
    author: str = "Unknown"
    source: str = ""
    url: str = ""
    tags: List[str] = field(default_factory=list)
    download_count: int = 0
    rating: float = 0.0
    review_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def matches(self, query: str) -> bool:
        q = (query or "").strip().lower()
        if not q:
            return True
        return (
            q in self.title.lower()
            or q in self.description.lower()
            or any(q in t.lower() for t in self.tags)
        )

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Resource":
        return cls(
            id=str(record.get("id") or ""),
            title=str(record.get("title") or "Untitled"),
            type=str(record.get("type") or "paper"),
            description=str(record.get("description") or ""),
            author=str(record.get("author") or "Unknown"),
            source=str(record.get("source") or ""),
            url=str(record.get("url") or ""),
            tags=[str(t) for t in record.get("tags") or [] if str(t).strip()],
            download_count=int(record.get("download_count") or 0),
            rating=float(record.get("rating") or 0.0),
            review_count=int(record.get("review_count") or 0),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "description": self.description,
            "author": self.author,
            "source": self.source,
            "url": self.url,
            "tags": list(self.tags),
            "download_count": self.download_count,
            "rating": self.rating,
            "review_count": self.review_count,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
