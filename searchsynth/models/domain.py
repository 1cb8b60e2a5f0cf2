from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Union


class VisualizationType(str, Enum):
    NONE = "none"
    GEOGRAPHIC = "geographic"
    FINANCIAL = "financial"
    WEATHER = "weather"


class VisualizationStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class WebSearchHit:
    """One raw item returned by the web-search capability."""

    title: str
    snippet: str
    link: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchResult:
    conversation_id: str | None
    title: str
    text: str
    url: str
    published_date: str
    source: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "text": self.text,
            "url": self.url,
            "publishedDate": self.published_date,
            "source": self.source,
            "relevanceScore": self.score,
        }

    def to_row(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "title": self.title,
            "text": self.text,
            "url": self.url,
            "published_date": self.published_date,
            "source": self.source,
            "score": self.score,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SearchResult":
        return cls(
            conversation_id=row.get("conversation_id"),
            title=str(row.get("title") or ""),
            text=str(row.get("text") or ""),
            url=str(row.get("url") or ""),
            published_date=str(row.get("published_date") or utc_now_iso()),
            source=str(row.get("source") or ""),
            score=float(row.get("score") or 0.0),
        )


@dataclass(frozen=True)
class Citation:
    number: int
    source: str
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"number": self.number, "source": self.source, "url": self.url}


@dataclass
class VisualizationDetails:
    stock_symbol: str | None = None
    location: str | None = None


@dataclass
class VisualizationIntent:
    type: VisualizationType = VisualizationType.NONE
    entities: list[str] = field(default_factory=list)
    confidence: float = 0.0
    details: VisualizationDetails = field(default_factory=VisualizationDetails)

    @classmethod
    def none(cls) -> "VisualizationIntent":
        return cls()


@dataclass(frozen=True)
class VisualizationResult:
    type: VisualizationType
    data: dict[str, Any] | None
    status: VisualizationStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == VisualizationStatus.SUCCESS

    @classmethod
    def success(cls, type: VisualizationType, data: dict[str, Any]) -> "VisualizationResult":
        return cls(type=type, data=data, status=VisualizationStatus.SUCCESS)

    @classmethod
    def failure(cls, type: VisualizationType, error: str) -> "VisualizationResult":
        return cls(type=type, data=None, status=VisualizationStatus.ERROR, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "data": self.data,
            "status": self.status.value,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class VisualizationContext:
    type: VisualizationType
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "description": self.description}


@dataclass
class Message:
    conversation_id: str
    role: Literal["user", "assistant"]
    content: str
    id: str | None = None
    citations: list[Citation] = field(default_factory=list)
    visualization_data: VisualizationResult | None = None
    visualization_context: VisualizationContext | None = None
    timestamp: str = field(default_factory=utc_now_iso)

    def to_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "conversation_id": self.conversation_id,
            "role": self.role,
            "content": self.content,
            "citations": [c.to_dict() for c in self.citations],
            "visualization_data": (
                self.visualization_data.to_dict() if self.visualization_data else None
            ),
            "visualization_context": (
                self.visualization_context.to_dict() if self.visualization_context else None
            ),
            "timestamp": self.timestamp,
        }
        if self.id:
            row["id"] = self.id
        return row


@dataclass
class Classification:
    intent: VisualizationIntent
    enriched_query: str


@dataclass
class ParsedSynthesis:
    """Model output that decoded as the requested JSON document."""

    response: str
    citations: list[Citation]
    visualization_context: VisualizationContext | None
    kind: Literal["parsed"] = "parsed"


@dataclass
class FallbackSynthesis:
    """Raw model text with citations recovered from its [n] markers."""

    response: str
    citations: list[Citation]
    visualization_context: VisualizationContext | None
    kind: Literal["fallback"] = "fallback"


SynthesisOutcome = Union[ParsedSynthesis, FallbackSynthesis]


@dataclass
class SynthesisResult:
    response: str
    citations: list[Citation]
    visualization: VisualizationResult | None
    visualization_context: VisualizationContext | None
    decoded_as: str
    message_id: str | None = None
