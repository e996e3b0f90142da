"""
Data models shared by the fetch, classify and merge stages.

- Repository: one starred repository as returned by the listing endpoint.
- CategoryMember / CategorySuggestion: one category proposed by a single
  classification call.
- FetchResult: the fetched collection plus whether pagination finished cleanly.
- BatchExchange: prompt/response record for one classified batch.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Repository:
    full_name: str
    name: str
    html_url: str
    description: str = ""
    language: Optional[str] = None
    topics: Tuple[str, ...] = ()
    stargazers_count: int = 0

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "Repository":
        """
        Build a repository from one record of the starred listing.
        Parameters:
        - record: raw JSON object from GitHub.
        Returns: Repository; missing optional fields fall back to empty values.
        """
        full_name = record["full_name"]
        return cls(
            full_name=full_name,
            name=record.get("name") or full_name.split("/")[-1],
            html_url=record.get("html_url") or f"https://github.com/{full_name}",
            description=record.get("description") or "",
            language=record.get("language"),
            topics=tuple(record.get("topics") or ()),
            stargazers_count=int(record.get("stargazers_count") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "html_url": self.html_url,
            "language": self.language,
            "stargazers_count": self.stargazers_count,
            "topics": list(self.topics),
        }


@dataclass(frozen=True)
class CategoryMember:
    full_name: str
    reason: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"full_name": self.full_name, "reason": self.reason}


@dataclass
class CategorySuggestion:
    """One category as proposed by a single classification call."""
    name: str
    description: str = ""
    members: List[CategoryMember] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "repositories": [m.to_dict() for m in self.members],
        }


@dataclass
class FetchResult:
    """Repositories collected by the fetcher; `complete` is False when pagination was cut short."""
    repositories: List[Repository]
    complete: bool = True
    error: Optional[str] = None
    pages_fetched: int = 0


@dataclass
class BatchExchange:
    index: int
    prompt: str
    response_text: Optional[str]
    suggestions: List[CategorySuggestion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": [s.to_dict() for s in self.suggestions],
            "raw_response": self.response_text,
        }
