"""
Global category taxonomy and the merge of per-batch suggestions into it.

Categories are keyed by their case-insensitive name. The first suggestion that
introduces a name fixes its display name and description; later suggestions
with the same name only contribute members that are not already present.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from stars_categorizer.models import CategoryMember, CategorySuggestion, Repository

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    return name.strip().casefold()


@dataclass
class TaxonomyEntry:
    name: str
    description: str
    members: List[CategoryMember] = field(default_factory=list)
    member_ids: Set[str] = field(default_factory=set)

    def add_member(self, member: CategoryMember) -> bool:
        """Append `member` unless its full_name is already listed. Returns True if added."""
        if member.full_name in self.member_ids:
            return False
        self.members.append(member)
        self.member_ids.add(member.full_name)
        return True

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "description": self.description,
            "repositories": [m.to_dict() for m in self.members],
        }


class Taxonomy:
    """Ordered collection of categories; entries keep first-introduction order."""

    def __init__(self) -> None:
        self._entries: Dict[str, TaxonomyEntry] = {}
        self._frozen = False

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str):
        return self._entries.get(normalize_name(name))

    @property
    def entries(self) -> List[TaxonomyEntry]:
        return list(self._entries.values())

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def categorized_ids(self) -> Set[str]:
        ids: Set[str] = set()
        for entry in self._entries.values():
            ids |= entry.member_ids
        return ids

    def to_dict(self) -> Dict[str, object]:
        return {"categories": [e.to_dict() for e in self._entries.values()]}

    def ensure_entry(self, suggestion: CategorySuggestion) -> TaxonomyEntry:
        if self._frozen:
            raise RuntimeError("taxonomy is frozen; no further merges are allowed")
        key = normalize_name(suggestion.name)
        entry = self._entries.get(key)
        if entry is None:
            entry = TaxonomyEntry(name=suggestion.name, description=suggestion.description)
            self._entries[key] = entry
            logger.debug("New category: %s", suggestion.name)
        return entry


def merge_into(taxonomy: Taxonomy, suggestions: Iterable[CategorySuggestion]) -> Taxonomy:
    """
    Fold one batch's suggestions into `taxonomy` (in place).
    Parameters:
    - taxonomy: running taxonomy, mutated and returned.
    - suggestions: categories proposed for one batch, in response order.
    Returns: the same taxonomy.
    """
    added = 0
    for suggestion in suggestions:
        entry = taxonomy.ensure_entry(suggestion)
        for member in suggestion.members:
            if entry.add_member(member):
                added += 1
    logger.debug("Merged %d new memberships; taxonomy has %d categories", added, len(taxonomy))
    return taxonomy


def find_uncategorized(repositories: Iterable[Repository], taxonomy: Taxonomy) -> List[Repository]:
    """Repositories whose full_name is not a member of any category, in input order."""
    categorized = taxonomy.categorized_ids()
    return [repo for repo in repositories if repo.full_name not in categorized]
