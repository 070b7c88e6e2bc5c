"""Value objects shared by the search stages.

These models carry no search logic; they describe catalog entries and ranked
results so every stage can report hits the same way regardless of source domain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hise_mcp_server.domain.model import RecordDomain


MatchType = Literal["exact", "prefix", "keyword", "fuzzy"]


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """Flattened, domain-tagged projection of one canonical record."""

    id: str
    domain: RecordDomain
    display_name: str
    description: str
    keywords: frozenset[str]


class SearchResult(BaseModel):
    """Value object for a single ranked hit.

    ``match_type`` names the stage that produced the hit.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, serialize_by_alias=True)

    id: str
    domain: RecordDomain
    display_name: str
    description: str
    score: float = Field(ge=0.0, le=1.0)
    match_type: MatchType

    @classmethod
    def from_entry(cls, entry: CatalogEntry, score: float, match_type: MatchType) -> SearchResult:
        return cls(
            id=entry.id,
            domain=entry.domain,
            display_name=entry.display_name,
            description=entry.description,
            score=score,
            match_type=match_type,
        )
