"""Centralized Pydantic models for type-safe MCP tool responses."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hise_mcp_server.domain.model import ApiMethod, CodeSnippet, ModuleParameter, SnippetSummary, UIProperty
from hise_mcp_server.domain.search import SearchResult


RecordT = TypeVar("RecordT", ApiMethod, UIProperty, ModuleParameter, CodeSnippet)


class ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, serialize_by_alias=True)


class EnrichedResult(ResponseModel, Generic[RecordT]):
    """A looked-up record plus display names of related items."""

    result: RecordT
    related: list[str] = Field(default_factory=list)


class SearchHiseResponse(ResponseModel):
    """Response model for the search_hise MCP tool.

    On a miss ``results`` is empty and ``suggestions`` holds "did you mean"
    candidates (possibly empty as well).

    Example:
        {
            "query": "Synth.*",
            "domain": "api",
            "resultCount": 2,
            "results": [
                {"id": "synth.addnoteon", "domain": "api", "displayName": "Synth.addNoteOn",
                 "description": "...", "score": 0.9, "matchType": "prefix"}
            ],
            "suggestions": []
        }
    """

    query: str = Field(description="The query as received")
    domain: str = Field(description="Domain searched ('all' for every domain)")
    result_count: int = Field(default=0, description="Number of results returned")
    results: list[SearchResult] = Field(default_factory=list, description="Ranked results, best first")
    suggestions: list[str] = Field(default_factory=list, description="'Did you mean' names when nothing matched")
    message: str | None = Field(default=None, description="Human readable note for empty results")


class LookupResponse(ResponseModel, Generic[RecordT]):
    """Response model for the exact query tools (API, UI property, module parameter, snippet).

    Exactly one of ``item`` and ``message`` is set.
    """

    query: str = Field(description="The identifier as received")
    found: bool = Field(description="Whether an exact record was found")
    item: EnrichedResult[RecordT] | None = Field(default=None, description="Record plus related items")
    suggestions: list[str] = Field(default_factory=list, description="Close matches when not found")
    message: str | None = Field(default=None, description="Explanation and next step when not found")


class SnippetListResponse(ResponseModel):
    """Response model for the list_snippets MCP tool."""

    count: int
    filters: dict[str, str | list[str] | None]
    snippets: list[SnippetSummary]

