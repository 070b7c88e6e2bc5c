"""Canonical documentation records.

The ingestion boundary converts loosely-typed JSON into these models; everything
downstream (index, cache, tools) works only with validated records.

- Records are immutable (frozen=True)
- Field names are snake_case in Python and camelCase on the wire
- ``canonical_id`` is the lowercase ``Type.member`` key used for exact lookup
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


RecordDomain = Literal["api", "ui", "modules", "snippets"]
SearchDomain = Literal["all", "api", "ui", "modules", "snippets"]
Difficulty = Literal["beginner", "intermediate", "advanced"]

RECORD_DOMAINS: tuple[RecordDomain, ...] = ("api", "ui", "modules", "snippets")


class RecordModel(BaseModel):
    """Shared configuration for canonical records."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, serialize_by_alias=True)


class ApiParameter(RecordModel):
    name: str
    type: str = "unknown"
    description: str = ""
    optional: bool = False
    default_value: str | None = None


class ApiMethod(RecordModel):
    """A scripting API method such as ``Synth.addNoteOn``."""

    namespace: str
    method_name: str
    return_type: str = "var"
    parameters: list[ApiParameter] = Field(default_factory=list)
    description: str = ""
    example: str | None = None

    @computed_field
    @property
    def id(self) -> str:
        return self.canonical_id

    @property
    def canonical_id(self) -> str:
        return self.display_name.lower()

    @property
    def display_name(self) -> str:
        return f"{self.namespace}.{self.method_name}"


class UIProperty(RecordModel):
    """A property of a UI component, e.g. ``ScriptButton.filmstripImage``."""

    component_type: str
    property_name: str
    property_type: str = "unknown"
    default_value: bool | int | float | str | None = None
    description: str = ""
    possible_values: list[str] | None = None

    @computed_field
    @property
    def id(self) -> str:
        return self.canonical_id

    @property
    def canonical_id(self) -> str:
        return self.display_name.lower()

    @property
    def display_name(self) -> str:
        return f"{self.component_type}.{self.property_name}"


class ModuleParameter(RecordModel):
    """A processor parameter, e.g. ``SimpleEnvelope.Attack``."""

    module_type: str
    parameter_id: str
    parameter_name: str = ""
    min: float = 0
    max: float = 0
    step: float = 0
    default_value: float = 0
    description: str = ""

    @computed_field
    @property
    def id(self) -> str:
        return self.canonical_id

    @property
    def canonical_id(self) -> str:
        return self.display_name.lower()

    @property
    def display_name(self) -> str:
        return f"{self.module_type}.{self.parameter_id}"


class CodeSnippet(RecordModel):
    """An example script; ``id`` is a slug derived from the title."""

    id: str
    title: str = ""
    description: str = ""
    category: str = "All"
    tags: list[str] = Field(default_factory=list)
    difficulty: Difficulty = "intermediate"
    code: str = ""
    related_apis: list[str] = Field(default_factory=list, alias="relatedAPIs")
    related_components: list[str] = Field(default_factory=list)

    @property
    def canonical_id(self) -> str:
        return self.id

    @property
    def display_name(self) -> str:
        return self.title

    def summary(self) -> SnippetSummary:
        return SnippetSummary(
            id=self.id,
            title=self.title,
            description=self.description,
            category=self.category,
            tags=list(self.tags),
            difficulty=self.difficulty,
        )


class SnippetSummary(RecordModel):
    id: str
    title: str
    description: str
    category: str
    tags: list[str]
    difficulty: Difficulty


class CanonicalCorpus(RecordModel):
    """The eagerly loaded part of the corpus; snippets are loaded lazily."""

    api: list[ApiMethod] = Field(default_factory=list)
    ui: list[UIProperty] = Field(default_factory=list)
    modules: list[ModuleParameter] = Field(default_factory=list)

    def record_count(self) -> int:
        return len(self.api) + len(self.ui) + len(self.modules)
