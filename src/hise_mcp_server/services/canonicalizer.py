"""Canonicalization of raw HISE documentation sources.

Pure functions with no I/O. Each ``canonicalize_*`` function accepts the parsed
JSON of one source file and returns validated records with every optional field
defaulted explicitly. Container-level shape errors raise ``CorpusFormatError``;
individual entries that are not JSON objects are skipped.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
import logging
import re
from typing import Any, TypeVar, get_args

from pydantic import BaseModel, ValidationError

from hise_mcp_server.domain.errors import CorpusFormatError
from hise_mcp_server.domain.model import (
    ApiMethod,
    ApiParameter,
    CanonicalCorpus,
    CodeSnippet,
    Difficulty,
    ModuleParameter,
    UIProperty,
)


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

DIFFICULTIES: frozenset[str] = frozenset(get_args(Difficulty))
DEFAULT_DIFFICULTY: Difficulty = "intermediate"

_FIRST_ARGUMENT_LIST = re.compile(r"\((.*?)\)", re.DOTALL)
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ``text`` and collapse non-alphanumeric runs into single hyphens.

    Examples:
        >>> slugify("Basic Synth: Getting Started!")
        'basic-synth-getting-started'
    """
    return _SLUG_SEPARATORS.sub("-", text.lower()).strip("-")


def parse_parameters(arguments: str | None) -> list[ApiParameter]:
    """Derive a parameter list from a signature string such as ``(noteNumber, velocity)``.

    Only names are recovered; types stay ``"unknown"`` and every parameter is
    marked required.
    """
    if not arguments or arguments == "()":
        return []
    match = _FIRST_ARGUMENT_LIST.search(arguments)
    if match is None:
        return []
    names = (name.strip() for name in match.group(1).split(","))
    return [ApiParameter(name=name) for name in names if name]


def _text(value: Any, default: str = "") -> Any:
    """Return ``default`` for missing or empty values; anything else goes to validation."""
    if value is None or value == "":
        return default
    return value


def _number(value: Any) -> Any:
    return 0 if value is None else value


def _options(value: Any) -> list[str] | None:
    if not isinstance(value, list) or not value:
        return None
    return [str(option) for option in value]


def _require_mapping(source: str, data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise CorpusFormatError(source, f"expected a JSON object, got {type(data).__name__}")
    return data


def _iter_objects(source: str, container: Any) -> Iterator[tuple[str, Mapping[str, Any]]]:
    """Yield ``(key, entry)`` pairs for the JSON objects inside a mapping or list."""
    if isinstance(container, Mapping):
        items = ((str(key), value) for key, value in container.items())
    elif isinstance(container, list):
        items = ((str(position), value) for position, value in enumerate(container))
    else:
        logger.debug("Skipping non-container %s entry of type %s", source, type(container).__name__)
        return
    for key, value in items:
        if isinstance(value, Mapping):
            yield key, value
        else:
            logger.debug("Skipping non-object %s entry %r", source, key)


def _build(source: str, where: str, factory: Callable[..., RecordT], **fields: Any) -> RecordT:
    try:
        return factory(**fields)
    except ValidationError as exc:
        raise CorpusFormatError(source, f"{where}: {exc.errors()[0]['msg']}") from exc


def canonicalize_ui_properties(data: Any) -> list[UIProperty]:
    """``{componentType: {propertyName: {type, defaultValue, description, options}}}``."""
    source = "ui_component_properties"
    properties: list[UIProperty] = []
    for component_type, props in _require_mapping(source, data).items():
        if not isinstance(props, Mapping):
            logger.debug("Skipping UI component %r with no property map", component_type)
            continue
        for property_name, raw in _iter_objects(source, props):
            properties.append(
                _build(
                    source,
                    f"{component_type}.{property_name}",
                    UIProperty,
                    component_type=component_type,
                    property_name=property_name,
                    property_type=_text(raw.get("type"), "unknown"),
                    default_value=raw.get("defaultValue"),
                    description=_text(raw.get("description")),
                    possible_values=_options(raw.get("options")),
                )
            )
    return properties


def canonicalize_scripting_api(data: Any) -> list[ApiMethod]:
    """``{namespace: [{name, returnType, arguments, description, example}, ...]}``.

    Namespace values may be JSON arrays or objects keyed by an arbitrary index.
    """
    source = "scripting_api"
    methods: list[ApiMethod] = []
    for namespace, entries in _require_mapping(source, data).items():
        for key, raw in _iter_objects(source, entries):
            name = raw.get("name")
            if not name:
                logger.debug("Skipping unnamed API method %s[%s]", namespace, key)
                continue
            arguments = raw.get("arguments")
            methods.append(
                _build(
                    source,
                    f"{namespace}.{name}",
                    ApiMethod,
                    namespace=namespace,
                    method_name=name,
                    return_type=_text(raw.get("returnType"), "var"),
                    parameters=parse_parameters(arguments if isinstance(arguments, str) else None),
                    description=_text(raw.get("description")),
                    example=raw.get("example") or None,
                )
            )
    return methods


def canonicalize_processors(data: Any) -> list[ModuleParameter]:
    """``{processorType: {parameters: {parameterId: {min, max, step, defaultValue, description}}}}``."""
    source = "processors"
    parameters: list[ModuleParameter] = []
    for module_type, processor in _require_mapping(source, data).items():
        raw_parameters = processor.get("parameters") if isinstance(processor, Mapping) else None
        if not isinstance(raw_parameters, Mapping):
            continue
        for parameter_id, raw in _iter_objects(source, raw_parameters):
            parameters.append(
                _build(
                    source,
                    f"{module_type}.{parameter_id}",
                    ModuleParameter,
                    module_type=module_type,
                    parameter_id=parameter_id,
                    parameter_name=parameter_id,
                    min=_number(raw.get("min")),
                    max=_number(raw.get("max")),
                    step=_number(raw.get("step")),
                    default_value=_number(raw.get("defaultValue")),
                    description=_text(raw.get("description")),
                )
            )
    return parameters


def canonicalize_snippets(data: Any) -> list[CodeSnippet]:
    """``[{title, description, category, tags, code, relatedAPIs, relatedComponents, difficulty}]``."""
    source = "snippet_dataset"
    if not isinstance(data, list):
        raise CorpusFormatError(source, f"expected a JSON array, got {type(data).__name__}")

    snippets: list[CodeSnippet] = []
    for position, raw in _iter_objects(source, data):
        title = _text(raw.get("title"))
        slug = slugify(title) if isinstance(title, str) else ""
        if not slug:
            logger.warning("Skipping snippet #%s without a usable title", position)
            continue

        difficulty = raw.get("difficulty") or DEFAULT_DIFFICULTY
        if not isinstance(difficulty, str) or difficulty not in DIFFICULTIES:
            logger.warning("Snippet %r has unknown difficulty %r; using %s", slug, difficulty, DEFAULT_DIFFICULTY)
            difficulty = DEFAULT_DIFFICULTY

        code = _text(raw.get("code"))
        snippets.append(
            _build(
                source,
                slug,
                CodeSnippet,
                id=slug,
                title=title,
                description=_text(raw.get("description")),
                category=_text(raw.get("category"), "All"),
                tags=raw.get("tags") or [],
                difficulty=difficulty,
                code=code.replace("\r\n", "\n") if isinstance(code, str) else code,
                related_apis=raw.get("relatedAPIs") or [],
                related_components=raw.get("relatedComponents") or [],
            )
        )
    return snippets


def canonicalize_corpus(ui_data: Any, api_data: Any, processor_data: Any) -> CanonicalCorpus:
    """Canonicalize the three eagerly loaded sources into one corpus."""
    return CanonicalCorpus(
        ui=canonicalize_ui_properties(ui_data),
        api=canonicalize_scripting_api(api_data),
        modules=canonicalize_processors(processor_data),
    )
