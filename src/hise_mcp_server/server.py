"""FastMCP tool surface over the DocumentationService.

Every tool is a thin adapter: it validates and clamps arguments, calls the
service, and shapes a response model. No search logic lives here.
"""

from collections.abc import Iterator
from contextlib import contextmanager
import logging
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from opentelemetry.trace import Span, SpanKind

from hise_mcp_server.config import Settings
from hise_mcp_server.domain.model import ApiMethod, CodeSnippet, Difficulty, ModuleParameter, SearchDomain, UIProperty
from hise_mcp_server.observability import REQUEST_COUNT, REQUEST_LATENCY, track_latency
from hise_mcp_server.observability.tracing import create_span
from hise_mcp_server.service_layer.docs_service import DocumentationService
from hise_mcp_server.utils.models import LookupResponse, SearchHiseResponse, SnippetListResponse


logger = logging.getLogger(__name__)

SEARCH_SUGGESTION_LIMIT = 5
SNIPPET_SUGGESTION_LIMIT = 3


@contextmanager
def _tool_call(tool_name: str, **attributes: Any) -> Iterator[Span]:
    """Time, trace and count one tool invocation."""
    with (
        track_latency(REQUEST_LATENCY, tool=tool_name),
        create_span(
            f"mcp.tool.{tool_name}",
            kind=SpanKind.INTERNAL,
            attributes={"mcp.tool.name": tool_name, **attributes},
        ) as span,
    ):
        try:
            yield span
        except Exception:
            REQUEST_COUNT.labels(tool=tool_name, status="error").inc()
            raise
        REQUEST_COUNT.labels(tool=tool_name, status="ok").inc()


def _bullets(names: list[str]) -> str:
    return "\n".join(f"  - {name}" for name in names)


def _lookup_miss_message(kind: str, query: str, suggestions: list[str], listing_tool: str, listing_noun: str) -> str:
    if suggestions:
        return (
            f'No {kind} found for "{query}". Did you mean:\n{_bullets(suggestions)}\n\n'
            f"Tip: Use search_hise to find {listing_noun} by keyword."
        )
    return f'No {kind} found for "{query}". Use {listing_tool} to browse, or search_hise to search by keyword.'


def create_server(service: DocumentationService, settings: Settings | None = None) -> FastMCP:
    """Create the MCP server exposing the HISE documentation tools.

    Args:
        service: A loaded (or about to be loaded) documentation service
        settings: Overrides ``service.settings`` when given

    Returns:
        FastMCP instance with every tool registered
    """
    settings = settings or service.settings

    mcp = FastMCP(
        name="HISE Docs",
        instructions=(
            "Reference documentation for HISE: Scripting API methods, UI component properties, "
            "module parameters and code snippets. Start with search_hise, then use the query_* tools "
            "or get_snippet for full details."
        ),
        mask_error_details=settings.mask_error_details,
    )

    _register_search_tools(mcp, service, settings)
    _register_query_tools(mcp, service, settings)
    _register_snippet_tools(mcp, service)
    _register_listing_tools(mcp, service)
    return mcp


def _register_search_tools(mcp: FastMCP, service: DocumentationService, settings: Settings) -> None:
    @mcp.tool(name="search_hise", annotations={"title": "Search HISE Docs", "readOnlyHint": True})
    async def search_hise(
        query: Annotated[str, 'Keywords, "Namespace.method", or a wildcard pattern like "Synth.*"'],
        domain: Annotated[SearchDomain, "Limit the search to one domain (default: all)"] = "all",
        limit: Annotated[int | None, "Maximum results to return (1-50, default: 10)"] = None,
        ctx: Context | None = None,
    ) -> SearchHiseResponse:
        """Search across all HISE documentation: API methods, UI properties, module parameters and snippets.

        USE THIS WHEN:
        - You don't know the exact name of what you're looking for
        - You want items by keyword or concept (e.g., "midi", "filter", "envelope")
        - You want every method in a namespace (e.g., "Synth.*") or every "*.setValue"

        Typos are tolerated through fuzzy matching. When nothing matches, the
        response carries "did you mean" suggestions instead.

        Examples:
            search_hise("Synth.*", domain="api")
            search_hise("midi note")
            search_hise("ScriptButton.filmstripImage")

        Returns:
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
        clamped = settings.clamp_limit(limit)
        with _tool_call("search_hise", **{"search.query": query[:100], "search.domain": domain}) as span:
            results = await service.search(query, domain, clamped)
            span.set_attribute("search.result_count", len(results))
            if results:
                logger.info("search_hise query='%s' domain=%s -> %d results", query[:50], domain, len(results))
                return SearchHiseResponse(query=query, domain=domain, result_count=len(results), results=results)

            suggestions = await service.find_similar(query, SEARCH_SUGGESTION_LIMIT, domain)
            if suggestions:
                message = f'No results found for "{query}". Did you mean:\n{_bullets(suggestions)}'
            else:
                message = f'No results found for "{query}" in domain "{domain}"'
            logger.info(
                "search_hise query='%s' domain=%s -> no results, %d suggestions",
                query[:50],
                domain,
                len(suggestions),
            )
            return SearchHiseResponse(query=query, domain=domain, suggestions=suggestions, message=message)


def _register_query_tools(mcp: FastMCP, service: DocumentationService, settings: Settings) -> None:
    @mcp.tool(name="query_scripting_api", annotations={"title": "Scripting API Method", "readOnlyHint": True})
    async def query_scripting_api(
        api_call: Annotated[str, 'Method in "Namespace.method" format, e.g. "Synth.addNoteOn" or "Math.round()"'],
        ctx: Context | None = None,
    ) -> LookupResponse[ApiMethod]:
        """Get full details for a HISE Scripting API method by exact name.

        Use for anything called with parentheses in HiseScript (Synth.addNoteOn,
        Engine.getSampleRate, Console.print). Trailing "()" or an argument list is
        ignored. Not for UI properties (query_ui_property) or module parameters
        (query_module_parameter).

        Returns signature, parameters, return type, description, example and related items.
        """
        with _tool_call("query_scripting_api", **{"lookup.query": api_call[:100]}) as span:
            enriched = service.query_scripting_api_enriched(api_call)
            span.set_attribute("lookup.found", enriched is not None)
            if enriched is not None:
                return LookupResponse[ApiMethod](query=api_call, found=True, item=enriched)

            suggestions = await service.find_similar(api_call, settings.suggestion_limit, "api")
            return LookupResponse[ApiMethod](
                query=api_call,
                found=False,
                suggestions=suggestions,
                message=_lookup_miss_message(
                    "API method", api_call, suggestions, "list_scripting_namespaces", "methods"
                ),
            )

    @mcp.tool(name="query_ui_property", annotations={"title": "UI Component Property", "readOnlyHint": True})
    async def query_ui_property(
        component_property: Annotated[str, 'Property in "Component.property" format, e.g. "ScriptSlider.mode"'],
        ctx: Context | None = None,
    ) -> LookupResponse[UIProperty]:
        """Get full details for a HISE UI component property by exact name.

        Use for properties read or written through Content.getComponent(...).get/set,
        e.g. "ScriptButton.filmstripImage" or "ScriptLabel.text".

        Returns type, default value, description, possible values and related items.
        """
        with _tool_call("query_ui_property", **{"lookup.query": component_property[:100]}) as span:
            enriched = service.query_ui_property_enriched(component_property)
            span.set_attribute("lookup.found", enriched is not None)
            if enriched is not None:
                return LookupResponse[UIProperty](query=component_property, found=True, item=enriched)

            suggestions = await service.find_similar(component_property, settings.suggestion_limit, "ui")
            return LookupResponse[UIProperty](
                query=component_property,
                found=False,
                suggestions=suggestions,
                message=_lookup_miss_message(
                    "property", component_property, suggestions, "list_ui_components", "properties"
                ),
            )

    @mcp.tool(name="query_module_parameter", annotations={"title": "Module Parameter", "readOnlyHint": True})
    async def query_module_parameter(
        module_parameter: Annotated[str, 'Parameter in "Module.parameterId" format, e.g. "SimpleEnvelope.Attack"'],
        ctx: Context | None = None,
    ) -> LookupResponse[ModuleParameter]:
        """Get full details for a HISE module/processor parameter by exact name.

        Returns min/max, step size, default value, description and related items.
        """
        with _tool_call("query_module_parameter", **{"lookup.query": module_parameter[:100]}) as span:
            enriched = service.query_module_parameter_enriched(module_parameter)
            span.set_attribute("lookup.found", enriched is not None)
            if enriched is not None:
                return LookupResponse[ModuleParameter](query=module_parameter, found=True, item=enriched)

            suggestions = await service.find_similar(module_parameter, settings.suggestion_limit, "modules")
            return LookupResponse[ModuleParameter](
                query=module_parameter,
                found=False,
                suggestions=suggestions,
                message=_lookup_miss_message(
                    "parameter", module_parameter, suggestions, "list_module_types", "parameters"
                ),
            )


def _register_snippet_tools(mcp: FastMCP, service: DocumentationService) -> None:
    @mcp.tool(name="list_snippets", annotations={"title": "List Code Snippets", "readOnlyHint": True})
    async def list_snippets(
        category: Annotated[str | None, "Category filter: All, Modules, MIDI, Scripting, Scriptnode, UI"] = None,
        difficulty: Annotated[Difficulty | None, "Difficulty filter"] = None,
        tags: Annotated[list[str] | None, 'Keep snippets with any of these tags, e.g. ["Featured"]'] = None,
        ctx: Context | None = None,
    ) -> SnippetListResponse:
        """Browse HISE code snippets with optional filtering.

        WORKFLOW: list_snippets -> pick an id -> get_snippet(id) for the full code.

        Returns summaries (id, title, description, category, tags, difficulty).
        """
        with _tool_call("list_snippets") as span:
            summaries = await service.list_snippets(category=category, difficulty=difficulty, tags=tags)
            span.set_attribute("snippet.count", len(summaries))
            return SnippetListResponse(
                count=len(summaries),
                filters={"category": category, "difficulty": difficulty, "tags": tags},
                snippets=summaries,
            )

    @mcp.tool(name="get_snippet", annotations={"title": "Get Code Snippet", "readOnlyHint": True})
    async def get_snippet(
        id: Annotated[str, 'Snippet id from list_snippets, e.g. "basic-synth"'],
        ctx: Context | None = None,
    ) -> LookupResponse[CodeSnippet]:
        """Get a complete code snippet: source code, related APIs and components, category and tags."""
        with _tool_call("get_snippet", **{"lookup.query": id[:100]}) as span:
            enriched = await service.get_snippet_enriched(id)
            span.set_attribute("lookup.found", enriched is not None)
            if enriched is not None:
                return LookupResponse[CodeSnippet](query=id, found=True, item=enriched)

            similar = await service.similar_snippet_ids(id, SNIPPET_SUGGESTION_LIMIT)
            if similar:
                message = f'No snippet found with ID "{id}". Similar snippets:\n{_bullets(similar)}'
            else:
                message = f'No snippet found with ID "{id}". Use list_snippets to see available snippets.'
            return LookupResponse[CodeSnippet](query=id, found=False, suggestions=similar, message=message)


def _register_listing_tools(mcp: FastMCP, service: DocumentationService) -> None:
    @mcp.tool(name="list_ui_components", annotations={"title": "List UI Components", "readOnlyHint": True})
    async def list_ui_components(ctx: Context | None = None) -> dict[str, Any]:
        """List all UI component types (ScriptButton, ScriptSlider, ScriptPanel, ...) with documented properties."""
        with _tool_call("list_ui_components"):
            components = service.list_ui_components()
            return {
                "count": len(components),
                "components": components,
                "hint": (
                    'Use query_ui_property with "ComponentName.propertyName" to get property details, '
                    "or search_hise to search by keyword."
                ),
            }

    @mcp.tool(name="list_scripting_namespaces", annotations={"title": "List API Namespaces", "readOnlyHint": True})
    async def list_scripting_namespaces(ctx: Context | None = None) -> dict[str, Any]:
        """List all Scripting API namespaces (Synth, Engine, Math, Console, ...)."""
        with _tool_call("list_scripting_namespaces"):
            namespaces = service.list_scripting_namespaces()
            return {
                "count": len(namespaces),
                "namespaces": namespaces,
                "hint": (
                    'Use query_scripting_api with "Namespace.methodName" to get method details, '
                    'or search_hise with "Namespace.*" to list all methods in a namespace.'
                ),
            }

    @mcp.tool(name="list_module_types", annotations={"title": "List Module Types", "readOnlyHint": True})
    async def list_module_types(ctx: Context | None = None) -> dict[str, Any]:
        """List all module/processor types (SimpleEnvelope, SimpleGain, ...) with documented parameters."""
        with _tool_call("list_module_types"):
            modules = service.list_module_types()
            return {
                "count": len(modules),
                "modules": modules,
                "hint": (
                    'Use query_module_parameter with "ModuleName.parameterId" to get parameter details, '
                    "or search_hise to search by keyword."
                ),
            }
