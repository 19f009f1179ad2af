"""
Tool Registry - Single catalog of the tools offered to both providers.

Each tool carries its JSON input schema and the function turning a tool
call's input into a Query. Information tools additionally carry an
executor that runs in-process; their result is fed back to the model for
one more round-trip instead of becoming a Query directly.

Providers translate the same catalog into their own wire format:
get_tool_definitions() for Anthropic, get_openai_tools() for Groq.
"""

import inspect
import json
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List, Callable, Optional
import logging

from pydantic import ValidationError as PydanticValidationError

from errors import ParseError
from llm.query import (
    GetPriceList,
    GetPricesOnly,
    GetProformaInvoice,
    GetQuotation,
    GetStock,
    ListAvailablePricelists,
    MetalPricing,
    PriceOnlyRequest,
    Query,
    QuotationRequest,
    UnsupportedQuery,
)

logger = logging.getLogger(__name__)


class ToolKind(Enum):
    """How a tool call is resolved."""

    INFORMATION = "information"  # Executed locally, result goes back to the model
    ACTION = "action"  # Maps straight to a Query variant


@dataclass
class ToolDefinition:
    """Definition of a tool for the registry."""

    name: str
    description: str
    input_schema: Dict[str, Any]
    kind: ToolKind
    to_query: Callable[[Dict[str, Any]], Query]
    executor: Optional[Callable[..., Dict]] = None


@dataclass
class ToolResult:
    """Standardized result from tool execution."""

    success: bool
    data: Dict[str, Any]
    error: Optional[str] = None


class ToolRegistry:
    """
    Central registry for all PriceBot tools.

    Usage:
        # Anthropic / OpenAI wire formats
        tools = ToolRegistry.get_tool_definitions()
        tools = ToolRegistry.get_openai_tools()

        # Resolve an action tool call
        query = ToolRegistry.to_query("get_metal_prices", {})

        # Execute an information tool
        result = ToolRegistry.execute("list_available_pricelists", {"brand": "kei"}, pricelist_service=svc)
    """

    _tools: Dict[str, ToolDefinition] = {}
    _initialized: bool = False

    @classmethod
    def register(cls, tool: ToolDefinition) -> None:
        """Register a tool definition."""
        cls._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name} ({tool.kind.value})")

    @classmethod
    def get_tool(cls, name: str) -> Optional[ToolDefinition]:
        """Get a tool definition by name."""
        return cls._tools.get(name)

    @classmethod
    def get_tool_definitions(cls) -> List[Dict[str, Any]]:
        """Anthropic tool format."""
        return [
            {"name": tool.name, "description": tool.description, "input_schema": tool.input_schema}
            for tool in cls._tools.values()
        ]

    @classmethod
    def get_openai_tools(cls) -> List[Dict[str, Any]]:
        """OpenAI-compatible function calling format (Groq)."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_schema,
                },
            }
            for tool in cls._tools.values()
        ]

    @classmethod
    def is_information_tool(cls, name: str) -> bool:
        tool = cls._tools.get(name)
        return tool is not None and tool.kind is ToolKind.INFORMATION

    @classmethod
    def to_query(cls, name: str, tool_input: Any) -> Query:
        """Map a tool call to its Query variant.

        Unknown tool names give UnsupportedQuery.

        Raises:
            ParseError: tool input does not match the tool's schema
        """
        tool = cls._tools.get(name)
        if tool is None:
            logger.warning(f"Model called unknown tool: {name}")
            return UnsupportedQuery()
        if not isinstance(tool_input, dict):
            raw = json.dumps(tool_input, default=str)
            raise ParseError(f"{name} input must be a JSON object, got {raw}", tool=name)
        return tool.to_query(tool_input)

    @classmethod
    def execute(cls, name: str, args: Dict[str, Any], **context) -> ToolResult:
        """
        Execute an information tool by name with given arguments.

        Args:
            name: Tool name
            args: Tool arguments from the model
            context: Collaborators the executor may need (pricelist_service, etc.)

        Returns:
            ToolResult with success status and data
        """
        tool = cls._tools.get(name)
        if not tool or tool.executor is None:
            return ToolResult(success=False, data={}, error=f"No executor for tool: {name}")

        try:
            # Filter kwargs to only those the executor accepts
            all_kwargs = {**args, **context}
            sig = inspect.signature(tool.executor)
            has_var_kw = any(p.kind == inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values())
            if has_var_kw:
                filtered = all_kwargs
            else:
                accepted = set(sig.parameters.keys())
                filtered = {k: v for k, v in all_kwargs.items() if k in accepted}
            result = tool.executor(**filtered)
            return ToolResult(success=not result.get("error"), data=result, error=result.get("error"))

        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            return ToolResult(success=False, data={}, error=str(e))

    @classmethod
    def get_all_tools(cls) -> Dict[str, ToolDefinition]:
        """Get all registered tools."""
        return cls._tools.copy()

    @classmethod
    def clear(cls) -> None:
        """Clear all registered tools (for testing)."""
        cls._tools.clear()
        cls._initialized = False


# =============================================================================
# INPUT -> QUERY MAPPING
# =============================================================================


def _schema_failure(tool: str, tool_input: Dict[str, Any], error: Exception) -> ParseError:
    return ParseError(f"{tool} input {json.dumps(tool_input, default=str)} rejected: {error}", tool=tool)


def _metal_prices(tool_input: Dict[str, Any]) -> Query:
    return MetalPricing()


def _stock_info(tool_input: Dict[str, Any]) -> Query:
    query = tool_input.get("query")
    if not isinstance(query, str):
        raise _schema_failure("get_stock_info", tool_input, ValueError("'query' must be a string"))
    return GetStock(query=query)


def _quotation(tool_input: Dict[str, Any]) -> Query:
    try:
        return GetQuotation(request=QuotationRequest.model_validate(tool_input))
    except PydanticValidationError as e:
        raise _schema_failure("generate_quotation", tool_input, e) from e


def _proforma(tool_input: Dict[str, Any]) -> Query:
    try:
        return GetProformaInvoice(request=QuotationRequest.model_validate(tool_input))
    except PydanticValidationError as e:
        raise _schema_failure("generate_proforma", tool_input, e) from e


def _prices_only(tool_input: Dict[str, Any]) -> Query:
    try:
        return GetPricesOnly(request=PriceOnlyRequest.model_validate(tool_input))
    except PydanticValidationError as e:
        raise _schema_failure("get_prices_only", tool_input, e) from e


def _find_price_list(tool_input: Dict[str, Any]) -> Query:
    brand = tool_input.get("brand")
    if not isinstance(brand, str):
        brand = "kei"
    keywords = tool_input.get("keywords")
    if not isinstance(keywords, list):
        raise _schema_failure("find_price_list", tool_input, ValueError("'keywords' must be an array"))
    return GetPriceList(brand=brand, keywords=[k for k in keywords if isinstance(k, str)])


def _list_pricelists(tool_input: Dict[str, Any]) -> Query:
    brand = tool_input.get("brand")
    return ListAvailablePricelists(brand=brand if isinstance(brand, str) else None)


# =============================================================================
# EXECUTORS
# =============================================================================


def execute_list_available_pricelists(brand: Optional[str] = None, pricelist_service=None) -> Dict[str, Any]:
    """List catalog entries, optionally for one brand."""
    if pricelist_service is None:
        return {"error": "Price list catalog unavailable"}
    brand_filter = brand if isinstance(brand, str) and brand else None
    return pricelist_service.list_available_pricelists(brand_filter).model_dump()


# =============================================================================
# REGISTRATION
# =============================================================================


def _object_schema(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


def register_all_tools() -> None:
    """Register the PriceBot tool catalog. Safe to call repeatedly."""
    if ToolRegistry._initialized:
        return

    quotation_schema = QuotationRequest.model_json_schema()
    price_only_schema = PriceOnlyRequest.model_json_schema()

    ToolRegistry.register(
        ToolDefinition(
            name="get_metal_prices",
            description="Get current metal prices from MCX for copper and aluminum",
            input_schema=_object_schema({}, []),
            kind=ToolKind.ACTION,
            to_query=_metal_prices,
        )
    )

    ToolRegistry.register(
        ToolDefinition(
            name="get_stock_info",
            description="Check stock availability for electrical items using Tally ERP",
            input_schema=_object_schema(
                {
                    "query": {
                        "type": "string",
                        "description": "Stock query string (e.g., '4 C x 2.5 2XWYL')",
                    }
                },
                ["query"],
            ),
            kind=ToolKind.ACTION,
            to_query=_stock_info,
        )
    )

    ToolRegistry.register(
        ToolDefinition(
            name="generate_quotation",
            description="Generate a PDF quotation for electrical items",
            input_schema=quotation_schema,
            kind=ToolKind.ACTION,
            to_query=_quotation,
        )
    )

    ToolRegistry.register(
        ToolDefinition(
            name="generate_proforma",
            description="Generate a PDF proforma invoice for electrical items",
            input_schema=quotation_schema,
            kind=ToolKind.ACTION,
            to_query=_proforma,
        )
    )

    ToolRegistry.register(
        ToolDefinition(
            name="get_prices_only",
            description="Get prices for electrical items without generating quotation PDF",
            input_schema=price_only_schema,
            kind=ToolKind.ACTION,
            to_query=_prices_only,
        )
    )

    ToolRegistry.register(
        ToolDefinition(
            name="find_price_list",
            description="Find and return PDF pricelists for specific brands and categories",
            input_schema=_object_schema(
                {
                    "brand": {
                        "type": "string",
                        "default": "kei",
                        "description": "Brand name (kei or polycab)",
                    },
                    "keywords": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Keywords to match pricelists (e.g., ['latest armoured', 'current cable'])",
                    },
                },
                ["keywords"],
            ),
            kind=ToolKind.ACTION,
            to_query=_find_price_list,
        )
    )

    ToolRegistry.register(
        ToolDefinition(
            name="list_available_pricelists",
            description=(
                "List all available PDF pricelists with their keywords and metadata. "
                "Use this before find_price_list to see what's available."
            ),
            input_schema=_object_schema(
                {
                    "brand": {
                        "type": "string",
                        "description": "Optional brand filter (kei, polycab). If not specified, shows all brands.",
                    }
                },
                [],
            ),
            kind=ToolKind.INFORMATION,
            to_query=_list_pricelists,
            executor=execute_list_available_pricelists,
        )
    )

    ToolRegistry._initialized = True
    logger.info(f"Tool registry ready: {len(ToolRegistry._tools)} tools")
