"""MCP tool definitions and schemas advertised through tools/list."""

from typing import Any

from . import config
from .models.mcp import ToolDefinition

_DRUG_NAME = {
    "type": "string",
    "description": "Generic or brand medication name (e.g. 'amoxicillin', 'Tylenol')",
}

_LIMIT = {
    "type": "integer",
    "description": f"Maximum number of results ({config.MIN_LIMIT}-{config.MAX_LIMIT})",
    "minimum": config.MIN_LIMIT,
    "maximum": config.MAX_LIMIT,
}

_IDENTIFIER_TYPE = {
    "type": "string",
    "description": "Field to search first; generic_name, brand_name and proprietary_name are also accepted",
    "enum": ["openfda.generic_name", "openfda.brand_name"],
    "default": "openfda.generic_name",
}

# Tool definitions with their input schemas
MCP_TOOLS_CONFIG: list[dict[str, Any]] = [
    {
        "name": "search_drug_shortages",
        "description": "Search current and resolved drug shortages in the FDA Drug Shortages Database, ranked by relevance",
        "inputSchema": {
            "type": "object",
            "properties": {
                "drug_name": _DRUG_NAME,
                "limit": {**_LIMIT, "default": config.DEFAULT_LIMIT},
            },
            "required": ["drug_name"],
        },
    },
    {
        "name": "search_adverse_events",
        "description": "Search FAERS adverse event reports for a medication, with reaction frequency summary",
        "inputSchema": {
            "type": "object",
            "properties": {
                "drug_name": _DRUG_NAME,
                "limit": {**_LIMIT, "default": config.DEFAULT_ADVERSE_EVENT_LIMIT},
            },
            "required": ["drug_name"],
        },
    },
    {
        "name": "search_serious_adverse_events",
        "description": "Search FAERS reports flagged as serious (death, hospitalization, life-threatening, disability)",
        "inputSchema": {
            "type": "object",
            "properties": {
                "drug_name": _DRUG_NAME,
                "limit": {**_LIMIT, "default": config.DEFAULT_ADVERSE_EVENT_LIMIT},
            },
            "required": ["drug_name"],
        },
    },
    {
        "name": "search_drug_recalls",
        "description": "Search FDA drug enforcement reports (recalls) with classification breakdown",
        "inputSchema": {
            "type": "object",
            "properties": {
                "drug_name": _DRUG_NAME,
                "limit": {**_LIMIT, "default": config.DEFAULT_LIMIT},
            },
            "required": ["drug_name"],
        },
    },
    {
        "name": "get_drug_label_info",
        "description": "Get FDA prescribing label information: indications, dosage, warnings, interactions",
        "inputSchema": {
            "type": "object",
            "properties": {
                "drug_identifier": {
                    "type": "string",
                    "description": "Medication name to look up",
                },
                "identifier_type": _IDENTIFIER_TYPE,
            },
            "required": ["drug_identifier"],
        },
    },
    {
        "name": "get_medication_profile",
        "description": "Combined label and shortage profile for a medication",
        "inputSchema": {
            "type": "object",
            "properties": {
                "drug_identifier": {
                    "type": "string",
                    "description": "Medication name to profile",
                },
                "identifier_type": _IDENTIFIER_TYPE,
            },
            "required": ["drug_identifier"],
        },
    },
    {
        "name": "analyze_drug_shortage_trends",
        "description": "Analyze shortage history for a medication: monthly timeline and trend direction",
        "inputSchema": {
            "type": "object",
            "properties": {
                "drug_name": _DRUG_NAME,
                "months_back": {
                    "type": "integer",
                    "description": f"Months of history to analyze (1-{config.MAX_MONTHS_BACK})",
                    "minimum": 1,
                    "maximum": config.MAX_MONTHS_BACK,
                    "default": config.DEFAULT_MONTHS_BACK,
                },
            },
            "required": ["drug_name"],
        },
    },
    {
        "name": "batch_drug_analysis",
        "description": "Analyze multiple drugs for shortages, recalls, and risk assessment",
        "inputSchema": {
            "type": "object",
            "properties": {
                "drug_list": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": f"Medication names (1-{config.MAX_BATCH_SIZE})",
                    "minItems": 1,
                    "maxItems": config.MAX_BATCH_SIZE,
                },
                "include_trends": {
                    "type": "boolean",
                    "description": "Also analyze 6-month shortage trends for each drug",
                    "default": False,
                },
            },
            "required": ["drug_list"],
        },
    },
]

TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = tuple(
    ToolDefinition.model_validate(tool) for tool in MCP_TOOLS_CONFIG
)
TOOL_NAMES = frozenset(tool.name for tool in TOOL_DEFINITIONS)


def list_tools() -> list[dict[str, Any]]:
    """Wire-format tool list for tools/list and GET /tools."""
    return [tool.to_wire() for tool in TOOL_DEFINITIONS]
