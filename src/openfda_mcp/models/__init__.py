"""
Models package for openfda-mcp.

Re-exports request, envelope and upstream record models so callers can use
``from openfda_mcp.models import ModelName``.
"""

from .base import ErrorResponse, strict_config
from .mcp import RPCError, RPCRequest, RPCResponse, ToolDefinition
from .records import (
    AdverseEventReport,
    LabelRecord,
    OpenFDAFields,
    PatientInfo,
    Reaction,
    RecallRecord,
    ShortageRecord,
    dump_record,
    parse_records,
)
from .requests import (
    AnalyzeShortageTrendsRequest,
    BatchDrugAnalysisRequest,
    DrugLabelRequest,
    SearchAdverseEventsRequest,
    SearchDrugRecallsRequest,
    SearchDrugShortagesRequest,
)

__all__ = [
    "AdverseEventReport",
    "AnalyzeShortageTrendsRequest",
    "BatchDrugAnalysisRequest",
    "DrugLabelRequest",
    "ErrorResponse",
    "LabelRecord",
    "OpenFDAFields",
    "PatientInfo",
    "RPCError",
    "RPCRequest",
    "RPCResponse",
    "Reaction",
    "RecallRecord",
    "SearchAdverseEventsRequest",
    "SearchDrugRecallsRequest",
    "SearchDrugShortagesRequest",
    "ShortageRecord",
    "ToolDefinition",
    "dump_record",
    "parse_records",
    "strict_config",
]
