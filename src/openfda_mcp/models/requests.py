"""
Request models for the openfda-mcp tools.

Each tool validates its ``arguments`` through one of these models before any
outbound request is made. Validators accept the loose types MCP clients tend
to send (numbers as strings, comma-separated lists).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from openfda_mcp import config as app_config
from openfda_mcp.validation import (
    DEFAULT_IDENTIFIER_TYPE,
    coerce_to_bool_with_validation,
    coerce_to_int_with_bounds,
    normalize_identifier_type,
    validate_drug_list,
    validate_drug_name,
)

from .base import strict_config


class DrugNameRequest(BaseModel):
    """Shared ``drug_name`` handling; missing values get the same guidance as empty ones."""

    drug_name: str = Field(
        None,
        validate_default=True,
        description="Generic or brand medication name",
        examples=["aspirin", "insulin", "Tylenol"],
    )

    @field_validator("drug_name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return validate_drug_name(v, field_name="drug_name")

    model_config = strict_config


class SearchDrugShortagesRequest(DrugNameRequest):
    """
    Request for search_drug_shortages tool.

    Example:
        ```json
        {"drug_name": "amoxicillin", "limit": 10}
        ```
    """

    limit: int = Field(
        app_config.DEFAULT_LIMIT,
        description="Maximum number of shortage records to return",
    )

    @field_validator("limit", mode="before")
    @classmethod
    def coerce_limit(cls, v: Any) -> int:
        if v is None:
            return app_config.DEFAULT_LIMIT
        return coerce_to_int_with_bounds(
            v,
            field_name="limit",
            min_val=app_config.MIN_LIMIT,
            max_val=app_config.MAX_LIMIT,
            examples=[5, 10, 25],
        )


class SearchDrugRecallsRequest(SearchDrugShortagesRequest):
    """Request for search_drug_recalls tool."""


class SearchAdverseEventsRequest(DrugNameRequest):
    """
    Request for search_adverse_events and search_serious_adverse_events.

    Example:
        ```json
        {"drug_name": "warfarin", "limit": 5}
        ```
    """

    limit: int = Field(
        app_config.DEFAULT_ADVERSE_EVENT_LIMIT,
        description="Maximum number of FAERS reports to return",
    )

    @field_validator("limit", mode="before")
    @classmethod
    def coerce_limit(cls, v: Any) -> int:
        if v is None:
            return app_config.DEFAULT_ADVERSE_EVENT_LIMIT
        return coerce_to_int_with_bounds(
            v,
            field_name="limit",
            min_val=app_config.MIN_LIMIT,
            max_val=app_config.MAX_LIMIT,
            examples=[5, 10, 20],
        )


class AnalyzeShortageTrendsRequest(DrugNameRequest):
    """
    Request for analyze_drug_shortage_trends tool.

    Example:
        ```json
        {"drug_name": "cisplatin", "months_back": 24}
        ```
    """

    months_back: int = Field(
        app_config.DEFAULT_MONTHS_BACK,
        description="How many months of shortage history to analyze",
    )

    @field_validator("months_back", mode="before")
    @classmethod
    def coerce_months(cls, v: Any) -> int:
        if v is None:
            return app_config.DEFAULT_MONTHS_BACK
        return coerce_to_int_with_bounds(
            v,
            field_name="months_back",
            min_val=1,
            max_val=app_config.MAX_MONTHS_BACK,
            examples=[6, 12, 24],
        )


class DrugLabelRequest(BaseModel):
    """
    Request for get_drug_label_info and get_medication_profile.

    Example:
        ```json
        {"drug_identifier": "Lipitor", "identifier_type": "openfda.brand_name"}
        ```
    """

    drug_identifier: str = Field(
        None,
        validate_default=True,
        description="Medication name to look up",
        examples=["atorvastatin", "Lipitor"],
    )
    identifier_type: str = Field(
        DEFAULT_IDENTIFIER_TYPE,
        description="openFDA field to search first",
        examples=["openfda.generic_name", "openfda.brand_name"],
    )

    @field_validator("drug_identifier", mode="before")
    @classmethod
    def validate_identifier(cls, v: Any) -> str:
        return validate_drug_name(v, field_name="drug_identifier")

    @field_validator("identifier_type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> str:
        return normalize_identifier_type(v)

    model_config = strict_config


class BatchDrugAnalysisRequest(BaseModel):
    """
    Request for batch_drug_analysis tool.

    Example:
        ```json
        {"drug_list": ["aspirin", "ibuprofen"], "include_trends": true}
        ```
    """

    drug_list: list[str] = Field(
        None,
        validate_default=True,
        description=f"1 to {app_config.MAX_BATCH_SIZE} medication names",
    )
    include_trends: bool = Field(
        False, description="Also run shortage trend analysis for each drug"
    )

    @field_validator("drug_list", mode="before")
    @classmethod
    def validate_drugs(cls, v: Any) -> list[str]:
        return validate_drug_list(v, field_name="drug_list")

    @field_validator("include_trends", mode="before")
    @classmethod
    def coerce_include_trends(cls, v: Any) -> bool:
        return coerce_to_bool_with_validation(v, field_name="include_trends")

    model_config = strict_config
