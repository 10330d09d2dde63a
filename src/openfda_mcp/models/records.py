"""
Upstream record models for openFDA responses.

openFDA documents are loosely typed: almost every field is optional and
nested objects may be missing entirely. These models validate records at the
ingestion boundary, keep unknown fields (``extra="allow"``) so the raw data
survives round trips, and normalize the handful of fields the query layer
reads.
"""

from __future__ import annotations

from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = structlog.get_logger(__name__)

record_config = ConfigDict(extra="allow", populate_by_name=True)

RecordT = TypeVar("RecordT", bound=BaseModel)


def _as_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return [str(value)]


def _as_optional_string(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return str(value[0]) if value else None
    return str(value)


class OpenFDAFields(BaseModel):
    """The harmonized ``openfda`` block shared by most drug endpoints."""

    generic_name: list[str] = Field(default_factory=list)
    brand_name: list[str] = Field(default_factory=list)
    substance_name: list[str] = Field(default_factory=list)
    manufacturer_name: list[str] = Field(default_factory=list)
    product_type: list[str] = Field(default_factory=list)
    route: list[str] = Field(default_factory=list)

    model_config = record_config

    @field_validator(
        "generic_name",
        "brand_name",
        "substance_name",
        "manufacturer_name",
        "product_type",
        "route",
        mode="before",
    )
    @classmethod
    def coerce_list(cls, v: Any) -> list[str]:
        return _as_string_list(v)


class ShortageRecord(BaseModel):
    """A drug shortage record from ``/drug/shortages.json``."""

    generic_name: str | None = None
    proprietary_name: str | None = None
    status: str | None = None
    shortage_reason: str | None = None
    availability: str | None = None
    company_name: str | None = None
    presentation: str | None = None
    dosage_form: str | None = None
    initial_posting_date: str | None = None
    update_date: str | None = None
    discontinued_date: str | None = None
    therapeutic_category: list[str] = Field(default_factory=list)
    openfda: OpenFDAFields | None = None

    model_config = record_config

    @field_validator(
        "generic_name",
        "proprietary_name",
        "status",
        "shortage_reason",
        "availability",
        "company_name",
        "presentation",
        "dosage_form",
        "initial_posting_date",
        "update_date",
        "discontinued_date",
        mode="before",
    )
    @classmethod
    def coerce_string(cls, v: Any) -> str | None:
        return _as_optional_string(v)

    @field_validator("therapeutic_category", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> list[str]:
        return _as_string_list(v)


class RecallRecord(BaseModel):
    """A drug enforcement (recall) record from ``/drug/enforcement.json``."""

    recall_number: str | None = None
    classification: str | None = None
    status: str | None = None
    product_description: str | None = None
    reason_for_recall: str | None = None
    recalling_firm: str | None = None
    recall_initiation_date: str | None = None
    report_date: str | None = None
    distribution_pattern: str | None = None
    voluntary_mandated: str | None = None
    openfda: OpenFDAFields | None = None

    model_config = record_config

    @field_validator(
        "recall_number",
        "classification",
        "status",
        "product_description",
        "reason_for_recall",
        "recalling_firm",
        "recall_initiation_date",
        "report_date",
        "distribution_pattern",
        "voluntary_mandated",
        mode="before",
    )
    @classmethod
    def coerce_string(cls, v: Any) -> str | None:
        return _as_optional_string(v)


class LabelRecord(BaseModel):
    """A structured product label from ``/drug/label.json``.

    Label sections are lists of text blocks upstream; the handful read by the
    summarizer are declared, everything else is kept as an extra field.
    """

    id: str | None = None
    set_id: str | None = None
    effective_time: str | None = None
    boxed_warning: list[str] = Field(default_factory=list)
    indications_and_usage: list[str] = Field(default_factory=list)
    dosage_and_administration: list[str] = Field(default_factory=list)
    contraindications: list[str] = Field(default_factory=list)
    warnings_and_cautions: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    adverse_reactions: list[str] = Field(default_factory=list)
    drug_interactions: list[str] = Field(default_factory=list)
    openfda: OpenFDAFields | None = None

    model_config = record_config

    @field_validator(
        "boxed_warning",
        "indications_and_usage",
        "dosage_and_administration",
        "contraindications",
        "warnings_and_cautions",
        "warnings",
        "adverse_reactions",
        "drug_interactions",
        mode="before",
    )
    @classmethod
    def coerce_list(cls, v: Any) -> list[str]:
        return _as_string_list(v)


class Reaction(BaseModel):
    reactionmeddrapt: str | None = None
    reactionoutcome: str | None = None

    model_config = record_config


class PatientInfo(BaseModel):
    patientsex: str | None = None
    patientonsetage: str | None = None
    patientonsetageunit: str | None = None
    reaction: list[Reaction] = Field(default_factory=list)
    drug: list[dict[str, Any]] = Field(default_factory=list)

    model_config = record_config

    @field_validator("patientsex", "patientonsetage", "patientonsetageunit", mode="before")
    @classmethod
    def coerce_string(cls, v: Any) -> str | None:
        return _as_optional_string(v)

    @field_validator("reaction", "drug", mode="before")
    @classmethod
    def coerce_object_list(cls, v: Any) -> list[Any]:
        if v is None:
            return []
        if isinstance(v, dict):
            return [v]
        if not isinstance(v, (list, tuple)):
            return []
        return [item for item in v if isinstance(item, dict)]


class AdverseEventReport(BaseModel):
    """A FAERS safety report from ``/drug/event.json``."""

    safetyreportid: str | None = None
    receivedate: str | None = None
    serious: str | None = None
    seriousnessdeath: str | None = None
    seriousnesshospitalization: str | None = None
    seriousnesslifethreatening: str | None = None
    seriousnessdisabling: str | None = None
    seriousnesscongenitalanomali: str | None = None
    seriousnessother: str | None = None
    occurcountry: str | None = None
    patient: PatientInfo | None = None

    model_config = record_config

    @field_validator(
        "safetyreportid",
        "receivedate",
        "serious",
        "seriousnessdeath",
        "seriousnesshospitalization",
        "seriousnesslifethreatening",
        "seriousnessdisabling",
        "seriousnesscongenitalanomali",
        "seriousnessother",
        "occurcountry",
        mode="before",
    )
    @classmethod
    def coerce_string(cls, v: Any) -> str | None:
        return _as_optional_string(v)

    @property
    def is_serious(self) -> bool:
        return self.serious == "1"

    @property
    def reactions(self) -> list[str]:
        if self.patient is None:
            return []
        return [r.reactionmeddrapt for r in self.patient.reaction if r.reactionmeddrapt]


def parse_records(raw: Any, model: type[RecordT]) -> list[RecordT]:
    """Validate a raw ``results`` array, dropping entries that are not usable records."""
    if not isinstance(raw, list):
        return []

    records: list[RecordT] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.warning("record_dropped", model=model.__name__, index=index, reason="not an object")
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "record_dropped", model=model.__name__, index=index, errors=e.error_count()
            )
    return records


def dump_record(record: BaseModel) -> dict[str, Any]:
    """Serialize a record back to upstream-shaped JSON, omitting absent fields."""
    return record.model_dump(mode="json", exclude_none=True, exclude_defaults=True)
