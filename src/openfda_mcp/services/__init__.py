"""Service layer for openfda-mcp."""

from .drug_service import DrugInformationService

__all__ = ["DrugInformationService"]
