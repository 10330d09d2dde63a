"""
Reusable validation utilities for openfda-mcp tool arguments.

Every helper raises ``ToolValidationError`` (a ``ValueError`` subclass, so it
is also accepted inside pydantic validators) carrying the offending field,
valid examples and a short piece of guidance for the caller.
"""

import logging
import re
from typing import Any

from pydantic import ValidationError

from . import config
from .errors import ToolValidationError

logger = logging.getLogger(__name__)

# Error message templates
ERROR_TEMPLATES = {
    "range": "{field} must be between {min} and {max} (inclusive). Got: {value}. Examples: {examples}",
    "type": "{field} must be {expected_type}. Got: {actual_type} '{value}'. Examples: {examples}",
    "enum": "{field} must be one of {valid_values}. Got: '{value}'",
    "required": "{field} is required and cannot be None or empty. Examples: {examples}",
    "length": "{field} must be {constraint}. Got {actual}. Examples: {examples}",
    "characters": "{field} cannot contain {chars}. Got: '{value}'. Examples: {examples}",
    "custom": "{message}",
}

DRUG_NAME_EXAMPLES = ["aspirin", "insulin", "amoxicillin"]
DRUG_LIST_EXAMPLES = [["aspirin", "ibuprofen"], ["insulin", "metformin", "lisinopril"]]

IDENTIFIER_TYPES = {
    "openfda.generic_name": "openfda.generic_name",
    "openfda.brand_name": "openfda.brand_name",
    "generic_name": "openfda.generic_name",
    "brand_name": "openfda.brand_name",
    "proprietary_name": "openfda.brand_name",
}
DEFAULT_IDENTIFIER_TYPE = "openfda.generic_name"

_WHITESPACE = re.compile(r"\s+")
# Characters that would break the quoted or unquoted openFDA search templates
FORBIDDEN_NAME_CHARS = frozenset('"\\:')


def format_error_message(template_key: str, **context) -> str:
    """
    Format error message with context using the templates above.

    Args:
        template_key: Key to select template from ERROR_TEMPLATES
        **context: Template variables for string formatting

    Returns:
        Formatted error message with user-friendly context
    """
    template = ERROR_TEMPLATES.get(template_key, ERROR_TEMPLATES["custom"])
    if template_key == "custom" and "message" not in context:
        context["message"] = "Validation failed"
    return template.format(**context)


def format_examples(examples: list[Any], max_examples: int = 3) -> str:
    """Format examples for error messages."""
    if not examples:
        return "No examples available"
    return ", ".join(
        f"'{e}'" if isinstance(e, str) else str(e) for e in examples[:max_examples]
    )


def normalize_drug_name(value: str) -> str:
    """Collapse internal whitespace; case is preserved for display."""
    return _WHITESPACE.sub(" ", value).strip()


def validate_drug_name(value: Any, field_name: str = "drug_name") -> str:
    """
    Validate a medication name argument.

    Args:
        value: Raw argument value
        field_name: Name of the field for error messages

    Returns:
        The whitespace-normalized drug name

    Raises:
        ToolValidationError: If the name is missing, empty, too long or holds
            characters that break openFDA search syntax
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ToolValidationError(
            format_error_message(
                "required",
                field=field_name,
                examples=format_examples(DRUG_NAME_EXAMPLES),
            ),
            field=field_name,
            examples=DRUG_NAME_EXAMPLES,
            guidance="Provide a generic or brand medication name as a string",
        )

    if not isinstance(value, str):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        else:
            raise ToolValidationError(
                format_error_message(
                    "type",
                    field=field_name,
                    expected_type="a string",
                    actual_type=type(value).__name__,
                    value=repr(value)[:100],
                    examples=format_examples(DRUG_NAME_EXAMPLES),
                ),
                field=field_name,
                examples=DRUG_NAME_EXAMPLES,
                guidance="Pass the medication name as a plain string",
            )

    value = normalize_drug_name(value)
    if len(value) > config.MAX_DRUG_NAME_LENGTH:
        raise ToolValidationError(
            format_error_message(
                "length",
                field=field_name,
                constraint=f"{config.MAX_DRUG_NAME_LENGTH} characters or less",
                actual=f"{len(value)} characters",
                examples=format_examples(DRUG_NAME_EXAMPLES),
            ),
            field=field_name,
            examples=DRUG_NAME_EXAMPLES,
            guidance="Use the medication name only, without dosage instructions",
        )

    bad_chars = sorted(FORBIDDEN_NAME_CHARS.intersection(value))
    if bad_chars:
        raise ToolValidationError(
            format_error_message(
                "characters",
                field=field_name,
                chars=" ".join(bad_chars),
                value=value[:100],
                examples=format_examples(DRUG_NAME_EXAMPLES),
            ),
            field=field_name,
            examples=DRUG_NAME_EXAMPLES,
            guidance="Remove quotes, colons and backslashes; pass the plain medication name",
        )

    return value


def coerce_to_int_with_bounds(
    value: Any,
    field_name: str,
    min_val: int,
    max_val: int,
    examples: list[int] | None = None,
) -> int:
    """
    Integer coercion with bounds checking.

    MCP clients frequently send numbers as strings, so numeric strings are
    accepted. Booleans are rejected.

    Raises:
        ToolValidationError: If the value cannot be converted or is out of bounds
    """
    if not examples:
        examples = [min_val, (min_val + max_val) // 2, max_val]
    guidance = f"Use a whole number from {min_val} to {max_val}"

    if value is None or (isinstance(value, str) and value.strip().lower() in ("", "null", "none", "undefined", "nan")):
        raise ToolValidationError(
            format_error_message(
                "required", field=field_name, examples=format_examples(examples)
            ),
            field=field_name,
            examples=examples,
            guidance=guidance,
        )

    original = value
    if isinstance(value, bool):
        converted = None
    elif isinstance(value, int):
        converted = value
    elif isinstance(value, float) and value.is_integer():
        converted = int(value)
    elif isinstance(value, str):
        try:
            converted = int(value.strip())
        except ValueError:
            converted = None
    else:
        converted = None

    if converted is None:
        raise ToolValidationError(
            format_error_message(
                "type",
                field=field_name,
                expected_type="an integer",
                actual_type=type(original).__name__,
                value=str(original)[:100],
                examples=format_examples(examples),
            ),
            field=field_name,
            examples=examples,
            guidance=guidance,
        )

    if converted < min_val or converted > max_val:
        raise ToolValidationError(
            format_error_message(
                "range",
                field=field_name,
                min=min_val,
                max=max_val,
                value=converted,
                examples=format_examples(examples),
            ),
            field=field_name,
            examples=examples,
            guidance=guidance,
        )

    return converted


def coerce_to_bool_with_validation(value: Any, field_name: str = "value") -> bool:
    """
    Coerce value to boolean with MCP client compatibility.

    Examples:
        >>> coerce_to_bool_with_validation("true")
        True
        >>> coerce_to_bool_with_validation("0")
        False
        >>> coerce_to_bool_with_validation(None)
        False
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)

    if isinstance(value, str):
        value = value.strip().lower()
        bool_map = {
            "": False,
            "true": True,
            "false": False,
            "1": True,
            "0": False,
            "yes": True,
            "no": False,
            "on": True,
            "off": False,
        }
        if value in bool_map:
            return bool_map[value]

    raise ToolValidationError(
        format_error_message(
            "type",
            field=field_name,
            expected_type="a boolean",
            actual_type=type(value).__name__,
            value=str(value)[:100],
            examples=format_examples([True, False]),
        ),
        field=field_name,
        examples=[True, False],
        guidance="Use true or false",
    )


def validate_drug_list(value: Any, field_name: str = "drug_list") -> list[str]:
    """
    Validate the batch analysis drug list.

    Accepts a list of names or a single comma-separated string. Duplicates
    (case-insensitive) are removed while preserving order.

    Raises:
        ToolValidationError: If the list is empty, too long or holds bad names
    """
    guidance = (
        f"Provide between 1 and {config.MAX_BATCH_SIZE} medication names; "
        "split larger lists into several batch_drug_analysis calls"
    )

    if isinstance(value, str):
        value = [part for part in value.split(",") if part.strip()]

    if value is None or not isinstance(value, (list, tuple)) or not value:
        raise ToolValidationError(
            format_error_message(
                "required",
                field=field_name,
                examples=format_examples(DRUG_LIST_EXAMPLES),
            ),
            field=field_name,
            examples=DRUG_LIST_EXAMPLES,
            guidance=guidance,
        )

    if len(value) > config.MAX_BATCH_SIZE:
        raise ToolValidationError(
            format_error_message(
                "length",
                field=field_name,
                constraint=f"a list of at most {config.MAX_BATCH_SIZE} drugs",
                actual=f"{len(value)} drugs",
                examples=format_examples(DRUG_LIST_EXAMPLES),
            ),
            field=field_name,
            examples=DRUG_LIST_EXAMPLES,
            guidance=guidance,
        )

    drugs: list[str] = []
    seen: set[str] = set()
    for index, item in enumerate(value):
        name = validate_drug_name(item, field_name=f"{field_name}[{index}]")
        key = name.lower()
        if key not in seen:
            seen.add(key)
            drugs.append(name)
    return drugs


def normalize_identifier_type(value: Any, field_name: str = "identifier_type") -> str:
    """
    Map an identifier type to the openFDA field used for label lookups.

    ``generic_name``, ``brand_name`` and ``proprietary_name`` are accepted as
    shorthands; missing or unrecognized values fall back to
    ``openfda.generic_name`` with a warning.
    """
    if value is None:
        return DEFAULT_IDENTIFIER_TYPE
    normalized = str(value).strip().lower()
    if not normalized:
        return DEFAULT_IDENTIFIER_TYPE
    if normalized not in IDENTIFIER_TYPES:
        logger.warning(
            f"Unknown {field_name} '{value}', falling back to {DEFAULT_IDENTIFIER_TYPE}"
        )
        return DEFAULT_IDENTIFIER_TYPE
    return IDENTIFIER_TYPES[normalized]


def validation_error_from_pydantic(exc: ValidationError) -> ToolValidationError:
    """
    Convert a pydantic ValidationError raised by a request model.

    When the first failing validator raised a ``ToolValidationError`` it is
    returned as-is; otherwise one is built from pydantic's error details.
    """
    errors = exc.errors()
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in errors
    ]

    first = errors[0] if errors else {}
    original = (first.get("ctx") or {}).get("error")
    if isinstance(original, ToolValidationError):
        if not original.details and len(details) > 1:
            original.details = details
        return original

    field = details[0]["field"] if details else None
    if first.get("type") == "extra_forbidden":
        message = f"Unexpected argument '{field}'"
        guidance = "Remove arguments that are not part of the tool's input schema"
    elif first.get("type") == "missing":
        message = f"{field} is required"
        guidance = f"Provide a value for '{field}'"
    else:
        message = f"Invalid value for {field}: {first.get('msg', 'validation failed')}"
        guidance = "Check the tool's input schema with tools/list"

    return ToolValidationError(
        message, field=field or None, guidance=guidance, details=details
    )
