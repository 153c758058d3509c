"""Validation of observation values against their template.

Dispatch is a table keyed on :class:`ObservationDataType`. The module-level
check below makes adding a data type without a handler fail at import time
instead of letting values through unchecked.
"""
from __future__ import annotations

import math
import numbers
from typing import Any, Callable, Dict

from src.vetcore.domain.models.observation_template import ObservationDataType, ObservationTemplate
from src.vetcore.errors import ConfigurationError, ValidationError

FIELD = "value"


def _fail(reason: str) -> None:
    raise ValidationError(reason, field=FIELD)


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def _check_number(value: Any, template: ObservationTemplate, label: str) -> None:
    # bool is a numbers.Real subclass; True must not pass as 1.
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        _fail(f"{label} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        _fail(f"{label} must be a finite number")

    if template.min_value is not None and value < template.min_value:
        _fail(f"{label} must be at least {_format_bound(template.min_value)}")
    if template.max_value is not None and value > template.max_value:
        _fail(f"{label} must be at most {_format_bound(template.max_value)}")


def _validate_numeric(value: Any, template: ObservationTemplate) -> None:
    _check_number(value, template, "Value")


def _validate_scale(value: Any, template: ObservationTemplate) -> None:
    _check_number(value, template, "Scale value")


def _validate_boolean(value: Any, template: ObservationTemplate) -> None:
    if not isinstance(value, bool):
        _fail("Value must be true or false")


def _validate_enumeration(value: Any, template: ObservationTemplate) -> None:
    options = template.options
    if not options:
        raise ConfigurationError(
            "Enumeration template has no options",
            details={"template_id": str(template.id)},
        )
    if not isinstance(value, str) or value not in options:
        _fail(f"Value must be one of [{', '.join(options)}]")


def _validate_text(value: Any, template: ObservationTemplate) -> None:
    if not isinstance(value, str):
        _fail("Value must be text")


def _validate_image(value: Any, template: ObservationTemplate) -> None:
    if not isinstance(value, str) or not value:
        _fail("Image reference must be a non-empty string")


def _validate_note(value: Any, template: ObservationTemplate) -> None:
    # Note content lives in the record's notes field.
    return None


_VALIDATORS: Dict[ObservationDataType, Callable[[Any, ObservationTemplate], None]] = {
    ObservationDataType.NUMERIC: _validate_numeric,
    ObservationDataType.BOOLEAN: _validate_boolean,
    ObservationDataType.SCALE: _validate_scale,
    ObservationDataType.ENUMERATION: _validate_enumeration,
    ObservationDataType.TEXT: _validate_text,
    ObservationDataType.IMAGE: _validate_image,
    ObservationDataType.NOTE: _validate_note,
}

_missing = set(ObservationDataType) - set(_VALIDATORS)
if _missing:
    raise RuntimeError(f"No observation validator for data types: {sorted(t.value for t in _missing)}")


def validate(value: Any, template: ObservationTemplate) -> None:
    """Raise ValidationError if ``value`` does not satisfy ``template``.

    A template whose data type is outside the known set is a corrupted
    record and raises ConfigurationError instead.
    """

    try:
        data_type = ObservationDataType(template.data_type)
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown observation data type {template.data_type!r}",
            details={"template_id": str(template.id)},
        ) from exc

    _VALIDATORS[data_type](value, template)
