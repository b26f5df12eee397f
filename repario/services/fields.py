# repario/services/fields.py
"""
Per-variant rules for layout field types.

Every `FieldType` gets exactly one entry in `FIELD_OPTION_RULES` (how a field
definition's options are stored) and one in `FORM_VALUE_VALIDATORS` (how its
form values are checked). The module refuses to import when a variant is
missing from either table, so adding a new type forces both decisions.
"""

import re
from typing import Any, Callable, Dict, Iterable, List, Optional

from repario.errors import ValidationFailed
from repario.models.layouts import FieldType, OptionIn

_NON_SLUG_RUN = re.compile(r"[^a-z0-9]+")


def slugify_option_value(label: str) -> str:
    """'Cash Payment' -> 'cash_payment'."""
    return _NON_SLUG_RUN.sub("_", (label or "").lower()).strip("_")


# ---- field definitions ----

def _no_options(options: List[OptionIn]) -> List[dict]:
    return []


def _choice_options(options: List[OptionIn]) -> List[dict]:
    rows = []
    seen = set()
    for index, option in enumerate(options):
        label = option.label.strip()
        value = (option.value or "").strip() or slugify_option_value(label)
        if not value:
            # label without any ascii letter or digit
            value = f"option_{index + 1}"
        if value in seen:
            raise ValidationFailed(f"Duplicate option value '{value}'")
        seen.add(value)
        rows.append(
            {
                "label": label,
                "value": value,
                "sort_order": option.sort_order if option.sort_order is not None else index,
            }
        )
    return rows


FIELD_OPTION_RULES: Dict[FieldType, Callable[[List[OptionIn]], List[dict]]] = {
    FieldType.input: _no_options,
    FieldType.description: _no_options,
    FieldType.dropdown: _choice_options,
    FieldType.checkboxes: _choice_options,
}

OPTION_FIELD_TYPES = frozenset(
    field_type for field_type, rule in FIELD_OPTION_RULES.items() if rule is _choice_options
)


def has_options(field_type: FieldType) -> bool:
    return FieldType(field_type) in OPTION_FIELD_TYPES


def normalize_options(field_type: FieldType, options: Optional[Iterable[OptionIn]]) -> List[dict]:
    """Rows to store for a field's options; empty for types without options."""
    return FIELD_OPTION_RULES[FieldType(field_type)](list(options or []))


# ---- form_data values ----

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list):
        return len(value) == 0
    return False


def _check_text(field, value: Any) -> None:
    if not isinstance(value, str):
        raise ValidationFailed(f"Field '{field.label}' expects a text value")


def _check_dropdown(field, value: Any) -> None:
    if not isinstance(value, str):
        raise ValidationFailed(f"Field '{field.label}' expects a single option value")
    allowed = {option.value for option in field.options}
    if value and value not in allowed:
        raise ValidationFailed(f"'{value}' is not an option of field '{field.label}'")


def _check_checkboxes(field, value: Any) -> None:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationFailed(f"Field '{field.label}' expects a list of option values")
    allowed = {option.value for option in field.options}
    unknown = [v for v in value if v not in allowed]
    if unknown:
        raise ValidationFailed(
            f"{', '.join(unknown)} not an option of field '{field.label}'"
        )


FORM_VALUE_VALIDATORS: Dict[FieldType, Callable[[Any, Any], None]] = {
    FieldType.input: _check_text,
    FieldType.description: _check_text,
    FieldType.dropdown: _check_dropdown,
    FieldType.checkboxes: _check_checkboxes,
}

for _table in (FIELD_OPTION_RULES, FORM_VALUE_VALIDATORS):
    _missing = set(FieldType) - set(_table)
    if _missing:
        raise RuntimeError(f"field types without a rule: {sorted(t.value for t in _missing)}")


def form_data_key(section_id: str, field_id: str) -> str:
    return f"{section_id}_{field_id}"


def validate_form_data(layout, form_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Check `form_data` against a layout tree (or its absence) at write time.

    Keys are "{sectionId}_{fieldId}"; unknown keys, values of the wrong shape
    and empty required fields are rejected.
    """
    form_data = form_data or {}
    if layout is None:
        if form_data:
            raise ValidationFailed("formData requires a layout")
        return {}

    fields_by_key = {
        form_data_key(section.id, field.id): field
        for section in layout.sections
        for field in section.fields
    }

    unknown = sorted(set(form_data) - set(fields_by_key))
    if unknown:
        raise ValidationFailed(f"Unknown form fields: {', '.join(unknown)}")

    for key, field in fields_by_key.items():
        value = form_data.get(key)
        if _is_blank(value):
            if field.required:
                raise ValidationFailed(f"Field '{field.label}' is required")
            continue
        FORM_VALUE_VALIDATORS[field.type](field, value)

    return dict(form_data)
