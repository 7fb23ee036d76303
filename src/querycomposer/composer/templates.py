"""Canned queries with fill-in slots such as ``${type}``."""

from __future__ import annotations

import re
from typing import Iterable, List, Mapping

from querycomposer.shared.errors import NotFoundError, ValidationError

from .catalog import DEFAULT_QUERY_TEMPLATES, QueryTemplate

# ${name} slots; ${TIME:...} placeholders are resolved at execution instead
_SLOT_PATTERN = re.compile(r'\$\{(?!TIME:)([A-Za-z_][A-Za-z0-9_]*)\}')


def template_slots(query_text: str) -> List[str]:
    """Slot names in order of first appearance."""
    slots: List[str] = []
    for match in _SLOT_PATTERN.finditer(query_text):
        if match.group(1) not in slots:
            slots.append(match.group(1))
    return slots


def find_template(name: str, templates: Iterable[QueryTemplate] = DEFAULT_QUERY_TEMPLATES) -> QueryTemplate:
    for template in templates:
        if template.name.lower() == name.strip().lower():
            return template
    raise NotFoundError(f"Template {name!r} not found")


def fill_template(template: QueryTemplate, values: Mapping[str, str]) -> str:
    """Substitute every slot in ``template`` and return the query text.

    Time placeholders are left for execution-time resolution.

    Raises:
        ValidationError: When a slot has no value, or a value contains a
            single quote that would end the surrounding literal.
    """
    slots = template_slots(template.query_text)
    missing = [slot for slot in slots if not values.get(slot)]
    if missing:
        raise ValidationError(f"Template {template.name!r} needs values for: {', '.join(missing)}")
    quoted = [slot for slot in slots if "'" in str(values[slot])]
    if quoted:
        raise ValidationError(f"Values for {', '.join(quoted)} must not contain single quotes")
    return _SLOT_PATTERN.sub(lambda m: str(values[m.group(1)]), template.query_text)
