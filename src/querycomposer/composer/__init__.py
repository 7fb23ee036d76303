"""
Visibility query composer.

This module provides context-aware completion, relative time placeholders,
date range selection, query validation and saved filters for the visibility
query language.
"""

from .catalog import DEFAULT_CATALOG, Catalog, CompletionCategory, Suggestion
from .context import QueryContext, Slot, classify
from .date_range import DateRangeSelector, TimeField, combine_with_query
from .duration import Duration, DurationUnit, format_duration_shorthand, parse_duration
from .filter_store import FilterStore, InMemoryFilterStore, JsonFilterStore
from .history import QueryHistory
from .placeholders import encode_placeholder, resolve_placeholders, resolve_query, resolve_time_macros
from .saved_filters import SavedFilter, SavedFilterCollection
from .suggestions import AutocompleteSession, SuggestionProvider, accept, suggest
from .templates import fill_template, find_template, template_slots
from .validator import VisibilityQueryValidator

__all__ = [
    'DEFAULT_CATALOG', 'Catalog', 'CompletionCategory', 'Suggestion',
    'QueryContext', 'Slot', 'classify',
    'DateRangeSelector', 'TimeField', 'combine_with_query',
    'Duration', 'DurationUnit', 'format_duration_shorthand', 'parse_duration',
    'FilterStore', 'InMemoryFilterStore', 'JsonFilterStore',
    'QueryHistory',
    'encode_placeholder', 'resolve_placeholders', 'resolve_query', 'resolve_time_macros',
    'SavedFilter', 'SavedFilterCollection',
    'AutocompleteSession', 'SuggestionProvider', 'accept', 'suggest',
    'fill_template', 'find_template', 'template_slots',
    'VisibilityQueryValidator',
]
