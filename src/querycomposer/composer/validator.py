"""Lint pass for visibility queries.

The receiving service stays the authority on what a query means; this
validator only catches mistakes that are visible from the text itself, such
as unbalanced quotes, misspelled field names or placeholders that will not
resolve.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from rapidfuzz import fuzz, process

from querycomposer.shared.validation import BaseValidator, ValidationIssue, ValidationSeverity

from .catalog import DEFAULT_CATALOG, Catalog
from .context import COMPARISON_TOKENS, CONNECTOR_TOKENS, tokenize
from .placeholders import find_malformed_placeholders
from .templates import template_slots

logger = logging.getLogger(__name__)

_QUOTED_LITERAL_PATTERN = re.compile(r"'[^']*'")
_OPERATOR_TOKEN_PATTERN = re.compile(r'^[=<>!]+$')
_OPERATOR_CORRECTIONS = {
    "==": "=",
    "=>": ">=",
    "=<": "<=",
    "<>": "!=",
    "!": "!=",
    "=!": "!=",
}


def _strip_literals(query: str) -> str:
    """Replace quoted literals with empty ones so their contents are not linted."""
    return _QUOTED_LITERAL_PATTERN.sub("''", query)


class VisibilityQueryValidator(BaseValidator):
    """Validate visibility queries against the static catalog."""

    def __init__(self, catalog: Catalog = DEFAULT_CATALOG, fuzzy_cutoff: float = 70.0) -> None:
        self.catalog = catalog
        self.fuzzy_cutoff = fuzzy_cutoff

    def get_language_name(self) -> str:
        return "visibility"

    def validate_syntax(self, query: str) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []

        if not query.strip():
            issues.append(ValidationIssue(
                severity=ValidationSeverity.INFO,
                category="syntax",
                message="Empty query matches every execution",
            ))
            return issues

        if query.count("'") % 2:
            last_quote = query.rfind("'")
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                category="syntax",
                message="Unbalanced single quote",
                location=f"offset {last_quote}",
                suggestion="Close the quoted value with '",
            ))

        depth = 0
        for offset, ch in enumerate(_strip_literals(query)):
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth < 0:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        category="syntax",
                        message="Closing parenthesis without a matching opening one",
                        location=f"offset {offset}",
                    ))
                    depth = 0
        if depth > 0:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                category="syntax",
                message=f"{depth} unclosed parenthesis group(s)",
                suggestion="Add the missing ')'",
            ))

        words = tokenize(_strip_literals(query))
        if words:
            last = words[-1].upper()
            dangling_order = last == "BY" and len(words) >= 2 and words[-2].upper() == "ORDER"
            if last in CONNECTOR_TOKENS or dangling_order:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    category="syntax",
                    message=f"Query ends with '{'ORDER BY' if dangling_order else last}'",
                    location=f"word[{len(words) - 1}]",
                    suggestion="Add a condition after the logical operator or remove it",
                ))

        return issues

    def validate_schema(self, query: str) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        words = tokenize(_strip_literals(query))

        for index, word in enumerate(words[:-1]):
            if not self._is_comparison(words[index + 1]):
                continue
            if word.startswith("'") or self._is_comparison(word) or word.upper() in CONNECTOR_TOKENS:
                continue
            if self.catalog.find_field(word) is not None:
                continue

            closest = self._closest_field(word)
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                category="schema",
                message=f"Unknown field '{word}'",
                location=f"word[{index}]",
                suggestion=f"Did you mean '{closest}'?" if closest else None,
            ))

        return issues

    def validate_operators(self, query: str) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for index, word in enumerate(tokenize(_strip_literals(query))):
            if not _OPERATOR_TOKEN_PATTERN.match(word) or word in COMPARISON_TOKENS:
                continue
            replacement = _OPERATOR_CORRECTIONS.get(word)
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                category="operators",
                message=f"Unknown comparison operator '{word}'",
                location=f"word[{index}]",
                suggestion=f"Use '{replacement}'" if replacement else None,
            ))
        return issues

    def validate_placeholders(self, query: str) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []

        for fragment in find_malformed_placeholders(query):
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                category="placeholders",
                message=f"Placeholder '{fragment}' will be passed through unresolved",
                suggestion="Use ${TIME:<n><unit>} with unit m, h, d or w",
            ))

        for slot in template_slots(query):
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                category="placeholders",
                message=f"Template slot '${{{slot}}}' has not been filled",
            ))

        return issues

    @staticmethod
    def _is_comparison(word: str) -> bool:
        return word.upper() in COMPARISON_TOKENS or bool(_OPERATOR_TOKEN_PATTERN.match(word))

    def _closest_field(self, word: str) -> Optional[str]:
        match = process.extractOne(
            word,
            self.catalog.field_names,
            scorer=fuzz.WRatio,
            processor=str.lower,
            score_cutoff=self.fuzzy_cutoff,
        )
        if match is None:
            return None
        logger.debug("Closest field to %r is %r (score=%.1f)", word, match[0], match[1])
        return match[0]
