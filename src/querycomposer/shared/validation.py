"""
Shared validation framework for composed queries.

Validators lint a query string before it is executed or saved. They never
modify the query: findings are reported as issues grouped by category, and
only ERROR issues make a query invalid.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import re


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""

    ERROR = "error"      # Query will be rejected by the receiving service
    WARNING = "warning"  # Query runs but probably not as intended
    INFO = "info"        # Informational suggestion for improvement


@dataclass
class ValidationIssue:
    """Represents a single validation issue found in a query."""

    severity: ValidationSeverity
    category: str  # "syntax", "schema", "operators", "placeholders"
    message: str
    location: Optional[str] = None  # e.g., "word[3]", "offset 17"
    suggestion: Optional[str] = None  # Actionable recommendation

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
            "location": self.location,
            "suggestion": self.suggestion
        }


@dataclass
class ValidationResult:
    """Results from validating a query."""

    valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    info: List[ValidationIssue] = field(default_factory=list)

    def add_issue(self, issue: ValidationIssue) -> None:
        """Add an issue to the appropriate list based on severity."""
        if issue.severity == ValidationSeverity.ERROR:
            self.errors.append(issue)
            self.valid = False
        elif issue.severity == ValidationSeverity.WARNING:
            self.warnings.append(issue)
        else:
            self.info.append(issue)

    def add_issues(self, issues: List[ValidationIssue]) -> None:
        """Add multiple issues."""
        for issue in issues:
            self.add_issue(issue)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "info": [i.to_dict() for i in self.info],
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "info_count": len(self.info)
        }


class BaseValidator(ABC):
    """
    Abstract base class for query validators.

    Subclasses implement one method per category; ``validate`` runs them in
    order and aggregates the findings.
    """

    def validate(self, query: str) -> Dict[str, Any]:
        """
        Run all validation checks and return comprehensive results.

        Args:
            query: The query string to validate

        Returns:
            Dictionary with validation results containing:
                - valid: Overall validation status
                - query: The validated query
                - validation_results: Detailed results by category
                - metadata: Language name and complexity score
        """
        checks: Dict[str, Callable[[str], List[ValidationIssue]]] = {
            "syntax": self.validate_syntax,
            "schema": self.validate_schema,
            "operators": self.validate_operators,
            "placeholders": self.validate_placeholders,
        }

        validation_results: Dict[str, ValidationResult] = {}
        for category, check in checks.items():
            result_obj = ValidationResult(valid=True)
            result_obj.add_issues(check(query))
            validation_results[category] = result_obj

        # Only ERRORs make the query invalid
        overall_valid = all(result.valid for result in validation_results.values())

        return {
            "valid": overall_valid,
            "query": query,
            "validation_results": {
                category: result_obj.to_dict()
                for category, result_obj in validation_results.items()
            },
            "metadata": {
                "language": self.get_language_name(),
                "complexity_score": self._calculate_complexity(query),
            },
        }

    @abstractmethod
    def validate_syntax(self, query: str) -> List[ValidationIssue]:
        """Validate query structure (quotes, parentheses, dangling connectors)."""

    @abstractmethod
    def validate_schema(self, query: str) -> List[ValidationIssue]:
        """Validate field names against the static catalog."""

    @abstractmethod
    def validate_operators(self, query: str) -> List[ValidationIssue]:
        """Validate comparison operator tokens."""

    @abstractmethod
    def validate_placeholders(self, query: str) -> List[ValidationIssue]:
        """Report placeholder text that will not be resolved at execution time."""

    @abstractmethod
    def get_language_name(self) -> str:
        """Return the query language name (e.g., 'visibility')."""

    def _calculate_complexity(self, query: str) -> int:
        """
        Calculate query complexity score (1-10).

        Counts logical connectors (OR weighs more than AND) and
        parenthesised groups.
        """
        score = 1
        and_count = len(re.findall(r'\bAND\b', query, re.IGNORECASE))
        score += min(and_count, 3)
        or_count = len(re.findall(r'\bOR\b', query, re.IGNORECASE))
        score += min(or_count * 2, 4)
        score += min(query.count('('), 2)
        return min(score, 10)
