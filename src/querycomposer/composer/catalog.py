"""Static vocabulary of the visibility query language.

Every table here is an immutable tuple of frozen dataclasses built once at
import time. ``DEFAULT_CATALOG`` groups them for the context detector and
the suggestion provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .duration import Duration, DurationUnit
from .placeholders import encode_placeholder


class CompletionCategory(str, Enum):
    """Category tag shown next to each suggestion."""

    FIELD = "Field"
    OPERATOR = "Operator"
    VALUE = "Value"
    TIME = "Time"


class FieldKind(Enum):
    """Value type of a field, used to pick literal suggestions."""

    KEYWORD = "keyword"
    STATUS = "status"
    DATETIME = "datetime"
    DURATION = "duration"


@dataclass(frozen=True)
class Suggestion:
    """A single completion candidate."""

    display_text: str
    insert_text: str
    description: str
    category: CompletionCategory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "display_text": self.display_text,
            "insert_text": self.insert_text,
            "description": self.description,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    description: str
    kind: FieldKind = FieldKind.KEYWORD

    def to_suggestion(self) -> Suggestion:
        return Suggestion(self.name, self.name, self.description, CompletionCategory.FIELD)


@dataclass(frozen=True)
class OperatorDescriptor:
    symbol: str
    description: str
    is_logical: bool = False

    def to_suggestion(self) -> Suggestion:
        return Suggestion(self.symbol, self.symbol, self.description, CompletionCategory.OPERATOR)


@dataclass(frozen=True)
class StatusValue:
    name: str
    description: str

    def to_suggestion(self) -> Suggestion:
        return Suggestion(self.name, f"'{self.name}'", self.description, CompletionCategory.VALUE)


@dataclass(frozen=True)
class TimeExpression:
    """A named relative offset inserted as a quoted placeholder."""

    label: str
    duration: Duration

    @property
    def insert_text(self) -> str:
        return f"'{encode_placeholder(self.duration)}'"

    def to_suggestion(self) -> Suggestion:
        return Suggestion(self.label, self.insert_text, self.label, CompletionCategory.TIME)


@dataclass(frozen=True)
class QueryTemplate:
    """A canned query; ``${name}`` slots other than ``${TIME:...}`` must be filled."""

    name: str
    description: str
    query_text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "query": self.query_text}


VISIBILITY_FIELDS: Tuple[FieldDescriptor, ...] = (
    FieldDescriptor("WorkflowId", "Workflow identifier"),
    FieldDescriptor("WorkflowType", "Workflow type name"),
    FieldDescriptor("ExecutionStatus", "Workflow status", FieldKind.STATUS),
    FieldDescriptor("StartTime", "When workflow started", FieldKind.DATETIME),
    FieldDescriptor("CloseTime", "When workflow closed", FieldKind.DATETIME),
    FieldDescriptor("ExecutionDuration", "Workflow duration", FieldKind.DURATION),
    FieldDescriptor("TaskQueue", "Task queue name"),
    FieldDescriptor("RunId", "Run identifier"),
)

VISIBILITY_OPERATORS: Tuple[OperatorDescriptor, ...] = (
    OperatorDescriptor("=", "Equals"),
    OperatorDescriptor("!=", "Not equals"),
    OperatorDescriptor(">", "Greater than"),
    OperatorDescriptor(">=", "Greater or equal"),
    OperatorDescriptor("<", "Less than"),
    OperatorDescriptor("<=", "Less or equal"),
    OperatorDescriptor("BETWEEN", "Between two values"),
    OperatorDescriptor("AND", "Logical AND", is_logical=True),
    OperatorDescriptor("OR", "Logical OR", is_logical=True),
    OperatorDescriptor("ORDER BY", "Sort results", is_logical=True),
)

EXECUTION_STATUS_VALUES: Tuple[StatusValue, ...] = (
    StatusValue("Running", "Currently executing"),
    StatusValue("Completed", "Finished successfully"),
    StatusValue("Failed", "Execution failed"),
    StatusValue("Canceled", "Was canceled"),
    StatusValue("Terminated", "Was terminated"),
    StatusValue("TimedOut", "Execution timed out"),
    StatusValue("ContinuedAsNew", "Continued as new run"),
)

TIME_EXPRESSIONS: Tuple[TimeExpression, ...] = (
    TimeExpression("1 hour ago", Duration(1, DurationUnit.HOUR)),
    TimeExpression("24 hours ago", Duration(24, DurationUnit.HOUR)),
    TimeExpression("7 days ago", Duration(7, DurationUnit.DAY)),
    TimeExpression("30 days ago", Duration(30, DurationUnit.DAY)),
)

DEFAULT_QUERY_TEMPLATES: Tuple[QueryTemplate, ...] = (
    QueryTemplate("Running", "All running workflows", "ExecutionStatus = 'Running'"),
    QueryTemplate(
        "Failed (24h)",
        "Failed workflows in last 24 hours",
        "ExecutionStatus = 'Failed' AND CloseTime > '${TIME:24h}'",
    ),
    QueryTemplate("Timed Out", "All timed out workflows", "ExecutionStatus = 'TimedOut'"),
    QueryTemplate(
        "Long Running",
        "Running workflows started over 1 hour ago",
        "ExecutionStatus = 'Running' AND StartTime < '${TIME:1h}'",
    ),
    QueryTemplate(
        "Recently Completed",
        "Completed in last hour",
        "ExecutionStatus = 'Completed' AND CloseTime > '${TIME:1h}'",
    ),
    QueryTemplate("By Type", "Filter by workflow type", "WorkflowType = '${type}'"),
)


@dataclass(frozen=True)
class Catalog:
    """Read-only bundle of the tables the composer completes from."""

    fields: Tuple[FieldDescriptor, ...] = VISIBILITY_FIELDS
    operators: Tuple[OperatorDescriptor, ...] = VISIBILITY_OPERATORS
    status_values: Tuple[StatusValue, ...] = EXECUTION_STATUS_VALUES
    time_expressions: Tuple[TimeExpression, ...] = TIME_EXPRESSIONS
    templates: Tuple[QueryTemplate, ...] = DEFAULT_QUERY_TEMPLATES
    _fields_by_name: Dict[str, FieldDescriptor] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # frozen dataclass: populate the derived index through object.__setattr__
        object.__setattr__(self, "_fields_by_name", {f.name.lower(): f for f in self.fields})

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def find_field(self, name: str) -> Optional[FieldDescriptor]:
        """Case-insensitive field lookup."""
        return self._fields_by_name.get(name.lower())

    def comparison_operators(self) -> Tuple[OperatorDescriptor, ...]:
        return tuple(op for op in self.operators if not op.is_logical)

    def logical_operators(self) -> Tuple[OperatorDescriptor, ...]:
        return tuple(op for op in self.operators if op.is_logical)

    def connector_operators(self) -> Tuple[OperatorDescriptor, ...]:
        """Connectors that join two conditions (AND/OR, not ORDER BY)."""
        return tuple(op for op in self.logical_operators() if op.symbol in ("AND", "OR"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": [{"name": f.name, "description": f.description, "kind": f.kind.value} for f in self.fields],
            "operators": [
                {"symbol": op.symbol, "description": op.description, "is_logical": op.is_logical}
                for op in self.operators
            ],
            "status_values": [{"name": s.name, "description": s.description} for s in self.status_values],
            "time_expressions": [
                {"label": t.label, "insert_text": t.insert_text} for t in self.time_expressions
            ],
        }


DEFAULT_CATALOG = Catalog()
