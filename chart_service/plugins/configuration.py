"""Interpretation of chart configuration schemas.

Everything here is pure: functions read a ConfigSchema and a caller-supplied
configuration mapping and never mutate either.
"""

import copy
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from chart_service.plugins.datatypes import (
    DataColumn,
    accepted_semantic_types,
    classify,
    find_column,
    is_known_role,
)
from chart_service.plugins.schema import ConfigSchema, PropertyKind, SchemaProperty

MISSING = object()

_COLOR_PATTERN = re.compile(
    r"^(#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})"
    r"|(?:rgb|rgba|hsl|hsla)\([^)]*\)"
    r"|[a-zA-Z]+)$"
)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class FieldError:
    """A single validation finding for one configuration field."""

    field: str
    message: str
    severity: Severity = Severity.ERROR

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "severity": self.severity.value}


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating a configuration; ``errors`` holds warnings too."""

    errors: Tuple[FieldError, ...] = field(default_factory=tuple)

    @property
    def valid(self) -> bool:
        return not any(e.severity == Severity.ERROR for e in self.errors)

    @property
    def error_entries(self) -> List[FieldError]:
        return [e for e in self.errors if e.severity == Severity.ERROR]

    @property
    def warning_entries(self) -> List[FieldError]:
        return [e for e in self.errors if e.severity == Severity.WARNING]

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": [e.to_dict() for e in self.errors]}


# ---------------------------------------------------------------------------
# Dot-path access
# ---------------------------------------------------------------------------

def get_value(config: Mapping[str, Any], key: str) -> Any:
    """Read ``key`` from ``config``; a literal dotted key wins over nesting.

    Returns MISSING when the key is absent.
    """
    if key in config:
        return config[key]
    cursor: Any = config
    for part in key.split("."):
        if not isinstance(cursor, Mapping) or part not in cursor:
            return MISSING
        cursor = cursor[part]
    return cursor


def set_value(config: Dict[str, Any], key: str, value: Any) -> None:
    parts = key.split(".")
    cursor = config
    for part in parts[:-1]:
        if part not in cursor or not isinstance(cursor[part], dict):
            cursor[part] = {}
        cursor = cursor[part]
    cursor[parts[-1]] = value


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; override wins on collisions."""
    out = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def expand_dotted(config: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn dotted keys into nested dictionaries, recursively."""
    out: Dict[str, Any] = {}
    for key, value in config.items():
        if isinstance(value, Mapping):
            value = expand_dotted(value)
        if isinstance(key, str) and "." in key:
            nested: Dict[str, Any] = {}
            set_value(nested, key, value)
            out = deep_merge(out, nested)
        elif isinstance(value, Mapping) and isinstance(out.get(key), dict):
            out = deep_merge(out, {key: value})
        else:
            out[key] = copy.deepcopy(value)
    return out


# ---------------------------------------------------------------------------
# Property semantics
# ---------------------------------------------------------------------------

def _values_equal(left: Any, right: Any) -> bool:
    # Keep True/1 and False/0 apart.
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    return left == right


def is_active(prop: SchemaProperty, config: Mapping[str, Any]) -> bool:
    """A property is active when it has no conditional or the conditional holds."""
    if prop.conditional is None:
        return True
    current = get_value(config, prop.conditional.field)
    if current is MISSING:
        return False
    return _values_equal(current, prop.conditional.value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def kind_violation(prop: SchemaProperty, value: Any) -> Optional[str]:
    """Describe how ``value`` fails ``prop``'s kind, bounds or choices.

    Returns None when the value is acceptable. Unknown kinds accept anything.
    """
    kind = prop.kind

    if kind == PropertyKind.STRING:
        if not isinstance(value, str):
            return "must be a string"

    elif kind in (PropertyKind.NUMBER, PropertyKind.RANGE):
        if not _is_number(value):
            return "must be a number"
        if prop.bounds is not None:
            if prop.bounds.minimum is not None and value < prop.bounds.minimum:
                return f"must be >= {prop.bounds.minimum:g}"
            if prop.bounds.maximum is not None and value > prop.bounds.maximum:
                return f"must be <= {prop.bounds.maximum:g}"

    elif kind == PropertyKind.BOOLEAN:
        if not isinstance(value, bool):
            return "must be true or false"

    elif kind == PropertyKind.SELECT:
        allowed = prop.allowed_values
        # Options without enum_values are supplied at runtime, e.g. column pickers.
        if allowed and not any(_values_equal(value, option) for option in allowed):
            return "must be one of: " + ", ".join(repr(option) for option in allowed)

    elif kind == PropertyKind.COLOR:
        if not isinstance(value, str) or not _COLOR_PATTERN.match(value.strip()):
            return "must be a color (hex, rgb()/hsl() or a color name)"

    elif kind == PropertyKind.ARRAY:
        if not isinstance(value, (list, tuple)):
            return "must be a list"

    return None


def _is_blank(value: Any) -> bool:
    return value is MISSING or value is None or value == ""


# ---------------------------------------------------------------------------
# Defaults and validation
# ---------------------------------------------------------------------------

def default_configuration(schema: ConfigSchema) -> Dict[str, Any]:
    """Build the default configuration for ``schema``.

    Properties are visited in declaration order; a conditional is evaluated
    against the defaults built so far. Properties without a default are
    omitted.
    """
    config: Dict[str, Any] = {}
    for prop in schema.iter_properties():
        if not is_active(prop, config):
            continue
        if prop.has_default:
            set_value(config, prop.key, copy.deepcopy(prop.default))
    return config


def resolve_configuration(schema: ConfigSchema, configuration: Mapping[str, Any]) -> Dict[str, Any]:
    """Defaults deep-merged with the caller's configuration (caller wins)."""
    return deep_merge(default_configuration(schema), expand_dotted(configuration))


def _column_findings(
    prop: SchemaProperty, value: Any, columns: Sequence[DataColumn]
) -> List[FieldError]:
    names = value if isinstance(value, (list, tuple)) else [value]
    findings = []
    for name in names:
        if not isinstance(name, str) or not name:
            continue
        column = find_column(name, columns)
        if column is None:
            findings.append(
                FieldError(prop.key, f"column '{name}' is not in the dataset", Severity.WARNING)
            )
            continue
        if not is_known_role(prop.field_role):
            continue
        semantic = classify(column.declared_type)
        if semantic not in accepted_semantic_types(prop.field_role):
            findings.append(
                FieldError(
                    prop.key,
                    f"{column.name} ({column.declared_type}) is not suitable for {prop.field_role}",
                    Severity.WARNING,
                )
            )
    return findings


def _proper_prefixes(keys) -> set:
    prefixes = set()
    for key in keys:
        parts = key.split(".")
        for end in range(1, len(parts)):
            prefixes.add(".".join(parts[:end]))
    return prefixes


def unknown_keys(schema: ConfigSchema, configuration: Mapping[str, Any]) -> Iterator[str]:
    """Yield configuration paths that no schema property declares."""
    known = set(schema.properties)
    prefixes = _proper_prefixes(known)

    def walk(mapping: Mapping[str, Any], prefix: str) -> Iterator[str]:
        for key, value in mapping.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            if path in known:
                continue
            if path in prefixes and isinstance(value, Mapping):
                yield from walk(value, path)
                continue
            yield path

    yield from walk(configuration, "")


def validate_configuration(
    schema: ConfigSchema,
    configuration: Mapping[str, Any],
    columns: Optional[Sequence[DataColumn]] = None,
) -> ValidationReport:
    """Validate ``configuration`` against ``schema``.

    Args:
        schema: Schema of the plugin being configured
        configuration: Candidate configuration (nested and/or dotted keys)
        columns: Optional dataset columns; when given, data-mapping
            properties are checked for column compatibility (warnings only)

    Returns:
        ValidationReport; ``valid`` is True iff no error-severity entries
    """
    findings: List[FieldError] = []

    for prop in schema.iter_properties():
        if not is_active(prop, configuration):
            continue

        value = get_value(configuration, prop.key)
        label = prop.title or prop.key

        if _is_blank(value):
            if schema.is_required(prop.key):
                findings.append(FieldError(prop.key, f"{label} is required"))
            continue

        problem = kind_violation(prop, value)
        if problem:
            findings.append(FieldError(prop.key, f"{label} {problem}"))
            continue

        if columns is not None and prop.field_role:
            findings.extend(_column_findings(prop, value, columns))

    for path in unknown_keys(schema, configuration):
        findings.append(
            FieldError(path, f"'{path}' is not declared by the chart schema", Severity.WARNING)
        )

    return ValidationReport(errors=tuple(findings))
