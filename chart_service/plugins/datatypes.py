"""Data-type compatibility resolver.

Classifies declared column types (as reported by the dataset layer, e.g.
``varchar(255)``, ``bigint``, ``timestamp with time zone``) into semantic
types, and maps chart field roles to the semantic types they accept.
"""

import re
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class SemanticType(str, Enum):
    """Normalized classification of a raw column type."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    DATE = "date"
    BOOLEAN = "boolean"
    UNKNOWN = "unknown"


ALL_SEMANTIC_TYPES: FrozenSet[SemanticType] = frozenset(SemanticType)


class DataColumn(BaseModel):
    """A dataset column as supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    name: str
    declared_type: str = Field(
        default="",
        validation_alias=AliasChoices("declared_type", "data_type", "type"),
    )


# (semantic type, exact type names, substring keywords), in classification order.
_VOCABULARIES: Tuple[Tuple[SemanticType, FrozenSet[str], Tuple[str, ...]], ...] = (
    (
        SemanticType.NUMERIC,
        frozenset({
            "integer", "int", "int2", "int4", "int8", "bigint", "smallint", "tinyint",
            "mediumint", "decimal", "dec", "numeric", "fixed", "real", "float", "float4",
            "float8", "double", "serial", "bigserial", "smallserial", "money", "number", "bit",
        }),
        ("int", "float", "double", "decimal", "numeric", "number", "serial"),
    ),
    (
        SemanticType.DATE,
        frozenset({
            "date", "time", "timestamp", "timestamptz", "timetz", "interval", "datetime", "year",
        }),
        ("date", "time"),
    ),
    (
        SemanticType.BOOLEAN,
        frozenset({"boolean", "bool"}),
        ("bool",),
    ),
    (
        SemanticType.CATEGORICAL,
        frozenset({
            "text", "varchar", "character", "char", "bpchar", "name", "uuid", "tinytext",
            "mediumtext", "longtext", "binary", "varbinary", "enum", "set", "string",
        }),
        ("text", "char", "string"),
    ),
)

_ROLE_TYPES = {
    "x-axis": frozenset({SemanticType.CATEGORICAL, SemanticType.DATE}),
    "xfield": frozenset({SemanticType.CATEGORICAL, SemanticType.DATE}),
    "category": frozenset({SemanticType.CATEGORICAL, SemanticType.DATE}),
    "y-axis": frozenset({SemanticType.NUMERIC}),
    "yfield": frozenset({SemanticType.NUMERIC}),
    "value": frozenset({SemanticType.NUMERIC}),
    "measure": frozenset({SemanticType.NUMERIC}),
    "size": frozenset({SemanticType.NUMERIC}),
    "radius": frozenset({SemanticType.NUMERIC}),
    "color": frozenset({SemanticType.CATEGORICAL, SemanticType.NUMERIC}),
    "series": frozenset({SemanticType.CATEGORICAL}),
    "label": frozenset({SemanticType.CATEGORICAL}),
    "date": frozenset({SemanticType.DATE}),
    "time": frozenset({SemanticType.DATE}),
}

_BASE_TOKEN = re.compile(r"[\s(\[]")


def _normalize_role(field_role: Optional[str]) -> str:
    if not field_role:
        return ""
    return field_role.strip().lower().replace("_", "-")


def classify(declared_type: Optional[str]) -> SemanticType:
    """Classify a declared column type into a semantic type.

    Exact type names are tried first for every vocabulary, then keyword
    substrings, both in the fixed order numeric, date, boolean, categorical.
    Parameterized types are matched on their base token.
    """
    if not declared_type or not isinstance(declared_type, str):
        return SemanticType.UNKNOWN

    lowered = declared_type.strip().lower()
    if not lowered:
        return SemanticType.UNKNOWN
    base = _BASE_TOKEN.split(lowered, maxsplit=1)[0]

    for semantic_type, exact_names, _ in _VOCABULARIES:
        if lowered in exact_names or base in exact_names:
            return semantic_type

    for semantic_type, _, keywords in _VOCABULARIES:
        if any(keyword in lowered for keyword in keywords):
            return semantic_type

    return SemanticType.UNKNOWN


def accepted_semantic_types(field_role: Optional[str]) -> FrozenSet[SemanticType]:
    """Semantic types a field role accepts; every type for unknown roles."""
    return _ROLE_TYPES.get(_normalize_role(field_role), ALL_SEMANTIC_TYPES)


def is_known_role(field_role: Optional[str]) -> bool:
    return _normalize_role(field_role) in _ROLE_TYPES


def known_roles() -> List[str]:
    return sorted(_ROLE_TYPES)


def is_compatible(field_role: Optional[str], declared_type: Optional[str]) -> bool:
    """Whether a column of ``declared_type`` may be mapped to ``field_role``."""
    if not is_known_role(field_role):
        return True
    return classify(declared_type) in accepted_semantic_types(field_role)


def compatible_columns(field_role: Optional[str], columns: Iterable[DataColumn]) -> List[DataColumn]:
    """Filter ``columns`` to those a field role accepts.

    An absent or unrecognized role returns every column unchanged, so a
    classification gap never hides a valid option.
    """
    columns = list(columns)
    if not is_known_role(field_role):
        return columns
    accepted = accepted_semantic_types(field_role)
    return [column for column in columns if classify(column.declared_type) in accepted]


def find_column(name: str, columns: Sequence[DataColumn]) -> Optional[DataColumn]:
    for column in columns:
        if column.name == name:
            return column
    return None
