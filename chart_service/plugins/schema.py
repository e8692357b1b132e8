"""Configuration schema models for chart plugins.

A plugin's configurable fields are described declaratively so that defaults,
validation and field-to-column compatibility can be derived without any
per-chart code.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from chart_service.plugins.datatypes import (
    DataColumn,
    SemanticType,
    classify,
    compatible_columns,
)


class PropertyKind(str, Enum):
    """Kinds of configurable properties understood by the factory."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    COLOR = "color"
    RANGE = "range"
    ARRAY = "array"


KNOWN_KINDS = frozenset(kind.value for kind in PropertyKind)


class EnumOption(BaseModel):
    """One choice of a ``select`` property."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: Any


class Bounds(BaseModel):
    """Inclusive numeric bounds for ``number`` and ``range`` properties."""

    model_config = ConfigDict(frozen=True)

    minimum: Optional[float] = None
    maximum: Optional[float] = None


class Conditional(BaseModel):
    """Makes a property active only while another property equals ``value``."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(..., description="Key of the controlling property")
    value: Any = Field(..., description="Value the controlling property must equal")


class SchemaProperty(BaseModel):
    """One configurable field of a chart plugin's configuration."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Unique key within the schema; dot-paths address nested config")
    kind: str = Field(..., description="string | number | boolean | select | color | range | array")
    title: str = Field(default="", description="Display title for the form layer")
    description: Optional[str] = Field(default=None, description="Display help text")
    default: Any = Field(default=None, description="Value used when the user supplies none")
    enum_values: Tuple[EnumOption, ...] = Field(default=(), description="Choices for select properties")
    bounds: Optional[Bounds] = None
    required: Optional[bool] = Field(
        default=None,
        description="Optional redundant required flag; must agree with ConfigSchema.required_keys",
    )
    conditional: Optional[Conditional] = None
    field_role: Optional[str] = Field(
        default=None,
        description="Data-mapping role (x-axis, y-axis, size, color, value, ...)",
    )

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def is_known_kind(self) -> bool:
        return self.kind in KNOWN_KINDS

    @property
    def allowed_values(self) -> List[Any]:
        return [option.value for option in self.enum_values]


class ConfigSchema(BaseModel):
    """Declarative description of a plugin's configuration.

    ``properties`` keeps declaration order, which is the order defaults are
    derived in. It may be given as a mapping (property keys are filled in from
    the mapping keys when omitted) or as a sequence of properties.
    """

    model_config = ConfigDict(frozen=True)

    properties: Dict[str, SchemaProperty] = Field(default_factory=dict)
    required_keys: FrozenSet[str] = Field(default_factory=frozenset)

    @model_validator(mode="before")
    @classmethod
    def _normalize_properties(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        properties = data.get("properties")
        if isinstance(properties, dict):
            filled = {}
            for name, prop in properties.items():
                if isinstance(prop, dict) and "key" not in prop:
                    prop = {**prop, "key": name}
                filled[name] = prop
            return {**data, "properties": filled}
        if isinstance(properties, (list, tuple)):
            keyed: Dict[str, Any] = {}
            for prop in properties:
                key = prop.get("key") if isinstance(prop, dict) else getattr(prop, "key", None)
                if key is None:
                    raise ValueError("every schema property needs a key")
                if key in keyed:
                    raise ValueError(f"duplicate schema property key '{key}'")
                keyed[key] = prop
            return {**data, "properties": keyed}
        return data

    def get(self, key: str) -> Optional[SchemaProperty]:
        return self.properties.get(key)

    def iter_properties(self) -> Iterator[SchemaProperty]:
        """Iterate properties in declaration order."""
        return iter(self.properties.values())

    def is_required(self, key: str) -> bool:
        return key in self.required_keys

    def field_roles(self) -> Dict[str, str]:
        """Map property key -> field role for every data-mapping property."""
        return {p.key: p.field_role for p in self.properties.values() if p.field_role}


class DataRequirements(BaseModel):
    """Dataset shape a plugin needs before it can be offered at all."""

    model_config = ConfigDict(frozen=True)

    min_columns: int = 1
    max_columns: Optional[int] = None
    required_field_roles: FrozenSet[str] = Field(default_factory=frozenset)
    optional_field_roles: FrozenSet[str] = Field(default_factory=frozenset)
    supported_column_types: FrozenSet[SemanticType] = Field(default_factory=frozenset)

    def accepts(self, columns: Sequence[DataColumn]) -> bool:
        """Check whether a dataset with ``columns`` can feed this plugin.

        Only columns whose semantic type is supported count towards
        ``min_columns``; every required field role needs at least one
        compatible column among them.
        """
        if self.supported_column_types:
            usable = [c for c in columns if classify(c.declared_type) in self.supported_column_types]
        else:
            usable = list(columns)

        if len(usable) < self.min_columns:
            return False
        return all(compatible_columns(role, usable) for role in self.required_field_roles)
