"""Plugin descriptor model - identifies one renderable chart and its configuration contract."""

import logging
import re
from typing import Any, FrozenSet, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from chart_service.plugins.configuration import kind_violation
from chart_service.plugins.errors import SchemaValidationError
from chart_service.plugins.schema import ConfigSchema, DataRequirements

logger = logging.getLogger(__name__)

EXPORT_FORMATS = frozenset({"png", "svg", "pdf", "jpg", "html"})

_SEMVER = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)


class PluginKey(NamedTuple):
    """Composite registry identity."""

    library: str
    name: str

    def __str__(self) -> str:
        return f"{self.library}/{self.name}"


class PluginDescriptor(BaseModel):
    """Immutable metadata for one chart plugin.

    ``renderer`` is the opaque renderer capability; it is forwarded to the
    rendering layer untouched and never serialized.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Chart type within its library, e.g. 'bar'")
    library: str = Field(..., description="Rendering library, e.g. 'echarts'")
    display_name: str = Field(..., description="Human-readable chart name")
    category: str = Field(..., description="Grouping used by the selection UI, e.g. 'comparison'")
    version: str = Field(default="1.0.0", description="Semantic version of the plugin")
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()
    export_formats: Tuple[str, ...] = ("png", "svg")
    interactions: FrozenSet[str] = Field(default_factory=frozenset)
    config_schema: ConfigSchema = Field(default_factory=ConfigSchema)
    data_requirements: DataRequirements = Field(default_factory=DataRequirements)
    renderer: Any = Field(default=None, exclude=True, repr=False)

    @property
    def key(self) -> PluginKey:
        return PluginKey(self.library, self.name)

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on display name, name and description."""
        haystacks = (self.display_name, self.name, self.description or "")
        return any(needle in text.casefold() for text in haystacks)

    def to_dict(self) -> dict:
        """Serialize descriptor metadata for API responses."""
        data = self.model_dump(mode="json")
        data["interactions"] = sorted(self.interactions)
        data["config_schema"]["required_keys"] = sorted(self.config_schema.required_keys)
        requirements = data["data_requirements"]
        requirements["required_field_roles"] = sorted(self.data_requirements.required_field_roles)
        requirements["optional_field_roles"] = sorted(self.data_requirements.optional_field_roles)
        requirements["supported_column_types"] = sorted(
            t.value for t in self.data_requirements.supported_column_types
        )
        return data


def _schema_problems(schema: ConfigSchema) -> List[str]:
    problems = []

    for key in sorted(schema.required_keys - set(schema.properties)):
        problems.append(f"required key '{key}' has no matching property")

    for mapping_key, prop in schema.properties.items():
        where = f"property '{mapping_key}'"

        if prop.key != mapping_key:
            problems.append(f"{where} declares key '{prop.key}'")

        if prop.required is not None and prop.required != schema.is_required(mapping_key):
            problems.append(
                f"{where} has required={str(prop.required).lower()} "
                f"but required_keys says {str(schema.is_required(mapping_key)).lower()}"
            )

        if prop.conditional is not None:
            if prop.conditional.field == mapping_key:
                problems.append(f"{where} is conditional on itself")
            elif prop.conditional.field not in schema.properties:
                problems.append(
                    f"{where} is conditional on unknown property '{prop.conditional.field}'"
                )

        bounds = prop.bounds
        if bounds is not None and bounds.minimum is not None and bounds.maximum is not None:
            if bounds.minimum > bounds.maximum:
                problems.append(f"{where} has minimum greater than maximum")

        if not prop.is_known_kind:
            logger.warning(f"Schema property '{mapping_key}' has unknown kind '{prop.kind}'")
        elif prop.has_default:
            violation = kind_violation(prop, prop.default)
            if violation:
                problems.append(f"{where} default {violation}")

    return problems


def check_descriptor(descriptor: PluginDescriptor) -> None:
    """Run registration-time checks, raising SchemaValidationError with every problem found."""
    problems = []

    for field_name in ("name", "library", "display_name", "category"):
        if not getattr(descriptor, field_name).strip():
            problems.append(f"{field_name} must not be empty")

    if not _SEMVER.match(descriptor.version):
        problems.append(f"version '{descriptor.version}' is not a semantic version")

    unknown_formats = sorted(set(descriptor.export_formats) - EXPORT_FORMATS)
    if unknown_formats:
        problems.append(f"unsupported export formats: {', '.join(unknown_formats)}")

    requirements = descriptor.data_requirements
    if requirements.min_columns < 0:
        problems.append("min_columns must not be negative")
    if requirements.max_columns is not None and requirements.max_columns < requirements.min_columns:
        problems.append("max_columns must not be less than min_columns")

    problems.extend(_schema_problems(descriptor.config_schema))

    if problems:
        raise SchemaValidationError(descriptor.key, problems)
