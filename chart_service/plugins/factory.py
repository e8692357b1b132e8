"""Chart factory - the single surface callers use to find, configure and instantiate charts."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from chart_service.plugins import configuration
from chart_service.plugins.configuration import ValidationReport
from chart_service.plugins.datatypes import DataColumn
from chart_service.plugins.datatypes import compatible_columns as _compatible_columns
from chart_service.plugins.descriptor import PluginDescriptor, PluginKey
from chart_service.plugins.errors import (
    InvalidConfigurationError,
    InvalidStateError,
    PluginNotFoundError,
)
from chart_service.plugins.registry import ChartRegistry, Loader, RegistryState, RegistryStats
from chart_service.plugins.schema import ConfigSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstantiationRequest:
    """What the rendering layer needs to draw a chart."""

    key: PluginKey
    renderer: Any = field(repr=False)
    resolved_configuration: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        # The renderer capability stays in-process.
        return {
            "library": self.key.library,
            "name": self.key.name,
            "resolved_configuration": self.resolved_configuration,
        }


class ChartFactory:
    """Top-level chart plugin orchestrator.

    Wraps a ChartRegistry and the loader that populates it. Lookups refuse
    to run until the registry is ready; schema operations (defaults,
    validation, instantiation) work on any descriptor and never touch
    registry state.
    """

    def __init__(
        self,
        loader: Optional[Loader] = None,
        registry: Optional[ChartRegistry] = None,
        strict: bool = False,
    ):
        if loader is None:
            from chart_service.plugins.discovery import bundled_loader
            loader = bundled_loader()
        self.loader = loader
        self.registry = registry if registry is not None else ChartRegistry()
        self.strict = strict

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Populate the registry once; concurrent callers share one pass."""
        await self.registry.ensure_initialized(self.loader, strict=self.strict)

    async def reinitialize(self) -> None:
        await self.registry.reinitialize(self.loader, strict=self.strict)

    @property
    def state(self) -> RegistryState:
        return self.registry.state

    @property
    def is_ready(self) -> bool:
        return self.registry.is_ready

    def _require_ready(self, operation: str) -> None:
        if not self.registry.is_ready:
            raise InvalidStateError(operation, self.registry.state)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, chart_type: str, library: str) -> PluginDescriptor:
        """Return the descriptor registered as (library, chart_type).

        Raises:
            PluginNotFoundError: nothing is registered under that key
            InvalidStateError: the registry is not ready
        """
        self._require_ready("resolve a chart plugin")
        descriptor = self.registry.lookup(library, chart_type)
        if descriptor is None:
            logger.warning(f"Chart plugin not found: {library}/{chart_type}")
            raise PluginNotFoundError(
                chart_type, library, available=self.registry.names_for_library(library)
            )
        return descriptor

    def is_supported(self, chart_type: str, library: str) -> bool:
        self._require_ready("check chart support")
        return self.registry.has(library, chart_type)

    def config_schema(self, chart_type: str, library: str) -> ConfigSchema:
        return self.resolve(chart_type, library).config_schema

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def default_configuration(self, descriptor: PluginDescriptor) -> Dict[str, Any]:
        return configuration.default_configuration(descriptor.config_schema)

    def validate(
        self,
        descriptor: PluginDescriptor,
        config: Mapping[str, Any],
        columns: Optional[Sequence[DataColumn]] = None,
    ) -> ValidationReport:
        """Validate a candidate configuration; failures are returned, never raised."""
        return configuration.validate_configuration(descriptor.config_schema, config, columns)

    def instantiation_request(
        self, descriptor: PluginDescriptor, config: Mapping[str, Any]
    ) -> InstantiationRequest:
        """Build the request handed to the rendering layer.

        The configuration is validated first; the resolved configuration is
        the schema defaults deep-merged with ``config`` (caller values win).
        Defaults can switch a conditional property on, so the resolved
        configuration is validated as well.

        Raises:
            InvalidConfigurationError: ``config`` or its resolved form does
                not validate
        """
        report = self.validate(descriptor, config)
        if report.valid:
            resolved = configuration.resolve_configuration(descriptor.config_schema, config)
            report = self.validate(descriptor, resolved)
        if not report.valid:
            logger.warning(
                f"Refusing to instantiate {descriptor.key}: "
                f"{len(report.error_entries)} configuration error(s)"
            )
            raise InvalidConfigurationError(descriptor.key, report)

        return InstantiationRequest(
            key=descriptor.key,
            renderer=descriptor.renderer,
            resolved_configuration=resolved,
        )

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def available_plugins(self) -> List[PluginDescriptor]:
        self._require_ready("list chart plugins")
        return self.registry.all_descriptors()

    def categories(self) -> List[str]:
        self._require_ready("list chart categories")
        return self.registry.categories()

    def libraries(self) -> List[str]:
        self._require_ready("list chart libraries")
        return self.registry.libraries()

    def search_plugins(self, query: Optional[str]) -> List[PluginDescriptor]:
        self._require_ready("search chart plugins")
        return self.registry.search(query)

    def plugins_by_category(self, category: str) -> List[PluginDescriptor]:
        self._require_ready("list chart plugins")
        return self.registry.by_category(category)

    def plugins_by_library(self, library: str) -> List[PluginDescriptor]:
        self._require_ready("list chart plugins")
        return self.registry.by_library(library)

    def statistics(self) -> RegistryStats:
        self._require_ready("compute chart statistics")
        return self.registry.stats()

    # ------------------------------------------------------------------
    # Data compatibility
    # ------------------------------------------------------------------

    def compatible_columns(self, field_role: Optional[str], columns: Sequence[DataColumn]) -> List[DataColumn]:
        return _compatible_columns(field_role, columns)

    def offerable_plugins(self, columns: Sequence[DataColumn]) -> List[PluginDescriptor]:
        """Plugins whose data requirements a dataset with ``columns`` satisfies."""
        return [d for d in self.available_plugins() if d.data_requirements.accepts(columns)]
