"""Chart plugin system.

Imports are lazy so that lightweight pieces (the data-type resolver, the
schema models) can be used without loading discovery or the factory.
"""

__all__ = [
    "ChartFactory",
    "InstantiationRequest",
    "ChartRegistry",
    "RegistryState",
    "RegistryStats",
    "RegistrationFailure",
    "ChartPluginDiscovery",
    "PluginDescriptor",
    "PluginKey",
    "ConfigSchema",
    "SchemaProperty",
    "DataRequirements",
    "DataColumn",
    "SemanticType",
    "FieldError",
    "ValidationReport",
    "Severity",
    "ChartPluginError",
    "DuplicateKeyError",
    "SchemaValidationError",
    "PluginNotFoundError",
    "InvalidConfigurationError",
    "InvalidStateError",
    "LoaderFailure",
]


def __getattr__(name):
    if name in ("ChartFactory", "InstantiationRequest"):
        from chart_service.plugins import factory
        return getattr(factory, name)
    if name in ("ChartRegistry", "RegistryState", "RegistryStats", "RegistrationFailure"):
        from chart_service.plugins import registry
        return getattr(registry, name)
    if name == "ChartPluginDiscovery":
        from chart_service.plugins.discovery import ChartPluginDiscovery
        return ChartPluginDiscovery
    if name in ("PluginDescriptor", "PluginKey"):
        from chart_service.plugins import descriptor
        return getattr(descriptor, name)
    if name in ("ConfigSchema", "SchemaProperty", "DataRequirements"):
        from chart_service.plugins import schema
        return getattr(schema, name)
    if name in ("DataColumn", "SemanticType"):
        from chart_service.plugins import datatypes
        return getattr(datatypes, name)
    if name in ("FieldError", "ValidationReport", "Severity"):
        from chart_service.plugins import configuration
        return getattr(configuration, name)
    if name in (
        "ChartPluginError",
        "DuplicateKeyError",
        "SchemaValidationError",
        "PluginNotFoundError",
        "InvalidConfigurationError",
        "InvalidStateError",
        "LoaderFailure",
    ):
        from chart_service.plugins import errors
        return getattr(errors, name)
    raise AttributeError(f"module 'chart_service.plugins' has no attribute {name!r}")
