"""Error types raised by the chart plugin system."""

from typing import Any, List, Optional, Sequence


class ChartPluginError(Exception):
    """Base class for all chart plugin errors."""


class DuplicateKeyError(ChartPluginError):
    """Raised when a (library, name) pair is registered twice."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Chart plugin '{key.library}/{key.name}' is already registered")


class SchemaValidationError(ChartPluginError, ValueError):
    """Raised when a descriptor is malformed at registration time.

    All problems found in the descriptor are collected in ``problems`` so the
    host can report them together.
    """

    def __init__(self, key, problems: Sequence[str]):
        self.key = key
        self.problems: List[str] = list(problems)
        label = f"{key.library}/{key.name}" if key is not None else "<unknown>"
        super().__init__(f"Invalid chart plugin '{label}': " + "; ".join(self.problems))


class PluginNotFoundError(ChartPluginError, LookupError):
    """Raised when a requested chart type is not registered for a library."""

    def __init__(self, chart_type: str, library: str, available: Optional[Sequence[str]] = None):
        self.chart_type = chart_type
        self.library = library
        message = f"Chart type '{chart_type}' is not registered for library '{library}'"
        if available:
            message += f". Registered for '{library}': {', '.join(available)}"
        super().__init__(message)


class InvalidConfigurationError(ChartPluginError, ValueError):
    """Raised when instantiation is attempted with a configuration that fails validation."""

    def __init__(self, key, report: Any):
        self.key = key
        self.report = report
        messages = [f"{e.field}: {e.message}" for e in report.error_entries]
        super().__init__(
            f"Configuration for '{key.library}/{key.name}' is invalid: " + "; ".join(messages)
        )


class InvalidStateError(ChartPluginError, RuntimeError):
    """Raised when an operation is invoked outside its allowed lifecycle state."""

    def __init__(self, operation: str, state: Any):
        self.operation = operation
        self.state = state
        state_name = getattr(state, "value", state)
        super().__init__(f"Cannot {operation} while the chart registry is '{state_name}'")


class LoaderFailure(ChartPluginError):
    """Raised to every waiter when the plugin loader fails.

    The exception raised by the loader is kept in ``original`` (and as
    ``__cause__``).
    """

    def __init__(self, original: BaseException):
        self.original = original
        super().__init__(f"Chart plugin loader failed: {original}")
