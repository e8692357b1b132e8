"""Chart registry - holds registered chart plugin descriptors."""
from __future__ import annotations

import asyncio
import inspect
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from chart_service.plugins.descriptor import PluginDescriptor, PluginKey, check_descriptor
from chart_service.plugins.errors import (
    DuplicateKeyError,
    InvalidStateError,
    LoaderFailure,
    SchemaValidationError,
)

logger = logging.getLogger(__name__)

DescriptorLike = Union[PluginDescriptor, Mapping[str, Any]]
Loader = Callable[["ChartRegistry"], Union[Awaitable[Optional[Iterable[DescriptorLike]]], Iterable[DescriptorLike], None]]


class RegistryState(str, Enum):
    """Registry lifecycle states."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class RegistrationFailure:
    """A descriptor that the loader produced but that could not be registered."""

    key: Optional[PluginKey]
    error: Exception

    def to_dict(self) -> dict:
        return {
            "library": self.key.library if self.key else None,
            "name": self.key.name if self.key else None,
            "error": str(self.error),
            "problems": list(getattr(self.error, "problems", [])),
        }


@dataclass(frozen=True)
class RegistryStats:
    total: int
    by_category: Dict[str, int] = field(default_factory=dict)
    by_library: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "by_category": dict(self.by_category),
            "by_library": dict(self.by_library),
        }


def _guess_key(item: Any) -> Optional[PluginKey]:
    if isinstance(item, PluginDescriptor):
        return item.key
    if isinstance(item, Mapping) and "library" in item and "name" in item:
        return PluginKey(str(item["library"]), str(item["name"]))
    return None


def _coerce(item: DescriptorLike) -> PluginDescriptor:
    """Accept descriptors or descriptor-shaped mappings from a loader."""
    if isinstance(item, PluginDescriptor):
        return item
    try:
        return PluginDescriptor.model_validate(item)
    except ValidationError as e:
        problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise SchemaValidationError(_guess_key(item), problems) from e


def _retrieve_exception(task: "asyncio.Future[None]") -> None:
    # The failure is already recorded on the registry; waiters may all be gone.
    if not task.cancelled():
        task.exception()


class ChartRegistry:
    """Central registry for chart plugin descriptors.

    Descriptors are keyed by (library, name) and kept in insertion order.
    Registration is only possible while the registry is initializing; one
    population pass runs at a time no matter how many callers ask for it.
    """

    def __init__(self):
        self._descriptors: Dict[PluginKey, PluginDescriptor] = {}
        self._state = RegistryState.UNINITIALIZED
        self._pending: Optional[asyncio.Future] = None
        self.failures: List[RegistrationFailure] = []
        self.last_error: Optional[BaseException] = None

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == RegistryState.READY

    def register(self, descriptor: DescriptorLike) -> PluginDescriptor:
        """Register a descriptor; only allowed while initializing.

        Raises:
            InvalidStateError: outside of a population pass
            DuplicateKeyError: (library, name) is already registered
            SchemaValidationError: the descriptor is malformed
        """
        if self._state != RegistryState.INITIALIZING:
            raise InvalidStateError("register a chart plugin", self._state)

        descriptor = _coerce(descriptor)
        if descriptor.key in self._descriptors:
            raise DuplicateKeyError(descriptor.key)
        check_descriptor(descriptor)

        self._descriptors[descriptor.key] = descriptor
        logger.info(f"Registered chart plugin: {descriptor.key} ({descriptor.category})")
        return descriptor

    async def ensure_initialized(self, loader: Loader, strict: bool = False) -> None:
        """Populate the registry once.

        Returns immediately when ready. Callers arriving while a pass is in
        flight await that same pass. A failed pass leaves the registry empty
        in the FAILED state and raises LoaderFailure to every waiter; the
        next call retries.

        Args:
            loader: Called with this registry. It may call ``register`` itself
                and/or return an iterable of descriptors (or descriptor-shaped
                mappings) to register; it may be sync or async.
            strict: Abort the whole pass on the first returned descriptor that
                fails registration, instead of skipping it and recording a
                RegistrationFailure
        """
        if self._state == RegistryState.READY:
            return

        if self._pending is None:
            self._state = RegistryState.INITIALIZING
            self._descriptors.clear()
            self.failures = []
            self._pending = asyncio.ensure_future(self._populate(loader, strict))
            self._pending.add_done_callback(_retrieve_exception)

        # Shielded so that a cancelled waiter does not abort the pass for the others.
        await asyncio.shield(self._pending)

    async def reinitialize(self, loader: Loader, strict: bool = False) -> None:
        """Clear every descriptor and run a fresh population pass."""
        if self._pending is not None:
            try:
                await asyncio.shield(self._pending)
            except LoaderFailure as e:
                logger.info(f"In-flight initialization failed before reinitialization: {e}")

        logger.info("Reinitializing chart registry")
        self._state = RegistryState.UNINITIALIZED
        self._descriptors.clear()
        await self.ensure_initialized(loader, strict=strict)

    async def _populate(self, loader: Loader, strict: bool) -> None:
        logger.info("Initializing chart registry")
        try:
            produced = loader(self)
            if inspect.isawaitable(produced):
                produced = await produced

            for item in produced or ():
                try:
                    self.register(item)
                except (DuplicateKeyError, SchemaValidationError) as e:
                    if strict:
                        raise
                    key = getattr(e, "key", None)
                    self.failures.append(RegistrationFailure(key=key, error=e))
                    logger.warning(f"Skipping chart plugin {key or '<unnamed>'}: {e}")

        except Exception as e:
            self._descriptors.clear()
            self._state = RegistryState.FAILED
            self.last_error = e
            logger.error(f"Chart plugin loader failed: {e}")
            raise LoaderFailure(e) from e
        finally:
            self._pending = None

        self._state = RegistryState.READY
        self.last_error = None
        logger.info(
            f"Chart registry ready, {len(self._descriptors)} plugin(s) registered, "
            f"{len(self.failures)} skipped"
        )

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def lookup(self, library: str, name: str) -> Optional[PluginDescriptor]:
        return self._descriptors.get(PluginKey(library, name))

    def has(self, library: str, name: str) -> bool:
        return PluginKey(library, name) in self._descriptors

    def all_descriptors(self) -> List[PluginDescriptor]:
        """All descriptors in registration order."""
        return list(self._descriptors.values())

    def by_category(self, category: str) -> List[PluginDescriptor]:
        return [d for d in self._descriptors.values() if d.category == category]

    def by_library(self, library: str) -> List[PluginDescriptor]:
        return [d for d in self._descriptors.values() if d.library == library]

    def names_for_library(self, library: str) -> List[str]:
        return [d.name for d in self.by_library(library)]

    def search(self, query: Optional[str]) -> List[PluginDescriptor]:
        """Case-insensitive substring search over display name, name and description.

        A blank query returns everything, in registration order.
        """
        needle = (query or "").strip().casefold()
        if not needle:
            return self.all_descriptors()
        return [d for d in self._descriptors.values() if d.matches(needle)]

    def categories(self) -> List[str]:
        return sorted({d.category for d in self._descriptors.values()})

    def libraries(self) -> List[str]:
        return sorted({d.library for d in self._descriptors.values()})

    def stats(self) -> RegistryStats:
        descriptors = self._descriptors.values()
        return RegistryStats(
            total=len(self._descriptors),
            by_category=dict(sorted(Counter(d.category for d in descriptors).items())),
            by_library=dict(sorted(Counter(d.library for d in descriptors).items())),
        )

    def count(self) -> int:
        return len(self._descriptors)
