"""Chart plugin discovery - scans directories for chart manifests."""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from chart_service.plugins.descriptor import PluginDescriptor

logger = logging.getLogger(__name__)


@dataclass
class DiscoveredPlugin:
    """A chart manifest found on disk."""

    descriptor: PluginDescriptor
    path: Path
    source: str  # "bundled" | "external"

    def to_dict(self) -> dict:
        return {
            "library": self.descriptor.library,
            "name": self.descriptor.name,
            "path": str(self.path),
            "source": self.source,
        }


class ChartPluginDiscovery:
    """Discovers chart plugins by scanning directories for plugin.json manifests."""

    MANIFEST_FILE = "plugin.json"

    def __init__(self, search_paths: Sequence[Tuple[Path, str]]):
        """Initialize discovery with search paths.

        Args:
            search_paths: (path, source_label) tuples, searched in order
        """
        self.search_paths = list(search_paths)

    def discover_all(self) -> List[DiscoveredPlugin]:
        """Discover all chart manifests from the configured search paths.

        When the same (library, name) appears more than once, the first one
        found wins.
        """
        discovered = []
        seen_keys = set()

        for search_path, source in self.search_paths:
            if not search_path.exists():
                logger.debug(f"Chart plugin search path does not exist: {search_path}")
                continue

            for plugin in self._scan_directory(search_path, source):
                key = plugin.descriptor.key
                if key in seen_keys:
                    logger.warning(
                        f"Duplicate chart plugin '{key}' found at {plugin.path}, "
                        f"skipping (first-found wins)"
                    )
                    continue
                seen_keys.add(key)
                discovered.append(plugin)

        logger.info(f"Discovered {len(discovered)} chart plugin(s)")
        return discovered

    def discover_single(self, plugin_path: Path, source: str = "external") -> Optional[DiscoveredPlugin]:
        manifest_file = plugin_path / self.MANIFEST_FILE
        if not manifest_file.exists():
            logger.error(f"No {self.MANIFEST_FILE} found at {plugin_path}")
            return None
        return self._load_manifest(manifest_file, source)

    def _scan_directory(self, search_path: Path, source: str) -> List[DiscoveredPlugin]:
        plugins = []

        for item in sorted(search_path.iterdir()):
            if not item.is_dir():
                continue
            manifest_file = item / self.MANIFEST_FILE
            if not manifest_file.exists():
                continue

            plugin = self._load_manifest(manifest_file, source)
            if plugin:
                plugins.append(plugin)

        return plugins

    def _load_manifest(self, manifest_file: Path, source: str) -> Optional[DiscoveredPlugin]:
        """Load and parse a chart manifest.

        A manifest without a ``renderer`` entry gets ``"<library>:<name>"``.

        Returns:
            DiscoveredPlugin if the manifest parses, None otherwise
        """
        try:
            with open(manifest_file, "r", encoding="utf-8") as f:
                data = json.load(f)

            if isinstance(data, dict) and "renderer" not in data:
                data["renderer"] = f"{data.get('library')}:{data.get('name')}"

            descriptor = PluginDescriptor.model_validate(data)
            plugin_dir = manifest_file.parent
            logger.debug(f"Discovered chart plugin: {descriptor.key} at {plugin_dir}")
            return DiscoveredPlugin(descriptor=descriptor, path=plugin_dir, source=source)

        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {manifest_file}: {e}")
        except ValidationError as e:
            logger.error(f"Invalid chart manifest in {manifest_file}: {e}")
        except OSError as e:
            logger.error(f"Error reading {manifest_file}: {e}")

        return None


def default_search_paths() -> List[Tuple[Path, str]]:
    from chart_service.constants import BUNDLED_CHARTS_DIR, EXTRA_PLUGIN_PATHS

    paths = [(BUNDLED_CHARTS_DIR, "bundled")]
    paths.extend((p, "external") for p in EXTRA_PLUGIN_PATHS)
    return paths


def manifest_loader(search_paths: Sequence[Tuple[Path, str]]):
    """Build an async registry loader that reads manifests from ``search_paths``.

    The directory scan runs in a worker thread so the event loop stays free.
    """
    discovery = ChartPluginDiscovery(search_paths)

    async def load_manifests(registry) -> List[PluginDescriptor]:
        plugins = await asyncio.to_thread(discovery.discover_all)
        return [plugin.descriptor for plugin in plugins]

    return load_manifests


def bundled_loader():
    """Loader over the bundled directory plus CHART_PLUGIN_PATHS."""
    return manifest_loader(default_search_paths())
