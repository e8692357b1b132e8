"""Global constants for the chart service."""

import os
from pathlib import Path

# Directory paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Bundled chart manifests (supports CHART_BUNDLED_DIR env var, relative paths resolve against PROJECT_ROOT)
_bundled_dir_env = os.getenv("CHART_BUNDLED_DIR", "")
if _bundled_dir_env:
    _bundled_dir_path = Path(_bundled_dir_env)
    BUNDLED_CHARTS_DIR = _bundled_dir_path if _bundled_dir_path.is_absolute() else (PROJECT_ROOT / _bundled_dir_path).resolve()
else:
    BUNDLED_CHARTS_DIR = PROJECT_ROOT / "plugins" / "bundled"

# Extra manifest directories, colon-separated
EXTRA_PLUGIN_PATHS = [
    Path(p.strip()) for p in os.getenv("CHART_PLUGIN_PATHS", "").split(":") if p.strip()
]

# Abort the whole load on the first malformed bundled descriptor
STRICT_REGISTRATION = os.getenv("CHART_STRICT_REGISTRATION", "").strip().lower() in ("1", "true", "yes", "on")

DEFAULT_PORT = int(os.getenv("PORT", "9090"))
