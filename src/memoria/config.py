"""Settings for the memoria corpus.

The corpus root is resolved once, here, and then passed explicitly to the
store, index manager, recorder and learner. Resolution order:

1. The ``root`` argument (``--root`` on the CLI)
2. ``MEMORIA_ROOT``
3. ``MEMORIA_PROJECT_ROOT``/.memoria
4. ./.memoria

Optional overrides live in ``<root>/config.yaml``:

    dated_kinds: [sessions, decisions]
    index_max_age_seconds: 300
    rebuild_empty_index: true
    review_min_occurrences: 3
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from memoria.store import DATED_KINDS

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
DEFAULT_DIRNAME = ".memoria"


class MemoriaSettings(BaseModel):
    root: Path
    dated_kinds: list[str] = Field(default_factory=lambda: list(DATED_KINDS))
    index_max_age_seconds: float = Field(default=300.0, gt=0)
    rebuild_empty_index: bool = True
    review_min_occurrences: int = Field(default=3, ge=3)

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME


def resolve_root(root: Path | str | None = None) -> Path:
    if root:
        return Path(root).expanduser()
    if os.environ.get("MEMORIA_ROOT"):
        return Path(os.environ["MEMORIA_ROOT"]).expanduser()
    project_root = os.environ.get("MEMORIA_PROJECT_ROOT") or os.getcwd()
    return Path(project_root).expanduser() / DEFAULT_DIRNAME


def load_config(path: Path) -> dict[str, Any]:
    """Read a YAML config file; missing or invalid files yield {}."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: expected a mapping")
        return {}
    return data


def get_settings(root: Path | str | None = None) -> MemoriaSettings:
    """Settings for the corpus at ``root`` with config.yaml applied."""
    resolved = resolve_root(root)
    overrides = load_config(resolved / CONFIG_FILENAME)
    overrides.pop("root", None)
    try:
        return MemoriaSettings(root=resolved, **overrides)
    except ValidationError as e:
        logger.warning(f"Invalid settings in {resolved / CONFIG_FILENAME}, using defaults: {e}")
        return MemoriaSettings(root=resolved)


def save_config(settings: MemoriaSettings) -> Path:
    """Write the non-root settings to ``<root>/config.yaml``."""
    path = settings.config_path
    path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(exclude={"root"})
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return path
