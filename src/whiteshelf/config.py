"""Configuration for a whiteshelf site.

Settings come from an optional YAML file (``whiteshelf.yaml`` by default)
and the ``WHITESHELF_ROOT`` environment variable. Every key is optional:

    root: /srv/site
    papers_dir: _papers
    roadmaps_dir: _roadmaps
    extension: .md
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import InvalidInput

DEFAULT_CONFIG_PATH = "whiteshelf.yaml"
ROOT_ENV = "WHITESHELF_ROOT"

KNOWN_KEYS = {"root", "papers_dir", "roadmaps_dir", "extension"}


@dataclass
class ShelfConfig:
    """Where documents live and what they are called."""

    root: Path = Path(".")
    papers_dir: str = "_papers"
    roadmaps_dir: str = "_roadmaps"
    extension: str = ".md"

    def __post_init__(self):
        self.root = Path(self.root)
        if not self.extension:
            raise InvalidInput("extension must not be empty")
        if not self.extension.startswith("."):
            self.extension = "." + self.extension

    @property
    def papers_path(self) -> Path:
        return self.root / self.papers_dir

    @property
    def roadmaps_path(self) -> Path:
        return self.root / self.roadmaps_dir

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": str(self.root),
            "papers_dir": self.papers_dir,
            "roadmaps_dir": self.roadmaps_dir,
            "extension": self.extension,
        }


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ShelfConfig:
    """Load configuration from a YAML file.

    An explicitly given path must exist. The default path is optional and
    falls back to built-in defaults. ``WHITESHELF_ROOT`` overrides ``root``;
    a relative ``root`` in the file is taken relative to the file.
    """
    if environ is None:
        environ = dict(os.environ)

    raw: Dict[str, Any] = {}
    config_path = Path(path) if path is not None else Path(DEFAULT_CONFIG_PATH)

    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise InvalidInput(f"{config_path}: expected a mapping at top level")
        unknown = sorted(set(data) - KNOWN_KEYS)
        if unknown:
            raise InvalidInput(
                f"{config_path}: unknown settings: {', '.join(unknown)}"
            )
        raw = dict(data)
        if "root" in raw:
            root = Path(str(raw["root"]))
            if not root.is_absolute():
                root = config_path.parent / root
            raw["root"] = root
    elif path is not None:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if environ.get(ROOT_ENV):
        raw["root"] = Path(environ[ROOT_ENV])

    return ShelfConfig(
        **{k: (str(v) if k != "root" else v) for k, v in raw.items()}
    )
