"""Resolve important filesystem paths relative to the project root."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathResolver:
    """
    Folder resolver that returns paths relative to the project root,
    independent of the current working directory.
    """

    # utility -> imagestudio -> project root
    PROJECT_ROOT = Path(__file__).resolve().parents[2]

    DIR_MAP = {
        "logs": PROJECT_ROOT / "data" / "logs",
        "previews": PROJECT_ROOT / "data" / "previews",
        "config": PROJECT_ROOT / "imagestudio" / "config",
        "stats": PROJECT_ROOT / "data" / "stats.json",
        "root": PROJECT_ROOT,
    }

    @classmethod
    def get(cls, name: str) -> Path:
        """
        Returns absolute path from name key.
        Directories (no suffix) are created on first access.
        """
        if name not in cls.DIR_MAP:
            msg = f"Unknown directory key: '{name}'. Valid keys: {list(cls.DIR_MAP.keys())}"
            logger.error(msg)
            raise KeyError(msg)

        path = cls.DIR_MAP[name]
        if path.suffix == "":
            path.mkdir(parents=True, exist_ok=True)
        return path


class Finder:
    """Thin wrapper exposing resolved directories for external callers."""

    def get_directory(self, name: str) -> Path:
        """Return a resolved, ensured directory path by logical name."""
        return PathResolver.get(name)
