"""Helpers for sharing the GameGuard version string."""
from __future__ import annotations

import tomllib
from functools import lru_cache
from importlib import metadata
from pathlib import Path


@lru_cache(maxsize=1)
def get_version() -> str:
    """Return the canonical application version from pyproject.toml."""
    pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"

    try:
        with open(pyproject_path, "rb") as file:
            data = tomllib.load(file)
        return data["project"]["version"]
    except FileNotFoundError:
        # Installed without the source tree (wheel or frozen build)
        try:
            return metadata.version("gameguard")
        except metadata.PackageNotFoundError as exc:
            raise RuntimeError("GameGuard version could not be determined") from exc
    except (KeyError, TypeError) as exc:
        raise RuntimeError("Invalid pyproject.toml structure") from exc


VERSION = get_version()
