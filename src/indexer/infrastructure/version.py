"""Version of the graph indexer.

Installed builds read the version from package metadata. A source checkout
(running with ``pythonpath = src/indexer``) has no metadata, so the version
is read from the repository's pyproject.toml instead.
"""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION = "graph-indexer"

# src/indexer/infrastructure/version.py -> repository root
_PYPROJECT = Path(__file__).resolve().parents[3] / "pyproject.toml"


def get_version() -> str:
    """Return the indexer version, e.g. "0.1.0"."""
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        with _PYPROJECT.open("rb") as f:
            return tomllib.load(f)["project"]["version"]


__version__ = get_version()
