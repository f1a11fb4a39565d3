# unistore/__init__.py

"""
unistore package initialization.

Expose the package version so other modules and scripts can read it
programmatically (e.g. `from unistore import __version__`).

The version is read from the top-level `VERSION` file at import time when
available, so releases are bumped by editing a single file.
"""

from pathlib import Path

_root = Path(__file__).resolve().parents[1]
_version_file = _root / "VERSION"
if _version_file.exists():
	__version__ = _version_file.read_text(encoding="utf-8").strip()
else:
	__version__ = "0.0.0"
