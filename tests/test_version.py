"""Simple version check for the package.

Verifies that the ``__version__`` attribute matches the expected release
string and that the public helpers are re-exported."""

import importlib
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

melody_composer = importlib.import_module("melody_composer")


def test_version_matches():
    """Ensure ``melody_composer.__version__`` exposes the release version."""
    assert melody_composer.__version__ == "0.1.0"


def test_public_api_is_exported():
    for name in melody_composer.__all__:
        assert hasattr(melody_composer, name)
