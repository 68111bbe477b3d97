"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Version information for the Veriflow SDK runtime.

A source checkout carries a VERSION file next to the package; an installed
distribution reports its version through package metadata instead.
"""

from importlib import metadata
from pathlib import Path

DISTRIBUTION_NAME = "veriflow-sdk"


def get_version() -> str:
    """Return the SDK version, or ``"unknown"`` when it cannot be determined."""
    version_file = Path(__file__).resolve().parent.parent / "VERSION"
    if version_file.is_file():
        return version_file.read_text().strip()
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"


__version__ = get_version()
