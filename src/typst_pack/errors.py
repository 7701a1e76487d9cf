"""
Error types for typst-pack.

Every error is fatal: the first one raised aborts the run.
"""

from __future__ import annotations


class PackError(Exception):
    """Base class for all packaging errors."""

    pass


class ConfigError(PackError):
    """Invalid manifest, manifest path, exclusion pattern, or output root."""

    pass


class BuildError(PackError):
    """The external compiler failed to launch or exited with a non-zero status."""

    pass


class IoError(PackError):
    """Filesystem read/write/traversal failure, or undecodable text."""

    pass
