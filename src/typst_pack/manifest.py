"""
Manifest loading for typst-pack.

Reads the package's ``typst.toml``:
- ``[package]`` (required): name, version, exclude, entrypoint
- ``[template]`` (optional): path, entrypoint, thumbnail

Unknown keys are ignored so newer manifests keep loading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib

from .errors import ConfigError

MANIFEST_FILE_NAME = "typst.toml"
DEFAULT_ENTRYPOINT = "main.typ"


class OutputRoot(str, Enum):
    """Allowed output root directories."""

    OUTPUT = "output"
    UNIVERSE = "universe"

    @classmethod
    def parse(cls, value: str | OutputRoot) -> OutputRoot:
        """Convert a raw value into an `OutputRoot`.

        Raises:
            ConfigError: If the value is not one of the allowed roots.
        """
        try:
            return cls(value)
        except ValueError as e:
            allowed = ", ".join(repr(member.value) for member in cls)
            raise ConfigError(
                f"Invalid output directory {value!r} (expected one of {allowed})"
            ) from e


@dataclass(frozen=True)
class TemplateDescriptor:
    """A template shipped inside the package.

    Attributes:
        relative_path: Template directory, relative to the package root.
        entrypoint: Template main file, relative to `relative_path`.
        thumbnail: Optional thumbnail image path, relative to the package root.
    """

    relative_path: str
    entrypoint: str
    thumbnail: str | None = None


@dataclass(frozen=True)
class PackageManifest:
    """Parsed package metadata.

    Attributes:
        name: Package name; must equal the manifest's directory name.
        version: Package version string.
        exclude: Exclusion patterns (globs or literal paths).
        entrypoint: Package main file; target of relative self-imports.
        template: Template descriptor, if the manifest declares one.
        manifest_path: Absolute path to the manifest file.
    """

    name: str
    version: str
    exclude: list[str] = field(default_factory=list)
    entrypoint: str = DEFAULT_ENTRYPOINT
    template: TemplateDescriptor | None = None
    manifest_path: Path | None = None

    @property
    def package_dir(self) -> Path:
        """Directory containing the manifest (the package root)."""
        if self.manifest_path is None:
            raise ConfigError(f"Manifest for package '{self.name}' has no source path")
        return self.manifest_path.parent

    def output_dir(self, output_root: Path) -> Path:
        """Return `output_root/name/version`."""
        return output_root / self.name / self.version


def resolve_manifest_path(path: Path) -> Path:
    """Resolve a CLI argument to the manifest file.

    Args:
        path: Either the manifest file or a directory containing ``typst.toml``.

    Returns:
        Absolute path to the manifest file.

    Raises:
        ConfigError: If no manifest can be found at `path`.
    """
    if path.is_file():
        return path.resolve()

    if path.is_dir():
        candidate = path / MANIFEST_FILE_NAME
        if not candidate.is_file():
            raise ConfigError(f"No {MANIFEST_FILE_NAME} found in directory: {path}")
        return candidate.resolve()

    raise ConfigError(f"Path is neither file nor directory: {path}")


def _require_str(table: dict[str, Any], key: str, section: str) -> str:
    value = table.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"[{section}] '{key}' must be a non-empty string")
    return value


def _optional_str(table: dict[str, Any], key: str, section: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"[{section}] '{key}' must be a string")
    return value


def _parse_exclude(value: Any) -> list[str]:
    """Normalize the `exclude` list.

    Args:
        value: Raw `exclude` value from the manifest (list or None).

    Returns:
        List of pattern strings, in manifest order.
    """
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise ConfigError("[package] 'exclude' must be a list of strings")
    return list(value)


def _parse_template(data: Any) -> TemplateDescriptor | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigError("[template] must be a table")

    path = _optional_str(data, "path", "template")
    entrypoint = _optional_str(data, "entrypoint", "template")
    thumbnail = _optional_str(data, "thumbnail", "template")

    # Both path and entrypoint are needed to build anything
    if not path or not entrypoint:
        return None

    return TemplateDescriptor(relative_path=path, entrypoint=entrypoint, thumbnail=thumbnail)


def parse_manifest(data: dict[str, Any], manifest_path: Path | None = None) -> PackageManifest:
    """Build a `PackageManifest` from already-decoded TOML data.

    Args:
        data: Decoded TOML document.
        manifest_path: Where the document was read from (optional).

    Returns:
        The parsed manifest.

    Raises:
        ConfigError: If required fields are missing or have the wrong type.
    """
    package = data.get("package")
    if not isinstance(package, dict):
        raise ConfigError("Manifest is missing the [package] table")

    entrypoint = _optional_str(package, "entrypoint", "package") or DEFAULT_ENTRYPOINT

    return PackageManifest(
        name=_require_str(package, "name", "package"),
        version=_require_str(package, "version", "package"),
        exclude=_parse_exclude(package.get("exclude")),
        entrypoint=entrypoint,
        template=_parse_template(data.get("template")),
        manifest_path=manifest_path,
    )


def load_manifest(manifest_path: Path) -> PackageManifest:
    """Read and parse a manifest file.

    Args:
        manifest_path: Path to ``typst.toml``.

    Returns:
        The parsed manifest, with `manifest_path` resolved to an absolute path.

    Raises:
        ConfigError: If the file cannot be read or is not a valid manifest.
    """
    manifest_path = manifest_path.resolve()
    try:
        with open(manifest_path, "rb") as f:
            data: dict[str, Any] = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read manifest {manifest_path}: {e}") from e
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid TOML in {manifest_path}: {e}") from e

    return parse_manifest(data, manifest_path)


def validate_package_name(package_name: str, manifest_dir: Path) -> None:
    """Check that the package name matches its directory name.

    Args:
        package_name: Name declared in ``[package]``.
        manifest_dir: Directory containing the manifest.

    Raises:
        ConfigError: If the names differ or the directory name cannot be determined.
    """
    dir_name = manifest_dir.resolve().name
    if not dir_name:
        raise ConfigError(f"Could not determine parent directory name of {manifest_dir}")

    if package_name != dir_name:
        raise ConfigError(
            f"Package name '{package_name}' does not match parent directory name '{dir_name}'"
        )
