"""YAML configuration for ProvisionKit.

Settings are optional. Without a config file the built-in defaults provision
the Go toolchain into /usr/local/go and leave the repository URL to the
command line.

Example config.yaml:

    repository:
      url: https://github.com/example/app.git
      directory: ~/app
      binary_name: app
      min_compiler_version: "1.19"

    toolchains:
      go:
        version_url: https://go.dev/VERSION?m=text
        download_url: https://go.dev/dl/{archive}
        directory: /usr/local/go

    environment:
      user_profile: ~/.profile

    log_dir: ~/.provisionkit/logs
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, get_args, get_origin

import yaml

from provisionkit.core.directory import get_default_config_path
from provisionkit.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ToolchainDescriptor:
    """Where to find and how to recognize a named toolchain distribution."""

    name: str
    version_url: str
    download_url: str  # template with {archive}
    archive_template: str = "{name}{version}.{os}-{arch}.{ext}"
    version_prefix: str = ""
    directory: str = ""
    bin_dir: str = "bin"
    executable: str = ""
    version_args: List[str] = field(default_factory=lambda: ["version"])

    def __post_init__(self):
        if not self.version_url:
            raise ConfigurationError(f"Toolchain '{self.name}': version_url is empty")
        if "{archive}" not in self.download_url:
            raise ConfigurationError(
                f"Toolchain '{self.name}': download_url must contain '{{archive}}'"
            )
        if not self.executable:
            self.executable = self.name
        if not self.directory:
            self.directory = f"/usr/local/{self.name}"

    def archive_name(self, version: str, os_name: str, arch: str, ext: str) -> str:
        """
        Distribution file name for a version and platform.

        Example:
            >>> GO_DESCRIPTOR.archive_name("1.22.3", "linux", "amd64", "tar.gz")
            'go1.22.3.linux-amd64.tar.gz'
        """
        return self.archive_template.format(
            name=self.name, version=version, os=os_name, arch=arch, ext=ext
        )

    def archive_url(self, archive: str) -> str:
        return self.download_url.format(archive=archive)


GO_DESCRIPTOR = ToolchainDescriptor(
    name="go",
    version_url="https://go.dev/VERSION?m=text",
    download_url="https://go.dev/dl/{archive}",
    archive_template="go{version}.{os}-{arch}.{ext}",
    version_prefix="go",
    directory="/usr/local/go",
)


@dataclass
class RepositorySettings:
    """Defaults for the repository flow."""

    url: Optional[str] = None
    directory: Optional[str] = None
    binary_name: Optional[str] = None
    compiler: str = "go"
    min_compiler_version: str = "1.19"
    build_flags: List[str] = field(default_factory=lambda: ["-ldflags", "-s -w"])
    smoke_test_args: List[str] = field(default_factory=lambda: ["-h"])


@dataclass
class EnvironmentSettings:
    """Locations of the persistent search-path configuration."""

    system_profile_dir: str = "/etc/profile.d"
    user_profile: str = "~/.profile"


@dataclass
class Settings:
    """Complete ProvisionKit configuration."""

    repository: RepositorySettings = field(default_factory=RepositorySettings)
    toolchains: Dict[str, ToolchainDescriptor] = field(
        default_factory=lambda: {"go": GO_DESCRIPTOR}
    )
    environment: EnvironmentSettings = field(default_factory=EnvironmentSettings)
    log_dir: Optional[str] = None

    def toolchain(self, name: str) -> ToolchainDescriptor:
        """
        Look up a toolchain descriptor by name.

        Raises:
            ConfigurationError: If no descriptor is configured for name
        """
        try:
            return self.toolchains[name]
        except KeyError:
            available = ", ".join(sorted(self.toolchains)) or "none"
            raise ConfigurationError(
                f"Unknown toolchain '{name}'. Available: {available}"
            ) from None


def _check_value(key: str, value: Any, annotation: Any) -> None:
    """
    Check a config value against a dataclass field annotation.

    Only the shapes used by the settings dataclasses are handled: str,
    Optional[str] and List[str]. Numbers are never coerced to strings, so an
    unquoted `1.20` is rejected instead of silently becoming `1.2`.

    Raises:
        ConfigurationError: If value does not have the expected type
    """
    origin = get_origin(annotation)

    if origin is Union:
        if value is None:
            return
        inner = [arg for arg in get_args(annotation) if arg is not type(None)]
        _check_value(key, value, inner[0])
        return

    if origin is list:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(f"'{key}' must be a list of strings")
        return

    if annotation is str and not isinstance(value, str):
        hint = " (quote version numbers)" if isinstance(value, (int, float)) else ""
        raise ConfigurationError(
            f"'{key}' must be a string, got {type(value).__name__}{hint}"
        )


def _build_section(cls, data: Any, section: str):
    """Instantiate a dataclass section, rejecting unknown keys and bad types."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{section}' must be a mapping")

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in '{section}': {', '.join(unknown)}"
        )

    for f in fields(cls):
        if f.name in data:
            _check_value(f"{section}.{f.name}", data[f.name], f.type)

    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigurationError(f"Invalid '{section}' section: {e}") from e


def _parse_toolchains(data: Any) -> Dict[str, ToolchainDescriptor]:
    toolchains = {"go": GO_DESCRIPTOR}
    if data is None:
        return toolchains
    if not isinstance(data, dict):
        raise ConfigurationError("'toolchains' must be a mapping of name to settings")

    for name, entry in data.items():
        if entry is not None and not isinstance(entry, dict):
            raise ConfigurationError(f"'toolchains.{name}' must be a mapping")
        entry = dict(entry or {})
        base = toolchains.get(name)
        if base is not None:
            # Partial overrides of a built-in descriptor
            merged = {f.name: getattr(base, f.name) for f in fields(base)}
            merged.update(entry)
            entry = merged
        entry["name"] = name
        toolchains[name] = _build_section(
            ToolchainDescriptor, entry, f"toolchains.{name}"
        )

    return toolchains


def parse_settings(data: Optional[dict]) -> Settings:
    """
    Build Settings from parsed YAML data.

    Raises:
        ConfigurationError: If the data is malformed
    """
    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    unknown = sorted(set(data) - {"repository", "toolchains", "environment", "log_dir"})
    if unknown:
        raise ConfigurationError(f"Unknown configuration key(s): {', '.join(unknown)}")

    log_dir = data.get("log_dir")
    _check_value("log_dir", log_dir, Optional[str])

    return Settings(
        repository=_build_section(
            RepositorySettings, data.get("repository"), "repository"
        ),
        toolchains=_parse_toolchains(data.get("toolchains")),
        environment=_build_section(
            EnvironmentSettings, data.get("environment"), "environment"
        ),
        log_dir=log_dir,
    )


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Load settings from a YAML file.

    Args:
        config_path: Explicit config file. If None, ~/.provisionkit/config.yaml
            is used when it exists.

    Returns:
        Parsed settings (defaults when no file is present)

    Raises:
        ConfigurationError: If an explicit file is missing or any file is invalid
    """
    explicit = config_path is not None
    config_path = Path(config_path) if explicit else get_default_config_path()

    if not config_path.exists():
        if explicit:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        logger.debug(f"Config file not found (optional): {config_path}")
        return Settings()

    logger.debug(f"Loading configuration from {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    return parse_settings(data)
