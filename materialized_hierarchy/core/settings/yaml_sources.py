"""Custom YAML config source with conf.d directory support.

Extends pydantic-settings YamlConfigSettingsSource to support:
- Main YAML file (e.g., conf/hierarchy.yaml)
- conf.d directory merging (e.g., conf/hierarchy.d/*.yaml)
- Alphabetical file ordering in conf.d

This keeps local/dev overrides in files while environment variables still
win in production deployments.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic_settings.sources.providers.yaml import YamlConfigSettingsSource

if TYPE_CHECKING:
    from pydantic_settings import BaseSettings


class ConfDYamlConfigSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with conf.d directory support.

    Supports the standard Linux conf.d pattern:
    - conf/hierarchy.yaml        (base configuration)
    - conf/hierarchy.d/*.yaml    (override files, merged alphabetically)

    Environment variable can override config directory:
    - HIERARCHY_CONFIG_DIR=/custom/path

    Example:
        class HierarchySettings(BaseSettings):
            @classmethod
            def settings_customise_sources(cls, settings_cls, ...):
                return (
                    init_settings,
                    create_hierarchy_yaml_source(settings_cls),
                    env_settings,
                    dotenv_settings,
                    file_secret_settings,
                )
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: str = "hierarchy.yaml",
        confd_dir: str | None = "hierarchy.d",
        config_dir_env: str = "CONFIG_DIR",
        base_dir: str = "conf",
        yaml_file_encoding: str | None = "utf-8",
    ) -> None:
        """Initialize the conf.d YAML source.

        Args:
            settings_cls: The settings class being configured.
            yaml_file: Main YAML file name (e.g., "hierarchy.yaml").
            confd_dir: conf.d subdirectory name (e.g., "hierarchy.d"), or None to disable.
            config_dir_env: Environment variable to override base directory.
            base_dir: Default base directory for config files.
            yaml_file_encoding: File encoding for YAML files.
        """
        config_base = Path(os.getenv(config_dir_env, base_dir))

        yaml_files: list[Path] = []

        main_file = config_base / yaml_file
        if main_file.exists():
            yaml_files.append(main_file)

        # conf.d files are sorted for deterministic override order
        if confd_dir:
            confd_path = config_base / confd_dir
            if confd_path.exists() and confd_path.is_dir():
                yaml_files.extend(sorted(confd_path.glob("*.yaml")))
                yaml_files.extend(sorted(confd_path.glob("*.yml")))
                # JSON files are also valid YAML
                yaml_files.extend(sorted(confd_path.glob("*.json")))

        self._yaml_files = yaml_files

        super().__init__(
            settings_cls=settings_cls,
            yaml_file=yaml_files if yaml_files else None,
            yaml_file_encoding=yaml_file_encoding,
        )

    @property
    def yaml_files(self) -> list[Path]:
        """Files that were found and will be merged, in load order."""
        return list(self._yaml_files)

    def __repr__(self) -> str:
        """Return human-readable summary of configured YAML files."""
        if self._yaml_files:
            files_str = ", ".join(str(f) for f in self._yaml_files)
            return f"{self.__class__.__name__}(yaml_files=[{files_str}])"
        return f"{self.__class__.__name__}(yaml_files=[])"


# ============================================================================
# Convenience factory functions for each settings domain
# ============================================================================


def create_hierarchy_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for HierarchySettings.

    Loads from:
    - conf/hierarchy.yaml (base)
    - conf/hierarchy.d/*.yaml (overrides)

    Override directory with: HIERARCHY_CONFIG_DIR=/custom/path
    """
    return ConfDYamlConfigSettingsSource(
        settings_cls,
        yaml_file="hierarchy.yaml",
        confd_dir="hierarchy.d",
        config_dir_env="HIERARCHY_CONFIG_DIR",
    )


def create_logging_yaml_source(settings_cls: type[BaseSettings]) -> ConfDYamlConfigSettingsSource:
    """Create YAML source for LoggingSettings.

    Loads from:
    - conf/logging.yaml (base)
    - conf/logging.d/*.yaml (overrides)

    Override directory with: LOGGING_CONFIG_DIR=/custom/path
    """
    return ConfDYamlConfigSettingsSource(
        settings_cls,
        yaml_file="logging.yaml",
        confd_dir="logging.d",
        config_dir_env="LOGGING_CONFIG_DIR",
    )
