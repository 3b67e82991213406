"""Process-wide defaults for hierarchy path encoding.

Every ``HierarchyConfig`` built without explicit separators takes them from
these settings. Once paths have been stored, the separators must not change:
previously written paths would no longer decode.

Environment variables use HIERARCHY_ prefix.
Example: HIERARCHY_PATH_SEPARATOR=/, HIERARCHY_RECORD_SEPARATOR=|
"""

from __future__ import annotations

from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_hierarchy_yaml_source


class HierarchySettings(BaseSettings):
    """Hierarchy encoding configuration settings.

    Attributes:
        path_separator: Separator placed between ancestor tokens.
        record_separator: Separator placed between type name and id in a token.
        like_escape: Escape character used for LIKE prefix queries.
        discover_children: Run relationship discovery for association maps
            when a model does not declare its children explicitly.

    Example:
        settings = HierarchySettings()
        token = f"Task{settings.record_separator}7"
    """

    path_separator: str = Field(
        default="/",
        min_length=1,
        max_length=8,
        description="Separator between ancestor tokens in a path",
    )
    record_separator: str = Field(
        default="|",
        min_length=1,
        max_length=8,
        description="Separator between type name and identifier in a token",
    )
    like_escape: str = Field(
        default="\\",
        min_length=1,
        max_length=1,
        description="Escape character for LIKE prefix queries",
    )
    discover_children: bool = Field(
        default=True,
        description="Discover child associations from one-to-many relationships",
    )

    @model_validator(mode="after")
    def check_separators(self) -> Self:
        """Reject separator combinations that make decoding ambiguous."""
        if self.path_separator == self.record_separator:
            msg = "path_separator and record_separator must differ"
            raise ValueError(msg)
        if self.like_escape in (self.path_separator, self.record_separator):
            msg = "like_escape must not be used as a separator"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="HIERARCHY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_hierarchy_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
