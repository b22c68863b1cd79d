"""File-name conventions and locations, overridable through TREEPLATE_* variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TREEPLATE_", case_sensitive=False, frozen=True)

    context_file: str = "project.json"
    metadata_file: str = "__metadata.json"
    template_dir: str = "template"
    template_home: Path = Path("~/.config/treeplate/templates").expanduser()

    @field_validator("template_home")
    @classmethod
    def _expand_home(cls, value: Path) -> Path:
        return value.expanduser()


settings = Settings()
