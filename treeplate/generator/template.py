"""Loading a template directory and rendering it into a target directory."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from ..config import Settings, settings as default_settings
from ..errors import ContextError, MetadataError, TemplateNotFound
from ..utils.prompt import new_prompt
from .renderer import TemplateRenderer
from .variables import PromptFactory, declared_names, parse_defaults, resolve
from .walker import render_tree, validate_tree

logger = logging.getLogger(__name__)


class Metadata(BaseModel):
    """Descriptive record shipped with a template; unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    description: str | None = None
    author: str | None = None
    repository: str | None = None
    version: str | None = None
    created: str | None = None


def read_context(path: Path, required: bool = False) -> Dict[str, Any]:
    """Read a JSON (or ``.yml``/``.yaml``) mapping; a missing optional file is empty."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if required:
            raise ContextError(f"file not found: {path}")
        return {}
    except OSError as exc:
        raise ContextError(f"cannot read {path}: {exc}") from exc

    try:
        if path.suffix in (".yml", ".yaml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise ContextError(f"malformed {path.name}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ContextError(f"{path.name} must hold a mapping, got {type(data).__name__}")
    return data


def read_metadata(path: Path) -> Metadata:
    if not path.exists():
        return Metadata()
    try:
        return Metadata.model_validate_json(path.read_bytes())
    except (OSError, PydanticValidationError) as exc:
        raise MetadataError(f"invalid metadata in {path}: {exc}") from exc


class Template:
    def __init__(
        self,
        path: Path,
        context: Dict[str, Any],
        metadata: Metadata,
        settings: Settings = default_settings,
        renderer: Optional[TemplateRenderer] = None,
        prompt: PromptFactory = new_prompt,
    ) -> None:
        self.path = Path(path)
        self.template_dir = self.path / settings.template_dir
        self.context = context
        self.defaults = parse_defaults(context)
        self.renderer = renderer or TemplateRenderer()
        self._metadata = metadata
        self._prompt = prompt
        self._use_defaults = False
        self._values: Optional[Dict[str, Any]] = None

    @property
    def metadata(self) -> Metadata:
        return self._metadata

    def validate(self) -> None:
        validate_tree(self.template_dir, declared_names(self.defaults), self.renderer)

    def use_defaults(self) -> None:
        """Render with every variable at its default, without prompting or per-file output."""
        self._use_defaults = True

    def use_values(self, path) -> None:
        """Render with the values from a file instead of prompting.

        Variables the file leaves out render empty; they do not fall back to
        their defaults.
        """
        self._values = read_context(Path(path).expanduser().resolve(), required=True)

    def render(self, target) -> None:
        table = resolve(self.defaults, self._values, self._use_defaults, self._prompt)
        logger.debug("rendering %s into %s", self.template_dir, target)
        render_tree(self.template_dir, table, Path(target), self.renderer, silent=self._use_defaults)


def load_template(
    path,
    settings: Settings = default_settings,
    prompt: PromptFactory = new_prompt,
) -> Template:
    """Read a template's context and metadata, then validate its tree."""
    root = Path(path).expanduser().resolve()
    if not (root / settings.template_dir).is_dir():
        raise TemplateNotFound(f"no {settings.template_dir}/ directory in {root}")

    context = read_context(root / settings.context_file)
    metadata = read_metadata(root / settings.metadata_file)

    template = Template(root, context, metadata, settings=settings, prompt=prompt)
    template.validate()
    return template
