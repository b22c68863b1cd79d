"""Exceptions raised while loading, validating and rendering templates."""

from __future__ import annotations


class TreeplateError(Exception):
    """Base class for every error raised by treeplate."""


class TemplateNotFound(TreeplateError):
    pass


class ContextError(TreeplateError):
    """Context or value file is unreadable or has the wrong shape."""


class MetadataError(TreeplateError):
    pass


class ValidationError(TreeplateError):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class RenderError(TreeplateError):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message
