"""Walking a template tree: validation, rendering and pruning of the result."""

from __future__ import annotations

import logging
import os
import re
import stat
from pathlib import Path
from typing import Callable, Iterable, Iterator, Tuple

from ..errors import RenderError, ValidationError
from .renderer import TemplateRenderer
from .variables import ProviderTable

logger = logging.getLogger(__name__)

Visitor = Callable[[Path, str, bool], None]

_NON_WHITESPACE = re.compile(rb"\S")


def _entries(directory: Path) -> Iterator[Tuple[Path, bool]]:
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        is_dir = stat.S_ISDIR(entry.lstat().st_mode)
        yield entry, is_dir
        if is_dir:
            yield from _entries(entry)


def walk_template(template_dir: Path, visit: Visitor) -> None:
    """Call ``visit(path, relative_name, is_dir)`` for the root and every entry below it.

    Entries come depth-first in lexical order, each directory before its
    children. The root is visited first with the relative name ``"."``.
    """
    visit(template_dir, ".", True)
    for path, is_dir in _entries(template_dir):
        visit(path, os.path.relpath(path, template_dir), is_dir)


def _read_source(path: Path, rel: str, error: type) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise error(rel, f"not a UTF-8 text file ({exc.reason})") from exc


def validate_tree(template_dir: Path, known: Iterable[str], renderer: TemplateRenderer) -> None:
    """Parse every name and file in the tree; raise on the first problem found."""
    known = frozenset(known)

    def check(path: Path, rel: str, is_dir: bool) -> None:
        renderer.parse(rel, known, rel)
        if not is_dir:
            renderer.parse(_read_source(path, rel, ValidationError), known, rel)

    walk_template(template_dir, check)


def _discard_if_blank(path: Path) -> None:
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.debug("couldn't read back %s: %s", path, exc)
        return
    if _NON_WHITESPACE.search(data):
        return
    try:
        path.unlink()
    except OSError as exc:
        logger.debug("couldn't remove blank file %s: %s", path, exc)
    else:
        logger.debug("removed blank file %s", path)


def _write_file(
    source: Path, dest: Path, rel: str, table: ProviderTable, renderer: TemplateRenderer
) -> None:
    mode = stat.S_IMODE(source.lstat().st_mode)
    text = _read_source(source, rel, RenderError)

    try:
        dest.unlink()
    except FileNotFoundError:
        pass

    fd = os.open(dest, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, mode)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as stream:
            renderer.render_to(text, table, stream, rel)
        os.chmod(dest, mode)
    finally:
        _discard_if_blank(dest)


def _target_path(target: Path, new_name: str, rel: str) -> Path:
    """Join a rendered name onto the target, keeping the result inside it.

    An empty substitution can leave a leading separator (`{{ sub }}/x.txt`
    becomes `/x.txt`); that is joined as a relative name.
    """
    base = os.path.abspath(target)
    dest = os.path.abspath(os.path.join(base, new_name.lstrip(os.sep + (os.altsep or ""))))
    if os.path.commonpath([base, dest]) != base:
        raise RenderError(rel, f"rendered path {new_name!r} points outside the target directory")
    return Path(dest)


def render_tree(
    template_dir: Path,
    table: ProviderTable,
    target: Path,
    renderer: TemplateRenderer,
    silent: bool = False,
) -> None:
    """Render ``template_dir`` into ``target`` and prune directories left empty.

    Stops at the first error; whatever was written before it stays on disk.
    """
    template_dir = Path(template_dir)
    target = Path(target)

    def write(path: Path, rel: str, is_dir: bool) -> None:
        new_name = renderer.render(rel, table, rel)
        dest = _target_path(target, new_name, rel)

        if is_dir:
            # only the root may need its parents created
            dest.mkdir(parents=rel == ".", exist_ok=True)
            return

        _write_file(path, dest, rel, table, renderer)
        if not silent:
            logger.info("Created %s", new_name)

    walk_template(template_dir, write)
    prune_empty_dirs(target)


def prune_empty_dirs(directory: Path) -> None:
    """Remove ``directory`` and every directory below it that ends up empty.

    Best-effort: failures are logged and skipped.
    """
    directory = Path(directory)
    if directory.is_symlink() or not directory.is_dir():
        return

    try:
        children = list(directory.iterdir())
    except OSError as exc:
        logger.debug("couldn't list %s: %s", directory, exc)
        return

    for child in children:
        prune_empty_dirs(child)

    try:
        if any(directory.iterdir()):
            return
        directory.rmdir()
    except OSError as exc:
        logger.debug("couldn't remove empty directory %s: %s", directory, exc)
    else:
        logger.debug("removed empty directory %s", directory)
