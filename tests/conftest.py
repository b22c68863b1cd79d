import json
from pathlib import Path

import pytest


class CannedPrompt:
    """Stands in for the interactive prompt; records every question asked."""

    def __init__(self, answers=None):
        self.answers = answers or {}
        self.asked = []

    def __call__(self, name, default):
        def ask():
            self.asked.append(name)
            return self.answers.get(name, default)
        return ask


@pytest.fixture
def canned():
    return CannedPrompt


@pytest.fixture
def make_template(tmp_path):
    def make(files, context=None, metadata=None, dirs=(), name="tmpl") -> Path:
        root = tmp_path / name
        tree = root / "template"
        tree.mkdir(parents=True)
        for rel, content in files.items():
            path = tree / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        for rel in dirs:
            (tree / rel).mkdir(parents=True, exist_ok=True)
        if context is not None:
            (root / "project.json").write_text(json.dumps(context), encoding="utf-8")
        if metadata is not None:
            (root / "__metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
        return root
    return make


def snapshot(directory: Path) -> dict:
    return {
        str(p.relative_to(directory)): (p.read_bytes() if p.is_file() else None)
        for p in sorted(directory.rglob("*"))
    }


@pytest.fixture(name="snapshot")
def snapshot_fixture():
    return snapshot
