import json

import pytest

from treeplate.errors import ContextError, MetadataError, TemplateNotFound, ValidationError
from treeplate.generator.template import Metadata, load_template, read_context


def test_scenario_named_directory(make_template, tmp_path):
    root = make_template({"{{name}}/README.md": "Hello {{name}}!"}, context={"name": "demo"})
    tmpl = load_template(root)
    tmpl.use_defaults()

    tmpl.render(tmp_path / "out")

    assert (tmp_path / "out" / "demo" / "README.md").read_text() == "Hello demo!"


def test_scenario_group_default_without_prompting(make_template, tmp_path, canned):
    prompt = canned()
    root = make_template({"port.txt": "{{port}}"}, context={"advanced": {"port": 8080}})
    tmpl = load_template(root, prompt=prompt)
    tmpl.use_defaults()

    tmpl.render(tmp_path / "out")

    assert (tmp_path / "out" / "port.txt").read_text() == "8080"
    assert prompt.asked == []


def test_scenario_whitespace_only_file_and_dir_absent(make_template, tmp_path):
    root = make_template({"a.txt": "a", "only/blank.txt": "   \n"})
    tmpl = load_template(root)
    tmpl.use_defaults()

    tmpl.render(tmp_path / "out")

    assert not (tmp_path / "out" / "only").exists()


def test_missing_context_means_no_variables(make_template):
    tmpl = load_template(make_template({"a.txt": "plain"}))
    assert tmpl.defaults == {}
    assert tmpl.metadata == Metadata()


def test_missing_template_dir(tmp_path):
    with pytest.raises(TemplateNotFound):
        load_template(tmp_path)


def test_malformed_context(make_template):
    root = make_template({"a.txt": ""})
    (root / "project.json").write_text("{not json")
    with pytest.raises(ContextError):
        load_template(root)


def test_context_must_be_mapping(make_template):
    root = make_template({"a.txt": ""}, context=["a", "b"])
    with pytest.raises(ContextError, match="mapping"):
        load_template(root)


def test_undeclared_variable_fails_at_load(make_template, tmp_path):
    root = make_template({"a.txt": "{{ name }} {{ typo }}"}, context={"name": "demo"})
    with pytest.raises(ValidationError, match="typo"):
        load_template(root)
    assert not (tmp_path / "out").exists()


def test_metadata_passes_through(make_template):
    meta = {"name": "demo", "description": "A demo", "tags": ["x"]}
    tmpl = load_template(make_template({"a.txt": ""}, metadata=meta))

    assert tmpl.metadata.name == "demo"
    assert tmpl.metadata.model_dump(exclude_none=True) == meta


def test_bad_metadata(make_template):
    root = make_template({"a.txt": ""}, metadata=["nope"])
    with pytest.raises(MetadataError):
        load_template(root)


def test_use_values_json(make_template, tmp_path):
    root = make_template(
        {"out.txt": "{{ name }}|{{ owner }}|{{ port }}"},
        context={"name": "demo", "owner": "me", "advanced": {"port": 8080}},
    )
    values = tmp_path / "values.json"
    values.write_text(json.dumps({"name": "given", "advanced": {"port": 9000}}))
    tmpl = load_template(root)
    tmpl.use_values(values)

    tmpl.render(tmp_path / "out")

    assert (tmp_path / "out" / "out.txt").read_text() == "given||9000"


def test_use_values_yaml(make_template, tmp_path):
    root = make_template({"out.txt": "{{ name }}"}, context={"name": "demo"})
    values = tmp_path / "values.yml"
    values.write_text("name: from-yaml\n")
    tmpl = load_template(root)
    tmpl.use_values(values)

    tmpl.render(tmp_path / "out")

    assert (tmp_path / "out" / "out.txt").read_text() == "from-yaml"


def test_use_values_missing_file(make_template, tmp_path):
    tmpl = load_template(make_template({"a.txt": ""}))
    with pytest.raises(ContextError):
        tmpl.use_values(tmp_path / "absent.json")


def test_interactive_render_asks_once_per_variable(make_template, tmp_path, canned):
    prompt = canned({"name": "typed", "advanced": False, "port": 1})
    root = make_template(
        {"{{ name }}/a.txt": "{{ name }} {{ port }}", "b.txt": "{{ name }}"},
        context={"name": "demo", "advanced": {"port": 8080}},
    )
    tmpl = load_template(root, prompt=prompt)

    tmpl.render(tmp_path / "out")

    assert (tmp_path / "out" / "typed" / "a.txt").read_text() == "typed 8080"
    assert (tmp_path / "out" / "b.txt").read_text() == "typed"
    assert prompt.asked == ["name", "advanced"]


def test_each_render_prompts_afresh(make_template, tmp_path, canned):
    prompt = canned({"name": "typed"})
    tmpl = load_template(make_template({"a.txt": "{{ name }}"}, context={"name": "demo"}), prompt=prompt)

    tmpl.render(tmp_path / "one")
    tmpl.render(tmp_path / "two")

    assert prompt.asked == ["name", "name"]


@pytest.mark.parametrize("mode", ["defaults", "values", "interactive"])
def test_rendering_is_deterministic(make_template, tmp_path, canned, snapshot, mode):
    root = make_template(
        {"{{ pkg }}/__init__.py": "NAME = '{{ pkg }}'\n", "LICENSE": "{{ license }}\n", "empty/x.txt": " "},
        context={"pkg": "app", "license": ["mit", "bsd"]},
    )
    values = tmp_path / "values.json"
    values.write_text(json.dumps({"pkg": "given", "license": "bsd"}))

    outputs = []
    for target in ("first", "second"):
        tmpl = load_template(root, prompt=canned({"pkg": "typed", "license": "bsd"}))
        if mode == "defaults":
            tmpl.use_defaults()
        elif mode == "values":
            tmpl.use_values(values)
        tmpl.render(tmp_path / target)
        outputs.append(snapshot(tmp_path / target))

    assert outputs[0] == outputs[1]
    assert outputs[0]


def test_read_context_empty_yaml(tmp_path):
    path = tmp_path / "values.yaml"
    path.write_text("")
    assert read_context(path) == {}
