from __future__ import annotations

import pytest

from monoweave.template import TemplateBundle, TemplateError, TemplateRenderer


@pytest.fixture()
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


def test_render_string_with_filters(renderer: TemplateRenderer):
    template = "Project {{ name|title }} exports {{ name|snake }} as {{ name|screaming }}"
    rendered = renderer.render_string(template, {"name": "my-app"})
    assert rendered == "Project MyApp exports my_app as MY_APP"


def test_render_string_repr_and_json_filters(renderer: TemplateRenderer):
    rendered = renderer.render_string("{{ name|repr }} {{ name|json }}", {"name": "web"})
    assert rendered == "'web' \"web\""


def test_render_string_missing_policy_keep(renderer: TemplateRenderer):
    template = "Hello {{ missing }}"
    assert renderer.render_string(template, {}, missing="keep") == template


def test_render_string_missing_policy_empty(renderer: TemplateRenderer):
    template = "Hello {{ missing }}"
    assert renderer.render_string(template, {}, missing="empty") == "Hello "


def test_render_string_missing_policy_error(renderer: TemplateRenderer):
    with pytest.raises(TemplateError):
        renderer.render_string("{{ missing }}", {}, missing="error")


def test_unknown_filter_raises(renderer: TemplateRenderer):
    with pytest.raises(TemplateError):
        renderer.render_string("{{ name|unknown }}", {"name": "demo"})


def test_escaped_braces_are_emitted_literally(renderer: TemplateRenderer):
    rendered = renderer.render_string("\\{{ name }} is {{ name }}", {"name": "demo"})
    assert rendered == "{{ name }} is demo"


def test_booleans_render_in_lower_case(renderer: TemplateRenderer):
    assert renderer.render_string("{{ flag }}", {"flag": True}) == "true"


@pytest.mark.parametrize(
    "flag, expected",
    [
        (True, "a:\n  - yes\nend\n"),
        (False, "a:\n  - no\nend\n"),
    ],
)
def test_standalone_conditional_lines_leave_no_blank_lines(renderer: TemplateRenderer, flag, expected):
    template = "a:\n{{#if on}}\n  - yes\n{{else}}\n  - no\n{{/if}}\nend\n"
    assert renderer.render_string(template, {"on": flag}) == expected


def test_inline_and_nested_conditionals(renderer: TemplateRenderer):
    template = "[{{#if outer}}o{{#if inner}}i{{else}}-{{/if}}{{/if}}]"
    assert renderer.render_string(template, {"outer": True, "inner": False}) == "[o-]"
    assert renderer.render_string(template, {"outer": False, "inner": True}) == "[]"


@pytest.mark.parametrize(
    "template, context",
    [
        ("{{#if ghost}}x{{/if}}", {}),
        ("{{#if name}}x{{/if}}", {"name": "not a bool"}),
        ("{{#if on}}x", {"on": True}),
        ("x{{/if}}", {}),
        ("{{else}}", {}),
        ("{{#each items}}", {"items": []}),
    ],
)
def test_invalid_conditionals_raise(renderer: TemplateRenderer, template, context):
    with pytest.raises(TemplateError):
        renderer.render_string(template, context)


def test_bundle_parse_ignores_preamble():
    bundle = TemplateBundle.parse("demo", "Notes for humans.\nFILE: a.txt\nA\nFILE: dir/b.txt\nB\n")
    assert bundle.paths == ("a.txt", "dir/b.txt")
    assert bundle.files[0] == ("a.txt", "A\n")


@pytest.mark.parametrize(
    "source",
    [
        "no markers here",
        "FILE: \nbody",
        "FILE: /etc/passwd\nbody",
        "FILE: ../escape.txt\nbody",
        "FILE: a.txt\nx\nFILE: a.txt\ny",
    ],
)
def test_bundle_parse_rejects_malformed_sources(source):
    with pytest.raises(TemplateError) as excinfo:
        TemplateBundle.parse("broken", source)
    assert excinfo.value.template == "broken"
    assert excinfo.value.exit_code == 4


def test_render_bundle_renders_paths_and_bodies(renderer: TemplateRenderer):
    bundle = TemplateBundle.parse("demo", "FILE: src/{{ snakeName }}.rs\n// {{ titleName }}\n")
    rendered = renderer.render_bundle(bundle, {"snakeName": "my_lib", "titleName": "MyLib"})
    assert dict(rendered) == {"src/my_lib.rs": b"// MyLib\n"}


def test_render_bundle_reports_failing_file(renderer: TemplateRenderer):
    bundle = TemplateBundle.parse("demo", "FILE: ok.txt\nfine\nFILE: bad.txt\n{{ nope }}\n")
    with pytest.raises(TemplateError) as excinfo:
        renderer.render_bundle(bundle, {})
    assert excinfo.value.template == "demo/bad.txt"


def test_conditionals_do_not_span_files(renderer: TemplateRenderer):
    bundle = TemplateBundle.parse("demo", "FILE: a.txt\n{{#if on}}\nFILE: b.txt\n{{/if}}\n")
    with pytest.raises(TemplateError):
        renderer.render_bundle(bundle, {"on": True})
