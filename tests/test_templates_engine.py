import pytest

from moodlekit.templates.engine import MAX_PARTIAL_DEPTH, MustacheEngine, escape_html
from moodlekit.templates.lexer import parse
from moodlekit.templates.nodes import Section
from moodlekit.templates.values import SectionLambda, is_truthy, to_text
from moodlekit.utils.exceptions import MoodleKitError, TemplateSyntaxError


@pytest.fixture
def engine() -> MustacheEngine:
    return MustacheEngine()


def test_variables_are_escaped_unless_triple_or_ampersand(engine: MustacheEngine) -> None:
    ctx = {"v": "<b>&'\"</b>"}

    assert engine.render("{{v}}", ctx) == "&lt;b&gt;&amp;&#39;&quot;&lt;&#x2F;b&gt;"
    assert engine.render("{{{v}}}", ctx) == "<b>&'\"</b>"
    assert engine.render("{{& v}}", ctx) == "<b>&'\"</b>"


def test_escape_html_covers_mustache_js_entities() -> None:
    assert escape_html("a=`b`") == "a&#x3D;&#x60;b&#x60;"


def test_missing_names_render_empty(engine: MustacheEngine) -> None:
    assert engine.render("[{{nope}}][{{a.b.c}}]", {"a": {"b": {}}}) == "[][]"


def test_dotted_names_and_implicit_iterator(engine: MustacheEngine) -> None:
    ctx = {"user": {"name": "Ann"}, "tags": ["x", "y"]}

    assert engine.render("{{user.name}}", ctx) == "Ann"
    assert engine.render("{{#tags}}<{{.}}>{{/tags}}", ctx) == "<x><y>"


def test_sections_iterate_push_and_fall_back_to_outer_frames(engine: MustacheEngine) -> None:
    ctx = {"title": "T", "items": [{"n": 1}, {"n": 2}], "box": {"n": 9}}

    assert engine.render("{{#items}}{{title}}{{n}};{{/items}}", ctx) == "T1;T2;"
    assert engine.render("{{#box}}{{n}}{{/box}}", ctx) == "9"


def test_truthiness_follows_mustache_rules(engine: MustacheEngine) -> None:
    template = "{{#v}}yes{{/v}}{{^v}}no{{/v}}"

    for falsy in (None, False, 0, "", [], float("nan")):
        assert engine.render(template, {"v": falsy}) == "no"
    for truthy in (True, 1, "0", [0], {}):
        assert engine.render(template, {"v": truthy}) == "yes"
    assert is_truthy({}) is True


def test_to_text_formats_scalars_like_javascript() -> None:
    assert to_text(True) == "true"
    assert to_text(3.0) == "3"
    assert to_text(2.5) == "2.5"
    assert to_text([1, "a", None]) == "1,a,"


def test_section_lambda_receives_raw_text_and_render(engine: MustacheEngine) -> None:
    seen: list[str] = []

    def shout(text, render):
        seen.append(text)
        return render(text).upper()

    ctx = {"name": "bob", "shout": SectionLambda(shout)}

    assert engine.render("{{#shout}}hi {{name}}{{/shout}}!", ctx) == "HI BOB!"
    assert seen == ["hi {{name}}"]


def test_section_lambda_in_variable_position_renders_empty(engine: MustacheEngine) -> None:
    ctx = {"helper": SectionLambda(lambda text, render: "x")}

    assert engine.render("[{{helper}}]", ctx) == "[]"


def test_plain_callable_variable_is_invoked(engine: MustacheEngine) -> None:
    assert engine.render("{{now}}", {"now": lambda: 42}) == "42"


def test_standalone_tags_take_their_line(engine: MustacheEngine) -> None:
    source = "<ul>\n  {{#items}}\n  <li>{{.}}</li>\n  {{/items}}\n</ul>\n"

    assert engine.render(source, {"items": ["a", "b"]}) == "<ul>\n  <li>a</li>\n  <li>b</li>\n</ul>\n"


def test_comments_and_delimiter_changes(engine: MustacheEngine) -> None:
    source = "{{! ignored }}{{=<% %>=}}<% a %>{{a}}<%={{ }}=%>{{a}}"

    assert engine.render(source, {"a": "1"}) == "1{{a}}1"


def test_partials_are_loaded_and_indented(engine: MustacheEngine) -> None:
    partials = {"core/item": "<i>{{name}}</i>\n"}
    source = "<div>\n  {{> core/item}}\n</div>"

    html = engine.render(source, {"name": "z"}, partials=partials.get)

    assert html == "<div>\n  <i>z</i>\n</div>"


def test_missing_partial_renders_empty(engine: MustacheEngine) -> None:
    assert engine.render("a{{> nope}}b", {}, partials=lambda name: None) == "ab"
    assert engine.render("a{{> nope}}b", {}) == "ab"


def test_recursive_partial_is_bounded(engine: MustacheEngine) -> None:
    partials = {"loop": "{{> loop}}"}

    with pytest.raises(MoodleKitError) as excinfo:
        engine.render("{{> loop}}", {}, partials=partials.get)

    assert excinfo.value.code == "PARTIAL_DEPTH_EXCEEDED"
    assert str(MAX_PARTIAL_DEPTH) in excinfo.value.message


def test_section_keeps_raw_inner_source() -> None:
    template = parse("a{{#s}} {{x}} {{/s}}b")
    section = template.children[1]

    assert isinstance(section, Section)
    assert section.raw == " {{x}} "


@pytest.mark.parametrize(
    "source, fragment",
    [
        ("{{#a}}x", "Unclosed section 'a'"),
        ("x{{/a}}", "Unopened section 'a'"),
        ("{{#a}}{{/b}}", "Unclosed section 'a'"),
        ("{{ }}", "Empty tag"),
        ("{{a", "Unclosed tag"),
    ],
)
def test_syntax_errors(source: str, fragment: str) -> None:
    with pytest.raises(TemplateSyntaxError) as excinfo:
        parse(source, name="core/broken")

    assert fragment in str(excinfo.value)
    assert excinfo.value.details["template"] == "core/broken"


def test_parse_is_memoised_by_source(engine: MustacheEngine) -> None:
    assert engine.parse("{{a}}") is engine.parse("{{a}}")
