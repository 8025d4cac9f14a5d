import asyncio

import pytest

from moodlekit.ajax.dispatcher import AjaxDispatcher
from moodlekit.config.schema import SiteConfig
from moodlekit.strings.resolver import GET_STRING_METHOD, StringRequest, StringResolver
from moodlekit.templates.cache import LOAD_TEMPLATE_METHOD, TemplateCache
from moodlekit.templates.render_pass import RenderPass, substitute_strings
from moodlekit.templates.renderer import TemplateRenderer, embed_template_js
from moodlekit.utils.exceptions import RemoteCallError, StringArgumentError, ValidationError

PIX_ICON = '<img class="icon {{class}}" alt="{{alt}}" src="{{src}}">'

STRINGS = {
    ("core", "somekey"): "World",
    ("core", "yes"): "Yes",
    ("moodle", "inactive"): "Inactive",
    ("core", "braces"): "{{_s0}} {{x}}",
}


class _StubResolver:
    """Stands in for StringResolver and records every request it was given."""

    def __init__(self, table=None):
        self.table = STRINGS if table is None else table
        self.requests: list[list[StringRequest]] = []

    async def get_strings(self, requests):
        self.requests.append(list(requests))
        return [self.table[(r.component or "core", r.key)] for r in requests]


@pytest.fixture
def site() -> SiteConfig:
    return SiteConfig(wwwroot="https://school.example/", theme="classic", themerev=42)


@pytest.fixture
def renderer_parts(fake_site, site):
    fake_site.handlers[LOAD_TEMPLATE_METHOD] = lambda args: {
        "core/pix_icon": PIX_ICON,
        "core/greeting": "Hello {{#str}}somekey, core{{/str}}",
    }[f"{args['component']}/{args['template']}"]
    cache = TemplateCache(AjaxDispatcher(fake_site))
    strings = _StubResolver()
    return TemplateRenderer(cache, strings, site=site), cache, strings


@pytest.mark.asyncio
async def test_str_helper_is_resolved_after_expansion(renderer_parts) -> None:
    renderer, _, strings = renderer_parts

    html, js = await renderer.render_source("Hello {{#str}}somekey, core{{/str}}", {})

    assert html == "Hello World"
    assert js == ""
    assert strings.requests == [[StringRequest(key="somekey", component="core")]]


@pytest.mark.asyncio
async def test_render_by_name_fetches_template_and_icon(renderer_parts, fake_site) -> None:
    renderer, cache, _ = renderer_parts

    result = await renderer.render("core/greeting")

    assert result.html == "Hello World"
    assert sorted(c["args"]["template"] for c in fake_site.calls) == ["greeting", "pix_icon"]

    await renderer.render("core/greeting")
    assert len(fake_site.calls) == 2


@pytest.mark.asyncio
async def test_js_helper_collects_script_and_renders_nothing(renderer_parts) -> None:
    renderer, _, _ = renderer_parts

    html, js = await renderer.render_source("{{#js}}console.log(1);{{/js}}", {})

    assert html == ""
    assert js == "console.log(1);"


@pytest.mark.asyncio
async def test_js_blocks_join_and_see_context_and_strings(renderer_parts) -> None:
    renderer, _, _ = renderer_parts
    source = (
        "<b>{{#str}}yes{{/str}}</b>"
        "{{#js}}init({{id}}){{/js}}"
        "{{#js}}alert('{{#str}}somekey{{/str}}'){{/js}}"
    )

    html, js = await renderer.render_source(source, {"id": 7})

    assert html == "<b>Yes</b>"
    assert js == "init(7);\nalert('World')"


@pytest.mark.asyncio
async def test_json_param_is_passed_as_dict(renderer_parts) -> None:
    renderer, _, strings = renderer_parts

    await renderer.render_source('{{#str}}somekey, core, {"a":"fish"}{{/str}}', {})

    assert strings.requests[0][0].param == {"a": "fish"}


@pytest.mark.asyncio
async def test_param_is_rendered_against_context(renderer_parts) -> None:
    renderer, _, strings = renderer_parts

    await renderer.render_source("{{#str}}somekey, core, {{name}}{{/str}}", {"name": "Ann"})

    assert strings.requests[0][0].param == "Ann"


@pytest.mark.asyncio
async def test_invalid_json_param_fails_the_render(renderer_parts) -> None:
    renderer, _, _ = renderer_parts

    with pytest.raises(StringArgumentError):
        await renderer.render_source("{{#str}}somekey, core, {nope{{/str}}", {})


@pytest.mark.asyncio
async def test_resolved_text_is_never_rescanned(renderer_parts) -> None:
    renderer, _, _ = renderer_parts

    html, _ = await renderer.render_source("[{{#str}}braces{{/str}}][{{#str}}yes{{/str}}]", {"x": "no"})

    assert html == "[{{_s0}} {{x}}][Yes]"


@pytest.mark.asyncio
async def test_pix_helper_renders_icon_template(renderer_parts) -> None:
    renderer, _, _ = renderer_parts

    html, _ = await renderer.render_source("{{#pix}}i/edit, core, Edit this{{/pix}}", {})

    assert html == (
        '<img class="icon smallicon" alt="Edit this" '
        'src="https:&#x2F;&#x2F;school.example&#x2F;theme&#x2F;image.php&#x2F;classic&#x2F;core&#x2F;42&#x2F;i&#x2F;edit">'
    )


@pytest.mark.asyncio
async def test_context_gets_uniqid_and_globals(renderer_parts) -> None:
    renderer, _, _ = renderer_parts

    html, _ = await renderer.render_source("{{{globals.config.wwwroot}}}|{{uniqid}}", {})
    root, uniqid = html.split("|")

    assert root == "https://school.example"
    assert int(uniqid) > 0


@pytest.mark.asyncio
async def test_caller_context_is_not_mutated(renderer_parts) -> None:
    renderer, _, _ = renderer_parts
    context = {"a": 1}

    await renderer.render_source("{{a}}", context)

    assert context == {"a": 1}


@pytest.mark.asyncio
async def test_non_mapping_context_is_rejected(renderer_parts) -> None:
    renderer, _, _ = renderer_parts

    with pytest.raises(ValidationError):
        await renderer.render_source("{{a}}", ["not", "a", "mapping"])


@pytest.mark.asyncio
async def test_concurrent_renders_keep_their_own_strings(renderer_parts) -> None:
    renderer, _, _ = renderer_parts

    first, second = await asyncio.gather(
        renderer.render_source("{{#str}}somekey{{/str}}{{#js}}a(){{/js}}", {}),
        renderer.render_source("{{#str}}yes{{/str}}{{#js}}b(){{/js}}", {}),
    )

    assert first == ("World", "a()")
    assert second == ("Yes", "b()")


@pytest.mark.asyncio
async def test_partials_come_from_the_cache(renderer_parts) -> None:
    renderer, cache, _ = renderer_parts
    cache.seed("core/item", "<li>{{.}}</li>")

    html, _ = await renderer.render_source("<ul>{{#items}}{{> core/item}}{{/items}}</ul>", {"items": [1, 2]})

    assert html == "<ul><li>1</li><li>2</li></ul>"


@pytest.mark.asyncio
async def test_missing_template_surfaces_remote_error(renderer_parts) -> None:
    renderer, _, _ = renderer_parts

    with pytest.raises(RemoteCallError):
        await renderer.render("core/missing")


@pytest.mark.asyncio
async def test_renders_with_real_string_resolver(fake_site, site) -> None:
    fake_site.handlers[LOAD_TEMPLATE_METHOD] = lambda args: PIX_ICON
    fake_site.handlers[GET_STRING_METHOD] = lambda args: f"<{args['component']}:{args['stringid']}>"
    dispatcher = AjaxDispatcher(fake_site)
    renderer = TemplateRenderer(TemplateCache(dispatcher), StringResolver(dispatcher), site=site)

    html, _ = await renderer.render_source("{{#str}}a{{/str}} {{#str}}b, mod_forum{{/str}}", {})

    assert html == "<core:a> <mod_forum:b>"
    assert len(fake_site.batches[-1]) == 2


def test_substitute_strings_replaces_each_index_once() -> None:
    assert substitute_strings("{{_s0}}{{_s0}}{{_s1}}{{_s9}}", ["A", "B"]) == "A{{_s0}}B{{_s9}}"


def test_render_pass_uniqids_increase() -> None:
    assert RenderPass().uniqid < RenderPass().uniqid


def test_embed_template_js_escapes_closing_tags() -> None:
    assert embed_template_js("") == ""
    assert embed_template_js("x('</script>')") == '<script type="text/javascript">\nx(\'<\\/script>\')\n</script>'
