from __future__ import annotations

import logging

import pytest


def _global(**kwargs):
    from zapgen.generator.template_util import GenerationGlobal

    return GenerationGlobal(db=None, session_id=0, **kwargs)


async def _render(source: str, global_=None, tmp_path=None) -> str:
    from zapgen.generator.template_engine import create_environment
    from zapgen.generator.template_util import TemplateScope, reset_current_global, set_current_global

    global_ = global_ or _global()
    env = create_environment(tmp_path or ".")
    token = set_current_global(global_)
    try:
        return await env.from_string(source).render_async(this=TemplateScope(global_))
    finally:
        reset_current_global(token)


def test_formatting_helpers() -> None:
    from zapgen.generator import helper_zap

    assert helper_zap.zap_header().startswith("// This file is generated by ZCL Advanced Platform generator.")
    assert helper_zap.indent() == "  "
    assert helper_zap.indent(3) == "      "
    assert helper_zap.new_line() == "\n"
    assert helper_zap.new_line(2) == "\n\n"
    assert helper_zap.backslash() == "\\"
    assert helper_zap.as_uppercase("on_off") == "ON_OFF"
    assert helper_zap.as_uppercase(None) == ""
    assert helper_zap.as_last_word("Level Control Cluster") == "Cluster"
    assert helper_zap.trim_string("  x  ") == "x"
    assert helper_zap.trim_string(None) is None
    assert helper_zap.concatenate("a", "b", None, "c") == "a b  c"


def test_comparison_helpers() -> None:
    from zapgen.generator import helper_zap

    assert helper_zap.is_equal(" abc", "abc ")
    assert not helper_zap.is_equal("abc", "ABC")
    assert helper_zap.is_lowercase_equal('"On/Off"', "on/off")
    assert helper_zap.is_num_equal("1", 1)
    assert helper_zap.is_num_equal("0x10", "0x10")
    assert not helper_zap.is_num_equal(2, "3")
    assert helper_zap.is_defined(0)
    assert not helper_zap.is_defined("")
    assert not helper_zap.is_defined(None)
    assert helper_zap.toggle(True, "yes", "no") == "yes"
    assert helper_zap.toggle(0, "yes", "no") == "no"
    assert helper_zap.is_string_underscored("ON_OFF")
    assert not helper_zap.is_string_underscored("OnOff")
    assert not helper_zap.is_string_underscored(None)


def test_string_rewriting_helpers() -> None:
    from zapgen.generator import helper_zap

    assert helper_zap.replace_string("a-b-c", "-", "_") == "a_b-c"
    assert helper_zap.add_prefix_to_all_strings("0x10 + FOO * 3", "EMBER_") == "0x10 + EMBER_FOO * 3"
    assert helper_zap.add_prefix_to_all_strings("MAX_LEVEL", "ZCL_") == "ZCL_MAX_LEVEL"
    assert helper_zap.multiply(2, "3", "0x2") == 12


def test_command_availability_by_side(caplog) -> None:
    from zapgen.generator.zcl_util import is_command_available, is_str_equal

    assert is_str_equal("On/Off", "on/off")
    assert not is_str_equal("On/Off", None)

    # Client side: receives server-sourced, sends client-sourced.
    assert is_command_available("client", 1, 0, "server", "Report")
    assert is_command_available("Client", 0, 1, "client", "On")
    assert not is_command_available("client", 1, 0, "client", "On")
    # Server side is the reverse.
    assert is_command_available("server", 1, 0, "client", "On")
    assert is_command_available("server", 0, 1, "server", "Report")
    assert not is_command_available("server", 0, 1, "client", "On")

    with caplog.at_level(logging.WARNING):
        assert not is_command_available("server", 1, 1, None, "Orphan")
    assert "Orphan" in caplog.text


def test_fail_raises_template_failure() -> None:
    from zapgen.exceptions import TemplateFailure
    from zapgen.generator import helper_zap

    with pytest.raises(TemplateFailure, match="Template failure."):
        helper_zap.fail()
    with pytest.raises(TemplateFailure, match="custom"):
        helper_zap.fail("custom")


def test_accumulator_running_sums() -> None:
    from zapgen.generator import helper_zap
    from zapgen.generator.template_util import TemplateScope

    scope = TemplateScope(_global())
    for value in (2, "3", None, 5):
        assert helper_zap.add_to_accumulator(scope, "sizes", value) is None

    acc = scope.global_.accumulators["sizes"]
    assert acc.value == [2, "3", None, 5]
    assert acc.sum == [2, 5, 5, 10]


@pytest.mark.asyncio
async def test_position_helpers_in_iterate(tmp_path) -> None:
    source = (
        "{% call(i) iterate(this, 4) %}"
        "{% call first(i) %}[{% endcall %}"
        "{{ i.index }}"
        "{% call middle(i) %}m{% endcall %}"
        "{% call not_last(i) %},{% endcall %}"
        "{% call last(i) %}]{% endcall %}"
        "{% endcall %}"
    )
    assert await _render(source, tmp_path=tmp_path) == "[0,1m,2m,3]"


@pytest.mark.asyncio
async def test_position_helpers_outside_iterator(tmp_path) -> None:
    source = "{% call first(this) %}x{% endcall %}{% call not_first(this) %}y{% endcall %}"
    assert await _render(source, tmp_path=tmp_path) == ""


@pytest.mark.asyncio
async def test_after_sees_accumulated_values(tmp_path) -> None:
    source = (
        "{% call(i) iterate(this, 3) %}{{ add_to_accumulator(this, 'acc', i.index + 1) }}{% endcall %}"
        "{% call after(this) %}"
        "{% call(a) iterate_accumulator(this, 'acc') %}"
        "{{ a.value }}:{{ a.sum }}{% call not_last(a) %} {% endcall %}"
        "{% endcall %}"
        "{% endcall %}"
    )
    global_ = _global()
    assert await _render(source, global_, tmp_path) == "1:1 2:3 3:6"
    assert all(p.done() for p in global_.promises)


@pytest.mark.asyncio
async def test_block_bodies_without_arguments(tmp_path) -> None:
    source = (
        "{% call iterate(this, 2) %}x{% endcall %}|"
        "{{ add_to_accumulator(this, 'acc', 4) }}"
        "{% call iterate_accumulator(this, 'acc') %}y{% endcall %}|"
        "{% call after(this) %}done{% endcall %}"
    )
    assert await _render(source, tmp_path=tmp_path) == "xx|y|done"


@pytest.mark.asyncio
async def test_non_numeric_accumulator_value_names_the_helper(tmp_path) -> None:
    from zapgen.exceptions import TemplateHelperError
    from zapgen.generator import helper_zap
    from zapgen.generator.template_util import TemplateScope

    scope = TemplateScope(_global())
    with pytest.raises(TemplateHelperError, match="add_to_accumulator.*'abc'"):
        helper_zap.add_to_accumulator(scope, "a", "abc")
    assert "a" not in scope.global_.accumulators

    with pytest.raises(TemplateHelperError, match="multiply.*'abc'"):
        helper_zap.multiply(2, "abc")

    with pytest.raises(TemplateHelperError, match="add_to_accumulator"):
        await _render("{{ add_to_accumulator(this, 'a', 'abc') }}", tmp_path=tmp_path)


@pytest.mark.asyncio
async def test_iterate_accumulator_unknown_name(tmp_path) -> None:
    source = "{% call(a) iterate_accumulator(this, 'missing') %}{{ a.value }}{% endcall %}"
    assert await _render(source, tmp_path=tmp_path) == ""


@pytest.mark.asyncio
async def test_deprecated_alias_warns_once_per_render(tmp_path, caplog) -> None:
    source = "{{ isEqual('a', 'a') }} {{ isEqual('a', 'b') }} {{ ident(2) }}|"

    with caplog.at_level(logging.WARNING):
        assert await _render(source, tmp_path=tmp_path) == "True False     |"

    warnings = [r.getMessage() for r in caplog.records if "Deprecated template helper" in r.getMessage()]
    assert len(warnings) == 2
    assert any("`isEqual`" in w and "`is_equal`" in w for w in warnings)
    assert any("`ident`" in w for w in warnings)


@pytest.mark.asyncio
async def test_deprecation_warnings_can_be_disabled(tmp_path, caplog) -> None:
    with caplog.at_level(logging.WARNING):
        await _render("{{ asLastWord('a b') }}", _global(disable_deprecation_warnings=True), tmp_path)
    assert "Deprecated template helper" not in caplog.text


def test_every_deprecated_alias_points_at_a_registered_helper() -> None:
    from zapgen.generator.template_engine import all_helpers

    helpers = all_helpers()
    deprecated = {name: h.deprecated_to for name, h in helpers.items() if hasattr(h, "deprecated_to")}

    assert {"ident", "isEqual", "generated_clustes_details"} <= set(deprecated)
    for name, target in deprecated.items():
        assert target in helpers, name
        assert not hasattr(helpers[target], "deprecated_to")
