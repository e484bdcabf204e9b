"""
Toplevel utility helpers.

Formatting, comparison, iteration and accumulator helpers that don't touch the
user configuration. Block helpers are used with `{% call %}`:

    {% call(opt) template_options(this, category="cli") %}
    {{ opt.option_code }}{% call not_last(opt) %}, {% endcall %}
    {% endcall %}
"""

import re
from typing import Any, Callable, Dict, Optional

from jinja2 import Undefined

from zapgen.db import query_package
from zapgen.exceptions import TemplateFailure, TemplateHelperError

from .template_util import (
    Accumulator,
    TemplateScope,
    collect_blocks,
    deprecated_helper,
    ensure_template_package_id,
    render_block,
    wait_for_previous_promises,
)

ZAP_HEADER = "// This file is generated by ZCL Advanced Platform generator. Please don't edit manually."

# Hex/decimal literals (kept as is) or identifiers (prefixed).
_PREFIX_TOKEN_RE = re.compile(r"(0[xX][0-9A-Fa-f]+|\d\w*)|([A-Za-z_]\w*)")


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_number(value: Any, helper: str) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 0)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            pass
    raise TemplateHelperError(f"{helper}: expected a number, got {value!r}")


def zap_header() -> str:
    """Comment line placed at the top of every generated file."""
    return ZAP_HEADER


def indent(cnt: Any = None) -> str:
    """Two spaces per indentation level (one level by default)."""
    return "  " * cnt if _is_count(cnt) else "  "


def new_line(cnt: Any = None) -> str:
    return "\n" * cnt if _is_count(cnt) else "\n"


def backslash() -> str:
    return "\\"


async def template_options(scope: TemplateScope, category: Any = None, caller: Optional[Callable] = None) -> str:
    """
    Iterate over the options of one category of the current template package.

    Each row carries `option_code` and `option_label`.
    """
    package_id = await ensure_template_package_id(scope)
    rows = await query_package.select_all_options_values(scope.global_.db, package_id, category)
    return await collect_blocks(rows, caller, scope)


def _in_iterator(scope: Any) -> bool:
    return getattr(scope, "index", None) is not None and getattr(scope, "count", None) is not None


async def first(scope: Any, caller: Optional[Callable] = None) -> str:
    """Render the block only for the first iteration."""
    if _in_iterator(scope) and scope.index == 0:
        return await render_block(caller)
    return ""


async def not_first(scope: Any, caller: Optional[Callable] = None) -> str:
    if _in_iterator(scope) and scope.index != 0:
        return await render_block(caller)
    return ""


async def last(scope: Any, caller: Optional[Callable] = None) -> str:
    """Render the block only for the last iteration."""
    if _in_iterator(scope) and scope.index == scope.count - 1:
        return await render_block(caller)
    return ""


async def not_last(scope: Any, caller: Optional[Callable] = None) -> str:
    if _in_iterator(scope) and scope.index != scope.count - 1:
        return await render_block(caller)
    return ""


async def middle(scope: Any, caller: Optional[Callable] = None) -> str:
    """Render the block for every iteration except the first and the last."""
    if _in_iterator(scope) and scope.index != 0 and scope.index != scope.count - 1:
        return await render_block(caller)
    return ""


async def template_option_with_code(scope: TemplateScope, category: str, code: Any) -> Optional[Dict[str, Any]]:
    """
    One option of the current template package, e.g.
    `{{ template_option_with_code(this, "types", "int8u").option_label }}`.
    """
    package_id = await ensure_template_package_id(scope)
    return await query_package.select_specific_option_value(scope.global_.db, package_id, category, code)


def fail(message: Optional[str] = None) -> None:
    """Abort rendering of the current template with a message."""
    if message is None or isinstance(message, Undefined):
        message = "Template failure."
    raise TemplateFailure(message)


def is_equal(string_a: Any, string_b: Any) -> bool:
    """Equality of the trimmed strings."""
    return str(string_a).strip() == str(string_b).strip()


def is_lowercase_equal(string_a: Any, string_b: Any) -> bool:
    """Case-insensitive equality, ignoring double quotes and surrounding whitespace."""
    str1 = str(string_a).lower().replace('"', "").strip()
    str2 = str(string_b).lower().replace('"', "").strip()
    return str1 == str2


def toggle(condition: Any, true_result: Any, false_result: Any) -> Any:
    return true_result if condition else false_result


def trim_string(value: Any) -> Optional[str]:
    if value is None or isinstance(value, Undefined):
        return None
    return str(value).strip()


def as_last_word(value: Any) -> str:
    """Last space separated word of a string."""
    return str(value).strip().split(" ")[-1]


async def iterate(scope: TemplateScope, count: Any, caller: Optional[Callable] = None) -> str:
    """Render the block `count` times; each pass gets `index` and `count`."""
    count = int(count)
    parts = []
    for index in range(count):
        parts.append(await render_block(caller, scope.child(index=index, count=count)))
    return "".join(parts)


def add_to_accumulator(scope: TemplateScope, accumulator: str, value: Any) -> None:
    """
    Append a value to a named accumulator and record the running sum.

    A None value is recorded but doesn't change the sum.
    """
    number = None
    if value is not None and not isinstance(value, Undefined):
        number = _as_number(value, "add_to_accumulator")
    acc = scope.global_.accumulators.setdefault(accumulator, Accumulator())
    acc.value.append(value)
    if number is not None:
        acc.current_sum = acc.current_sum + number
    acc.sum.append(acc.current_sum)


async def iterate_accumulator(scope: TemplateScope, accumulator: str, caller: Optional[Callable] = None) -> str:
    """
    Iterate over an accumulator. Each pass gets `index`, `count`, `value` and
    `sum` (the running sum including `value`).
    """
    acc = scope.global_.accumulators.get(accumulator)
    if acc is None:
        return ""
    count = len(acc.value)
    parts = []
    for index in range(count):
        child = scope.child(index=index, count=count, sum=acc.sum[index], value=acc.value[index])
        parts.append(await render_block(caller, child))
    return "".join(parts)


async def after(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Render the block once every helper started before it has finished."""
    await wait_for_previous_promises(scope.global_)
    return await render_block(caller, scope.child())


def concatenate(*args: Any) -> str:
    """Join the arguments with spaces."""
    return " ".join("" if a is None or isinstance(a, Undefined) else str(a) for a in args)


def is_num_equal(num_a: Any, num_b: Any) -> bool:
    """Numeric equality; `"1"` equals `1`."""
    try:
        return float(num_a) == float(num_b)
    except (TypeError, ValueError):
        return num_a == num_b


def is_defined(value: Any) -> bool:
    """False for None, undefined template values and empty strings."""
    if value is None or isinstance(value, Undefined):
        return False
    return not (isinstance(value, str) and value == "")


def replace_string(main_string: Any, replace: Any, replace_with: Any) -> str:
    """Replace the first occurrence of `replace`."""
    return str(main_string).replace(str(replace), str(replace_with), 1)


def add_prefix_to_all_strings(value: Any, prefix: Any) -> str:
    """
    Prefix every identifier in an expression, leaving numeric literals alone:
    `"0x10 + FOO"` with prefix `"EMBER_"` gives `"0x10 + EMBER_FOO"`.
    """

    def _prefix(match):
        if match.group(1) is not None:
            return match.group(1)
        return f"{prefix}{match.group(2)}"

    return _PREFIX_TOKEN_RE.sub(_prefix, str(value))


def multiply(*nums: Any) -> Any:
    result = 1
    for num in nums:
        result = result * _as_number(num, "multiply")
    return result


def is_string_underscored(value: Any) -> bool:
    return isinstance(value, str) and "_" in value


def as_uppercase(value: Any) -> str:
    return str(value).upper() if value else ""


# WARNING! WARNING! WARNING! WARNING! WARNING! WARNING!
#
# These names are public API. Templates written in the past depend on them.
# When renaming a helper, keep the old name registered as a deprecated alias.
HELPERS: Dict[str, Callable[..., Any]] = {
    "zap_header": zap_header,
    "indent": indent,
    "ident": deprecated_helper(indent, to="indent", alias="ident"),
    "new_line": new_line,
    "backslash": backslash,
    "template_options": template_options,
    "first": first,
    "not_first": not_first,
    "last": last,
    "not_last": not_last,
    "middle": middle,
    "template_option_with_code": template_option_with_code,
    "fail": fail,
    "is_equal": is_equal,
    "isEqual": deprecated_helper(is_equal, to="is_equal", alias="isEqual"),
    "is_lowercase_equal": is_lowercase_equal,
    "toggle": toggle,
    "trim_string": trim_string,
    "as_last_word": as_last_word,
    "asLastWord": deprecated_helper(as_last_word, to="as_last_word", alias="asLastWord"),
    "iterate": iterate,
    "add_to_accumulator": add_to_accumulator,
    "addToAccumulator": deprecated_helper(add_to_accumulator, to="add_to_accumulator", alias="addToAccumulator"),
    "iterate_accumulator": iterate_accumulator,
    "iterateAccumulator": deprecated_helper(
        iterate_accumulator, to="iterate_accumulator", alias="iterateAccumulator"
    ),
    "after": after,
    "concatenate": concatenate,
    "is_num_equal": is_num_equal,
    "is_defined": is_defined,
    "replace_string": replace_string,
    "add_prefix_to_all_strings": add_prefix_to_all_strings,
    "multiply": multiply,
    "is_string_underscored": is_string_underscored,
    "as_uppercase": as_uppercase,
}
