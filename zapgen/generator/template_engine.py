"""
Template Engine

Builds the Jinja2 environment templates are rendered with.

Templates see the root scope as `this` and every helper as a global. Block
helpers take the scope they run in as first argument and are used through
`{% call %}`. Iterators hand each row to the block:

    {% call(ep) user_endpoints(this) %}
    {{ ep.endpoint_id }}{% call not_last(ep) %},{% endcall %}
    {% endcall %}
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Undefined

from . import helper_session, helper_zap
from .template_util import promised_helper

logger = logging.getLogger(__name__)


def _finalize(value: Any) -> Any:
    return "" if value is None else value


def all_helpers() -> Dict[str, Callable[..., Any]]:
    """Every registered helper, current and deprecated names."""
    helpers: Dict[str, Callable[..., Any]] = {}
    helpers.update(helper_zap.HELPERS)
    helpers.update(helper_session.HELPERS)
    return helpers


def create_environment(
    template_dir: Union[str, Path],
    *,
    strict: bool = False,
    extra_helpers: Optional[Dict[str, Callable[..., Any]]] = None,
) -> Environment:
    """
    Create the async template environment.

    Args:
        template_dir: Directory templates are loaded from
        strict: Fail on undefined variables instead of rendering them empty
        extra_helpers: Additional helpers to register

    Returns:
        Configured Environment
    """
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        enable_async=True,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined if strict else Undefined,
        finalize=_finalize,
    )

    helpers = all_helpers()
    helpers.update(extra_helpers or {})
    for name, helper in helpers.items():
        env.globals[name] = promised_helper(helper)

    logger.debug(f"Template environment for {template_dir} with {len(helpers)} helpers")
    return env
