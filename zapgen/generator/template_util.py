"""
Template Helper Utilities

Per-render state and the block protocol shared by every template helper.

Block helpers receive Jinja's `caller` (the body of a `{% call %}` block) and
the scope they run in. `collect_blocks` renders the body once per row, handing
it a child scope that carries the row's fields plus `index` and `count`.
"""

import asyncio
import functools
import inspect
import logging
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from zapgen.connectors.sqlite_pool import SqliteConnectionPool
from zapgen.db import query_config, query_package
from zapgen.exceptions import TemplateHelperError
from zapgen.models.db_enum import PackageType

logger = logging.getLogger(__name__)

_current_global: ContextVar[Optional["GenerationGlobal"]] = ContextVar(
    "zapgen_generation_global", default=None
)
# Helper tasks whose block body is being rendered in the current context.
_enclosing_tasks: ContextVar[tuple] = ContextVar("zapgen_enclosing_tasks", default=())


@dataclass
class Accumulator:
    """Values added by `add_to_accumulator` and their running sums."""

    value: List[Any] = field(default_factory=list)
    sum: List[Any] = field(default_factory=list)
    current_sum: Any = 0


@dataclass
class GenerationGlobal:
    """State shared by every helper call of one template render."""

    db: SqliteConnectionPool
    session_id: int
    gen_template_package_id: Optional[int] = None
    disable_deprecation_warnings: bool = False
    generate_args: Dict[str, Any] = field(default_factory=dict)
    accumulators: Dict[str, Accumulator] = field(default_factory=dict)
    promises: List["asyncio.Future[Any]"] = field(default_factory=list)
    endpoint_type_ids: Optional[List[Dict[str, Any]]] = None
    deprecation_warned: Set[str] = field(default_factory=set)


class TemplateScope:
    """
    The `this` of a template block.

    Wraps one row (or nothing, for the root scope) and links back to the
    enclosing scope. Row fields are readable as attributes and items, so
    templates can write `item.name` for both.
    """

    def __init__(
        self,
        global_: GenerationGlobal,
        parent: Optional["TemplateScope"] = None,
        data: Optional[Dict[str, Any]] = None,
        index: Optional[int] = None,
        count: Optional[int] = None,
        **extra: Any,
    ):
        self.global_ = global_
        self.parent = parent
        self.index = index
        self.count = count
        self._data: Dict[str, Any] = dict(data or {})
        self._data.update(extra)

    def __getattr__(self, name: str) -> Any:
        data = self.__dict__.get("_data")
        if data is not None and name in data:
            return data[name]
        raise AttributeError(name)

    def __getitem__(self, key: str) -> Any:
        if key in ("global_", "parent", "index", "count"):
            return getattr(self, key)
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def keys(self):
        return self._data.keys()

    def child(self, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "TemplateScope":
        """New scope nested in this one."""
        return TemplateScope(self.global_, parent=self, data=data, **kwargs)

    def __repr__(self) -> str:
        return f"TemplateScope(index={self.index}, count={self.count}, data={self._data!r})"


def current_global() -> Optional[GenerationGlobal]:
    """GenerationGlobal of the render running in this context, if any."""
    return _current_global.get()


def set_current_global(global_: GenerationGlobal) -> Token:
    return _current_global.set(global_)


def reset_current_global(token: Token) -> None:
    _current_global.reset(token)


def _block_args(caller: Callable[..., Any], args: tuple) -> tuple:
    # `{% call helper() %}` bodies take no arguments, `{% call(item) ... %}` take one.
    arguments = getattr(caller, "arguments", None)
    if arguments is None or getattr(caller, "catch_varargs", False):
        return args
    return args[: len(arguments)]


async def render_block(caller: Optional[Callable[..., Any]], *args: Any) -> str:
    """
    Render a `{% call %}` body. A helper used without a body renders nothing.

    Only as many arguments as the body declares are passed on, so both
    `{% call after(this) %}` and `{% call(item) iterate(this, 2) %}` work.
    """
    if caller is None:
        return ""
    result = caller(*_block_args(caller, args))
    if inspect.isawaitable(result):
        result = await result
    return "" if result is None else str(result)


async def collect_blocks(
    rows: Iterable[Dict[str, Any]],
    caller: Optional[Callable[..., Any]],
    scope: TemplateScope,
) -> str:
    """
    Render the block body once per row and concatenate the output.

    Args:
        rows: Rows to iterate over
        caller: Block body from `{% call(item) helper(...) %}`
        scope: Scope the helper was called in

    Returns:
        Concatenated output
    """
    rows = list(rows or [])
    count = len(rows)
    parts = []
    for index, row in enumerate(rows):
        child = scope.child(row, index=index, count=count)
        parts.append(await render_block(caller, child))
    return "".join(parts)


async def ensure_template_package_id(scope: TemplateScope) -> int:
    """
    Template package id of the current render.

    Falls back to the template package assigned to the session.

    Raises:
        TemplateHelperError: no template package is known
    """
    global_ = scope.global_
    if global_.gen_template_package_id is not None:
        return global_.gen_template_package_id

    packages = await query_package.get_session_packages_by_type(
        global_.db, global_.session_id, PackageType.GEN_TEMPLATES_JSON.value
    )
    if not packages:
        raise TemplateHelperError(
            f"No template package found for session {global_.session_id}"
        )
    global_.gen_template_package_id = packages[0]["id"]
    return global_.gen_template_package_id


async def ensure_endpoint_type_ids(scope: TemplateScope) -> List[Dict[str, Any]]:
    """Endpoint types of the session, loaded once per render."""
    global_ = scope.global_
    if global_.endpoint_type_ids is None:
        global_.endpoint_type_ids = await query_config.select_endpoint_type_ids(
            global_.db, global_.session_id
        )
    return global_.endpoint_type_ids


def template_promise(global_: Optional[GenerationGlobal], awaitable: Awaitable[Any]) -> "asyncio.Future[Any]":
    """
    Schedule helper work and register it with the render, so `after` can
    wait for it.
    """
    future = asyncio.ensure_future(_track_enclosing(awaitable))
    if global_ is not None:
        global_.promises.append(future)
    return future


async def _track_enclosing(awaitable: Awaitable[Any]) -> Any:
    _enclosing_tasks.set(_enclosing_tasks.get() + (asyncio.current_task(),))
    return await awaitable


async def wait_for_previous_promises(global_: GenerationGlobal) -> None:
    """
    Wait for every helper task registered so far, except the ones whose block
    body is currently rendering (waiting on those would never finish).
    """
    enclosing = set(_enclosing_tasks.get())
    pending = [p for p in global_.promises if p not in enclosing and not p.done()]
    if pending:
        await asyncio.gather(*pending)


def promised_helper(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap a helper so that the coroutines it returns are registered with the render."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        result = fn(*args, **kwargs)
        if inspect.iscoroutine(result):
            return template_promise(current_global(), result)
        return result

    return wrapper


def deprecated_helper(fn: Callable[..., Any], *, to: str, alias: Optional[str] = None) -> Callable[..., Any]:
    """
    Wrap a helper kept under an old name.

    Each render logs one warning per deprecated name it uses, unless the
    render disabled deprecation warnings.
    """
    name = alias or fn.__name__

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        global_ = current_global()
        if global_ is None:
            logger.warning(f"⚠️  Deprecated template helper `{name}` used, please use `{to}` instead")
        elif not global_.disable_deprecation_warnings and name not in global_.deprecation_warned:
            global_.deprecation_warned.add(name)
            logger.warning(f"⚠️  Deprecated template helper `{name}` used, please use `{to}` instead")
        return fn(*args, **kwargs)

    wrapper.deprecated_to = to
    return wrapper
