"""
ZCL predicates used by the session helpers.
"""

import logging
from typing import Any

from zapgen.db.query_util import as_bool
from zapgen.models.db_enum import Side

logger = logging.getLogger(__name__)


def is_str_equal(str1: Any, str2: Any) -> bool:
    """Case-insensitive string comparison."""
    if str1 is None or str2 is None:
        return str1 is str2
    return str(str1).lower() == str(str2).lower()


def is_command_available(side: Any, incoming: Any, outgoing: Any, source: Any, name: Any) -> bool:
    """
    Whether a command is available on the given cluster side.

    A client-side cluster receives (incoming) server-sourced commands and
    sends (outgoing) client-sourced ones. A server-side cluster does the
    reverse.
    """
    if source is None:
        logger.warning(f"Command {name} has no source")
        return False

    incoming = as_bool(incoming)
    outgoing = as_bool(outgoing)
    if is_str_equal(side, Side.CLIENT.value):
        return (is_str_equal(source, Side.SERVER.value) and incoming) or (
            is_str_equal(source, Side.CLIENT.value) and outgoing
        )
    return (is_str_equal(source, Side.SERVER.value) and outgoing) or (
        is_str_equal(source, Side.CLIENT.value) and incoming
    )
