"""
Loader utilities shared by the ZCL loader, the template loader and the importer.
"""

import logging
import zlib
from typing import Any, Dict

from zapgen.connectors.sqlite_pool import SqliteConnectionPool
from zapgen.db import query_package
from zapgen.models.db_enum import PackageType

logger = logging.getLogger(__name__)


def calculate_crc(context: Dict[str, Any]) -> Dict[str, Any]:
    """
    Add the CRC-32 of `context["data"]` to the context.

    Args:
        context: Dict with `file_path` and `data` (str or bytes)

    Returns:
        The same dict, with a `crc` key
    """
    data = context["data"]
    if isinstance(data, str):
        data = data.encode("utf-8")
    context["crc"] = zlib.crc32(data) & 0xFFFFFFFF
    logger.info(f"For file: {context.get('file_path')}, got CRC: {context['crc']}")
    return context


async def initialize_session_package(db: SqliteConnectionPool, session_id: int) -> int:
    """
    Assign the loaded ZCL properties package to a session.

    With several packages loaded the first one wins; with none the session is
    left without one.

    Returns:
        The session id
    """
    rows = await query_package.get_packages_by_type(db, PackageType.ZCL_PROPERTIES.value)
    package_id = None
    if len(rows) == 1:
        package_id = rows[0]["id"]
        logger.info(f"Single package found, using it for the session: {package_id}")
    elif not rows:
        logger.error("No package found for session.")
    else:
        package_id = rows[0]["id"]
        logger.warning(f"Multiple toplevel packages found. Using the first one: {package_id}")

    if package_id is not None:
        await query_package.insert_session_package(db, session_id, package_id)
    return session_id


def parse_int(value: Any) -> Any:
    """
    Parse an integer that may be written as a hex/decimal string.

    None and empty strings pass through as None.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text, 0)
    except ValueError:
        # "0010" is not a valid base-0 literal
        return int(text, 10)
