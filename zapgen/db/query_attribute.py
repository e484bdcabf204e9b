"""
Attribute queries over the enabled clusters of a session's endpoint types.

`endpoints_and_clusters` is the output of
`query_zcl.export_clusters_and_endpoint_details_from_endpoint_types`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from zapgen.connectors.sqlite_pool import SqliteConnectionPool
from zapgen.models.db_enum import StorageOption

from .query_util import ATOMIC_JOIN_SQL, ATTRIBUTE_SIZE_SQL, id_list, placeholders

logger = logging.getLogger(__name__)

_MFG_CODE_SQL = "COALESCE(ATTRIBUTE.MANUFACTURER_CODE, CLUSTER.MANUFACTURER_CODE)"

_ATTRIBUTE_COLUMNS = f"""
    ATTRIBUTE.ATTRIBUTE_ID AS id,
    ATTRIBUTE.NAME AS name,
    ATTRIBUTE.CODE AS code,
    {_MFG_CODE_SQL} AS mfg_code,
    CASE WHEN {_MFG_CODE_SQL} IS NULL THEN 0 ELSE 1 END AS is_manufacturing_specific,
    ATTRIBUTE.SIDE AS side,
    ATTRIBUTE.TYPE AS type,
    ATTRIBUTE.TYPE AS attribute_value_type,
    ATTRIBUTE.DEFINE AS define,
    ATTRIBUTE.MIN AS min,
    ATTRIBUTE.MAX AS max,
    ATTRIBUTE.IS_WRITABLE AS is_writable,
    {ATTRIBUTE_SIZE_SQL} AS size,
    CLUSTER.CLUSTER_ID AS cluster_id,
    CLUSTER.NAME AS cluster_name,
    CLUSTER.CODE AS cluster_code,
    CLUSTER.DEFINE AS cluster_define,
    ENDPOINT_TYPE_CLUSTER.SIDE AS cluster_side
"""

_ENABLED_ATTRIBUTE_JOINS = f"""
    FROM ENDPOINT_TYPE_ATTRIBUTE
    INNER JOIN ENDPOINT_TYPE_CLUSTER
      ON ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID = ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF
    INNER JOIN ATTRIBUTE ON ATTRIBUTE.ATTRIBUTE_ID = ENDPOINT_TYPE_ATTRIBUTE.ATTRIBUTE_REF
    INNER JOIN CLUSTER ON CLUSTER.CLUSTER_ID = ENDPOINT_TYPE_CLUSTER.CLUSTER_REF
    {ATOMIC_JOIN_SQL}
"""

_ATTRIBUTE_ORDER_SQL = "ORDER BY CLUSTER.CODE, CLUSTER.MANUFACTURER_CODE, ATTRIBUTE.CODE, ATTRIBUTE.MANUFACTURER_CODE"


def _endpoint_cluster_ids(endpoints_and_clusters: Iterable[Any]) -> list[int]:
    return id_list(endpoints_and_clusters, key="endpoint_cluster_id")


def _is_zero(value: Any) -> bool:
    text = str(value).strip()
    try:
        return int(text, 0) == 0
    except ValueError:
        pass
    try:
        return float(text) == 0
    except ValueError:
        return False


async def _grouped_attribute_details(
    db: SqliteConnectionPool,
    endpoints_and_clusters: Iterable[Any],
    mfg_filter_sql: str = "",
) -> list[dict[str, Any]]:
    ids = _endpoint_cluster_ids(endpoints_and_clusters)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            {_ATTRIBUTE_COLUMNS},
            MIN(ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE) AS default_value,
            MIN(ENDPOINT_TYPE_ATTRIBUTE.STORAGE_OPTION) AS storage_option,
            MAX(ENDPOINT_TYPE_ATTRIBUTE.SINGLETON) AS singleton,
            MAX(ENDPOINT_TYPE_ATTRIBUTE.BOUNDED) AS bounded,
            MAX(ENDPOINT_TYPE_ATTRIBUTE.INCLUDED_REPORTABLE) AS included_reportable
        {_ENABLED_ATTRIBUTE_JOINS}
        WHERE ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED = 1
          {mfg_filter_sql}
        GROUP BY ATTRIBUTE.ATTRIBUTE_ID
        {_ATTRIBUTE_ORDER_SQL}
        """,
        ids,
    )


async def select_all_attribute_details_from_enabled_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """Included attributes of the enabled clusters, one row per attribute."""
    return await _grouped_attribute_details(db, endpoints_and_clusters)


async def select_manufacturer_specific_attribute_details_from_all_endpoint_types_and_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    return await _grouped_attribute_details(
        db, endpoints_and_clusters, f"AND {_MFG_CODE_SQL} IS NOT NULL"
    )


async def select_non_manufacturer_specific_attribute_details_from_all_endpoint_types_and_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    return await _grouped_attribute_details(
        db, endpoints_and_clusters, f"AND {_MFG_CODE_SQL} IS NULL"
    )


async def select_attribute_details_from_enabled_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """
    Included attributes per endpoint type cluster. The same attribute shows up
    once for every endpoint type that includes it.
    """
    ids = _endpoint_cluster_ids(endpoints_and_clusters)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            {_ATTRIBUTE_COLUMNS},
            ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF AS endpoint_type_id,
            ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID AS endpoint_cluster_id,
            ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE AS default_value,
            ENDPOINT_TYPE_ATTRIBUTE.STORAGE_OPTION AS storage_option,
            ENDPOINT_TYPE_ATTRIBUTE.SINGLETON AS singleton,
            ENDPOINT_TYPE_ATTRIBUTE.BOUNDED AS bounded,
            ENDPOINT_TYPE_ATTRIBUTE.INCLUDED_REPORTABLE AS included_reportable
        {_ENABLED_ATTRIBUTE_JOINS}
        WHERE ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED = 1
        ORDER BY ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF, CLUSTER.CODE, CLUSTER.MANUFACTURER_CODE,
                 ENDPOINT_TYPE_CLUSTER.SIDE, ATTRIBUTE.CODE, ATTRIBUTE.MANUFACTURER_CODE
        """,
        ids,
    )


async def select_attribute_bound_details(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """
    Default values that don't fit in a pointer: attributes wider than 2 bytes
    with a non-zero default that aren't stored externally.

    Each row gets `array_index`, the byte offset of its default in the
    flattened defaults array.
    """
    ids = _endpoint_cluster_ids(endpoints_and_clusters)
    if not ids:
        return []
    rows = await db.fetch_all(
        f"""
        SELECT
            {_ATTRIBUTE_COLUMNS},
            ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE AS default_value,
            MIN(ENDPOINT_TYPE_ATTRIBUTE.STORAGE_OPTION) AS storage_option
        {_ENABLED_ATTRIBUTE_JOINS}
        WHERE ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED = 1
          AND {ATTRIBUTE_SIZE_SQL} > 2
          AND COALESCE(ENDPOINT_TYPE_ATTRIBUTE.STORAGE_OPTION, '') != ?
          AND COALESCE(ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE, '') != ''
        GROUP BY ATTRIBUTE.ATTRIBUTE_ID, ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE
        {_ATTRIBUTE_ORDER_SQL}
        """,
        [*ids, StorageOption.EXTERNAL.value],
    )

    bound = [row for row in rows if not _is_zero(row["default_value"])]
    offset = 0
    for row in bound:
        row["array_index"] = offset
        offset += int(row["size"] or 0)
    logger.debug(f"{len(bound)} attribute defaults wider than a pointer ({offset} bytes)")
    return bound


async def select_reportable_attribute_details_from_enabled_clusters_and_endpoints(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """Reportable attributes, one row per endpoint that carries them."""
    ids = _endpoint_cluster_ids(endpoints_and_clusters)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            {_ATTRIBUTE_COLUMNS},
            ENDPOINT.ENDPOINT_IDENTIFIER AS endpoint_identifier,
            ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF AS endpoint_type_id,
            ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE AS default_value,
            ENDPOINT_TYPE_ATTRIBUTE.MIN_INTERVAL AS min_interval,
            ENDPOINT_TYPE_ATTRIBUTE.MAX_INTERVAL AS max_interval,
            ENDPOINT_TYPE_ATTRIBUTE.REPORTABLE_CHANGE AS reportable_change
        {_ENABLED_ATTRIBUTE_JOINS}
        INNER JOIN ENDPOINT ON ENDPOINT.ENDPOINT_TYPE_REF = ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF
        WHERE ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED = 1
          AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED_REPORTABLE = 1
        ORDER BY ENDPOINT.ENDPOINT_IDENTIFIER, CLUSTER.CODE, ATTRIBUTE.CODE, ATTRIBUTE.MANUFACTURER_CODE
        """,
        ids,
    )


async def select_attribute_details_with_a_bound_from_enabled_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """Bounded attributes with their min, max and default values."""
    ids = _endpoint_cluster_ids(endpoints_and_clusters)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            {_ATTRIBUTE_COLUMNS},
            MIN(ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE) AS default_value
        {_ENABLED_ATTRIBUTE_JOINS}
        WHERE ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED = 1
          AND ENDPOINT_TYPE_ATTRIBUTE.BOUNDED = 1
        GROUP BY ATTRIBUTE.ATTRIBUTE_ID
        {_ATTRIBUTE_ORDER_SQL}
        """,
        ids,
    )
