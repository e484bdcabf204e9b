"""
ZCL queries.

Inserts and lookups for the ZCL metadata (atomics, clusters, commands and
attributes) plus the cluster/command exports used by the session helpers.

Most exports take `endpoints_and_clusters`: the rows returned by
`export_clusters_and_endpoint_details_from_endpoint_types`, one per enabled
endpoint type cluster.
"""

from __future__ import annotations

from itertools import accumulate
from typing import Any, Iterable, Optional

from zapgen.connectors.sqlite_pool import SqliteConnectionPool

from .query_util import ATOMIC_JOIN_SQL, ATTRIBUTE_SIZE_SQL, id_list, placeholders

_MFG_CODE_SQL = "COALESCE(COMMAND.MANUFACTURER_CODE, CLUSTER.MANUFACTURER_CODE)"

_COMMAND_DETAIL_COLUMNS = f"""
    COMMAND.COMMAND_ID AS id,
    COMMAND.NAME AS name,
    COMMAND.CODE AS code,
    {_MFG_CODE_SQL} AS mfg_code,
    CASE WHEN {_MFG_CODE_SQL} IS NULL THEN 0 ELSE 1 END AS is_manufacturing_specific,
    COMMAND.DESCRIPTION AS description,
    COMMAND.SOURCE AS command_source,
    COMMAND.IS_OPTIONAL AS is_optional,
    CLUSTER.CLUSTER_ID AS cluster_id,
    CLUSTER.NAME AS cluster_name,
    CLUSTER.CODE AS cluster_code,
    CLUSTER.DEFINE AS cluster_define
"""

_COMMAND_ORDER_SQL = "ORDER BY CLUSTER.CODE, CLUSTER.MANUFACTURER_CODE, COMMAND.CODE, COMMAND.MANUFACTURER_CODE"


def _endpoint_cluster_ids(endpoints_and_clusters: Iterable[Any]) -> list[int]:
    return id_list(endpoints_and_clusters, key="endpoint_cluster_id")


# ============================================================================
# Loading
# ============================================================================


async def insert_atomics(
    db: SqliteConnectionPool, package_id: int, atomics: Iterable[dict[str, Any]]
) -> None:
    await db.execute_many(
        """
        INSERT OR REPLACE INTO ATOMIC (PACKAGE_REF, NAME, ATOMIC_IDENTIFIER, SIZE, DESCRIPTION)
        VALUES (?, ?, ?, ?, ?)
        """,
        [
            (package_id, a["name"], a.get("id"), a.get("size"), a.get("description"))
            for a in atomics
        ],
    )


async def insert_cluster(
    db: SqliteConnectionPool,
    package_id: int,
    *,
    code: int,
    name: str,
    manufacturer_code: Optional[int] = None,
    description: Optional[str] = None,
    define: Optional[str] = None,
    domain: Optional[str] = None,
) -> int:
    return await db.execute_query(
        """
        INSERT INTO CLUSTER (PACKAGE_REF, CODE, MANUFACTURER_CODE, NAME, DESCRIPTION, DEFINE, DOMAIN_NAME)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [package_id, code, manufacturer_code, name, description, define, domain],
    )


async def insert_command(
    db: SqliteConnectionPool,
    package_id: int,
    cluster_id: Optional[int],
    *,
    code: int,
    name: str,
    source: Optional[str],
    manufacturer_code: Optional[int] = None,
    description: Optional[str] = None,
    is_optional: bool = False,
) -> int:
    return await db.execute_query(
        """
        INSERT INTO COMMAND (
            CLUSTER_REF, PACKAGE_REF, CODE, MANUFACTURER_CODE, NAME, DESCRIPTION, SOURCE, IS_OPTIONAL
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [cluster_id, package_id, code, manufacturer_code, name, description, source, 1 if is_optional else 0],
    )


async def insert_attribute(
    db: SqliteConnectionPool,
    package_id: int,
    cluster_id: Optional[int],
    *,
    code: int,
    name: str,
    type: str,
    side: str,
    manufacturer_code: Optional[int] = None,
    define: Optional[str] = None,
    min: Optional[str] = None,
    max: Optional[str] = None,
    max_length: Optional[int] = None,
    is_writable: bool = False,
    default_value: Optional[str] = None,
    is_optional: bool = False,
    is_reportable: bool = False,
) -> int:
    return await db.execute_query(
        """
        INSERT INTO ATTRIBUTE (
            CLUSTER_REF, PACKAGE_REF, CODE, MANUFACTURER_CODE, NAME, TYPE, SIDE, DEFINE,
            MIN, MAX, MAX_LENGTH, IS_WRITABLE, DEFAULT_VALUE, IS_OPTIONAL, IS_REPORTABLE
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            cluster_id,
            package_id,
            code,
            manufacturer_code,
            name,
            type,
            side,
            define,
            min,
            max,
            max_length,
            1 if is_writable else 0,
            default_value,
            1 if is_optional else 0,
            1 if is_reportable else 0,
        ],
    )


# ============================================================================
# Lookups
# ============================================================================


async def select_all_clusters(db: SqliteConnectionPool, package_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT CLUSTER_ID AS id, CODE AS code, MANUFACTURER_CODE AS mfg_code, NAME AS name,
               DESCRIPTION AS description, DEFINE AS define, DOMAIN_NAME AS domain_name
        FROM CLUSTER WHERE PACKAGE_REF = ?
        ORDER BY CODE, MANUFACTURER_CODE
        """,
        [package_id],
    )


async def select_cluster_by_code(
    db: SqliteConnectionPool, package_id: int, code: int, mfg_code: Optional[int] = None
) -> Optional[dict[str, Any]]:
    return await db.fetch_one(
        """
        SELECT CLUSTER_ID AS id, CODE AS code, MANUFACTURER_CODE AS mfg_code, NAME AS name, DEFINE AS define
        FROM CLUSTER
        WHERE PACKAGE_REF = ? AND CODE = ? AND MANUFACTURER_CODE IS ?
        """,
        [package_id, code, mfg_code],
    )


async def select_attribute_by_code(
    db: SqliteConnectionPool,
    package_id: int,
    cluster_id: int,
    code: int,
    mfg_code: Optional[int] = None,
    side: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    params: list[Any] = [package_id, cluster_id, code, mfg_code]
    side_sql = ""
    if side:
        side_sql = "AND SIDE = ?"
        params.append(str(side))
    return await db.fetch_one(
        f"""
        SELECT ATTRIBUTE_ID AS id, CODE AS code, NAME AS name, SIDE AS side, TYPE AS type,
               DEFAULT_VALUE AS default_value
        FROM ATTRIBUTE
        WHERE PACKAGE_REF = ? AND CLUSTER_REF = ? AND CODE = ? AND MANUFACTURER_CODE IS ?
        {side_sql}
        """,
        params,
    )


async def select_command_by_code(
    db: SqliteConnectionPool,
    package_id: int,
    cluster_id: int,
    code: int,
    mfg_code: Optional[int] = None,
    source: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    params: list[Any] = [package_id, cluster_id, code, mfg_code]
    source_sql = ""
    if source:
        source_sql = "AND SOURCE = ?"
        params.append(str(source))
    return await db.fetch_one(
        f"""
        SELECT COMMAND_ID AS id, CODE AS code, NAME AS name, SOURCE AS source
        FROM COMMAND
        WHERE PACKAGE_REF = ? AND CLUSTER_REF = ? AND CODE = ? AND MANUFACTURER_CODE IS ?
        {source_sql}
        """,
        params,
    )


# ============================================================================
# Exports for the session helpers
# ============================================================================


async def export_clusters_and_endpoint_details_from_endpoint_types(
    db: SqliteConnectionPool, endpoint_types: Iterable[Any]
) -> list[dict[str, Any]]:
    """
    Enabled clusters of the given endpoint types, one row per endpoint type
    cluster.
    """
    ids = id_list(endpoint_types)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF AS endpoint_type_id,
            ENDPOINT_TYPE_CLUSTER.CLUSTER_REF AS cluster_id,
            ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID AS endpoint_cluster_id,
            ENDPOINT_TYPE_CLUSTER.SIDE AS side
        FROM ENDPOINT_TYPE_CLUSTER
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
        ORDER BY ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF, ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID
        """,
        ids,
    )


async def _enabled_command_details(
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
            {_COMMAND_DETAIL_COLUMNS},
            MAX(ENDPOINT_TYPE_COMMAND.INCOMING) AS incoming,
            MAX(ENDPOINT_TYPE_COMMAND.OUTGOING) AS outgoing
        FROM ENDPOINT_TYPE_COMMAND
        INNER JOIN ENDPOINT_TYPE_CLUSTER
          ON ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID = ENDPOINT_TYPE_COMMAND.ENDPOINT_TYPE_CLUSTER_REF
        INNER JOIN COMMAND ON COMMAND.COMMAND_ID = ENDPOINT_TYPE_COMMAND.COMMAND_REF
        INNER JOIN CLUSTER ON CLUSTER.CLUSTER_ID = ENDPOINT_TYPE_CLUSTER.CLUSTER_REF
        WHERE ENDPOINT_TYPE_COMMAND.ENDPOINT_TYPE_CLUSTER_REF IN ({placeholders(len(ids))})
          AND (ENDPOINT_TYPE_COMMAND.INCOMING = 1 OR ENDPOINT_TYPE_COMMAND.OUTGOING = 1)
          {mfg_filter_sql}
        GROUP BY COMMAND.COMMAND_ID
        {_COMMAND_ORDER_SQL}
        """,
        ids,
    )


async def export_command_details_from_all_endpoint_types_and_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """Commands enabled (incoming or outgoing) on the given endpoint type clusters."""
    return await _enabled_command_details(db, endpoints_and_clusters)


async def export_manufacturer_specific_command_details_from_all_endpoint_types_and_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    return await _enabled_command_details(
        db, endpoints_and_clusters, f"AND {_MFG_CODE_SQL} IS NOT NULL"
    )


async def export_non_manufacturer_specific_command_details_from_all_endpoint_types_and_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    return await _enabled_command_details(
        db, endpoints_and_clusters, f"AND {_MFG_CODE_SQL} IS NULL"
    )


async def _command_details_of_enabled_clusters(
    db: SqliteConnectionPool,
    endpoints_and_clusters: Iterable[Any],
    *,
    cli_package_id: Optional[int] = None,
) -> list[dict[str, Any]]:
    ids = _endpoint_cluster_ids(endpoints_and_clusters)
    if not ids:
        return []
    cli_join = ""
    params: list[Any] = []
    if cli_package_id is not None:
        cli_join = """
        INNER JOIN PACKAGE_OPTION
          ON PACKAGE_OPTION.OPTION_CATEGORY = 'cli'
         AND PACKAGE_OPTION.PACKAGE_REF = ?
         AND LOWER(PACKAGE_OPTION.OPTION_CODE) = LOWER(COMMAND.NAME)
        """
        params.append(cli_package_id)
    return await db.fetch_all(
        f"""
        SELECT {_COMMAND_DETAIL_COLUMNS}
        FROM COMMAND
        INNER JOIN CLUSTER ON CLUSTER.CLUSTER_ID = COMMAND.CLUSTER_REF
        INNER JOIN ENDPOINT_TYPE_CLUSTER ON ENDPOINT_TYPE_CLUSTER.CLUSTER_REF = CLUSTER.CLUSTER_ID
        {cli_join}
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID IN ({placeholders(len(ids))})
        GROUP BY COMMAND.COMMAND_ID
        {_COMMAND_ORDER_SQL}
        """,
        [*params, *ids],
    )


async def export_all_command_details_from_enabled_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """Every command defined by an enabled cluster, whether or not it's enabled."""
    return await _command_details_of_enabled_clusters(db, endpoints_and_clusters)


async def export_all_cli_command_details_from_enabled_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any], template_package_id: int
) -> list[dict[str, Any]]:
    """Commands of enabled clusters that have a `cli` option in the template package."""
    return await _command_details_of_enabled_clusters(
        db, endpoints_and_clusters, cli_package_id=template_package_id
    )


async def export_command_details_from_all_endpoint_type_cluster(
    db: SqliteConnectionPool, endpoint_types: Iterable[Any], endpoint_cluster_id: int
) -> list[dict[str, Any]]:
    """
    Commands enabled on the cluster of `endpoint_cluster_id`, across every
    endpoint type in `endpoint_types`.
    """
    ids = id_list(endpoint_types)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            {_COMMAND_DETAIL_COLUMNS},
            MAX(ENDPOINT_TYPE_COMMAND.INCOMING) AS incoming,
            MAX(ENDPOINT_TYPE_COMMAND.OUTGOING) AS outgoing
        FROM ENDPOINT_TYPE_COMMAND
        INNER JOIN ENDPOINT_TYPE_CLUSTER
          ON ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID = ENDPOINT_TYPE_COMMAND.ENDPOINT_TYPE_CLUSTER_REF
        INNER JOIN COMMAND ON COMMAND.COMMAND_ID = ENDPOINT_TYPE_COMMAND.COMMAND_REF
        INNER JOIN CLUSTER ON CLUSTER.CLUSTER_ID = ENDPOINT_TYPE_CLUSTER.CLUSTER_REF
        WHERE ENDPOINT_TYPE_COMMAND.ENDPOINT_TYPE_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
          AND ENDPOINT_TYPE_CLUSTER.CLUSTER_REF = (
              SELECT CLUSTER_REF FROM ENDPOINT_TYPE_CLUSTER WHERE ENDPOINT_TYPE_CLUSTER_ID = ?
          )
          AND (ENDPOINT_TYPE_COMMAND.INCOMING = 1 OR ENDPOINT_TYPE_COMMAND.OUTGOING = 1)
        GROUP BY COMMAND.COMMAND_ID
        {_COMMAND_ORDER_SQL}
        """,
        [*ids, endpoint_cluster_id],
    )


async def select_all_clusters_details_from_endpoint_types(
    db: SqliteConnectionPool, endpoint_types: Iterable[Any]
) -> list[dict[str, Any]]:
    """Enabled clusters of the endpoint types, one row per cluster and side."""
    ids = id_list(endpoint_types)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            CLUSTER.CLUSTER_ID AS id,
            CLUSTER.NAME AS name,
            CLUSTER.CODE AS code,
            CLUSTER.DEFINE AS define,
            CLUSTER.MANUFACTURER_CODE AS mfg_code,
            ENDPOINT_TYPE_CLUSTER.SIDE AS side,
            ENDPOINT_TYPE_CLUSTER.ENABLED AS enabled,
            MIN(ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID) AS endpoint_cluster_id
        FROM CLUSTER
        INNER JOIN ENDPOINT_TYPE_CLUSTER ON ENDPOINT_TYPE_CLUSTER.CLUSTER_REF = CLUSTER.CLUSTER_ID
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
        GROUP BY CLUSTER.CLUSTER_ID, ENDPOINT_TYPE_CLUSTER.SIDE
        ORDER BY CLUSTER.CODE, CLUSTER.MANUFACTURER_CODE, ENDPOINT_TYPE_CLUSTER.SIDE
        """,
        ids,
    )


async def export_all_clusters_details_irrespective_of_side_from_endpoint_types(
    db: SqliteConnectionPool, endpoint_types: Iterable[Any]
) -> list[dict[str, Any]]:
    """Enabled clusters of the endpoint types, one row per cluster."""
    ids = id_list(endpoint_types)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            CLUSTER.CLUSTER_ID AS id,
            CLUSTER.NAME AS name,
            CLUSTER.CODE AS code,
            CLUSTER.DEFINE AS define,
            CLUSTER.MANUFACTURER_CODE AS mfg_code,
            MIN(ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID) AS endpoint_cluster_id
        FROM CLUSTER
        INNER JOIN ENDPOINT_TYPE_CLUSTER ON ENDPOINT_TYPE_CLUSTER.CLUSTER_REF = CLUSTER.CLUSTER_ID
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
        GROUP BY CLUSTER.CLUSTER_ID
        ORDER BY CLUSTER.CODE, CLUSTER.MANUFACTURER_CODE
        """,
        ids,
    )


async def export_all_clusters_names_from_endpoint_types(
    db: SqliteConnectionPool, endpoint_types: Iterable[Any]
) -> list[dict[str, Any]]:
    ids = id_list(endpoint_types)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            CLUSTER.NAME AS name,
            MIN(CLUSTER.CODE) AS code,
            MIN(CLUSTER.DEFINE) AS define
        FROM CLUSTER
        INNER JOIN ENDPOINT_TYPE_CLUSTER ON ENDPOINT_TYPE_CLUSTER.CLUSTER_REF = CLUSTER.CLUSTER_ID
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
        GROUP BY CLUSTER.NAME
        ORDER BY MIN(CLUSTER.CODE), CLUSTER.NAME
        """,
        ids,
    )


async def export_cluster_details_from_enabled_clusters(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """
    One row per enabled endpoint type cluster with a summary of its included
    attributes. `attribute_index` is the running offset of the cluster's first
    attribute in a flattened attribute table.
    """
    ids = _endpoint_cluster_ids(endpoints_and_clusters)
    if not ids:
        return []
    rows = await db.fetch_all(
        f"""
        SELECT
            ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF AS endpoint_type_id,
            ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID AS endpoint_cluster_id,
            CLUSTER.CLUSTER_ID AS cluster_id,
            CLUSTER.NAME AS name,
            CLUSTER.CODE AS code,
            CLUSTER.DEFINE AS define,
            CLUSTER.MANUFACTURER_CODE AS mfg_code,
            ENDPOINT_TYPE_CLUSTER.SIDE AS side,
            COUNT(ATTRIBUTE.ATTRIBUTE_ID) AS attribute_count,
            COALESCE(SUM({ATTRIBUTE_SIZE_SQL}), 0) AS attributes_size
        FROM ENDPOINT_TYPE_CLUSTER
        INNER JOIN CLUSTER ON CLUSTER.CLUSTER_ID = ENDPOINT_TYPE_CLUSTER.CLUSTER_REF
        LEFT JOIN ENDPOINT_TYPE_ATTRIBUTE
          ON ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF = ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID
         AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED = 1
        LEFT JOIN ATTRIBUTE ON ATTRIBUTE.ATTRIBUTE_ID = ENDPOINT_TYPE_ATTRIBUTE.ATTRIBUTE_REF
        {ATOMIC_JOIN_SQL}
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID IN ({placeholders(len(ids))})
        GROUP BY ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID
        ORDER BY ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF, CLUSTER.CODE, CLUSTER.MANUFACTURER_CODE,
                 ENDPOINT_TYPE_CLUSTER.SIDE
        """,
        ids,
    )
    offsets = accumulate((r["attribute_count"] for r in rows), initial=0)
    for row, offset in zip(rows, offsets):
        row["attribute_index"] = offset
    return rows


async def select_endpoint_details_from_added_endpoints(
    db: SqliteConnectionPool, endpoints_and_clusters: Iterable[Any]
) -> list[dict[str, Any]]:
    """
    One row per endpoint type with its cluster/attribute summary.
    `cluster_index` is the running offset of the endpoint type's first cluster.
    """
    ids = _endpoint_cluster_ids(endpoints_and_clusters)
    if not ids:
        return []
    rows = await db.fetch_all(
        f"""
        SELECT
            ENDPOINT_TYPE.ENDPOINT_TYPE_ID AS endpoint_type_id,
            ENDPOINT_TYPE.NAME AS name,
            COUNT(DISTINCT ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID) AS cluster_count,
            COUNT(ATTRIBUTE.ATTRIBUTE_ID) AS attribute_count,
            COALESCE(SUM({ATTRIBUTE_SIZE_SQL}), 0) AS attributes_size
        FROM ENDPOINT_TYPE
        INNER JOIN ENDPOINT_TYPE_CLUSTER
          ON ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF = ENDPOINT_TYPE.ENDPOINT_TYPE_ID
        LEFT JOIN ENDPOINT_TYPE_ATTRIBUTE
          ON ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF = ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID
         AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED = 1
        LEFT JOIN ATTRIBUTE ON ATTRIBUTE.ATTRIBUTE_ID = ENDPOINT_TYPE_ATTRIBUTE.ATTRIBUTE_REF
        {ATOMIC_JOIN_SQL}
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID IN ({placeholders(len(ids))})
        GROUP BY ENDPOINT_TYPE.ENDPOINT_TYPE_ID
        ORDER BY ENDPOINT_TYPE.ENDPOINT_TYPE_ID
        """,
        ids,
    )
    offsets = accumulate((r["cluster_count"] for r in rows), initial=0)
    for row, offset in zip(rows, offsets):
        row["cluster_index"] = offset
    return rows


async def delete_package_entities(db: SqliteConnectionPool, package_id: int) -> None:
    """Drop the ZCL entities of a package before it's reloaded."""
    for table in ("ATTRIBUTE", "COMMAND", "CLUSTER", "ATOMIC"):
        await db.execute_query(f"DELETE FROM {table} WHERE PACKAGE_REF = ?", [package_id])
