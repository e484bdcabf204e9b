"""
User configuration queries: endpoint types, endpoints and the per endpoint
type cluster/attribute/command selections.
"""

from __future__ import annotations

from typing import Any, Optional

from zapgen.connectors.sqlite_pool import SqliteConnectionPool

from .query_util import ATOMIC_JOIN_SQL, ATTRIBUTE_SIZE_SQL


async def insert_endpoint_type(
    db: SqliteConnectionPool,
    session_id: int,
    name: str,
    device_type_code: Optional[int] = None,
    device_type_name: Optional[str] = None,
) -> int:
    return await db.execute_query(
        """
        INSERT INTO ENDPOINT_TYPE (SESSION_REF, NAME, DEVICE_TYPE_CODE, DEVICE_TYPE_NAME)
        VALUES (?, ?, ?, ?)
        """,
        [session_id, name, device_type_code, device_type_name],
    )


async def insert_endpoint(
    db: SqliteConnectionPool,
    session_id: int,
    endpoint_type_id: int,
    endpoint_identifier: int,
    *,
    profile: Optional[int] = None,
    network_identifier: Optional[int] = None,
    device_identifier: Optional[int] = None,
    device_version: Optional[int] = None,
) -> int:
    return await db.execute_query(
        """
        INSERT INTO ENDPOINT (
            SESSION_REF, ENDPOINT_TYPE_REF, PROFILE, ENDPOINT_IDENTIFIER,
            NETWORK_IDENTIFIER, DEVICE_IDENTIFIER, DEVICE_VERSION
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            session_id,
            endpoint_type_id,
            profile,
            endpoint_identifier,
            network_identifier,
            device_identifier,
            device_version,
        ],
    )


async def insert_endpoint_type_cluster(
    db: SqliteConnectionPool,
    endpoint_type_id: int,
    cluster_id: int,
    side: str,
    enabled: bool = True,
) -> int:
    return await db.execute_query(
        """
        INSERT INTO ENDPOINT_TYPE_CLUSTER (ENDPOINT_TYPE_REF, CLUSTER_REF, SIDE, ENABLED)
        VALUES (?, ?, ?, ?)
        """,
        [endpoint_type_id, cluster_id, str(side), 1 if enabled else 0],
    )


async def insert_endpoint_type_attribute(
    db: SqliteConnectionPool,
    endpoint_type_id: int,
    endpoint_type_cluster_id: int,
    attribute_id: int,
    *,
    included: bool = True,
    storage_option: Optional[str] = None,
    singleton: bool = False,
    bounded: bool = False,
    default_value: Optional[str] = None,
    included_reportable: bool = False,
    min_interval: int = 1,
    max_interval: int = 65534,
    reportable_change: int = 0,
) -> int:
    return await db.execute_query(
        """
        INSERT INTO ENDPOINT_TYPE_ATTRIBUTE (
            ENDPOINT_TYPE_REF, ENDPOINT_TYPE_CLUSTER_REF, ATTRIBUTE_REF, INCLUDED,
            STORAGE_OPTION, SINGLETON, BOUNDED, DEFAULT_VALUE, INCLUDED_REPORTABLE,
            MIN_INTERVAL, MAX_INTERVAL, REPORTABLE_CHANGE
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            endpoint_type_id,
            endpoint_type_cluster_id,
            attribute_id,
            1 if included else 0,
            storage_option,
            1 if singleton else 0,
            1 if bounded else 0,
            default_value,
            1 if included_reportable else 0,
            min_interval,
            max_interval,
            reportable_change,
        ],
    )


async def insert_endpoint_type_command(
    db: SqliteConnectionPool,
    endpoint_type_id: int,
    endpoint_type_cluster_id: int,
    command_id: int,
    *,
    incoming: bool = False,
    outgoing: bool = False,
) -> int:
    return await db.execute_query(
        """
        INSERT INTO ENDPOINT_TYPE_COMMAND (
            ENDPOINT_TYPE_REF, ENDPOINT_TYPE_CLUSTER_REF, COMMAND_REF, INCOMING, OUTGOING
        ) VALUES (?, ?, ?, ?, ?)
        """,
        [endpoint_type_id, endpoint_type_cluster_id, command_id, 1 if incoming else 0, 1 if outgoing else 0],
    )


async def select_endpoint_type_ids(db: SqliteConnectionPool, session_id: int) -> list[dict[str, Any]]:
    """All endpoint types of a session, as `{endpoint_type_id}` rows."""
    return await db.fetch_all(
        """
        SELECT ENDPOINT_TYPE_ID AS endpoint_type_id
        FROM ENDPOINT_TYPE
        WHERE SESSION_REF = ?
        ORDER BY ENDPOINT_TYPE_ID
        """,
        [session_id],
    )


async def select_used_endpoint_type_ids(db: SqliteConnectionPool, session_id: int) -> list[dict[str, Any]]:
    """Endpoint types of a session that at least one endpoint uses."""
    return await db.fetch_all(
        """
        SELECT DISTINCT ENDPOINT.ENDPOINT_TYPE_REF AS endpoint_type_id
        FROM ENDPOINT
        WHERE ENDPOINT.SESSION_REF = ?
          AND ENDPOINT.ENDPOINT_TYPE_REF IS NOT NULL
        ORDER BY ENDPOINT.ENDPOINT_TYPE_REF
        """,
        [session_id],
    )


async def select_endpoint_type_count(db: SqliteConnectionPool, session_id: int) -> int:
    count = await db.fetch_val(
        "SELECT COUNT(1) FROM ENDPOINT_TYPE WHERE SESSION_REF = ?", [session_id]
    )
    return int(count or 0)


async def select_endpoint_type_count_by_cluster(
    db: SqliteConnectionPool, session_id: int, cluster_id: int, side: str
) -> int:
    """
    Number of endpoints of the session whose endpoint type has the cluster
    enabled on the given side.
    """
    count = await db.fetch_val(
        """
        SELECT COUNT(1)
        FROM ENDPOINT
        INNER JOIN ENDPOINT_TYPE_CLUSTER
          ON ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF = ENDPOINT.ENDPOINT_TYPE_REF
        WHERE ENDPOINT.SESSION_REF = ?
          AND ENDPOINT_TYPE_CLUSTER.CLUSTER_REF = ?
          AND ENDPOINT_TYPE_CLUSTER.SIDE = ?
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
        """,
        [session_id, cluster_id, str(side)],
    )
    return int(count or 0)


async def select_all_session_attributes(db: SqliteConnectionPool, session_id: int) -> list[dict[str, Any]]:
    """
    Distinct attributes included anywhere in the session's enabled clusters.
    """
    return await db.fetch_all(
        f"""
        SELECT
            ATTRIBUTE.ATTRIBUTE_ID AS id,
            ATTRIBUTE.NAME AS name,
            ATTRIBUTE.CODE AS code,
            ATTRIBUTE.SIDE AS side,
            ATTRIBUTE.TYPE AS type,
            ATTRIBUTE.DEFINE AS define,
            ATTRIBUTE.MANUFACTURER_CODE AS mfg_code,
            ATTRIBUTE.IS_WRITABLE AS is_writable,
            {ATTRIBUTE_SIZE_SQL} AS size,
            CLUSTER.NAME AS cluster_name,
            CLUSTER.CODE AS cluster_code,
            CLUSTER.DEFINE AS cluster_define,
            MIN(ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE) AS default_value,
            MIN(ENDPOINT_TYPE_ATTRIBUTE.STORAGE_OPTION) AS storage_option
        FROM ENDPOINT_TYPE_ATTRIBUTE
        INNER JOIN ENDPOINT_TYPE
          ON ENDPOINT_TYPE.ENDPOINT_TYPE_ID = ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_REF
        INNER JOIN ENDPOINT_TYPE_CLUSTER
          ON ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID = ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF
        INNER JOIN ATTRIBUTE
          ON ATTRIBUTE.ATTRIBUTE_ID = ENDPOINT_TYPE_ATTRIBUTE.ATTRIBUTE_REF
        INNER JOIN CLUSTER
          ON CLUSTER.CLUSTER_ID = ENDPOINT_TYPE_CLUSTER.CLUSTER_REF
        {ATOMIC_JOIN_SQL}
        WHERE ENDPOINT_TYPE.SESSION_REF = ?
          AND ENDPOINT_TYPE_ATTRIBUTE.INCLUDED = 1
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
        GROUP BY ATTRIBUTE.ATTRIBUTE_ID
        ORDER BY CLUSTER.CODE, ATTRIBUTE.CODE, ATTRIBUTE.MANUFACTURER_CODE
        """,
        [session_id],
    )
