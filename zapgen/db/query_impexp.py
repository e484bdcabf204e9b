"""
Export queries: the user configuration of a session as plain rows, in the
shape the session helpers iterate over.
"""

from __future__ import annotations

from typing import Any, Iterable

from zapgen.connectors.sqlite_pool import SqliteConnectionPool

from .query_util import id_list, placeholders


async def export_endpoint_types(db: SqliteConnectionPool, session_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT
            ENDPOINT_TYPE_ID AS endpoint_type_id,
            NAME AS name,
            DEVICE_TYPE_CODE AS device_type_code,
            DEVICE_TYPE_NAME AS device_type_name
        FROM ENDPOINT_TYPE
        WHERE SESSION_REF = ?
        ORDER BY ENDPOINT_TYPE_ID
        """,
        [session_id],
    )


async def export_endpoints(
    db: SqliteConnectionPool, session_id: int, endpoint_types: Iterable[Any]
) -> list[dict[str, Any]]:
    """
    Endpoints of a session restricted to the given endpoint types, ordered by
    endpoint identifier.
    """
    ids = id_list(endpoint_types)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            ENDPOINT_REF AS endpoint_ref,
            ENDPOINT_TYPE_REF AS endpoint_type_ref,
            PROFILE AS profile_id,
            ENDPOINT_IDENTIFIER AS endpoint_id,
            NETWORK_IDENTIFIER AS network_id,
            DEVICE_IDENTIFIER AS device_identifier,
            DEVICE_VERSION AS endpoint_version
        FROM ENDPOINT
        WHERE SESSION_REF = ?
          AND ENDPOINT_TYPE_REF IN ({placeholders(len(ids))})
        ORDER BY ENDPOINT_IDENTIFIER, ENDPOINT_REF
        """,
        [session_id, *ids],
    )


async def export_clusters_from_endpoint_type(
    db: SqliteConnectionPool, endpoint_type_id: int
) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT
            ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID AS endpoint_cluster_id,
            CLUSTER.CLUSTER_ID AS id,
            CLUSTER.NAME AS name,
            CLUSTER.CODE AS code,
            CLUSTER.DEFINE AS define,
            CLUSTER.MANUFACTURER_CODE AS mfg_code,
            ENDPOINT_TYPE_CLUSTER.SIDE AS side,
            ENDPOINT_TYPE_CLUSTER.ENABLED AS enabled
        FROM ENDPOINT_TYPE_CLUSTER
        INNER JOIN CLUSTER ON CLUSTER.CLUSTER_ID = ENDPOINT_TYPE_CLUSTER.CLUSTER_REF
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF = ?
        ORDER BY CLUSTER.CODE, CLUSTER.MANUFACTURER_CODE, ENDPOINT_TYPE_CLUSTER.SIDE
        """,
        [endpoint_type_id],
    )


async def export_attributes_from_endpoint_type_cluster(
    db: SqliteConnectionPool, endpoint_type_id: int, endpoint_cluster_id: int
) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT
            ATTRIBUTE.ATTRIBUTE_ID AS id,
            ATTRIBUTE.NAME AS name,
            ATTRIBUTE.CODE AS code,
            ATTRIBUTE.MANUFACTURER_CODE AS mfg_code,
            ATTRIBUTE.SIDE AS side,
            ATTRIBUTE.TYPE AS type,
            ATTRIBUTE.DEFINE AS define,
            ENDPOINT_TYPE_ATTRIBUTE.INCLUDED AS included,
            ENDPOINT_TYPE_ATTRIBUTE.STORAGE_OPTION AS storage_option,
            ENDPOINT_TYPE_ATTRIBUTE.SINGLETON AS singleton,
            ENDPOINT_TYPE_ATTRIBUTE.BOUNDED AS bounded,
            ENDPOINT_TYPE_ATTRIBUTE.DEFAULT_VALUE AS default_value,
            ENDPOINT_TYPE_ATTRIBUTE.INCLUDED_REPORTABLE AS reportable,
            ENDPOINT_TYPE_ATTRIBUTE.MIN_INTERVAL AS min_interval,
            ENDPOINT_TYPE_ATTRIBUTE.MAX_INTERVAL AS max_interval,
            ENDPOINT_TYPE_ATTRIBUTE.REPORTABLE_CHANGE AS reportable_change
        FROM ENDPOINT_TYPE_ATTRIBUTE
        INNER JOIN ATTRIBUTE ON ATTRIBUTE.ATTRIBUTE_ID = ENDPOINT_TYPE_ATTRIBUTE.ATTRIBUTE_REF
        WHERE ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_REF = ?
          AND ENDPOINT_TYPE_ATTRIBUTE.ENDPOINT_TYPE_CLUSTER_REF = ?
        ORDER BY ATTRIBUTE.CODE, ATTRIBUTE.MANUFACTURER_CODE
        """,
        [endpoint_type_id, endpoint_cluster_id],
    )


async def export_commands_from_endpoint_type_cluster(
    db: SqliteConnectionPool, endpoint_type_id: int, endpoint_cluster_id: int
) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT
            COMMAND.COMMAND_ID AS id,
            COMMAND.NAME AS name,
            COMMAND.CODE AS code,
            COMMAND.MANUFACTURER_CODE AS mfg_code,
            COMMAND.SOURCE AS source,
            ENDPOINT_TYPE_COMMAND.INCOMING AS incoming,
            ENDPOINT_TYPE_COMMAND.OUTGOING AS outgoing
        FROM ENDPOINT_TYPE_COMMAND
        INNER JOIN COMMAND ON COMMAND.COMMAND_ID = ENDPOINT_TYPE_COMMAND.COMMAND_REF
        WHERE ENDPOINT_TYPE_COMMAND.ENDPOINT_TYPE_REF = ?
          AND ENDPOINT_TYPE_COMMAND.ENDPOINT_TYPE_CLUSTER_REF = ?
        ORDER BY COMMAND.CODE, COMMAND.MANUFACTURER_CODE
        """,
        [endpoint_type_id, endpoint_cluster_id],
    )
