"""
Command queries: CLI-enabled commands and the commands available on the
endpoint types actually used by endpoints.

A command is CLI-enabled when the template package carries a `cli` option
whose code is the command name.
"""

from __future__ import annotations

from typing import Any, Iterable

from zapgen.connectors.sqlite_pool import SqliteConnectionPool
from zapgen.models.db_enum import PackageOptionCategory

from .query_util import id_list, placeholders

_CLI_OPTION_JOIN_SQL = """
    INNER JOIN PACKAGE_OPTION
      ON PACKAGE_OPTION.OPTION_CATEGORY = ?
     AND PACKAGE_OPTION.PACKAGE_REF = ?
     AND LOWER(PACKAGE_OPTION.OPTION_CODE) = LOWER(COMMAND.NAME)
"""


async def select_cli_command_count_from_endpoint_type_cluster(
    db: SqliteConnectionPool,
    endpoint_types: Iterable[Any],
    endpoint_cluster_id: int,
    template_package_id: int,
) -> int:
    """
    Number of CLI-enabled commands of the cluster behind `endpoint_cluster_id`,
    provided the cluster is enabled on one of the endpoint types. Only `cli`
    options of `template_package_id` count.
    """
    ids = id_list(endpoint_types)
    if not ids:
        return 0
    count = await db.fetch_val(
        f"""
        SELECT COUNT(DISTINCT COMMAND.COMMAND_ID)
        FROM COMMAND
        INNER JOIN ENDPOINT_TYPE_CLUSTER ON ENDPOINT_TYPE_CLUSTER.CLUSTER_REF = COMMAND.CLUSTER_REF
        {_CLI_OPTION_JOIN_SQL}
        WHERE ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
          AND ENDPOINT_TYPE_CLUSTER.CLUSTER_REF = (
              SELECT CLUSTER_REF FROM ENDPOINT_TYPE_CLUSTER WHERE ENDPOINT_TYPE_CLUSTER_ID = ?
          )
        """,
        [PackageOptionCategory.CLI.value, template_package_id, *ids, endpoint_cluster_id],
    )
    return int(count or 0)


async def select_cli_commands_from_cluster(
    db: SqliteConnectionPool, cluster_id: int, template_package_id: int
) -> list[dict[str, Any]]:
    """CLI-enabled commands of a cluster, labelled from the template package's options."""
    return await db.fetch_all(
        f"""
        SELECT
            COMMAND.COMMAND_ID AS id,
            COMMAND.NAME AS name,
            COMMAND.CODE AS code,
            COMMAND.MANUFACTURER_CODE AS mfg_code,
            COMMAND.DESCRIPTION AS description,
            COMMAND.SOURCE AS source,
            CLUSTER.NAME AS cluster_name,
            CLUSTER.CODE AS cluster_code,
            MIN(PACKAGE_OPTION.OPTION_LABEL) AS cli_label
        FROM COMMAND
        INNER JOIN CLUSTER ON CLUSTER.CLUSTER_ID = COMMAND.CLUSTER_REF
        {_CLI_OPTION_JOIN_SQL}
        WHERE COMMAND.CLUSTER_REF = ?
        GROUP BY COMMAND.COMMAND_ID
        ORDER BY COMMAND.CODE, COMMAND.MANUFACTURER_CODE
        """,
        [PackageOptionCategory.CLI.value, template_package_id, cluster_id],
    )


async def select_all_available_cluster_commands_from_endpoint_types(
    db: SqliteConnectionPool, endpoint_types: Iterable[Any]
) -> list[dict[str, Any]]:
    """
    Commands enabled on the endpoint types, one row per command and cluster
    side.
    """
    ids = id_list(endpoint_types)
    if not ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT
            COMMAND.COMMAND_ID AS id,
            COMMAND.NAME AS name,
            COMMAND.CODE AS code,
            COALESCE(COMMAND.MANUFACTURER_CODE, CLUSTER.MANUFACTURER_CODE) AS mfg_code,
            COMMAND.SOURCE AS command_source,
            CLUSTER.CLUSTER_ID AS cluster_id,
            CLUSTER.NAME AS cluster_name,
            CLUSTER.CODE AS cluster_code,
            CLUSTER.DEFINE AS cluster_define,
            ENDPOINT_TYPE_CLUSTER.SIDE AS cluster_side,
            MAX(ENDPOINT_TYPE_COMMAND.INCOMING) AS incoming,
            MAX(ENDPOINT_TYPE_COMMAND.OUTGOING) AS outgoing
        FROM ENDPOINT_TYPE_COMMAND
        INNER JOIN ENDPOINT_TYPE_CLUSTER
          ON ENDPOINT_TYPE_CLUSTER.ENDPOINT_TYPE_CLUSTER_ID = ENDPOINT_TYPE_COMMAND.ENDPOINT_TYPE_CLUSTER_REF
        INNER JOIN COMMAND ON COMMAND.COMMAND_ID = ENDPOINT_TYPE_COMMAND.COMMAND_REF
        INNER JOIN CLUSTER ON CLUSTER.CLUSTER_ID = ENDPOINT_TYPE_CLUSTER.CLUSTER_REF
        WHERE ENDPOINT_TYPE_COMMAND.ENDPOINT_TYPE_REF IN ({placeholders(len(ids))})
          AND ENDPOINT_TYPE_CLUSTER.ENABLED = 1
          AND (ENDPOINT_TYPE_COMMAND.INCOMING = 1 OR ENDPOINT_TYPE_COMMAND.OUTGOING = 1)
        GROUP BY COMMAND.COMMAND_ID, ENDPOINT_TYPE_CLUSTER.SIDE
        ORDER BY CLUSTER.CODE, CLUSTER.MANUFACTURER_CODE, ENDPOINT_TYPE_CLUSTER.SIDE, COMMAND.CODE,
                 COMMAND.MANUFACTURER_CODE
        """,
        ids,
    )
