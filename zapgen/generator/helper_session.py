"""
User Session Helpers

Helpers that iterate over the user configuration of the session being
generated: endpoint types, endpoints, enabled clusters and their attributes
and commands.

    {% call(ept) user_endpoint_types(this) %}
    {% call(cl) user_clusters(ept) %}
      {{ cl.name }} ({{ cl.side }})
    {% endcall %}
    {% endcall %}
"""

from typing import Any, Callable, Dict, List, Optional

from jinja2 import Undefined

from zapgen.db import (
    query_attribute,
    query_command,
    query_config,
    query_impexp,
    query_session,
    query_zcl,
)
from zapgen.exceptions import TemplateHelperError
from zapgen.models.db_enum import SessionOption

from .template_util import (
    TemplateScope,
    collect_blocks,
    deprecated_helper,
    ensure_endpoint_type_ids,
    ensure_template_package_id,
)
from .zcl_util import is_command_available, is_str_equal


def _lookup(scope: Any, key: str, helper: str) -> Any:
    """Value of `key` in the scope or the closest enclosing scope that has it."""
    current = scope
    while current is not None:
        value = current.get(key) if isinstance(current, TemplateScope) else None
        if value is not None:
            return value
        current = getattr(current, "parent", None)
    raise TemplateHelperError(f"{helper} must be used inside a block that provides `{key}`")


def _is_true(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _optional(value: Any) -> Any:
    return None if isinstance(value, Undefined) else value


async def _endpoints_and_clusters(scope: TemplateScope) -> List[Dict[str, Any]]:
    endpoint_types = await ensure_endpoint_type_ids(scope)
    return await query_zcl.export_clusters_and_endpoint_details_from_endpoint_types(
        scope.global_.db, endpoint_types
    )


# ============================================================================
# Endpoint types, endpoints and their clusters
# ============================================================================


async def user_endpoint_types(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the endpoint types of the session."""
    endpoint_types = await query_impexp.export_endpoint_types(scope.global_.db, scope.global_.session_id)
    return await collect_blocks(endpoint_types, caller, scope)


async def user_endpoints(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """
    Iterate over the endpoints of the session, ordered by endpoint id. Each
    row also carries `endpoint_type_id`, so `user_clusters` works inside.
    """
    endpoint_types = await ensure_endpoint_type_ids(scope)
    endpoints = await query_impexp.export_endpoints(
        scope.global_.db, scope.global_.session_id, endpoint_types
    )
    for endpoint in endpoints:
        endpoint["endpoint_type_id"] = endpoint["endpoint_type_ref"]
    return await collect_blocks(endpoints, caller, scope)


async def user_clusters(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the clusters of the enclosing endpoint type."""
    endpoint_type_id = _lookup(scope, "endpoint_type_id", "user_clusters")
    clusters = await query_impexp.export_clusters_from_endpoint_type(scope.global_.db, endpoint_type_id)
    return await collect_blocks(clusters, caller, scope)


async def user_cluster_attributes(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the attributes of the enclosing endpoint type cluster."""
    endpoint_type_id = _lookup(scope, "endpoint_type_id", "user_cluster_attributes")
    endpoint_cluster_id = _lookup(scope, "endpoint_cluster_id", "user_cluster_attributes")
    attributes = await query_impexp.export_attributes_from_endpoint_type_cluster(
        scope.global_.db, endpoint_type_id, endpoint_cluster_id
    )
    return await collect_blocks(attributes, caller, scope)


async def user_cluster_commands(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the commands of the enclosing endpoint type cluster."""
    endpoint_type_id = _lookup(scope, "endpoint_type_id", "user_cluster_commands")
    endpoint_cluster_id = _lookup(scope, "endpoint_cluster_id", "user_cluster_commands")
    commands = await query_impexp.export_commands_from_endpoint_type_cluster(
        scope.global_.db, endpoint_type_id, endpoint_cluster_id
    )
    return await collect_blocks(commands, caller, scope)


async def user_endpoint_type_count(scope: TemplateScope) -> int:
    return await query_config.select_endpoint_type_count(scope.global_.db, scope.global_.session_id)


async def user_endpoint_count_by_cluster(scope: TemplateScope, cluster_type_id: int, side: str) -> int:
    """Number of endpoints whose endpoint type has the cluster enabled on `side`."""
    return await query_config.select_endpoint_type_count_by_cluster(
        scope.global_.db, scope.global_.session_id, cluster_type_id, side
    )


async def user_all_attributes(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over every attribute included anywhere in the session."""
    attributes = await query_config.select_all_session_attributes(scope.global_.db, scope.global_.session_id)
    return await collect_blocks(attributes, caller, scope)


# ============================================================================
# Commands and attributes across all endpoint types
# ============================================================================


async def all_user_cluster_commands(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over every command enabled on an enabled cluster."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    commands = await query_zcl.export_command_details_from_all_endpoint_types_and_clusters(
        scope.global_.db, endpoints_and_clusters
    )
    return await collect_blocks(commands, caller, scope)


async def _user_cluster_commands_by_name(
    scope: TemplateScope,
    name: str,
    side: str,
    caller: Optional[Callable],
    is_manufacturing_specific: bool,
    irrespective_of_manufacturing_specification: bool = False,
) -> str:
    """Enabled commands of cluster `name` that are available on `side`."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    db = scope.global_.db
    if irrespective_of_manufacturing_specification:
        commands = await query_zcl.export_command_details_from_all_endpoint_types_and_clusters(
            db, endpoints_and_clusters
        )
    elif is_manufacturing_specific:
        commands = await query_zcl.export_manufacturer_specific_command_details_from_all_endpoint_types_and_clusters(
            db, endpoints_and_clusters
        )
    else:
        commands = await query_zcl.export_non_manufacturer_specific_command_details_from_all_endpoint_types_and_clusters(
            db, endpoints_and_clusters
        )

    available = [
        c
        for c in commands
        if is_str_equal(name, c["cluster_name"])
        and is_command_available(side, c["incoming"], c["outgoing"], c["command_source"], c["name"])
    ]
    return await collect_blocks(available, caller, scope)


async def _user_cluster_attributes_by_name(
    scope: TemplateScope,
    name: str,
    side: str,
    caller: Optional[Callable],
    is_manufacturing_specific: bool,
    irrespective_of_manufacturing_specification: bool = False,
) -> str:
    """Included attributes of cluster `name`. `side` doesn't narrow attributes."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    db = scope.global_.db
    if irrespective_of_manufacturing_specification:
        attributes = await query_attribute.select_all_attribute_details_from_enabled_clusters(
            db, endpoints_and_clusters
        )
    elif is_manufacturing_specific:
        attributes = await query_attribute.select_manufacturer_specific_attribute_details_from_all_endpoint_types_and_clusters(
            db, endpoints_and_clusters
        )
    else:
        attributes = await query_attribute.select_non_manufacturer_specific_attribute_details_from_all_endpoint_types_and_clusters(
            db, endpoints_and_clusters
        )

    available = [a for a in attributes if is_str_equal(name, a["cluster_name"])]
    return await collect_blocks(available, caller, scope)


async def all_user_cluster_manufacturer_specific_commands(
    scope: TemplateScope, name: str, side: str, caller: Optional[Callable] = None
) -> str:
    return await _user_cluster_commands_by_name(scope, name, side, caller, True)


async def all_user_cluster_non_manufacturer_specific_commands(
    scope: TemplateScope, name: str, side: str, caller: Optional[Callable] = None
) -> str:
    return await _user_cluster_commands_by_name(scope, name, side, caller, False)


async def all_user_cluster_commands_irrespective_of_manufacturing_specification(
    scope: TemplateScope, name: str, side: str, caller: Optional[Callable] = None
) -> str:
    return await _user_cluster_commands_by_name(scope, name, side, caller, False, True)


async def all_user_cluster_manufacturer_specific_attributes(
    scope: TemplateScope, name: str, side: str, caller: Optional[Callable] = None
) -> str:
    return await _user_cluster_attributes_by_name(scope, name, side, caller, True)


async def all_user_cluster_non_manufacturer_specific_attributes(
    scope: TemplateScope, name: str, side: str, caller: Optional[Callable] = None
) -> str:
    return await _user_cluster_attributes_by_name(scope, name, side, caller, False)


async def all_user_cluster_attributes_irrespective_of_manufacturing_specification(
    scope: TemplateScope, name: str, side: str, caller: Optional[Callable] = None
) -> str:
    return await _user_cluster_attributes_by_name(scope, name, side, caller, False, True)


async def all_commands_for_user_enabled_clusters(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over every command of the enabled clusters, enabled or not."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    commands = await query_zcl.export_all_command_details_from_enabled_clusters(
        scope.global_.db, endpoints_and_clusters
    )
    return await collect_blocks(commands, caller, scope)


async def all_cli_commands_for_user_enabled_clusters(
    scope: TemplateScope, caller: Optional[Callable] = None
) -> str:
    """Iterate over the CLI-enabled commands of the enabled clusters."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    package_id = await ensure_template_package_id(scope)
    commands = await query_zcl.export_all_cli_command_details_from_enabled_clusters(
        scope.global_.db, endpoints_and_clusters, package_id
    )
    return await collect_blocks(commands, caller, scope)


# ============================================================================
# Clusters across all endpoint types
# ============================================================================


async def all_user_clusters(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the enabled clusters, once per cluster and side."""
    endpoint_types = await ensure_endpoint_type_ids(scope)
    clusters = await query_zcl.select_all_clusters_details_from_endpoint_types(scope.global_.db, endpoint_types)
    return await collect_blocks(clusters, caller, scope)


async def all_user_clusters_irrespective_of_side(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    endpoint_types = await ensure_endpoint_type_ids(scope)
    clusters = await query_zcl.export_all_clusters_details_irrespective_of_side_from_endpoint_types(
        scope.global_.db, endpoint_types
    )
    return await collect_blocks(clusters, caller, scope)


async def all_user_clusters_names(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    endpoint_types = await ensure_endpoint_type_ids(scope)
    clusters = await query_zcl.export_all_clusters_names_from_endpoint_types(scope.global_.db, endpoint_types)
    return await collect_blocks(clusters, caller, scope)


async def user_cluster_command_count_with_cli(scope: TemplateScope) -> int:
    """Number of CLI-enabled commands of the enclosing cluster."""
    endpoint_types = await ensure_endpoint_type_ids(scope)
    endpoint_cluster_id = _lookup(scope, "endpoint_cluster_id", "user_cluster_command_count_with_cli")
    package_id = await ensure_template_package_id(scope)
    return await query_command.select_cli_command_count_from_endpoint_type_cluster(
        scope.global_.db, endpoint_types, endpoint_cluster_id, package_id
    )


async def user_cluster_commands_with_cli(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """
    Iterate over the CLI-enabled commands of the enclosing cluster:

        {% call(cl) all_user_clusters_irrespective_of_side(this) %}
        {% call(cmd) user_cluster_commands_with_cli(cl) %}...{% endcall %}
        {% endcall %}
    """
    cluster_id = _lookup(scope, "id", "user_cluster_commands_with_cli")
    package_id = await ensure_template_package_id(scope)
    commands = await query_command.select_cli_commands_from_cluster(scope.global_.db, cluster_id, package_id)
    return await collect_blocks(commands, caller, scope)


async def user_cluster_commands_all_endpoints(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the enclosing cluster's commands enabled on any endpoint type."""
    endpoint_types = await ensure_endpoint_type_ids(scope)
    endpoint_cluster_id = _lookup(scope, "endpoint_cluster_id", "user_cluster_commands_all_endpoints")
    commands = await query_zcl.export_command_details_from_all_endpoint_type_cluster(
        scope.global_.db, endpoint_types, endpoint_cluster_id
    )
    return await collect_blocks(commands, caller, scope)


async def user_cluster_has_enabled_command(scope: TemplateScope, name: str, side: str) -> bool:
    """Whether cluster `name` has an enabled command available on `side`."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    commands = await query_zcl.export_command_details_from_all_endpoint_types_and_clusters(
        scope.global_.db, endpoints_and_clusters
    )
    return any(
        is_str_equal(name, c["cluster_name"])
        and is_command_available(side, c["incoming"], c["outgoing"], c["command_source"], c["name"])
        for c in commands
    )


# ============================================================================
# Session key/values
# ============================================================================


async def _session_value(scope: TemplateScope, key: str, toupper: Any) -> Optional[str]:
    value = await query_session.get_session_key_value(scope.global_.db, scope.global_.session_id, key)
    if value is not None and _is_true(toupper):
        return value.upper()
    return value


async def user_session_key(scope: TemplateScope, key: str, toupper: Any = False) -> Optional[str]:
    """Session value stored under `key`, optionally upper-cased."""
    return await _session_value(scope, key, toupper)


async def user_manufacturer_code(scope: TemplateScope, toupper: Any = False) -> Optional[str]:
    return await _session_value(scope, SessionOption.MANUFACTURER_CODES.value, toupper)


async def user_default_response_policy(scope: TemplateScope, toupper: Any = False) -> Optional[str]:
    return await _session_value(scope, SessionOption.DEFAULT_RESPONSE_POLICY.value, toupper)


async def endpoint_type_identifier(scope: TemplateScope, endpoint_type_id: Any) -> str:
    """Endpoint id of the first endpoint using the endpoint type, or `'0'`."""
    endpoint_types = await ensure_endpoint_type_ids(scope)
    endpoints = await query_impexp.export_endpoints(scope.global_.db, scope.global_.session_id, endpoint_types)
    for endpoint in endpoints:
        if str(endpoint["endpoint_type_ref"]) == str(endpoint_type_id):
            return "0" if endpoint["endpoint_id"] is None else str(endpoint["endpoint_id"])
    return "0"


async def endpoint_type_index(scope: TemplateScope, endpoint_type_id: Any) -> int:
    """Position of the first endpoint using the endpoint type, or -1."""
    endpoint_types = await ensure_endpoint_type_ids(scope)
    endpoints = await query_impexp.export_endpoints(scope.global_.db, scope.global_.session_id, endpoint_types)
    for index, endpoint in enumerate(endpoints):
        if str(endpoint["endpoint_type_ref"]) == str(endpoint_type_id):
            return index
    return -1


# ============================================================================
# Generated tables
# ============================================================================


async def all_user_cluster_attributes_for_generated_defaults(
    scope: TemplateScope, caller: Optional[Callable] = None
) -> str:
    """
    Iterate over default values that don't fit in a pointer: attributes wider
    than 2 bytes, excluding zero defaults and externally stored values.
    """
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    attributes = await query_attribute.select_attribute_bound_details(scope.global_.db, endpoints_and_clusters)
    return await collect_blocks(attributes, caller, scope)


async def all_user_cluster_generated_attributes(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the included attributes of every endpoint type."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    attributes = await query_attribute.select_attribute_details_from_enabled_clusters(
        scope.global_.db, endpoints_and_clusters
    )
    return await collect_blocks(attributes, caller, scope)


async def all_user_reportable_attributes(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the reportable attributes, per endpoint."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    attributes = await query_attribute.select_reportable_attribute_details_from_enabled_clusters_and_endpoints(
        scope.global_.db, endpoints_and_clusters
    )
    return await collect_blocks(attributes, caller, scope)


async def all_user_cluster_generated_commands(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the commands available on endpoint types that endpoints use."""
    endpoint_types = await query_config.select_used_endpoint_type_ids(scope.global_.db, scope.global_.session_id)
    commands = await query_command.select_all_available_cluster_commands_from_endpoint_types(
        scope.global_.db, endpoint_types
    )
    return await collect_blocks(commands, caller, scope)


async def generated_clusters_details(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the enabled clusters per endpoint type, with attribute summaries."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    clusters = await query_zcl.export_cluster_details_from_enabled_clusters(scope.global_.db, endpoints_and_clusters)
    return await collect_blocks(clusters, caller, scope)


async def generated_endpoint_type_details(scope: TemplateScope, caller: Optional[Callable] = None) -> str:
    """Iterate over the endpoint types, with cluster summaries."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    endpoint_types = await query_zcl.select_endpoint_details_from_added_endpoints(
        scope.global_.db, endpoints_and_clusters
    )
    return await collect_blocks(endpoint_types, caller, scope)


async def all_user_cluster_attributes_min_max_defaults(
    scope: TemplateScope, caller: Optional[Callable] = None
) -> str:
    """Iterate over bounded attributes with their min, max and default."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    attributes = await query_attribute.select_attribute_details_with_a_bound_from_enabled_clusters(
        scope.global_.db, endpoints_and_clusters
    )
    return await collect_blocks(attributes, caller, scope)


async def generated_defaults_index(
    scope: TemplateScope,
    cluster_name: str,
    attribute_name: str,
    attribute_value_type: str,
    attribute_value: Any,
    prefix_return: Any = "",
    postfix_return: Any = "",
) -> str:
    """
    Reference to an attribute default in the generated defaults array.

    Returns `prefix + index + postfix` when the attribute has an entry in
    `all_user_cluster_attributes_for_generated_defaults`; otherwise the value
    itself cast to `(uint8_t*)`, or `NULL` when there's no value.
    """
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    attributes = await query_attribute.select_attribute_bound_details(scope.global_.db, endpoints_and_clusters)

    found = False
    data_ptr: Any = None
    for attribute in attributes:
        if (
            attribute["cluster_name"] == cluster_name
            and attribute["name"] == attribute_name
            and attribute["attribute_value_type"] == attribute_value_type
        ):
            data_ptr = attribute.get("array_index") or 0
            found = True

    if found:
        prefix = _optional(prefix_return) or ""
        postfix = _optional(postfix_return) or ""
        return f"{prefix}{data_ptr}{postfix}"
    attribute_value = _optional(attribute_value)
    return f"(uint8_t*){attribute_value}" if attribute_value else "NULL"


async def generated_attributes_min_max_index(scope: TemplateScope, cluster_name: str, attribute_name: str) -> int:
    """Index of an attribute in `all_user_cluster_attributes_min_max_defaults`, 0 when absent."""
    endpoints_and_clusters = await _endpoints_and_clusters(scope)
    attributes = await query_attribute.select_attribute_details_with_a_bound_from_enabled_clusters(
        scope.global_.db, endpoints_and_clusters
    )
    data_ptr = 0
    for index, attribute in enumerate(attributes):
        if attribute["cluster_name"] == cluster_name and attribute["name"] == attribute_name:
            data_ptr = index
    return data_ptr


# WARNING! WARNING! WARNING! WARNING! WARNING! WARNING!
#
# These names are public API. Templates written in the past depend on them.
# When renaming a helper, keep the old name registered as a deprecated alias.
HELPERS: Dict[str, Callable[..., Any]] = {
    "user_endpoint_types": user_endpoint_types,
    "user_endpoints": user_endpoints,
    "user_clusters": user_clusters,
    "user_cluster_attributes": user_cluster_attributes,
    "user_cluster_commands": user_cluster_commands,
    "user_endpoint_type_count": user_endpoint_type_count,
    "user_endpoint_count_by_cluster": user_endpoint_count_by_cluster,
    "user_all_attributes": user_all_attributes,
    "all_user_cluster_commands": all_user_cluster_commands,
    "all_user_clusters": all_user_clusters,
    "all_user_clusters_names": all_user_clusters_names,
    "user_cluster_command_count_with_cli": user_cluster_command_count_with_cli,
    "user_cluster_commands_all_endpoints": user_cluster_commands_all_endpoints,
    "user_cluster_has_enabled_command": user_cluster_has_enabled_command,
    "user_session_key": user_session_key,
    "user_manufacturer_code": user_manufacturer_code,
    "user_default_response_policy": user_default_response_policy,
    "endpoint_type_identifier": endpoint_type_identifier,
    "endpoint_type_index": endpoint_type_index,
    "all_commands_for_user_enabled_clusters": all_commands_for_user_enabled_clusters,
    "all_user_clusters_irrespective_of_side": all_user_clusters_irrespective_of_side,
    "all_user_cluster_manufacturer_specific_commands": all_user_cluster_manufacturer_specific_commands,
    "all_user_cluster_non_manufacturer_specific_commands": all_user_cluster_non_manufacturer_specific_commands,
    "user_cluster_commands_with_cli": user_cluster_commands_with_cli,
    "all_cli_commands_for_user_enabled_clusters": all_cli_commands_for_user_enabled_clusters,
    "all_user_cluster_commands_irrespective_of_manufacturing_specification": (
        all_user_cluster_commands_irrespective_of_manufacturing_specification
    ),
    "all_user_cluster_commands_irrespective_of_manufaturing_specification": deprecated_helper(
        all_user_cluster_commands_irrespective_of_manufacturing_specification,
        to="all_user_cluster_commands_irrespective_of_manufacturing_specification",
        alias="all_user_cluster_commands_irrespective_of_manufaturing_specification",
    ),
    "all_user_cluster_manufacturer_specific_attributes": all_user_cluster_manufacturer_specific_attributes,
    "all_user_cluster_non_manufacturer_specific_attributes": all_user_cluster_non_manufacturer_specific_attributes,
    "all_user_cluster_attributes_irrespective_of_manufacturing_specification": (
        all_user_cluster_attributes_irrespective_of_manufacturing_specification
    ),
    "all_user_cluster_attributes_irrespective_of_manufatucuring_specification": deprecated_helper(
        all_user_cluster_attributes_irrespective_of_manufacturing_specification,
        to="all_user_cluster_attributes_irrespective_of_manufacturing_specification",
        alias="all_user_cluster_attributes_irrespective_of_manufatucuring_specification",
    ),
    "all_user_cluster_attributes_for_generated_defaults": all_user_cluster_attributes_for_generated_defaults,
    "all_user_cluster_generated_attributes": all_user_cluster_generated_attributes,
    "all_user_reportable_attributes": all_user_reportable_attributes,
    "all_user_cluster_generated_commands": all_user_cluster_generated_commands,
    "generated_clusters_details": generated_clusters_details,
    "generated_clustes_details": deprecated_helper(
        generated_clusters_details, to="generated_clusters_details", alias="generated_clustes_details"
    ),
    "generated_endpoint_type_details": generated_endpoint_type_details,
    "all_user_cluster_attributes_min_max_defaults": all_user_cluster_attributes_min_max_defaults,
    "generated_defaults_index": generated_defaults_index,
    "generated_attributes_min_max_index": generated_attributes_min_max_index,
}
