from __future__ import annotations

import pytest

pytestmark = pytest.mark.asyncio


async def _endpoints_and_clusters(loaded):
    from zapgen.db import query_zcl

    return await query_zcl.export_clusters_and_endpoint_details_from_endpoint_types(
        loaded.db, loaded.endpoint_type_ids
    )


async def test_enabled_endpoint_type_clusters(loaded) -> None:
    rows = await _endpoints_and_clusters(loaded)

    # Level Control on the switch is disabled.
    assert len(rows) == 8
    assert {r["endpoint_type_id"] for r in rows} == set(loaded.endpoint_type_ids)
    assert {"endpoint_type_id", "cluster_id", "endpoint_cluster_id", "side"} <= set(rows[0])


async def test_empty_endpoint_types_return_nothing(loaded) -> None:
    from zapgen.db import query_attribute, query_command, query_zcl

    assert await query_zcl.export_clusters_and_endpoint_details_from_endpoint_types(loaded.db, []) == []
    assert await query_zcl.export_command_details_from_all_endpoint_types_and_clusters(loaded.db, []) == []
    assert await query_attribute.select_attribute_bound_details(loaded.db, []) == []
    assert await query_command.select_cli_command_count_from_endpoint_type_cluster(
        loaded.db, [], 1, loaded.template_package_id
    ) == 0


async def test_enabled_command_details(loaded) -> None:
    from zapgen.db import query_zcl

    endpoints_and_clusters = await _endpoints_and_clusters(loaded)
    commands = await query_zcl.export_command_details_from_all_endpoint_types_and_clusters(
        loaded.db, endpoints_and_clusters
    )

    assert [c["name"] for c in commands] == [
        "Off",
        "SampleMfgSpecificOffWithTransition",
        "On",
        "Toggle",
        "MoveToLevel",
        "CommandOne",
    ]
    off = commands[0]
    # Incoming on the light, outgoing on the switch.
    assert (off["incoming"], off["outgoing"]) == (1, 1)
    assert off["cluster_name"] == "On/off"
    assert off["command_source"] == "client"


async def test_manufacturer_specific_command_split(loaded) -> None:
    from zapgen.db import query_zcl

    endpoints_and_clusters = await _endpoints_and_clusters(loaded)
    mfg = await query_zcl.export_manufacturer_specific_command_details_from_all_endpoint_types_and_clusters(
        loaded.db, endpoints_and_clusters
    )
    standard = await query_zcl.export_non_manufacturer_specific_command_details_from_all_endpoint_types_and_clusters(
        loaded.db, endpoints_and_clusters
    )

    assert [c["name"] for c in mfg] == ["SampleMfgSpecificOffWithTransition", "CommandOne"]
    # CommandOne inherits the manufacturer code of its cluster.
    assert [c["mfg_code"] for c in mfg] == [0x1002, 0x1002]
    assert [c["name"] for c in standard] == ["Off", "On", "Toggle", "MoveToLevel"]


async def test_all_and_cli_commands_of_enabled_clusters(loaded) -> None:
    from zapgen.db import query_zcl

    endpoints_and_clusters = await _endpoints_and_clusters(loaded)
    every = await query_zcl.export_all_command_details_from_enabled_clusters(loaded.db, endpoints_and_clusters)
    cli = await query_zcl.export_all_cli_command_details_from_enabled_clusters(
        loaded.db, endpoints_and_clusters, loaded.template_package_id
    )

    # Stop is defined but not enabled anywhere.
    assert "Stop" in [c["name"] for c in every]
    assert len(every) == 8
    assert [c["name"] for c in cli] == ["Off", "On", "Toggle"]


async def test_cli_commands_of_cluster(loaded) -> None:
    from zapgen.db import query_command, query_impexp, query_zcl

    light = loaded.endpoint_type_ids[1]
    on_off = (await query_impexp.export_clusters_from_endpoint_type(loaded.db, light))[1]

    count = await query_command.select_cli_command_count_from_endpoint_type_cluster(
        loaded.db, loaded.endpoint_type_ids, on_off["endpoint_cluster_id"], loaded.template_package_id
    )
    commands = await query_command.select_cli_commands_from_cluster(loaded.db, on_off["id"], loaded.template_package_id)
    all_endpoints = await query_zcl.export_command_details_from_all_endpoint_type_cluster(
        loaded.db, loaded.endpoint_type_ids, on_off["endpoint_cluster_id"]
    )

    assert count == 3
    assert [(c["name"], c["cli_label"]) for c in commands] == [
        ("Off", "Turn the light off"),
        ("On", "Turn the light on"),
        ("Toggle", "Toggle the light"),
    ]
    assert [c["name"] for c in all_endpoints] == ["Off", "SampleMfgSpecificOffWithTransition", "On", "Toggle"]


async def test_cli_options_of_other_packages_are_ignored(loaded) -> None:
    from zapgen.db import query_command, query_impexp, query_package, query_zcl

    other = await query_package.insert_path_crc(loaded.db, "/elsewhere/gen-templates.json", 1, "genTemplateJson")
    await query_package.insert_options_key_value_pairs(
        loaded.db, other, "cli", [("off", "Other off"), ("movetolevel", "Move")]
    )

    light = loaded.endpoint_type_ids[1]
    on_off = (await query_impexp.export_clusters_from_endpoint_type(loaded.db, light))[1]
    endpoints_and_clusters = [{"endpoint_cluster_id": on_off["endpoint_cluster_id"]}]

    ours = await query_command.select_cli_commands_from_cluster(loaded.db, on_off["id"], loaded.template_package_id)
    theirs = await query_command.select_cli_commands_from_cluster(loaded.db, on_off["id"], other)
    assert [(c["name"], c["cli_label"]) for c in ours][0] == ("Off", "Turn the light off")
    assert [(c["name"], c["cli_label"]) for c in theirs] == [("Off", "Other off")]

    assert await query_command.select_cli_command_count_from_endpoint_type_cluster(
        loaded.db, loaded.endpoint_type_ids, on_off["endpoint_cluster_id"], other
    ) == 1
    cli = await query_zcl.export_all_cli_command_details_from_enabled_clusters(
        loaded.db, endpoints_and_clusters, loaded.template_package_id
    )
    assert [c["name"] for c in cli] == ["Off", "On", "Toggle"]


async def test_available_commands_per_side(loaded) -> None:
    from zapgen.db import query_command

    rows = await query_command.select_all_available_cluster_commands_from_endpoint_types(
        loaded.db, loaded.endpoint_type_ids
    )
    on_off_sides = [(r["name"], r["cluster_side"]) for r in rows if r["cluster_name"] == "On/off"]

    assert ("Off", "client") in on_off_sides
    assert ("Off", "server") in on_off_sides
    assert ("SampleMfgSpecificOffWithTransition", "client") not in on_off_sides


async def test_cluster_listings(loaded) -> None:
    from zapgen.db import query_zcl

    per_side = await query_zcl.select_all_clusters_details_from_endpoint_types(loaded.db, loaded.endpoint_type_ids)
    any_side = await query_zcl.export_all_clusters_details_irrespective_of_side_from_endpoint_types(
        loaded.db, loaded.endpoint_type_ids
    )
    names = await query_zcl.export_all_clusters_names_from_endpoint_types(loaded.db, loaded.endpoint_type_ids)

    assert [(c["name"], c["side"]) for c in per_side] == [
        ("Basic", "server"),
        ("On/off", "client"),
        ("On/off", "server"),
        ("Level Control", "server"),
        ("Time", "server"),
        ("Sample Mfg Specific Cluster", "server"),
    ]
    assert [c["name"] for c in any_side] == [
        "Basic",
        "On/off",
        "Level Control",
        "Time",
        "Sample Mfg Specific Cluster",
    ]
    assert [c["name"] for c in names] == [c["name"] for c in any_side]


async def test_cluster_and_endpoint_type_summaries(loaded) -> None:
    from zapgen.db import query_zcl

    endpoints_and_clusters = await _endpoints_and_clusters(loaded)
    clusters = await query_zcl.export_cluster_details_from_enabled_clusters(loaded.db, endpoints_and_clusters)
    endpoint_types = await query_zcl.select_endpoint_details_from_added_endpoints(
        loaded.db, endpoints_and_clusters
    )

    assert [c["attribute_count"] for c in clusters] == [3, 2, 1, 1, 1, 1, 1, 0]
    assert [c["attribute_index"] for c in clusters] == [0, 3, 5, 6, 7, 8, 9, 10]
    # ZCL version (1) + two 32 byte strings.
    assert clusters[0]["attributes_size"] == 65

    assert [e["cluster_count"] for e in endpoint_types] == [3, 3, 2]
    assert [e["cluster_index"] for e in endpoint_types] == [0, 3, 6]
    assert [e["attribute_count"] for e in endpoint_types] == [6, 3, 1]
    assert endpoint_types[0]["attributes_size"] == 74


async def test_attribute_details(loaded) -> None:
    from zapgen.db import query_attribute

    endpoints_and_clusters = await _endpoints_and_clusters(loaded)
    grouped = await query_attribute.select_all_attribute_details_from_enabled_clusters(
        loaded.db, endpoints_and_clusters
    )
    per_endpoint_type = await query_attribute.select_attribute_details_from_enabled_clusters(
        loaded.db, endpoints_and_clusters
    )
    mfg = await query_attribute.select_manufacturer_specific_attribute_details_from_all_endpoint_types_and_clusters(
        loaded.db, endpoints_and_clusters
    )
    standard = await query_attribute.select_non_manufacturer_specific_attribute_details_from_all_endpoint_types_and_clusters(
        loaded.db, endpoints_and_clusters
    )

    # "remaining time" isn't included anywhere.
    assert "remaining time" not in [a["name"] for a in grouped]
    assert len(grouped) == 8
    assert len(per_endpoint_type) == 10
    assert [a["name"] for a in mfg] == ["ember sample attribute"]
    assert mfg[0]["is_manufacturing_specific"] == 1
    assert len(standard) == 7


async def test_attribute_bound_details(loaded) -> None:
    from zapgen.db import query_attribute

    endpoints_and_clusters = await _endpoints_and_clusters(loaded)
    rows = await query_attribute.select_attribute_bound_details(loaded.db, endpoints_and_clusters)

    # External storage and zero defaults are left out.
    assert [(r["name"], r["default_value"], r["array_index"]) for r in rows] == [
        ("model identifier", "Zap", 0),
        ("time", "0x12345678", 32),
    ]


async def test_reportable_and_bounded_attributes(loaded) -> None:
    from zapgen.db import query_attribute

    endpoints_and_clusters = await _endpoints_and_clusters(loaded)
    reportable = await query_attribute.select_reportable_attribute_details_from_enabled_clusters_and_endpoints(
        loaded.db, endpoints_and_clusters
    )
    bounded = await query_attribute.select_attribute_details_with_a_bound_from_enabled_clusters(
        loaded.db, endpoints_and_clusters
    )

    assert [(r["name"], r["endpoint_identifier"]) for r in reportable] == [("on/off", 1)]
    assert (reportable[0]["min_interval"], reportable[0]["max_interval"]) == (0, 65344)
    assert [(b["name"], b["min"], b["max"]) for b in bounded] == [("current level", "0x00", "0xFE")]


async def test_endpoint_type_counts(loaded) -> None:
    from zapgen.db import query_config, query_zcl

    on_off = await query_zcl.select_cluster_by_code(loaded.db, loaded.zcl_package_id, 6)

    assert await query_config.select_endpoint_type_count_by_cluster(
        loaded.db, loaded.session_id, on_off["id"], "server"
    ) == 1
    assert await query_config.select_endpoint_type_count_by_cluster(
        loaded.db, loaded.session_id, on_off["id"], "client"
    ) == 1
    used = await query_config.select_used_endpoint_type_ids(loaded.db, loaded.session_id)
    assert [u["endpoint_type_id"] for u in used] == loaded.endpoint_type_ids
