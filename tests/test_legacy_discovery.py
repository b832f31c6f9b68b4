"""
tests.test_legacy_discovery

Eureka-shaped document rendering.
"""

from __future__ import annotations

import uuid
from datetime import datetime

import pytest

from portal_gateway.discovery.legacy import parse_host_port, to_legacy_document
from portal_gateway.discovery.models import ServiceInstance, ServiceStatus


def _instance(name: str, url: str, **kw) -> ServiceInstance:
    ts = datetime(2024, 1, 1, 0, 0, 0)
    fields = dict(
        id=uuid.uuid4(),
        name=name,
        url=url,
        status=ServiceStatus.up,
        last_heartbeat=ts,
        created_at=ts,
        updated_at=ts,
    )
    fields.update(kw)
    return ServiceInstance(**fields)


def test_host_and_port_are_parsed_from_url() -> None:
    inst = _instance("svc-a", "http://10.0.0.5:9090")

    record = to_legacy_document([inst])["applications"]["application"][0]["instance"][0]

    assert record["hostName"] == "10.0.0.5"
    assert record["port"] == {"$": 9090, "@enabled": "true"}
    assert record["ipAddr"] == "http://10.0.0.5:9090"
    assert record["instanceId"] == str(inst.id)
    assert record["app"] == "svc-a"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("http://api.internal", ("api.internal", 80)),
        ("https://api.internal/v1", ("api.internal", 80)),
        ("http://api.internal:8443/x?y=1", ("api.internal", 8443)),
        ("http://[::1]:7000", ("::1", 7000)),
        ("not a url", ("", 80)),
        ("http://[bad", ("", 80)),
        ("http://api.internal:99999", ("api.internal", 80)),
    ],
)
def test_parse_host_port(url: str, expected: tuple[str, int]) -> None:
    assert parse_host_port(url) == expected


def test_document_envelope_and_timestamps() -> None:
    inst = _instance(
        "svc-a",
        "http://x:1",
        status=ServiceStatus.down,
        metadata={"version": "1.2.0"},
        last_heartbeat=datetime(2024, 1, 1, 0, 0, 1),
        created_at=datetime(1970, 1, 1, 0, 0, 2),
    )

    doc = to_legacy_document([inst])

    apps = doc["applications"]
    assert apps["versions__delta"] == "1"
    assert apps["apps__hashcode"] == ""
    record = apps["application"][0]["instance"][0]
    assert record["status"] == "DOWN"
    assert record["metadata"] == {"version": "1.2.0"}
    assert record["lastUpdatedTimestamp"] == 1704067201000
    assert record["lastDirtyTimestamp"] == 2000


def test_instances_are_grouped_by_name_in_input_order() -> None:
    instances = [
        _instance("alpha", "http://a1"),
        _instance("beta", "http://b1"),
        _instance("alpha", "http://a2"),
    ]

    apps = to_legacy_document(instances)["applications"]["application"]

    assert [a["name"] for a in apps] == ["alpha", "beta"]
    assert [i["ipAddr"] for i in apps[0]["instance"]] == ["http://a1", "http://a2"]


def test_empty_registry_renders_empty_application_list() -> None:
    assert to_legacy_document([])["applications"]["application"] == []


def test_unparseable_url_does_not_break_the_document() -> None:
    doc = to_legacy_document([_instance("bad", "http://[bad"), _instance("good", "http://g:81")])

    bad, good = (a["instance"][0] for a in doc["applications"]["application"])
    assert (bad["hostName"], bad["port"]["$"]) == ("", 80)
    assert bad["ipAddr"] == "http://[bad"
    assert (good["hostName"], good["port"]["$"]) == ("g", 81)
