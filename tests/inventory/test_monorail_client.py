import pytest
import requests

from rackhd_machine.errors import InventoryAPIError
from rackhd_machine.inventory.client import MonorailClient
from rackhd_machine.inventory.models import Node

BASE = "http://rackhd:8080/api/1.1"


def _client(session, **kw):
    return MonorailClient(BASE + "/", session=session, **kw)


def test_list_skus(make_session, response):
    s = make_session(response(payload=[{"id": "s1", "name": "small"}, "junk", {"id": "s2", "name": "big"}]))
    skus = _client(s).list_skus()

    assert [(k.id, k.name) for k in skus] == [("s1", "small"), ("s2", "big")]
    method, url, kw = s.requests[0]
    assert (method, url) == ("GET", f"{BASE}/skus")
    assert kw["timeout"] == 30.0
    assert kw["verify"] is True


def test_list_sku_nodes_parses_tags(make_session, response):
    s = make_session(response(payload=[
        {
            "id": "n1",
            "name": "node-1",
            "tags": ["dockermachine"],
            "obmSettings": [{"service": "ipmi-obm-service", "config": {"host": "10.1.1.1"}}],
        },
        {"id": "n2"},
    ]))
    nodes = _client(s).list_sku_nodes("s1")

    assert s.requests[0][1] == f"{BASE}/skus/s1/nodes"
    assert nodes[0].has_tag("dockermachine")
    assert nodes[0] == Node(id="n1", tags=frozenset({"dockermachine"}))
    assert nodes[1] == Node(id="n2")


def test_tag_node_patches_tags(make_session, response):
    s = make_session(response(status_code=200))
    _client(s).tag_node("n1", "dockermachine")
    method, url, kw = s.requests[0]
    assert (method, url) == ("PATCH", f"{BASE}/nodes/n1/tags")
    assert kw["json"] == {"tags": ["dockermachine"]}


def test_delete_node(make_session, response):
    s = make_session(response(status_code=204))
    _client(s).delete_node("n1")
    assert s.requests[0][:2] == ("DELETE", f"{BASE}/nodes/n1")


def test_delete_missing_node_raises(make_session, response):
    s = make_session(response(status_code=404, text="Not Found"))
    with pytest.raises(InventoryAPIError) as ei:
        _client(s).delete_node("n1")
    assert ei.value.status_code == 404
    assert ei.value.body == "Not Found"


def test_get_obm(make_session, response):
    s = make_session(response(payload=[{"service": "noop-obm-service", "config": {}}]))
    obms = _client(s).get_obm("n1")
    assert s.requests[0][1] == f"{BASE}/nodes/n1/obm"
    assert obms[0].is_noop


def test_get_obm_empty_body(make_session, response):
    s = make_session(response(text=""))
    assert _client(s).get_obm("n1") == []


def test_submit_workflow(make_session, response):
    s = make_session(response(status_code=201, payload={"instanceId": "wf-9", "name": "Graph.X"}))
    payload = _client(s).submit_workflow("n1", "Graph.X")

    method, url, kw = s.requests[0]
    assert (method, url) == ("POST", f"{BASE}/nodes/n1/workflows")
    assert kw["params"] == {"name": "Graph.X"}
    assert payload["instanceId"] == "wf-9"


def test_submit_workflow_non_object_response(make_session, response):
    s = make_session(response(payload=["wf-9"]))
    with pytest.raises(InventoryAPIError):
        _client(s).submit_workflow("n1", "Graph.X")


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"_status": "running"}, "running"),
        ({"status": "succeeded"}, "succeeded"),
        ({"_status": "failed", "status": "ignored"}, "failed"),
    ],
)
def test_get_workflow_status(make_session, response, payload, expected):
    s = make_session(response(payload=payload))
    assert _client(s).get_workflow_status("wf-1") == expected
    assert s.requests[0][1] == f"{BASE}/workflows/wf-1"


def test_get_workflow_status_missing_field(make_session, response):
    s = make_session(response(payload={"instanceId": "wf-1"}))
    with pytest.raises(InventoryAPIError):
        _client(s).get_workflow_status("wf-1")


def test_lookup(make_session, response):
    s = make_session(response(payload=[{"ipAddress": "10.0.0.1"}, None]))
    assert _client(s).lookup("n1") == [{"ipAddress": "10.0.0.1"}]
    assert s.requests[0][2]["params"] == {"q": "n1"}


def test_transport_error_wrapped(make_session):
    s = make_session(requests.ConnectionError("refused"))
    with pytest.raises(InventoryAPIError) as ei:
        _client(s).get_config()
    assert ei.value.status_code is None


def test_invalid_json(make_session, response):
    s = make_session(response(text="<html>"))
    with pytest.raises(InventoryAPIError):
        _client(s).list_skus()


def test_tls_options_forwarded(make_session, response):
    s = make_session(response(payload={}))
    _client(s, verify_tls=False, timeout=5).get_config()
    kw = s.requests[0][2]
    assert kw["verify"] is False
    assert kw["timeout"] == 5
