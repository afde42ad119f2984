from __future__ import annotations

import json
from typing import Dict, List

import pytest

from rackhd_machine.errors import InventoryAPIError, PowerAPIError
from rackhd_machine.inventory.models import Node, ObmDescriptor, Sku


# ----------------- Fakes for the RackHD collaborators -----------------

class FakeInventory:
    """
    In-memory Inventory Service. Records every call in self.calls.
    Tags applied through tag_node() are visible to later list_sku_nodes().
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.skus: List[Sku] = []
        self.nodes: Dict[str, Node] = {}
        self.sku_members: Dict[str, List[str]] = {}
        self.obms: Dict[str, List[ObmDescriptor]] = {}
        self.lookups: Dict[str, List[dict]] = {}
        self.statuses: Dict[str, List[str]] = {}
        self.submit_payload: dict = {"instanceId": "wf-1"}
        self.fail_on: Dict[str, Exception] = {}
        self.deleted: List[str] = []

    # helpers for tests
    def add_node(self, node_id: str, *, sku: str | None = None, tags=(), obm: str | None = None) -> None:
        self.nodes[node_id] = Node(id=node_id, tags=frozenset(tags))
        if sku:
            self.sku_members.setdefault(sku, []).append(node_id)
        if obm is not None:
            self.obms[node_id] = [ObmDescriptor(service=obm)]

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            raise self.fail_on[op]

    # InventoryClient
    def get_config(self):
        self.calls.append(("get_config",))
        self._maybe_fail("get_config")
        return {}

    def list_skus(self):
        self.calls.append(("list_skus",))
        return list(self.skus)

    def list_sku_nodes(self, sku_id):
        self.calls.append(("list_sku_nodes", sku_id))
        return [self.nodes[n] for n in self.sku_members.get(sku_id, [])]

    def tag_node(self, node_id, tag):
        self.calls.append(("tag_node", node_id, tag))
        self._maybe_fail("tag_node")
        n = self.nodes[node_id]
        self.nodes[node_id] = Node(id=n.id, tags=n.tags | {tag})

    def delete_node(self, node_id):
        self.calls.append(("delete_node", node_id))
        self._maybe_fail("delete_node")
        self.deleted.append(node_id)

    def submit_workflow(self, node_id, name):
        self.calls.append(("submit_workflow", node_id, name))
        self._maybe_fail("submit_workflow")
        return dict(self.submit_payload)

    def get_workflow_status(self, instance_id):
        self.calls.append(("get_workflow_status", instance_id))
        self._maybe_fail("get_workflow_status")
        seq = self.statuses.get(instance_id, ["succeeded"])
        # last status sticks
        return seq.pop(0) if len(seq) > 1 else seq[0]

    def get_obm(self, node_id):
        self.calls.append(("get_obm", node_id))
        self._maybe_fail("get_obm")
        return list(self.obms.get(node_id, []))

    def lookup(self, query):
        self.calls.append(("lookup", query))
        self._maybe_fail("lookup")
        return list(self.lookups.get(query, []))

    def ops(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


class FakePower:
    def __init__(self, state: str = "On"):
        self.state = state
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}

    def ping(self):
        self.calls.append(("ping",))
        if "ping" in self.fail_on:
            raise self.fail_on["ping"]

    def get_power_state(self, node_id):
        self.calls.append(("get_power_state", node_id))
        if "get_power_state" in self.fail_on:
            raise self.fail_on["get_power_state"]
        return self.state

    def reset(self, node_id, reset_type):
        self.calls.append(("reset", node_id, reset_type))
        if "reset" in self.fail_on:
            raise self.fail_on["reset"]


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode()

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Replays queued responses and records (method, url, kwargs)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: List[tuple] = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        r = self.responses.pop(0) if self.responses else FakeResponse()
        if isinstance(r, Exception):
            raise r
        return r


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory()


@pytest.fixture
def power() -> FakePower:
    return FakePower()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api_error():
    def _make(msg="boom", status=500):
        return InventoryAPIError(msg, status_code=status)
    return _make


@pytest.fixture
def power_api_error():
    def _make(msg="boom", status=500):
        return PowerAPIError(msg, status_code=status)
    return _make


@pytest.fixture
def response():
    return FakeResponse


@pytest.fixture
def make_session():
    return FakeSession
