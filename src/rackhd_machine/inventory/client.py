# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/inventory/client.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import requests

from rackhd_machine.errors import InventoryAPIError
from .models import Node, ObmDescriptor, Sku

log = logging.getLogger("rackhd_machine")


class InventoryClient(Protocol):
    """
    Contract for the Inventory Service (system of record for nodes,
    SKUs, tags and workflow execution).
    """

    def get_config(self) -> Dict[str, Any]: ...

    def list_skus(self) -> List[Sku]: ...

    def list_sku_nodes(self, sku_id: str) -> List[Node]: ...

    def tag_node(self, node_id: str, tag: str) -> None: ...

    def delete_node(self, node_id: str) -> None: ...

    def submit_workflow(self, node_id: str, name: str) -> Dict[str, Any]:
        """Start graph *name* on the node; returns the raw response payload."""
        ...

    def get_workflow_status(self, instance_id: str) -> str: ...

    def get_obm(self, node_id: str) -> List[ObmDescriptor]: ...

    def lookup(self, query: str) -> List[Dict[str, Any]]: ...


class MonorailClient:
    """
    Thin requests-based client for the RackHD Monorail API (1.1).
    """

    def __init__(
        self,
        base_url: str,
        *,
        verify_tls: bool = True,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.verify_tls = verify_tls
        self.timeout = timeout
        self.session = session or requests.Session()

    # -----------------------
    # HTTP helpers
    # -----------------------
    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        log.debug("[monorail] %s %s", method, url)
        try:
            r = self.session.request(method, url, verify=self.verify_tls, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise InventoryAPIError(f"{method} {url} failed: {e}") from e

        if not 200 <= r.status_code < 300:
            raise InventoryAPIError(
                f"{method} {url} returned {r.status_code}: {r.text[:200]}",
                status_code=r.status_code,
                body=r.text,
            )
        return r

    def _json(self, method: str, path: str, **kwargs) -> Any:
        r = self._request(method, path, **kwargs)
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise InventoryAPIError(f"{method} {path} returned invalid JSON", status_code=r.status_code, body=r.text) from e

    # -----------------------
    # Config
    # -----------------------
    def get_config(self) -> Dict[str, Any]:
        return self._json("GET", "/config") or {}

    # -----------------------
    # SKUs / nodes
    # -----------------------
    def list_skus(self) -> List[Sku]:
        items = self._json("GET", "/skus") or []
        return [Sku.from_payload(i) for i in items if isinstance(i, dict)]

    def list_sku_nodes(self, sku_id: str) -> List[Node]:
        items = self._json("GET", f"/skus/{sku_id}/nodes") or []
        return [Node.from_payload(i) for i in items if isinstance(i, dict)]

    def tag_node(self, node_id: str, tag: str) -> None:
        self._request("PATCH", f"/nodes/{node_id}/tags", json={"tags": [tag]})

    def delete_node(self, node_id: str) -> None:
        self._request("DELETE", f"/nodes/{node_id}")

    def get_obm(self, node_id: str) -> List[ObmDescriptor]:
        items = self._json("GET", f"/nodes/{node_id}/obm") or []
        return [ObmDescriptor.from_payload(i) for i in items if isinstance(i, dict)]

    # -----------------------
    # Workflows
    # -----------------------
    def submit_workflow(self, node_id: str, name: str) -> Dict[str, Any]:
        payload = self._json("POST", f"/nodes/{node_id}/workflows", params={"name": name})
        if not isinstance(payload, dict):
            raise InventoryAPIError(f"Unexpected workflow response for node {node_id}: {payload!r}")
        return payload

    def get_workflow_status(self, instance_id: str) -> str:
        payload = self._json("GET", f"/workflows/{instance_id}")
        if not isinstance(payload, dict):
            raise InventoryAPIError(f"Unexpected workflow payload for {instance_id}: {payload!r}")
        # 1.1 graphs expose '_status'; newer ones 'status'
        status = payload.get("_status", payload.get("status"))
        if status is None:
            raise InventoryAPIError(f"Workflow {instance_id} payload has no status field")
        return str(status)

    # -----------------------
    # Lookups
    # -----------------------
    def lookup(self, query: str) -> List[Dict[str, Any]]:
        items = self._json("GET", "/lookups", params={"q": query}) or []
        return [i for i in items if isinstance(i, dict)]
