# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/power/client.py

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import requests

from rackhd_machine.errors import PowerAPIError

log = logging.getLogger("rackhd_machine")

RESET_TYPES = ("On", "GracefulShutdown", "GracefulRestart", "ForceOff")


class PowerClient(Protocol):
    """
    Contract for the power-management service, keyed by the same node
    identity as the Inventory Service.
    """

    def ping(self) -> None: ...

    def get_power_state(self, node_id: str) -> str: ...

    def reset(self, node_id: str, reset_type: str) -> None: ...


class RedfishClient:
    """
    Thin requests-based client for the RackHD Redfish v1 endpoint.
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

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        log.debug("[redfish] %s %s", method, url)
        try:
            r = self.session.request(method, url, verify=self.verify_tls, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise PowerAPIError(f"{method} {url} failed: {e}") from e

        if not 200 <= r.status_code < 300:
            raise PowerAPIError(
                f"{method} {url} returned {r.status_code}: {r.text[:200]}",
                status_code=r.status_code,
                body=r.text,
            )
        return r

    def ping(self) -> None:
        self._request("GET", "/AccountService/Roles")

    def get_power_state(self, node_id: str) -> str:
        r = self._request("GET", f"/Systems/{node_id}")
        try:
            payload: Any = r.json()
        except ValueError as e:
            raise PowerAPIError(f"System {node_id} returned invalid JSON", status_code=r.status_code, body=r.text) from e
        if not isinstance(payload, dict) or "PowerState" not in payload:
            raise PowerAPIError(f"System {node_id} payload has no PowerState")
        return str(payload["PowerState"])

    def reset(self, node_id: str, reset_type: str) -> None:
        if reset_type not in RESET_TYPES:
            raise ValueError(f"Unknown reset type {reset_type!r}; expected one of {', '.join(RESET_TYPES)}")
        self._request(
            "POST",
            f"/Systems/{node_id}/Actions/ComputerSystem.Reset",
            json={"reset_type": reset_type},
        )
