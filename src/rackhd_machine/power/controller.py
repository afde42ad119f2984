# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/power/controller.py

from __future__ import annotations

import logging
from typing import Literal, Optional

from rackhd_machine.errors import NoOBMDetected, RackHDMachineError, UnsupportedOperation
from rackhd_machine.inventory.client import InventoryClient
from rackhd_machine.workflow.runner import WorkflowRunner
from .backends import (
    NoOpBackend,
    PowerAction,
    PowerBackend,
    PowerState,
    ResetBackend,
    WorkflowBackend,
)
from .client import PowerClient

log = logging.getLogger("rackhd_machine")


class PowerController:
    """
    Lifecycle verbs for a node. The backend is resolved from the node's
    first OBM descriptor on every call:

      noop-obm-service  -> NoOpBackend
      anything else     -> WorkflowBackend or ResetBackend (per strategy)
    """

    def __init__(
        self,
        inventory: InventoryClient,
        power: PowerClient,
        *,
        strategy: Literal["workflow", "reset"] = "workflow",
        runner: Optional[WorkflowRunner] = None,
    ):
        if strategy not in ("workflow", "reset"):
            raise ValueError(f"Unknown power strategy {strategy!r}")
        self.inventory = inventory
        self.power = power
        self.strategy = strategy
        self.runner = runner or WorkflowRunner(inventory)

    # ------------------ backend resolution ------------------

    def resolve_backend(self, node_id: str) -> Optional[PowerBackend]:
        """Return the backend for the node, or None when it has no OBM entry."""
        obms = self.inventory.get_obm(node_id)
        if not obms:
            return None
        if obms[0].is_noop:
            return NoOpBackend()
        if self.strategy == "reset":
            return ResetBackend(self.power)
        return WorkflowBackend(self.runner, self.power)

    def _require_backend(self, node_id: str) -> PowerBackend:
        backend = self.resolve_backend(node_id)
        if backend is None:
            raise NoOBMDetected(f"No OBM detected for node {node_id}", node_id=node_id)
        return backend

    def _act(self, node_id: str, action: PowerAction, done: str) -> None:
        backend = self._require_backend(node_id)
        log.debug("Attempting %s of %s via %s", action.value, node_id, backend.name)
        backend.perform(node_id, action)
        log.info("Node has successfully been %s: %s", done, node_id)

    # ------------------ public API ------------------

    def start(self, node_id: str) -> None:
        self._act(node_id, PowerAction.ON, "powered on")

    def stop(self, node_id: str) -> None:
        self._act(node_id, PowerAction.SHUTDOWN, "powered off")

    def restart(self, node_id: str) -> None:
        self._act(node_id, PowerAction.RESTART, "restarted")

    def kill(self, node_id: str) -> None:
        self._act(node_id, PowerAction.FORCE_OFF, "forced off")

    def remove(self, node_id: str) -> None:
        """
        Best-effort graceful power-off, then delete the node from inventory.
        Only the delete can fail this call.
        """
        try:
            self._act(node_id, PowerAction.SHUTDOWN, "powered off")
        except UnsupportedOperation as e:
            log.info("Skipping power-off of %s: %s", node_id, e)
        except RackHDMachineError as e:
            log.warning("There was an issue shutting down node %s: %s", node_id, e)

        log.debug("Removing node from RackHD: %s", node_id)
        self.inventory.delete_node(node_id)
        log.info("Successfully removed node from RackHD: %s", node_id)

    def get_state(self, node_id: str) -> PowerState:
        backend = self.resolve_backend(node_id)
        if backend is None:
            return PowerState.UNKNOWN
        return backend.state(node_id)
