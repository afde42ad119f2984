# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/power/backends.py

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

from rackhd_machine.errors import PowerAPIError, UnsupportedOperation
from rackhd_machine.inventory.models import NOOP_OBM_SERVICE
from rackhd_machine.workflow.runner import (
    POWER_WORKFLOW_POLL,
    POWER_WORKFLOW_TIMEOUT,
    WorkflowRunner,
)
from .client import PowerClient

log = logging.getLogger("rackhd_machine")


class PowerAction(str, Enum):
    ON = "on"
    SHUTDOWN = "shutdown"
    RESTART = "restart"
    FORCE_OFF = "force_off"


class PowerState(str, Enum):
    RUNNING = "Running"
    STOPPED = "Stopped"
    UNKNOWN = "Unknown"


_RUNNING = {"online", "up", "on"}
_STOPPED = {"offline", "down", "off"}


def map_power_state(value: str) -> PowerState:
    v = (value or "").strip().lower()
    if v in _RUNNING:
        return PowerState.RUNNING
    if v in _STOPPED:
        return PowerState.STOPPED
    return PowerState.UNKNOWN


class PowerBackend(Protocol):
    """One lifecycle mechanism, resolved per operation from the OBM descriptor."""

    name: str

    def perform(self, node_id: str, action: PowerAction) -> None: ...

    def state(self, node_id: str) -> PowerState: ...


class NoOpBackend:
    """Virtual or simulated nodes without real OBM (e.g. Vagrant)."""

    name = NOOP_OBM_SERVICE

    def perform(self, node_id: str, action: PowerAction) -> None:
        raise UnsupportedOperation(
            f"OBM {NOOP_OBM_SERVICE} type not supported for {action.value}",
            node_id=node_id,
        )

    def state(self, node_id: str) -> PowerState:
        # No real signal exists.
        return PowerState.RUNNING


class _LivePowerState:
    def __init__(self, power: PowerClient):
        self.power = power

    def state(self, node_id: str) -> PowerState:
        try:
            raw = self.power.get_power_state(node_id)
        except PowerAPIError as e:
            log.warning("Power state query failed for %s: %s", node_id, e)
            return PowerState.UNKNOWN
        mapped = map_power_state(raw)
        log.debug("Node %s power state %r -> %s", node_id, raw, mapped.value)
        return mapped


class WorkflowBackend(_LivePowerState):
    """Runs the equivalent power graph through the workflow engine."""

    name = "workflow"

    GRAPHS = {
        PowerAction.ON: "Graph.PowerOn.Node",
        PowerAction.SHUTDOWN: "Graph.PowerOff.Node",
        PowerAction.RESTART: "Graph.Reboot.Node",
        PowerAction.FORCE_OFF: "Graph.PowerOff.Node",
    }

    def __init__(
        self,
        runner: WorkflowRunner,
        power: PowerClient,
        *,
        timeout: float = POWER_WORKFLOW_TIMEOUT,
        poll_interval: float = POWER_WORKFLOW_POLL,
    ):
        super().__init__(power)
        self.runner = runner
        self.timeout = timeout
        self.poll_interval = poll_interval

    def perform(self, node_id: str, action: PowerAction) -> None:
        graph = self.GRAPHS[action]
        log.debug("Running %s on %s", graph, node_id)
        self.runner.run(node_id, graph, timeout=self.timeout, poll_interval=self.poll_interval)


class ResetBackend(_LivePowerState):
    """Issues a synchronous reset action against the power service."""

    name = "reset"

    RESET_TYPES = {
        PowerAction.ON: "On",
        PowerAction.SHUTDOWN: "GracefulShutdown",
        PowerAction.RESTART: "GracefulRestart",
        PowerAction.FORCE_OFF: "ForceOff",
    }

    def perform(self, node_id: str, action: PowerAction) -> None:
        reset_type = self.RESET_TYPES[action]
        log.debug("Issuing reset %s on %s", reset_type, node_id)
        self.power.reset(node_id, reset_type)
