# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/errors.py
"""
Error taxonomy.

Callers branch on the class, not on the message:
ConfigError and ServiceUnreachable are raised before anything is mutated.
Workflow, power and connectivity errors are fatal to the operation that
raised them; nothing here is retried automatically.
"""

from __future__ import annotations

from typing import Optional


class RackHDMachineError(RuntimeError):
    """Base class for all rackhd-machine failures."""


class ConfigError(RackHDMachineError):
    """Missing or mutually exclusive options, or an invalid value."""


class ServiceUnreachable(RackHDMachineError):
    """The liveness probe against an API endpoint failed."""


class APIError(RackHDMachineError):
    """Transport or HTTP level failure talking to a remote API."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class InventoryAPIError(APIError):
    """Failure returned by the Monorail inventory API."""


class PowerAPIError(APIError):
    """Failure returned by the Redfish power API."""


# ------------------------------------------------------------------------------
# Node selection
# ------------------------------------------------------------------------------

class NotFound(RackHDMachineError):
    """A SKU name did not resolve to an identity."""


class NoAvailableNode(RackHDMachineError):
    """Every node in the SKU pool already carries the reservation tag."""

    def __init__(self, sku_id: str, tag: str):
        super().__init__(f"No suitable node found in SKU {sku_id} (all nodes tagged '{tag}')")
        self.sku_id = sku_id
        self.tag = tag


# ------------------------------------------------------------------------------
# Workflows
# ------------------------------------------------------------------------------

class WorkflowError(RackHDMachineError):
    def __init__(
        self,
        message: str,
        *,
        node_id: Optional[str] = None,
        instance_id: Optional[str] = None,
        status: Optional[str] = None,
    ):
        super().__init__(message)
        self.node_id = node_id
        self.instance_id = instance_id
        self.status = status


class SubmitFailed(WorkflowError):
    """The service rejected the workflow or returned no instance id."""


class PollError(WorkflowError):
    """A status query failed while waiting on a workflow."""


class WorkflowFailed(WorkflowError):
    """The workflow reached a terminal status other than 'succeeded'."""


class WorkflowTimeout(WorkflowError):
    """No terminal status was observed before the deadline."""


# ------------------------------------------------------------------------------
# Power / lifecycle
# ------------------------------------------------------------------------------

class PowerError(RackHDMachineError):
    def __init__(self, message: str, *, node_id: Optional[str] = None):
        super().__init__(message)
        self.node_id = node_id


class NoOBMDetected(PowerError):
    """The node has no out-of-band management descriptor."""


class UnsupportedOperation(PowerError):
    """The lifecycle verb is not applicable to the node's OBM backend."""


# ------------------------------------------------------------------------------
# Connectivity
# ------------------------------------------------------------------------------

class ConnectivityError(RackHDMachineError):
    pass


class NoAddressesFound(ConnectivityError):
    """The inventory lookup returned no IP address for the node."""


class Unreachable(ConnectivityError):
    """No candidate address accepted a TCP connection on the SSH port."""


class BootstrapFailed(ConnectivityError):
    """A remote command of the SSH key installation failed."""

    def __init__(self, message: str, *, address: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message)
        self.address = address
        self.step = step
