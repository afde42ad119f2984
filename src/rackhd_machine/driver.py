# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/driver.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from rackhd_machine.config.models import DriverConfig
from rackhd_machine.connectivity.bootstrapper import ConnectivityBootstrapper
from rackhd_machine.errors import APIError, ConfigError, RackHDMachineError, ServiceUnreachable
from rackhd_machine.inventory.client import InventoryClient, MonorailClient
from rackhd_machine.power.backends import PowerState
from rackhd_machine.power.client import PowerClient, RedfishClient
from rackhd_machine.power.controller import PowerController
from rackhd_machine.selection.selector import NodeSelector
from rackhd_machine.store import MachineState
from rackhd_machine.workflow.runner import WorkflowRunner

log = logging.getLogger("rackhd_machine")

DOCKER_PORT = 2376


class Driver:
    """
    Provisions one machine on a RackHD node:

      pre_create_check  endpoint liveness, SKU resolution, node reservation
      create            optional provisioning workflow, then SSH bootstrap
      start/stop/...    lifecycle through the node's OBM backend
    """

    def __init__(
        self,
        config: DriverConfig,
        *,
        inventory: Optional[InventoryClient] = None,
        power: Optional[PowerClient] = None,
        runner: Optional[WorkflowRunner] = None,
        selector: Optional[NodeSelector] = None,
        controller: Optional[PowerController] = None,
        bootstrapper: Optional[ConnectivityBootstrapper] = None,
        ip_address: Optional[str] = None,
    ):
        self.config = config
        self.inventory = inventory or MonorailClient(
            config.monorail_base_url(),
            verify_tls=config.verify_tls,
            timeout=config.request_timeout,
        )
        self.power = power or RedfishClient(
            config.redfish_base_url(),
            verify_tls=config.verify_tls,
            timeout=config.request_timeout,
        )
        self.runner = runner or WorkflowRunner(self.inventory)
        self.selector = selector or NodeSelector(self.inventory, tag=config.reservation_tag)
        self.controller = controller or PowerController(
            self.inventory,
            self.power,
            strategy=config.power_strategy,
            runner=self.runner,
        )
        self.bootstrapper = bootstrapper or ConnectivityBootstrapper(self.inventory, mode=config.probe_mode)
        self.ip_address = ip_address

    # ------------------ identity ------------------

    @property
    def machine_name(self) -> str:
        return self.config.machine_name

    @property
    def node_id(self) -> str:
        if not self.config.node_id:
            raise ConfigError("No node selected yet; run pre_create_check() first")
        return self.config.node_id

    def ssh_key_path(self) -> Path:
        return self.config.ssh_key_path or self.config.generated_key_path()

    def get_ip(self) -> str:
        if not self.ip_address:
            raise RackHDMachineError("IP address is not set")
        return self.ip_address

    def get_ssh_hostname(self) -> str:
        return self.get_ip()

    def get_url(self) -> str:
        return f"tcp://{self.get_ip()}:{DOCKER_PORT}"

    # ------------------ creation ------------------

    def check_endpoints(self) -> None:
        log.info("Testing accessibility of endpoint: %s", self.config.endpoint)
        try:
            self.inventory.get_config()
        except APIError as e:
            raise ServiceUnreachable(f"The Monorail API endpoint is not accessible: {e}") from e
        try:
            self.power.ping()
        except APIError as e:
            raise ServiceUnreachable(f"The Redfish API endpoint is not accessible: {e}") from e
        log.info("Test passed. %s Monorail and Redfish APIs are accessible", self.config.endpoint)

    def select_node(self) -> str:
        """Reserve a node from the configured SKU, or return the configured node id."""
        if self.config.node_id:
            return self.config.node_id
        node_id = self.selector.select(sku_id=self.config.sku_id, sku_name=self.config.sku_name)
        self.config.node_id = node_id
        return node_id

    def pre_create_check(self) -> None:
        self.check_endpoints()
        self.select_node()
        if self.config.ssh_key_path is None:
            log.info("No SSH key specified. Will attempt login with user/pass and upload generated key pair")

    def run_workflow(self, name: str, timeout_mins: float, poll_secs: float) -> str:
        return self.runner.run(self.node_id, name, timeout=timeout_mins * 60, poll_interval=poll_secs)

    def bootstrap(
        self,
        ip_candidates: Optional[Iterable[str]] = None,
        *,
        ssh_user: Optional[str] = None,
        ssh_password: Optional[str] = None,
        ssh_port: Optional[int] = None,
        attempts: Optional[int] = None,
        attempt_timeout: Optional[float] = None,
    ) -> str:
        cfg = self.config
        self.ip_address = self.bootstrapper.bootstrap(
            node_id=None if ip_candidates is not None else self.node_id,
            ip_candidates=ip_candidates,
            ssh_user=ssh_user or cfg.ssh_user,
            ssh_password=ssh_password if ssh_password is not None else cfg.ssh_password,
            ssh_port=ssh_port or cfg.ssh_port,
            attempts=attempts or cfg.ssh_attempts,
            attempt_timeout=attempt_timeout or cfg.ssh_timeout,
            key_path=cfg.ssh_key_path,
            generate_key_at=cfg.generated_key_path(),
        )
        return self.ip_address

    def create(self) -> str:
        cfg = self.config
        if cfg.workflow_name:
            self.run_workflow(cfg.workflow_name, cfg.workflow_timeout, cfg.workflow_poll)
        return self.bootstrap()

    # ------------------ lifecycle ------------------

    def start(self) -> None:
        self.controller.start(self.node_id)

    def stop(self) -> None:
        self.controller.stop(self.node_id)

    def restart(self) -> None:
        self.controller.restart(self.node_id)

    def kill(self) -> None:
        self.controller.kill(self.node_id)

    def remove(self) -> None:
        self.controller.remove(self.node_id)

    def get_state(self) -> PowerState:
        return self.controller.get_state(self.node_id)

    # ------------------ persistence ------------------

    def to_state(self) -> MachineState:
        cfg = self.config
        return MachineState(
            machine_name=cfg.machine_name,
            node_id=cfg.node_id,
            ip_address=self.ip_address,
            ssh_user=cfg.ssh_user,
            ssh_port=cfg.ssh_port,
            ssh_key_path=str(self.ssh_key_path()),
            endpoint=cfg.endpoint,
            transport=cfg.transport,
            power_strategy=cfg.power_strategy,
        )
