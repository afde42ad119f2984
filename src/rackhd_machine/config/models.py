# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/config/models.py

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

DEFAULT_ENDPOINT = "localhost:8080"
DEFAULT_TRANSPORT = "http"
DEFAULT_SSH_USER = "root"
DEFAULT_SSH_PASSWORD = "root"
DEFAULT_SSH_PORT = 22
DEFAULT_WF_POLL_SECS = 15
DEFAULT_WF_TIMEOUT_MINS = 60
DEFAULT_SSH_ATTEMPTS = 10
DEFAULT_SSH_TIMEOUT = 15
DEFAULT_RESERVATION_TAG = "dockermachine"


def default_store_path() -> Path:
    return Path.home() / ".rackhd-machine" / "machines"


class DriverConfig(BaseModel):
    """Operational parameters for one machine."""

    machine_name: str = "default"
    store_path: Path = Field(default_factory=default_store_path)

    # Inventory Service
    endpoint: str = DEFAULT_ENDPOINT
    transport: Literal["http", "https"] = DEFAULT_TRANSPORT
    verify_tls: bool = True
    request_timeout: float = 30.0

    # Node selection: node_id XOR (sku_id XOR sku_name)
    node_id: Optional[str] = None
    sku_id: Optional[str] = None
    sku_name: Optional[str] = None
    reservation_tag: str = DEFAULT_RESERVATION_TAG

    # Provisioning workflow
    workflow_name: Optional[str] = None
    workflow_timeout: int = Field(default=DEFAULT_WF_TIMEOUT_MINS, gt=0)  # minutes
    workflow_poll: int = Field(default=DEFAULT_WF_POLL_SECS, gt=0)        # seconds

    # SSH
    ssh_user: str = DEFAULT_SSH_USER
    ssh_password: str = DEFAULT_SSH_PASSWORD
    ssh_port: int = Field(default=DEFAULT_SSH_PORT, gt=0, lt=65536)
    ssh_key_path: Optional[Path] = None
    ssh_attempts: int = Field(default=DEFAULT_SSH_ATTEMPTS, gt=0)
    ssh_timeout: int = Field(default=DEFAULT_SSH_TIMEOUT, gt=0)           # seconds
    probe_mode: Literal["retry", "single"] = "retry"

    # Lifecycle backend for nodes with a real OBM
    power_strategy: Literal["workflow", "reset"] = "workflow"

    @model_validator(mode="after")
    def _check_selectors(self) -> "DriverConfig":
        if not (self.node_id or self.sku_id or self.sku_name):
            raise ValueError("either node_id or sku_id/sku_name is required")
        if self.node_id and (self.sku_id or self.sku_name):
            raise ValueError("node_id and sku_id/sku_name are mutually exclusive")
        if self.sku_id and self.sku_name:
            raise ValueError("sku_id and sku_name are mutually exclusive")
        if self.ssh_key_path is not None and not self.ssh_key_path.exists():
            raise ValueError(f"SSH key does not exist: {str(self.ssh_key_path)!r}")
        return self

    # Helper methods
    def machine_dir(self) -> Path:
        return self.store_path / self.machine_name

    def generated_key_path(self) -> Path:
        """Where a generated key pair lives when no ssh_key_path was given."""
        return self.machine_dir() / "id_rsa"

    def monorail_base_url(self) -> str:
        return f"{self.transport}://{self.endpoint}/api/1.1"

    def redfish_base_url(self) -> str:
        return f"{self.transport}://{self.endpoint}/redfish/v1"
