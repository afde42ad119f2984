# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/store.py

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from rackhd_machine.errors import ConfigError

log = logging.getLogger("rackhd_machine")

STATE_FILE = "machine.json"


@dataclass
class MachineState:
    """
    What a created machine needs so later lifecycle calls, possibly from
    another process, address the same node.
    """
    machine_name: str
    node_id: Optional[str] = None
    ip_address: Optional[str] = None
    ssh_user: str = "root"
    ssh_port: int = 22
    ssh_key_path: Optional[str] = None
    endpoint: Optional[str] = None
    transport: Optional[str] = None
    power_strategy: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MachineState":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class MachineStore:
    """JSON files under <store_path>/<machine_name>/machine.json."""

    def __init__(self, store_path: Path):
        self.store_path = Path(store_path)

    def path_for(self, machine_name: str) -> Path:
        return self.store_path / machine_name / STATE_FILE

    def exists(self, machine_name: str) -> bool:
        return self.path_for(machine_name).is_file()

    def save(self, state: MachineState) -> Path:
        path = self.path_for(state.machine_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(state.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
        log.debug("Saved machine state to %s", path)
        return path

    def load(self, machine_name: str) -> MachineState:
        path = self.path_for(machine_name)
        if not path.is_file():
            raise ConfigError(f"Machine {machine_name!r} does not exist in {self.store_path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Corrupt machine state {path}: {e}") from e
        return MachineState.from_dict(data)

    def delete(self, machine_name: str) -> None:
        path = self.path_for(machine_name)
        if path.is_file():
            path.unlink()
            log.debug("Deleted machine state %s", path)
