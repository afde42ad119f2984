# src/rackhd_machine/inventory/models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet

NOOP_OBM_SERVICE = "noop-obm-service"


@dataclass(frozen=True)
class Sku:
    id: str
    name: str

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Sku":
        return cls(id=str(data.get("id", "")), name=str(data.get("name", "")))


@dataclass(frozen=True)
class ObmDescriptor:
    """
    One out-of-band management entry of a node.
    service is e.g. 'ipmi-obm-service' or 'noop-obm-service'.
    """
    service: str

    @property
    def is_noop(self) -> bool:
        return self.service == NOOP_OBM_SERVICE

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ObmDescriptor":
        return cls(service=str(data.get("service", "")))


@dataclass(frozen=True)
class Node:
    id: str
    tags: FrozenSet[str] = frozenset()

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            id=str(data.get("id", "")),
            tags=frozenset(str(t) for t in data.get("tags") or []),
        )
