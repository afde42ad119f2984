# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/selection/selector.py

from __future__ import annotations

import logging
from typing import Optional

from rackhd_machine.errors import NoAvailableNode, NotFound
from rackhd_machine.inventory.client import InventoryClient
from rackhd_machine.config.models import DEFAULT_RESERVATION_TAG

log = logging.getLogger("rackhd_machine")


class NodeSelector:
    """
    Picks a free node out of a SKU pool and reserves it with a tag.

    The reservation is optimistic: listing and tagging are two separate
    calls and the Inventory Service offers no compare-and-set, so two
    selectors running at the same time can claim the same node.
    """

    def __init__(self, client: InventoryClient, *, tag: str = DEFAULT_RESERVATION_TAG):
        self.client = client
        self.tag = tag

    def resolve_sku(self, sku_name: str) -> str:
        log.debug("Looking up SKU ID by name %r", sku_name)
        for sku in self.client.list_skus():
            if sku.name == sku_name:
                log.debug("SKU %r resolved to %s", sku_name, sku.id)
                return sku.id
        raise NotFound(f"No matching SKU found for name {sku_name!r}")

    def select_node(self, sku_id: str) -> str:
        log.info("Looking for available node within SKU %s", sku_id)
        nodes = self.client.list_sku_nodes(sku_id)
        chosen = next((n for n in nodes if not n.has_tag(self.tag)), None)
        if chosen is None:
            raise NoAvailableNode(sku_id, self.tag)

        self.client.tag_node(chosen.id, self.tag)
        log.info("Found a free node within SKU, Node ID: %s", chosen.id)
        return chosen.id

    def select(self, *, sku_id: Optional[str] = None, sku_name: Optional[str] = None) -> str:
        if not sku_id:
            if not sku_name:
                raise ValueError("select() needs sku_id or sku_name")
            sku_id = self.resolve_sku(sku_name)
        return self.select_node(sku_id)
