# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/workflow/runner.py

from __future__ import annotations

import logging
import time
from typing import Callable

from rackhd_machine.errors import (
    APIError,
    PollError,
    SubmitFailed,
    WorkflowFailed,
    WorkflowTimeout,
)
from rackhd_machine.inventory.client import InventoryClient

log = logging.getLogger("rackhd_machine")

STATUS_RUNNING = "running"
STATUS_SUCCEEDED = "succeeded"

# Power graphs are short; provisioning graphs (OS installs) are not.
POWER_WORKFLOW_TIMEOUT = 60.0
POWER_WORKFLOW_POLL = 10.0


class WorkflowRunner:
    """
    Submits named graphs against a node and waits for them.

    Submitted -> Running -> Succeeded | Failed | TimedOut
    Nothing is cancelled remotely: on timeout the graph keeps running.
    """

    def __init__(
        self,
        client: InventoryClient,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self._clock = clock
        self._sleep = sleep

    def submit(self, node_id: str, workflow_name: str) -> str:
        try:
            payload = self.client.submit_workflow(node_id, workflow_name)
        except APIError as e:
            raise SubmitFailed(
                f"Workflow {workflow_name} rejected for node {node_id}: {e}",
                node_id=node_id,
            ) from e

        instance_id = payload.get("instanceId") if isinstance(payload, dict) else None
        if not instance_id:
            raise SubmitFailed(
                f"Workflow {workflow_name} response for node {node_id} has no instanceId",
                node_id=node_id,
            )
        log.debug("Workflow %s applied as instance id %s", workflow_name, instance_id)
        return str(instance_id)

    def await_completion(self, instance_id: str, timeout: float, poll_interval: float) -> None:
        """
        Poll at entry and then every *poll_interval* seconds until the
        instance succeeds, fails, or *timeout* seconds of wall clock have
        elapsed. The last poll lands on the deadline itself.
        """
        deadline = self._clock() + timeout
        log.debug("Waiting up to %s seconds for workflow %s to complete", timeout, instance_id)
        log.debug("checking status every %s seconds", poll_interval)

        polls = 0
        while True:
            polls += 1
            try:
                status = self.client.get_workflow_status(instance_id)
            except APIError as e:
                raise PollError(
                    f"Status query for workflow {instance_id} failed: {e}",
                    instance_id=instance_id,
                ) from e
            log.debug("Workflow %s status after poll %d: %s", instance_id, polls, status)

            if status == STATUS_SUCCEEDED:
                log.debug("Workflow %s successful", instance_id)
                return
            if status != STATUS_RUNNING:
                raise WorkflowFailed(
                    f"Workflow {instance_id} appears to have failed (status {status!r})",
                    instance_id=instance_id,
                    status=status,
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            self._sleep(min(poll_interval, remaining))

        raise WorkflowTimeout(
            f"Timeout waiting for workflow {instance_id} to finish after {timeout} seconds",
            instance_id=instance_id,
            status=STATUS_RUNNING,
        )

    def run(self, node_id: str, workflow_name: str, *, timeout: float, poll_interval: float) -> str:
        instance_id = self.submit(node_id, workflow_name)
        try:
            self.await_completion(instance_id, timeout, poll_interval)
        except (WorkflowFailed, WorkflowTimeout, PollError) as e:
            e.node_id = node_id
            raise
        return instance_id
