# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/connectivity/bootstrapper.py

from __future__ import annotations

import logging
import os
import shlex
import socket
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Literal, Optional

import paramiko

from rackhd_machine.errors import BootstrapFailed, NoAddressesFound, Unreachable
from rackhd_machine.inventory.client import InventoryClient
from rackhd_machine.utils.retry import RetryError, retry_call
from rackhd_machine.utils.ssh_runner import SSHCommandError, open_ssh

log = logging.getLogger("rackhd_machine")

ProbeMode = Literal["retry", "single"]


@dataclass(frozen=True)
class ConnectivityTarget:
    address: str
    port: int

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"


def tcp_dial(address: str, port: int, timeout: float) -> None:
    """Open and close a TCP connection; raises OSError when refused or timed out."""
    with socket.create_connection((address, port), timeout=timeout):
        pass


def ssh_dir_for(user: str) -> str:
    return "/root/.ssh" if user == "root" else f"/home/{user}/.ssh"


def generate_key_pair(path: Path, *, bits: int = 2048, comment: str = "rackhd-machine") -> str:
    """
    Write an RSA private key at *path* and its OpenSSH public key at
    *path*.pub. Returns the public key line.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    key = paramiko.RSAKey.generate(bits)
    key.write_private_key_file(str(path))
    os.chmod(path, 0o600)

    public = f"{key.get_name()} {key.get_base64()} {comment}"
    Path(f"{path}.pub").write_text(public + "\n", encoding="utf-8")
    log.debug("Generated SSH key pair at %s", path)
    return public


class ConnectivityBootstrapper:
    """
    Finds a reachable address for a node and installs SSH access:

      - discover: every 'ipAddress' the inventory lookup knows for the node
      - probe:    first address accepting TCP on the SSH port wins
      - install:  mkdir ~/.ssh, write authorized_keys, chmod both

    Some workflows (e.g. OS installs) report success before sshd is up,
    hence the retry probe mode.
    """

    def __init__(
        self,
        client: InventoryClient,
        *,
        mode: ProbeMode = "retry",
        connect_timeout: float = 5.0,
        dial: Callable[[str, int, float], None] = tcp_dial,
        sleep: Callable[[float], None] = time.sleep,
        ssh_connect_timeout: float = 20.0,
    ):
        if mode not in ("retry", "single"):
            raise ValueError(f"Unknown probe mode {mode!r}")
        self.client = client
        self.mode = mode
        self.connect_timeout = connect_timeout
        self.ssh_connect_timeout = ssh_connect_timeout
        self._dial = dial
        self._sleep = sleep

    # ------------------ discovery ------------------

    def discover_addresses(self, node_id: str) -> List[str]:
        addresses: List[str] = []
        for rec in self.client.lookup(node_id):
            ip = rec.get("ipAddress")
            if ip and ip not in addresses:
                log.debug("Found IP address for node %s: %s", node_id, ip)
                addresses.append(str(ip))
        if not addresses:
            raise NoAddressesFound(f"No IP addresses are associated with node {node_id}")
        return addresses

    # ------------------ reachability ------------------

    def _reachable(self, target: ConnectivityTarget, attempts: int, attempt_timeout: float) -> bool:
        if self.mode == "single":
            try:
                self._dial(target.address, target.port, attempt_timeout)
                return True
            except OSError as e:
                log.debug("Connection failed on %s: %s", target, e)
                return False

        def _on_retry(attempt: int, exc: BaseException) -> None:
            log.debug("Connection failed on %s (attempt %d/%d): %s", target, attempt, attempts, exc)

        try:
            retry_call(
                lambda: self._dial(target.address, target.port, self.connect_timeout),
                retries=attempts,
                delay=attempt_timeout,
                retry_on=(OSError,),
                on_retry=_on_retry,
                sleep=self._sleep,
            )
            return True
        except RetryError:
            return False

    def probe(
        self,
        addresses: Iterable[str],
        port: int,
        *,
        attempts: int = 10,
        attempt_timeout: float = 15.0,
    ) -> str:
        """
        Return the first address (in order) accepting TCP on *port*.
        In 'single' mode each address gets one dial bounded by attempt_timeout;
        in 'retry' mode up to *attempts* dials, sleeping attempt_timeout between.
        """
        addresses = list(addresses)
        if not addresses:
            raise NoAddressesFound("No candidate addresses to probe")

        for address in addresses:
            target = ConnectivityTarget(address, port)
            log.debug("Testing connection to: %s", target)
            if self._reachable(target, attempts, attempt_timeout):
                log.info("Connection succeeded on: %s", target)
                return address

        raise Unreachable(
            f"No IP addresses are accessible on port {port} (tried {', '.join(addresses)})"
        )

    # ------------------ credential bootstrap ------------------

    def install_key(
        self,
        address: str,
        *,
        port: int,
        user: str,
        password: str,
        public_key: str,
    ) -> None:
        """
        Install *public_key* for *user* over one password-authenticated session.
        Steps are not rolled back when a later one fails.
        """
        ssh_dir = ssh_dir_for(user)
        auth_keys = f"{ssh_dir}/authorized_keys"
        steps = [
            ("create ssh directory", f"mkdir -p {shlex.quote(ssh_dir)}"),
            ("write authorized_keys", f"echo {shlex.quote(public_key.strip())} > {shlex.quote(auth_keys)}"),
            ("chmod ssh directory", f"chmod 700 {shlex.quote(ssh_dir)}"),
            ("chmod authorized_keys", f"chmod 600 {shlex.quote(auth_keys)}"),
        ]

        log.info("Copying public SSH key to %s [%s]", user, address)
        try:
            ssh = open_ssh(
                address,
                username=user,
                port=port,
                password=password,
                connect_timeout=self.ssh_connect_timeout,
            )
        except (paramiko.SSHException, OSError) as e:
            raise BootstrapFailed(
                f"Failed to SSH into {address}:{port} as {user!r}: {e}",
                address=address,
                step="connect",
            ) from e

        with ssh:
            for step, cmd in steps:
                try:
                    ssh.check(cmd)
                except (SSHCommandError, paramiko.SSHException, OSError) as e:
                    raise BootstrapFailed(
                        f"SSH bootstrap step '{step}' failed on {address}: {e}",
                        address=address,
                        step=step,
                    ) from e

    def bootstrap(
        self,
        *,
        node_id: Optional[str] = None,
        ip_candidates: Optional[Iterable[str]] = None,
        ssh_user: str,
        ssh_password: str,
        ssh_port: int = 22,
        attempts: int = 10,
        attempt_timeout: float = 15.0,
        key_path: Optional[Path] = None,
        generate_key_at: Optional[Path] = None,
    ) -> str:
        """
        Discover (or take) candidate addresses, probe them, and install a
        freshly generated key unless *key_path* was supplied.
        Returns the reachable address.
        """
        if ip_candidates is None:
            if not node_id:
                raise ValueError("bootstrap() needs node_id or ip_candidates")
            ip_candidates = self.discover_addresses(node_id)

        address = self.probe(ip_candidates, ssh_port, attempts=attempts, attempt_timeout=attempt_timeout)

        if key_path is None:
            if generate_key_at is None:
                raise ValueError("bootstrap() needs key_path or generate_key_at")
            log.info("Creating SSH key...")
            public_key = generate_key_pair(generate_key_at)
            self.install_key(
                address,
                port=ssh_port,
                user=ssh_user,
                password=ssh_password,
                public_key=public_key,
            )
        return address
