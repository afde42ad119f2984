# src/rackhd_machine/utils/ssh_runner.py

from __future__ import annotations

import logging
from typing import Optional

import paramiko

log = logging.getLogger("rackhd_machine")


class SSHCommandError(RuntimeError):
    def __init__(self, cmd: str, rc: int, stderr: str):
        super().__init__(f"command exited {rc}: {cmd}: {stderr.strip()}")
        self.cmd = cmd
        self.rc = rc
        self.stderr = stderr


class SSHRunner:
    def __init__(self, client: paramiko.SSHClient):
        self.client = client

    def run(self, cmd: str, *, timeout: Optional[float] = None) -> tuple[int, str, str]:
        log.debug("[ssh] exec: %s", cmd)
        stdin, stdout, stderr = self.client.exec_command(cmd, timeout=timeout)
        out = stdout.read().decode("utf-8", errors="replace")
        err = stderr.read().decode("utf-8", errors="replace")
        rc = stdout.channel.recv_exit_status()
        if out:
            log.debug("[ssh] stdout: %s", out.strip())
        return rc, out, err

    def check(self, cmd: str, *, timeout: Optional[float] = None) -> str:
        """Run *cmd* and raise SSHCommandError on a non-zero exit."""
        rc, out, err = self.run(cmd, timeout=timeout)
        if rc != 0:
            raise SSHCommandError(cmd, rc, err)
        return out

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SSHRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_ssh(
    address: str,
    *,
    username: str,
    port: int = 22,
    password: Optional[str] = None,
    connect_timeout: float = 20.0,
) -> SSHRunner:
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    client.connect(
        hostname=address,
        port=port,
        username=username,
        password=password,
        timeout=connect_timeout,
        allow_agent=False,
        look_for_keys=False,
    )

    return SSHRunner(client)
