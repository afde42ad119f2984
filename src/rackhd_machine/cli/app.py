# src/rackhd_machine/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import typer
from pydantic import ValidationError

from rackhd_machine.config.loader import load_config
from rackhd_machine.config.models import DEFAULT_ENDPOINT, DriverConfig, default_store_path
from rackhd_machine.driver import Driver
from rackhd_machine.errors import ConfigError, RackHDMachineError
from rackhd_machine.logging.log import init_logging
from rackhd_machine.store import MachineStore

# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Provision and manage machines on RackHD nodes")

# Tests swap this to inject fake clients.
driver_factory: Callable[..., Driver] = Driver

NAME_OPT = typer.Option("default", "--name", "-n", help="Machine name")
STORE_OPT = typer.Option(None, "--store-path", help="Directory holding machine state")
DEBUG_OPT = typer.Option(False, "--debug", help="Log DEBUG to the console")


def _fail(e: Exception) -> None:
    typer.secho(f"Error: {e}", fg="red", err=True)
    raise typer.Exit(code=1)


def _store(store_path: Optional[Path]) -> MachineStore:
    return MachineStore(store_path or default_store_path())


def _driver_from_store(name: str, store_path: Optional[Path]) -> tuple[Driver, MachineStore]:
    """
    Rebuild a driver for an existing machine. Only what lifecycle calls
    need is restored; SKU selectors are not, the node is already chosen.
    """
    store = _store(store_path)
    state = store.load(name)
    try:
        cfg = DriverConfig(
            machine_name=name,
            store_path=store.store_path,
            node_id=state.node_id,
            endpoint=state.endpoint or DEFAULT_ENDPOINT,
            transport=state.transport or "http",
            power_strategy=state.power_strategy or "workflow",
            ssh_user=state.ssh_user,
            ssh_port=state.ssh_port,
        )
    except ValidationError as e:
        raise ConfigError(f"Stored state for {name!r} is invalid: {e}") from e
    return driver_factory(cfg, ip_address=state.ip_address), store


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command("create")
def create(
    name: str = NAME_OPT,
    store_path: Optional[Path] = STORE_OPT,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    endpoint: Optional[str] = typer.Option(None, "--rackhd-endpoint", help="RackHD endpoint for API traffic"),
    node_id: Optional[str] = typer.Option(None, "--rackhd-node-id", help="Node ID, MAC address or IP address"),
    sku_id: Optional[str] = typer.Option(None, "--rackhd-sku-id", help="SKU ID to use as pool of nodes"),
    sku_name: Optional[str] = typer.Option(None, "--rackhd-sku-name", help="Friendly SKU name to use as pool"),
    workflow_name: Optional[str] = typer.Option(None, "--rackhd-workflow-name", help="Workflow to run after the node is chosen"),
    transport: Optional[str] = typer.Option(None, "--rackhd-transport", help="http or https"),
    ssh_user: Optional[str] = typer.Option(None, "--rackhd-ssh-user"),
    ssh_password: Optional[str] = typer.Option(None, "--rackhd-ssh-password"),
    ssh_port: Optional[int] = typer.Option(None, "--rackhd-ssh-port"),
    ssh_key: Optional[Path] = typer.Option(None, "--rackhd-ssh-key", help="SSH private key path (otherwise one is generated)"),
    workflow_timeout: Optional[int] = typer.Option(None, "--rackhd-workflow-timeout", help="Minutes to wait for the workflow"),
    workflow_poll: Optional[int] = typer.Option(None, "--rackhd-workflow-poll", help="Seconds between workflow status polls"),
    ssh_attempts: Optional[int] = typer.Option(None, "--rackhd-ssh-attempts", help="Times to try SSH to a new node"),
    ssh_timeout: Optional[int] = typer.Option(None, "--rackhd-ssh-timeout", help="Seconds for SSH timeout"),
    probe_mode: Optional[str] = typer.Option(None, "--rackhd-probe-mode", help="retry or single"),
    power_strategy: Optional[str] = typer.Option(None, "--rackhd-power-strategy", help="workflow or reset"),
    debug: bool = DEBUG_OPT,
):
    """Reserve a node, run the optional workflow and bootstrap SSH access."""
    init_logging(machine_name=name, verbose=debug)
    store = _store(store_path)
    if store.exists(name):
        _fail(RackHDMachineError(f"Machine {name!r} already exists"))

    overrides = {
        "machine_name": name,
        "store_path": store.store_path,
        "endpoint": endpoint,
        "node_id": node_id,
        "sku_id": sku_id,
        "sku_name": sku_name,
        "workflow_name": workflow_name,
        "transport": transport,
        "ssh_user": ssh_user,
        "ssh_password": ssh_password,
        "ssh_port": ssh_port,
        "ssh_key_path": ssh_key,
        "workflow_timeout": workflow_timeout,
        "workflow_poll": workflow_poll,
        "ssh_attempts": ssh_attempts,
        "ssh_timeout": ssh_timeout,
        "probe_mode": probe_mode,
        "power_strategy": power_strategy,
    }

    try:
        cfg = load_config(config, overrides=overrides)
        driver = driver_factory(cfg)
        driver.pre_create_check()
        # Persist the reservation before the long-running part.
        store.save(driver.to_state())
        driver.create()
        store.save(driver.to_state())
    except RackHDMachineError as e:
        _fail(e)

    typer.secho(f"Machine {name} is ready at {driver.get_ip()} (node {driver.node_id})", fg="green")


def _lifecycle(name: str, store_path: Optional[Path], debug: bool, action: str) -> None:
    init_logging(machine_name=name, verbose=debug)
    try:
        driver, _ = _driver_from_store(name, store_path)
        getattr(driver, action)()
    except RackHDMachineError as e:
        _fail(e)


@app.command("start")
def start(name: str = NAME_OPT, store_path: Optional[Path] = STORE_OPT, debug: bool = DEBUG_OPT):
    """Power the node on."""
    _lifecycle(name, store_path, debug, "start")


@app.command("stop")
def stop(name: str = NAME_OPT, store_path: Optional[Path] = STORE_OPT, debug: bool = DEBUG_OPT):
    """Gracefully shut the node down."""
    _lifecycle(name, store_path, debug, "stop")


@app.command("restart")
def restart(name: str = NAME_OPT, store_path: Optional[Path] = STORE_OPT, debug: bool = DEBUG_OPT):
    """Gracefully reboot the node."""
    _lifecycle(name, store_path, debug, "restart")


@app.command("kill")
def kill(name: str = NAME_OPT, store_path: Optional[Path] = STORE_OPT, debug: bool = DEBUG_OPT):
    """Force the node off."""
    _lifecycle(name, store_path, debug, "kill")


@app.command("rm")
def rm(name: str = NAME_OPT, store_path: Optional[Path] = STORE_OPT, debug: bool = DEBUG_OPT):
    """Power off (best effort) and delete the node from RackHD."""
    init_logging(machine_name=name, verbose=debug)
    try:
        driver, store = _driver_from_store(name, store_path)
        driver.remove()
        store.delete(name)
    except RackHDMachineError as e:
        _fail(e)
    typer.echo(f"Removed {name}")


@app.command("status")
def status(name: str = NAME_OPT, store_path: Optional[Path] = STORE_OPT, debug: bool = DEBUG_OPT):
    """Print the node's power state (Running, Stopped or Unknown)."""
    init_logging(machine_name=name, verbose=debug)
    try:
        driver, _ = _driver_from_store(name, store_path)
        state = driver.get_state()
    except RackHDMachineError as e:
        _fail(e)
    typer.echo(state.value)


@app.command("ip")
def ip(name: str = NAME_OPT, store_path: Optional[Path] = STORE_OPT):
    """Print the machine's SSH address."""
    try:
        driver, _ = _driver_from_store(name, store_path)
        typer.echo(driver.get_ip())
    except RackHDMachineError as e:
        _fail(e)


@app.command("url")
def url(name: str = NAME_OPT, store_path: Optional[Path] = STORE_OPT):
    """Print the machine's docker URL."""
    try:
        driver, _ = _driver_from_store(name, store_path)
        typer.echo(driver.get_url())
    except RackHDMachineError as e:
        _fail(e)


cli = app


def main() -> None:
    app()
