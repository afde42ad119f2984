# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/rackhd_machine/logging/log.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOGGER_NAME = "rackhd_machine"

# SSH and HTTP libraries: warnings go to the run file only, never the console.
LIBRARY_LOGGERS = ("paramiko", "urllib3")

_library_handler: Optional[logging.Handler] = None


def default_log_dir() -> Path:
    return Path.home() / ".rackhd-machine" / "logs"


def _route_library_logs(handler: logging.Handler) -> None:
    global _library_handler
    for name in LIBRARY_LOGGERS:
        lib = logging.getLogger(name)
        if _library_handler is not None:
            lib.removeHandler(_library_handler)
        lib.setLevel(logging.WARNING)
        lib.addHandler(handler)
    if _library_handler is not None:
        _library_handler.close()
    _library_handler = handler


def init_logging(
    *,
    machine_name: Optional[str] = None,
    base_dir: Path | None = None,
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per CLI run, named after the machine it acts on:

      <base_dir>/<machine>-<utc ts>-<run_id>.log   full DEBUG trace
      console                                      INFO (DEBUG when verbose)

    paramiko/urllib3 warnings (auth failures, retries) land in the same
    file. Returns the logger, the run id and the log file path.
    """
    run_id = str(uuid.uuid4())
    label = machine_name or LOGGER_NAME

    log_dir = base_dir or default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = log_dir / f"{label}-{stamp}-{run_id}.log"

    fmt = logging.Formatter(
        f"%(asctime)s | %(levelname)-7s | [{label}] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(fmt)

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(file_handler)
    logger.addHandler(console)

    _route_library_logs(file_handler)

    logger.debug("run_id=%s machine=%s log_file=%s", run_id, label, log_path)
    return logger, run_id, log_path
