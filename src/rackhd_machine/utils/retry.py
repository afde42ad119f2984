# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import time
from typing import Callable, TypeVar

T = TypeVar("T")


class RetryError(RuntimeError):
    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


def retry_call(
    fn: Callable[[], T],
    *,
    retries: int,
    delay: float,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    on_retry: Callable[[int, BaseException], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call *fn* up to *retries* times, sleeping *delay* seconds after each
    failed attempt except the last.

    retry_on: exception types that count as a failed attempt
    on_retry: callback(attempt, exception), invoked for every failure
    """
    if retries < 1:
        raise ValueError("retries must be >= 1")

    last_exc: BaseException | None = None
    for attempt in range(1, retries + 1):
        try:
            return fn()
        except retry_on as exc:
            last_exc = exc
            if on_retry:
                on_retry(attempt, exc)
            if attempt == retries:
                break
            sleep(delay)
    name = getattr(fn, "__name__", repr(fn))
    raise RetryError(f"{name} failed after {retries} attempts", retries) from last_exc

