# /*
# Copyright 2026 The Stack Manager Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Readiness gate: bounded polling of Deployment/StatefulSet rollout state.

Waiting is built on a clock-injectable :class:`Deadline` driving a tenacity
``Retrying`` loop. The wait between polls is clipped to the time left, so the
last poll lands on the deadline itself and a workload that never becomes
ready fails at the timeout boundary, not before and not a full poll interval
after. Tests pass a fake clock and a sleep that advances it.
"""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result

from stack_manager import console, logger
from stack_manager.constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    KIND_DEPLOYMENT,
    KIND_STATEFULSET,
    WORKLOAD_KINDS,
)
from stack_manager.errors import ReadinessTimeout, WaitCancelled, WaitTimeout
from stack_manager.utils import run_kubectl

Clock = Callable[[], float]


# ============================================================================
# Bounded waits
# ============================================================================

class Deadline:
    """A point in time *timeout* seconds after construction, on *clock*."""

    def __init__(self, timeout: float, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self.timeout = timeout
        self.expires_at = clock() + timeout

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    def expired(self) -> bool:
        return self._clock() >= self.expires_at


def bounded_wait(
    check: Callable[[], bool],
    timeout: float,
    *,
    description: str,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    clock: Clock = time.monotonic,
    sleep: Callable[[float], None] | None = None,
    cancel: threading.Event | None = None,
) -> None:
    """Call *check* until it returns True or *timeout* seconds elapse.

    Args:
        check: Predicate polled once per interval; must not raise for
            "not ready yet".
        timeout: Seconds until the wait gives up.
        description: What is being waited for, used in log and error messages.
        poll_interval: Seconds between polls.
        clock: Monotonic clock returning seconds.
        sleep: Sleep function, or None for ``time.sleep`` (or the cancel
            event's wait when *cancel* is given).
        cancel: Event that ends the wait early when set.

    Raises:
        WaitTimeout: If the deadline passes before *check* succeeds.
        WaitCancelled: If *cancel* is set before *check* succeeds.
    """
    deadline = Deadline(timeout, clock)

    def _cancelled() -> bool:
        return cancel is not None and cancel.is_set()

    def _stop(retry_state: RetryCallState) -> bool:
        return _cancelled() or deadline.expired()

    def _wait(retry_state: RetryCallState) -> float:
        return min(poll_interval, deadline.remaining())

    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep

    def _before_sleep(retry_state: RetryCallState) -> None:
        logger.debug("Still waiting for %s (attempt %d, %.0fs left)",
                     description, retry_state.attempt_number, deadline.remaining())

    retrying = Retrying(
        stop=_stop,
        wait=_wait,
        sleep=sleep,
        retry=retry_if_result(lambda ok: not ok),
        before_sleep=_before_sleep,
    )
    try:
        retrying(check)
    except RetryError as err:
        if _cancelled():
            raise WaitCancelled(f"Wait for {description} was cancelled") from err
        raise WaitTimeout(f"Timed out after {timeout:g}s waiting for {description}") from err


# ============================================================================
# Workload readiness
# ============================================================================

@dataclass(frozen=True)
class ReadinessTarget:
    """A workload to wait for after a release is installed.

    Attributes:
        namespace: Namespace of the workload.
        kind: ``Deployment`` or ``StatefulSet``.
        name: Workload name.
        timeout: Seconds to wait before failing the pipeline.
        selector: Pod label selector used for diagnostics, or None.
    """

    namespace: str
    kind: str
    name: str
    timeout: float
    selector: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in WORKLOAD_KINDS:
            raise ValueError(f"Unsupported workload kind '{self.kind}'")

    @property
    def resource(self) -> str:
        return self.kind.lower()


def workload_ready(obj: dict, kind: str) -> bool:
    """Return True when the workload's observed replicas match its desired count.

    Args:
        obj: Workload object as returned by ``kubectl get -o json``.
        kind: ``Deployment`` or ``StatefulSet``.

    Returns:
        Whether the rollout has completed.
    """
    metadata = obj.get("metadata", {})
    spec = obj.get("spec", {})
    status = obj.get("status", {})
    desired = spec.get("replicas", 1)

    if status.get("observedGeneration", 0) < metadata.get("generation", 0):
        return False

    if kind == KIND_DEPLOYMENT:
        updated = status.get("updatedReplicas", 0)
        available = status.get("availableReplicas", 0)
        total = status.get("replicas", 0)
        return updated >= desired and total <= updated and available >= updated

    if kind == KIND_STATEFULSET:
        ready = status.get("readyReplicas", 0)
        updated = status.get("updatedReplicas", desired)
        return ready >= desired and updated >= desired

    raise ValueError(f"Unsupported workload kind '{kind}'")


def get_workload(target: ReadinessTarget, context: str | None = None) -> dict | None:
    """Fetch the workload object, or None if it cannot be read right now."""
    ok, stdout, stderr = run_kubectl(
        ["get", target.resource, target.name, "-n", target.namespace, "-o", "json"],
        context=context,
    )
    if not ok:
        logger.debug("Cannot read %s/%s yet: %s", target.resource, target.name, stderr.strip()[:200])
        return None
    try:
        return json.loads(stdout)
    except json.JSONDecodeError:
        return None


def dump_diagnostics(target: ReadinessTarget, context: str | None = None) -> None:
    """Print workload and pod state for a workload that did not become ready.

    Diagnostics are best-effort: a command that fails is noted and skipped.
    """
    commands = [
        ["get", target.resource, target.name, "-n", target.namespace, "-o", "wide"],
        ["describe", target.resource, target.name, "-n", target.namespace],
    ]
    if target.selector:
        commands.append(["get", "pods", "-n", target.namespace, "-l", target.selector, "-o", "wide"])

    console.print(f"[yellow]Diagnostics for {target.kind} {target.name} in {target.namespace}:[/yellow]")
    for args in commands:
        ok, stdout, stderr = run_kubectl(args, context=context)
        if ok:
            console.print(stdout.rstrip(), markup=False, highlight=False)
        else:
            logger.warning("kubectl %s failed: %s", " ".join(args[:2]), stderr.strip()[:200])


def wait_ready(
    target: ReadinessTarget,
    *,
    context: str | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    clock: Clock = time.monotonic,
    sleep: Callable[[float], None] | None = None,
    cancel: threading.Event | None = None,
) -> None:
    """Block until *target* is ready or its timeout elapses.

    Args:
        target: Workload to wait for.
        context: kubectl context, or None for the current one.
        poll_interval: Seconds between status polls.
        clock: Monotonic clock returning seconds.
        sleep: Sleep function, or None for the default.
        cancel: Event that ends the wait early when set.

    Raises:
        ReadinessTimeout: After dumping diagnostics, if the workload is not
            ready by the deadline.
        WaitCancelled: If *cancel* is set first.
    """
    console.print(f"[yellow]\u2139\ufe0f  Waiting for {target.resource} {target.name} in {target.namespace}...[/yellow]")

    def _check() -> bool:
        obj = get_workload(target, context)
        return obj is not None and workload_ready(obj, target.kind)

    try:
        bounded_wait(
            _check,
            target.timeout,
            description=f"{target.resource}/{target.name}",
            poll_interval=poll_interval,
            clock=clock,
            sleep=sleep,
            cancel=cancel,
        )
    except WaitTimeout as err:
        dump_diagnostics(target, context)
        raise ReadinessTimeout(target.kind, target.namespace, target.name, target.timeout) from err
    console.print(f"[green]\u2705 {target.kind} {target.name} is ready[/green]")
