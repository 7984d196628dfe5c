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

"""kubectl port-forward tunnels as scoped resources, plus interrupt cleanup."""

from __future__ import annotations

import signal
import subprocess
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from stack_manager import console, logger
from stack_manager.constants import TUNNEL_STOP_TIMEOUT_SECONDS
from stack_manager.utils import kubectl_context_args


@dataclass(frozen=True)
class ServiceEndpoint:
    """A cluster service reachable through a local port-forward.

    Attributes:
        namespace: Namespace of the service.
        service: Service name.
        port: Service port, also used as the local port.
        path: HTTP path probed during verification.
        label: Human-readable name for reports.
    """

    namespace: str
    service: str
    port: int
    path: str = "/"
    label: str = ""

    @property
    def local_url(self) -> str:
        return f"http://localhost:{self.port}"

    def forward_args(self, context: str | None = None) -> list[str]:
        return [
            "kubectl", *kubectl_context_args(context),
            "port-forward", "-n", self.namespace, f"svc/{self.service}", f"{self.port}:{self.port}",
        ]

    def forward_command(self) -> str:
        return " ".join(self.forward_args())


class Tunnel:
    """A running ``kubectl port-forward`` child process."""

    def __init__(self, endpoint: ServiceEndpoint, context: str | None = None) -> None:
        self.endpoint = endpoint
        self.context = context
        self._proc: subprocess.Popen | None = None

    def start(self) -> None:
        self._proc = subprocess.Popen(
            self.endpoint.forward_args(self.context),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        logger.info("Port-forward started: %s -> svc/%s:%d",
                    self.endpoint.local_url, self.endpoint.service, self.endpoint.port)

    @property
    def closed(self) -> bool:
        return self._proc is None or self._proc.poll() is not None

    def stop(self) -> None:
        """Terminate the child process, killing it if it does not exit in time."""
        proc = self._proc
        if proc is None:
            return
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=TUNNEL_STOP_TIMEOUT_SECONDS)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.wait()
        self._proc = None


class TunnelRegistry:
    """Tracks live tunnels so an interrupt can stop all of them."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tunnels: list[Tunnel] = []

    def add(self, tunnel: Tunnel) -> None:
        with self._lock:
            self._tunnels.append(tunnel)

    def discard(self, tunnel: Tunnel) -> None:
        with self._lock:
            if tunnel in self._tunnels:
                self._tunnels.remove(tunnel)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tunnels)

    def stop_all(self) -> int:
        """Stop every tracked tunnel. Returns how many were stopped."""
        with self._lock:
            tunnels, self._tunnels = self._tunnels, []
        for tunnel in tunnels:
            tunnel.stop()
        return len(tunnels)


TUNNELS = TunnelRegistry()


@contextmanager
def open_tunnel(
    endpoint: ServiceEndpoint,
    context: str | None = None,
    registry: TunnelRegistry = TUNNELS,
) -> Iterator[Tunnel]:
    """Start a port-forward for the duration of the ``with`` block.

    The tunnel is stopped and deregistered on every exit path.

    Args:
        endpoint: Service to forward.
        context: kubectl context, or None for the current one.
        registry: Registry that tracks the tunnel while it is open.

    Yields:
        The running tunnel.
    """
    tunnel = Tunnel(endpoint, context)
    registry.add(tunnel)
    try:
        tunnel.start()
        yield tunnel
    finally:
        tunnel.stop()
        registry.discard(tunnel)


def start_detached_forwards(endpoints: list[ServiceEndpoint], context: str | None = None) -> None:
    """Start port-forwards that keep running after this process exits.

    Args:
        endpoints: Services to forward.
        context: kubectl context, or None for the current one.
    """
    console.print("[yellow]\u2139\ufe0f  Starting port-forward sessions in background...[/yellow]")
    for endpoint in endpoints:
        subprocess.Popen(
            endpoint.forward_args(context),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        console.print(f"[green]  \u2713 {endpoint.label or endpoint.service}: {endpoint.local_url}[/green]")
    console.print("[green]\u2705 Port forwarding started. Run 'stack-manager teardown' or "
                  "pkill -f \"kubectl port-forward\" to stop all.[/green]")


@contextmanager
def interrupt_cleanup(registry: TunnelRegistry = TUNNELS) -> Iterator[None]:
    """Install SIGINT/SIGTERM handlers that stop tracked tunnels and exit 1.

    Previous handlers are restored when the block exits.
    """

    def _handler(signum, frame) -> None:
        console.print("[yellow]Interrupted. Cleaning up background port-forwards...[/yellow]")
        registry.stop_all()
        sys.exit(1)

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
