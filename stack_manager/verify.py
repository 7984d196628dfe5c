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

"""Best-effort service verification through a temporary port-forward."""

from __future__ import annotations

import time
from collections.abc import Callable

import requests

from stack_manager import console, logger
from stack_manager.constants import (
    VERIFY_OK_STATUS_CODES,
    VERIFY_PROBE_INTERVAL_SECONDS,
    VERIFY_REQUEST_TIMEOUT_SECONDS,
    VERIFY_SETTLE_SECONDS,
)
from stack_manager.errors import WaitTimeout
from stack_manager.readiness import Clock, bounded_wait
from stack_manager.tunnel import TUNNELS, ServiceEndpoint, TunnelRegistry, open_tunnel


def probe_http(url: str) -> bool:
    """Return True if *url* answers with an accepted status code.

    404 counts as responding because some endpoints 404 on the bare path.
    Connection-level errors mean "not responding yet".
    """
    try:
        response = requests.get(url, timeout=VERIFY_REQUEST_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.debug("Probe of %s failed: %s", url, e)
        return False
    return response.status_code in VERIFY_OK_STATUS_CODES


def verify_reachable(
    endpoint: ServiceEndpoint,
    timeout_seconds: float,
    *,
    context: str | None = None,
    registry: TunnelRegistry = TUNNELS,
    tunnel_factory=open_tunnel,
    probe: Callable[[str], bool] = probe_http,
    settle_seconds: float = VERIFY_SETTLE_SECONDS,
    clock: Clock = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Check that *endpoint* responds over HTTP, without failing the caller.

    Opens a tunnel, waits *settle_seconds*, then probes once per second for up
    to *timeout_seconds*. The tunnel is closed on every exit path. A fault while
    opening the tunnel or probing is reported as a warning, never raised.

    Args:
        endpoint: Service, port, and path to probe.
        timeout_seconds: Seconds to keep probing.
        context: kubectl context, or None for the current one.
        registry: Registry tracking the tunnel while it is open.
        tunnel_factory: Context manager factory opening the tunnel.
        probe: Callable returning True when the URL responds.
        settle_seconds: Delay before the first probe.
        clock: Monotonic clock returning seconds.
        sleep: Sleep function.

    Returns:
        True if the service responded, False if verification timed out or failed.
    """
    name = endpoint.service
    console.print(f"[yellow]\u2139\ufe0f  Verifying service {name} responds on port {endpoint.port}...[/yellow]")
    url = f"{endpoint.local_url}{endpoint.path}"

    try:
        with tunnel_factory(endpoint, context=context, registry=registry):
            sleep(settle_seconds)
            bounded_wait(
                lambda: probe(url),
                timeout_seconds,
                description=f"service {name}",
                poll_interval=VERIFY_PROBE_INTERVAL_SECONDS,
                clock=clock,
                sleep=sleep,
            )
    except WaitTimeout:
        console.print(f"[yellow]\u26a0\ufe0f  Service {name} verification timed out[/yellow]")
        return False
    except Exception as e:
        logger.warning("Verification of %s failed: %s", name, e)
        console.print(f"[yellow]\u26a0\ufe0f  Service {name} could not be verified: {e}[/yellow]")
        return False

    console.print(f"[green]\u2705 Service {name} is responding[/green]")
    return True
