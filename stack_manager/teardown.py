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

"""Best-effort teardown of the stack: tunnels, releases, namespaces."""

from __future__ import annotations

import sh
from rich.panel import Panel

from stack_manager import console, logger
from stack_manager.releases import ReleaseDescriptor, order_releases, uninstall_release
from stack_manager.tunnel import TUNNELS, TunnelRegistry
from stack_manager.utils import run_kubectl


def stop_port_forwards(registry: TunnelRegistry = TUNNELS) -> None:
    """Stop tracked tunnels and any detached ``kubectl port-forward`` processes."""
    stopped = registry.stop_all()
    if stopped:
        logger.info("Stopped %d tracked port-forwards", stopped)
    try:
        sh.pkill("-f", "kubectl port-forward")
    except sh.ErrorReturnCode:
        # pkill exits 1 when nothing matched
        pass
    except sh.CommandNotFound:
        logger.warning("pkill not found; detached port-forwards were not stopped")


def delete_namespace(namespace: str, context: str | None = None) -> None:
    """Force-delete *namespace* with zero grace period, without waiting."""
    ok, _, stderr = run_kubectl(
        ["delete", "namespace", namespace, "--force", "--grace-period=0",
         "--ignore-not-found", "--wait=false"],
        timeout=60,
        context=context,
    )
    if ok:
        console.print(f"[green]  \u2713 Namespace {namespace} deletion issued[/green]")
    else:
        console.print(f"[yellow]\u26a0\ufe0f  Could not delete namespace {namespace}: {stderr.strip()[:200]}[/yellow]")


def teardown(
    releases: list[ReleaseDescriptor],
    namespaces: list[str],
    *,
    context: str | None = None,
    registry: TunnelRegistry = TUNNELS,
) -> None:
    """Reverse a deployment as far as possible. Never raises.

    Releases are uninstalled in reverse dependency order; missing releases
    and namespaces count as already removed.

    Args:
        releases: Releases of the stack, in any order.
        namespaces: Namespaces to force-delete.
        context: kube context, or None for the current one.
        registry: Registry of tunnels opened by this process.
    """
    console.print(Panel.fit("Tearing down observability stack", style="bold blue"))

    console.print("[yellow]\u2139\ufe0f  Stopping port-forward processes...[/yellow]")
    stop_port_forwards(registry)

    console.print("[yellow]\u2139\ufe0f  Uninstalling Helm releases (if present)...[/yellow]")
    try:
        ordered = order_releases(releases)
    except RuntimeError as e:
        logger.warning("Cannot order releases (%s); using declaration order", e)
        ordered = list(releases)
    for release in reversed(ordered):
        uninstall_release(release.name, release.namespace, context)

    console.print("[yellow]\u2139\ufe0f  Deleting namespaces with force and zero grace period...[/yellow]")
    for namespace in namespaces:
        delete_namespace(namespace, context)

    console.print("[green]\u2705 All teardown steps issued. Remaining resources (if any) "
                  "should terminate shortly.[/green]")
