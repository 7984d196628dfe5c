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

"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import typer
from rich.panel import Panel
from rich.table import Table

from stack_manager import console
from stack_manager.config import ActionFlags, StackConfig
from stack_manager.constants import stack_images
from stack_manager.images import (
    PrepullReport,
    PullBackend,
    prepull_images,
    select_backend,
    verify_local_images,
)
from stack_manager.preflight import run_preflight, stack_requirements
from stack_manager.readiness import wait_ready
from stack_manager.releases import (
    ReleaseDescriptor,
    add_helm_repos,
    apply_manifest,
    build_chart_dependencies,
    install_release,
    order_releases,
)
from stack_manager.stack import ACCESS_ENDPOINTS, HELM_REPOS, build_stack, stack_namespaces
from stack_manager.teardown import teardown
from stack_manager.tunnel import interrupt_cleanup, start_detached_forwards
from stack_manager.utils import run_kubectl
from stack_manager.verify import verify_reachable


@dataclass
class DeployResult:
    """What a deploy run did, for the caller's summary."""

    installed: list[str] = field(default_factory=list)
    prepull: PrepullReport | None = None
    verified: dict[str, bool] = field(default_factory=dict)


# ============================================================================
# Internal helpers
# ============================================================================

def _run_prepull(backends: list[PullBackend] | None) -> PrepullReport:
    """Select a pull backend and pre-pull the stack's image manifest.

    Raises:
        NoPullBackend: If no backend is available.
    """
    backend = select_backend(backends)
    try:
        return prepull_images(stack_images(), backend)
    finally:
        backend.close()


def _deploy_release(
    release: ReleaseDescriptor,
    cfg: StackConfig,
    flags: ActionFlags,
    result: DeployResult,
) -> None:
    """Install one release, wait for its workloads, then apply and verify."""
    context = cfg.kube_context
    install_release(release, cfg.stack_values_dir, context)
    result.installed.append(release.name)

    for target in release.readiness:
        wait_ready(target, context=context, poll_interval=cfg.poll_interval)

    for rel_path in release.manifests:
        apply_manifest(cfg.stack_values_dir / rel_path, release.namespace, context)

    if flags.verify_services:
        for endpoint in release.verify:
            result.verified[endpoint.service] = verify_reachable(
                endpoint, cfg.verify_timeout, context=context,
            )


def _final_report(cfg: StackConfig) -> None:
    """List stack pods and print how to reach each service."""
    console.print(Panel.fit("Performing final verification", style="bold blue"))
    namespaces = stack_namespaces()
    ok, stdout, _ = run_kubectl(["get", "pods", "-A"], context=cfg.kube_context)
    if ok:
        lines = stdout.splitlines()
        rows = [line for line in lines[1:] if line.split(maxsplit=1)[0] in namespaces]
        console.print("\n".join(lines[:1] + rows), markup=False, highlight=False)
    console.print("[green]\u2705 All components deployed successfully![/green]")

    table = Table(title="Access Information (after port-forwarding)")
    table.add_column("Service")
    table.add_column("URL")
    table.add_column("Port-forward command")
    for endpoint in ACCESS_ENDPOINTS:
        table.add_row(endpoint.label, endpoint.local_url, endpoint.forward_command())
    console.print(table)


def _maybe_port_forward(
    flags: ActionFlags,
    cfg: StackConfig,
    confirm: Callable[[str], bool],
) -> bool:
    """Start detached port-forwards if requested. Returns whether they started."""
    if flags.auto_port_forward:
        start = True
    elif flags.prompt_port_forward:
        start = confirm("Would you like to automatically start port-forwarding?")
    else:
        start = False
    if start:
        start_detached_forwards(ACCESS_ENDPOINTS, cfg.kube_context)
    return start


def _confirm(message: str) -> bool:
    """Ask a yes/no question; end of input (no TTY, CI) answers no."""
    try:
        return typer.confirm(message, default=False)
    except typer.Abort:
        console.print()
        return False


# ============================================================================
# Public API
# ============================================================================

def run_deploy(
    flags: ActionFlags,
    cfg: StackConfig,
    *,
    releases: list[ReleaseDescriptor] | None = None,
    backends: list[PullBackend] | None = None,
    confirm: Callable[[str], bool] = _confirm,
) -> DeployResult:
    """Run the deploy pipeline: preflight, pre-pull, then each release in order.

    Every fatal error stops the pipeline where it happens. Releases installed
    before the failure are left in place for ``teardown``.

    Args:
        flags: Resolved action flags.
        cfg: Resolved stack configuration.
        releases: Releases to deploy, or None for the observability stack.
        backends: Pull backends in priority order, or None for the defaults.
        confirm: Yes/no prompt used when port-forwarding is not decided by flags.

    Returns:
        Summary of what was installed, pulled, and verified.

    Raises:
        StackError: On any fatal preflight, pre-pull, install, or readiness error.
    """
    releases = build_stack(cfg) if releases is None else releases
    ordered = order_releases(releases)
    result = DeployResult()

    with interrupt_cleanup():
        run_preflight(stack_requirements(cfg))

        for release in ordered:
            if release.local_chart:
                build_chart_dependencies(cfg.stack_values_dir / release.chart)

        add_helm_repos(HELM_REPOS)

        if flags.prepull_images:
            result.prepull = _run_prepull(backends)
        else:
            console.print("[yellow]\u26a0\ufe0f  Skipping image pre-pull as requested[/yellow]")

        for release in ordered:
            _deploy_release(release, cfg, flags, result)

        _final_report(cfg)
        _maybe_port_forward(flags, cfg, confirm)

    console.print(Panel.fit("Deployment Complete!", style="bold green"))
    return result


def run_prepull(
    images: list[str] | None = None,
    *,
    verify: bool = False,
    backends: list[PullBackend] | None = None,
) -> PrepullReport:
    """Pre-pull images outside a deploy, optionally checking the local store after.

    Args:
        images: Image references, or None for the full stack manifest.
        verify: Whether to check each pulled image is present locally.
        backends: Pull backends in priority order, or None for the defaults.

    Returns:
        Report of succeeded and failed image references.
    """
    images = images or stack_images()
    backend = select_backend(backends)
    try:
        report = prepull_images(images, backend)
        if verify and report.succeeded:
            verify_local_images(report.succeeded, backend)
    finally:
        backend.close()
    return report


def run_teardown(cfg: StackConfig) -> None:
    """Tear down the observability stack. Never raises."""
    teardown(build_stack(cfg), stack_namespaces(), context=cfg.kube_context)
