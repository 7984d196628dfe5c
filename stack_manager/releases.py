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

"""Helm release descriptors, dependency ordering, install and uninstall."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import sh
from rich.panel import Panel

from stack_manager import console, logger
from stack_manager.errors import DependencyError, InstallFailed, MissingFile
from stack_manager.readiness import ReadinessTarget
from stack_manager.tunnel import ServiceEndpoint
from stack_manager.utils import error_detail, helm_context_args, kubectl_context_args


@dataclass(frozen=True)
class ReleaseDescriptor:
    """One independently installable Helm release and what follows its install.

    Relative paths (values files, ``--set-file`` files, manifests, and a local
    chart) are resolved against the values directory at install time.

    Attributes:
        name: Helm release name.
        namespace: Target namespace.
        chart: Repo chart reference (``repo/chart``) or local chart path.
        local_chart: Whether *chart* is a path under the values directory.
        version: Chart version, or None for latest.
        values_files: Value overlay files passed with ``-f``.
        set_values: ``key=value`` strings passed with ``--set``.
        set_file_values: (key, file) pairs passed with ``--set-file``.
        create_namespace: Whether helm should create the namespace.
        timeout: Helm ``--wait`` timeout (e.g. ``10m``).
        depends_on: Release names that must be installed first.
        readiness: Workloads to wait for after install.
        manifests: Extra manifests applied after the workloads are ready.
        verify: Services probed after the manifests are applied.
    """

    name: str
    namespace: str
    chart: str
    local_chart: bool = False
    version: str | None = None
    values_files: tuple[str, ...] = ()
    set_values: tuple[str, ...] = ()
    set_file_values: tuple[tuple[str, str], ...] = ()
    create_namespace: bool = True
    timeout: str = "10m"
    depends_on: tuple[str, ...] = ()
    readiness: tuple[ReadinessTarget, ...] = field(default_factory=tuple)
    manifests: tuple[str, ...] = ()
    verify: tuple[ServiceEndpoint, ...] = field(default_factory=tuple)


# ============================================================================
# Ordering
# ============================================================================

def order_releases(releases: list[ReleaseDescriptor]) -> list[ReleaseDescriptor]:
    """Topologically order releases by ``depends_on``.

    Ties are broken by declaration order, so a list that already respects its
    dependencies comes back unchanged.

    Args:
        releases: Release descriptors in declaration order.

    Returns:
        Releases ordered so each comes after everything it depends on.

    Raises:
        DependencyError: On duplicate names, unknown dependencies, or cycles.
    """
    by_name: dict[str, ReleaseDescriptor] = {}
    for release in releases:
        if release.name in by_name:
            raise DependencyError(f"Duplicate release name '{release.name}'")
        by_name[release.name] = release

    for release in releases:
        for dep in release.depends_on:
            if dep not in by_name:
                raise DependencyError(f"Release '{release.name}' depends on unknown release '{dep}'")

    ordered: list[ReleaseDescriptor] = []
    placed: set[str] = set()
    while len(ordered) < len(releases):
        ready = [r for r in releases if r.name not in placed and all(d in placed for d in r.depends_on)]
        if not ready:
            stuck = sorted(r.name for r in releases if r.name not in placed)
            raise DependencyError(f"Dependency cycle between releases: {', '.join(stuck)}")
        ordered.append(ready[0])
        placed.add(ready[0].name)
    return ordered


# ============================================================================
# Helm repositories and chart dependencies
# ============================================================================

def add_helm_repos(repos: list[tuple[str, str]]) -> None:
    """Add Helm repositories and refresh their indexes.

    An already-present repository is a warning, not a failure.

    Args:
        repos: (name, url) pairs.
    """
    console.print(Panel.fit("Setting up Helm repositories", style="bold blue"))
    for name, url in repos:
        try:
            sh.helm("repo", "add", name, url)
        except sh.ErrorReturnCode as e:
            console.print(f"[yellow]\u26a0\ufe0f  Helm repo '{name}' not added: {error_detail(e)[:200]}[/yellow]")
    sh.helm("repo", "update")
    console.print("[green]\u2705 Helm repositories updated[/green]")


def build_chart_dependencies(chart_dir: Path) -> None:
    """Run ``helm dependency build`` for a local chart.

    Raises:
        MissingFile: If *chart_dir* has no ``Chart.yaml``.
    """
    chart_file = chart_dir / "Chart.yaml"
    if not chart_file.is_file():
        raise MissingFile(chart_file)
    console.print(f"[yellow]\u2139\ufe0f  Building Helm dependencies for {chart_dir.name} chart...[/yellow]")
    (chart_dir / "charts").mkdir(parents=True, exist_ok=True)
    sh.helm("dependency", "build", str(chart_dir))
    console.print(f"[green]\u2705 Helm dependencies for {chart_dir.name} chart are ready[/green]")


# ============================================================================
# Install / uninstall
# ============================================================================

def helm_install_args(release: ReleaseDescriptor, values_dir: Path, context: str | None = None) -> list[str]:
    """Build the ``helm install`` argument list for *release*.

    Args:
        release: Release to install.
        values_dir: Directory that relative paths resolve against.
        context: kube context, or None for the current one.

    Returns:
        Arguments for ``helm``, starting with ``install``.
    """
    chart = str(values_dir / release.chart) if release.local_chart else release.chart
    args = ["install", release.name, chart, "--namespace", release.namespace]
    if release.create_namespace:
        args.append("--create-namespace")
    if release.version:
        args += ["--version", release.version]
    for value in release.set_values:
        args += ["--set", value]
    for key, rel_path in release.set_file_values:
        args += ["--set-file", f"{key}={values_dir / rel_path}"]
    for rel_path in release.values_files:
        args += ["-f", str(values_dir / rel_path)]
    args += ["--wait", f"--timeout={release.timeout}"]
    args += helm_context_args(context)
    return args


def install_release(release: ReleaseDescriptor, values_dir: Path, context: str | None = None) -> None:
    """Install *release* synchronously with ``helm install --wait``.

    Args:
        release: Release to install.
        values_dir: Directory that relative paths resolve against.
        context: kube context, or None for the current one.

    Raises:
        InstallFailed: If helm exits non-zero, including on a name collision
            with an existing release.
    """
    console.print(Panel.fit(f"Deploying {release.name}", style="bold blue"))
    args = helm_install_args(release, values_dir, context)
    logger.info("helm %s", " ".join(args))
    try:
        sh.helm(*args)
    except sh.ErrorReturnCode as e:
        raise InstallFailed(release.name, error_detail(e)[:500]) from e
    console.print(f"[green]\u2705 {release.name} deployed[/green]")


def apply_manifest(path: Path, namespace: str, context: str | None = None) -> None:
    """Apply a manifest file into *namespace*.

    Raises:
        MissingFile: If *path* does not exist.
    """
    if not path.is_file():
        raise MissingFile(path)
    console.print(f"[yellow]\u2139\ufe0f  Applying {path.name} in namespace {namespace}...[/yellow]")
    sh.kubectl(*kubectl_context_args(context), "apply", "-n", namespace, "-f", str(path))
    console.print(f"[green]\u2705 Applied {path.name}[/green]")


def uninstall_release(name: str, namespace: str, context: str | None = None) -> bool:
    """Uninstall a release, treating every failure as non-fatal.

    Args:
        name: Helm release name.
        namespace: Namespace the release lives in.
        context: kube context, or None for the current one.

    Returns:
        True if the release was removed, False if it was absent or removal failed.
    """
    try:
        sh.helm("uninstall", name, "-n", namespace, *helm_context_args(context))
    except sh.ErrorReturnCode as e:
        detail = error_detail(e)
        if "not found" in detail.lower():
            console.print(f"[yellow]   Release '{name}' not found or already removed[/yellow]")
        else:
            console.print(f"[yellow]\u26a0\ufe0f  Failed to uninstall '{name}': {detail[:200]}[/yellow]")
        return False
    except sh.CommandNotFound:
        console.print(f"[yellow]\u26a0\ufe0f  helm not found; cannot uninstall '{name}'[/yellow]")
        return False
    console.print(f"[green]  \u2713 Uninstalled {name} ({namespace})[/green]")
    return True
