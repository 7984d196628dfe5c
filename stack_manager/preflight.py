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

"""Preflight checks: tools, version floors, required files, host resources, cluster."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import psutil
from rich.panel import Panel

from stack_manager import console, logger
from stack_manager.config import StackConfig
from stack_manager.constants import (
    CLUSTER_INFO_TIMEOUT_SECONDS,
    REQUIRED_TOOLS,
    REQUIRED_VALUES_FILES,
    VERSION_FLOORS,
)
from stack_manager.errors import ClusterUnreachable, MissingFile, VersionTooLow
from stack_manager.utils import (
    format_version,
    parse_version,
    require_command,
    run_kubectl,
    tool_version_output,
)


@dataclass(frozen=True)
class PreflightRequirements:
    """What the environment must provide before anything is installed.

    Attributes:
        tools: Commands that must resolve on PATH.
        version_floors: (tool, minimum ``X.Y.Z``) pairs.
        required_files: Files that must exist, checked in order.
        min_cpu_cores: Advisory CPU core floor.
        min_mem_mb: Advisory memory floor in MB.
        kube_context: kubectl context for the reachability check.
    """

    tools: tuple[str, ...] = REQUIRED_TOOLS
    version_floors: tuple[tuple[str, str], ...] = VERSION_FLOORS
    required_files: tuple[Path, ...] = field(default_factory=tuple)
    min_cpu_cores: int = 0
    min_mem_mb: int = 0
    kube_context: str | None = None


def stack_requirements(cfg: StackConfig) -> PreflightRequirements:
    """Build the preflight requirements for the observability stack.

    Args:
        cfg: Stack configuration with the values directory and resource floors.

    Returns:
        Requirements covering every values file the releases reference.
    """
    return PreflightRequirements(
        required_files=tuple(cfg.stack_values_dir / rel for rel in REQUIRED_VALUES_FILES),
        min_cpu_cores=cfg.min_cpu_cores,
        min_mem_mb=cfg.min_mem_mb,
        kube_context=cfg.kube_context,
    )


# ============================================================================
# Individual checks
# ============================================================================

def check_tools(tools: tuple[str, ...]) -> None:
    for cmd in tools:
        require_command(cmd)


def check_version(tool: str, want: str) -> None:
    """Fail if *tool* reports a version lower than *want*.

    Unparsable or missing version output is a warning, never a failure.

    Args:
        tool: CLI tool whose ``version`` subcommand is queried.
        want: Minimum acceptable ``X.Y.Z`` version.

    Raises:
        VersionTooLow: If the parsed version is below the floor.
    """
    have = parse_version(tool_version_output(tool))
    if have is None:
        console.print(f"[yellow]\u26a0\ufe0f  Could not parse {tool} version; continuing[/yellow]")
        return
    floor = parse_version(want)
    if floor is not None and have < floor:
        raise VersionTooLow(tool, format_version(have), want)
    logger.info("%s version %s satisfies >= %s", tool, format_version(have), want)


def check_required_files(files: tuple[Path, ...]) -> None:
    """Fail on the first file in *files* that does not exist.

    Raises:
        MissingFile: Naming the first absent path.
    """
    for path in files:
        if not path.is_file():
            raise MissingFile(path)


def detect_cpu_cores() -> int:
    """Logical CPU count; 0 when it cannot be determined."""
    return psutil.cpu_count() or 0


def detect_memory_mb() -> int:
    """Total host memory in MB; 0 when it cannot be determined."""
    try:
        return psutil.virtual_memory().total // (1024 * 1024)
    except (psutil.Error, OSError) as e:
        logger.warning("Cannot read host memory: %s", e)
        return 0


def check_resources(min_cpu_cores: int, min_mem_mb: int) -> list[str]:
    """Warn when host resources are below the recommended floors.

    Args:
        min_cpu_cores: Recommended minimum CPU cores.
        min_mem_mb: Recommended minimum memory in MB.

    Returns:
        The warning messages that were emitted.
    """
    warnings: list[str] = []
    cpu_cores = detect_cpu_cores()
    mem_mb = detect_memory_mb()
    if cpu_cores < min_cpu_cores:
        warnings.append(f"Detected CPU cores {cpu_cores} < recommended {min_cpu_cores}")
    if mem_mb < min_mem_mb:
        warnings.append(f"Detected memory {mem_mb}MB < recommended {min_mem_mb}MB")
    for message in warnings:
        console.print(f"[yellow]\u26a0\ufe0f  {message}. Deployment may be slow or fail.[/yellow]")
    return warnings


def check_cluster(context: str | None = None) -> None:
    """Fail if ``kubectl cluster-info`` does not succeed.

    Raises:
        ClusterUnreachable: If the cluster cannot be reached.
    """
    ok, _, stderr = run_kubectl(["cluster-info"], timeout=CLUSTER_INFO_TIMEOUT_SECONDS, context=context)
    if not ok:
        raise ClusterUnreachable(stderr.strip()[:200])


# ============================================================================
# Public API
# ============================================================================

def run_preflight(requirements: PreflightRequirements) -> None:
    """Run every preflight check in order, stopping at the first fatal one.

    Args:
        requirements: Tools, versions, files, resource floors, and context.

    Raises:
        PreflightError: On a missing tool, low version, missing file, or
            unreachable cluster.
    """
    console.print(Panel.fit("Running preflight checks", style="bold blue"))
    check_tools(requirements.tools)
    console.print("[green]\u2705 All required tools are available[/green]")

    for tool, want in requirements.version_floors:
        check_version(tool, want)

    check_required_files(requirements.required_files)
    if requirements.required_files:
        console.print("[green]\u2705 All required configuration files found[/green]")

    check_resources(requirements.min_cpu_cores, requirements.min_mem_mb)
    check_cluster(requirements.kube_context)
    console.print("[green]\u2705 Preflight checks passed[/green]")
