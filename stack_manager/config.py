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

"""Configuration classes, ActionFlags, and config resolution/display."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from stack_manager import console, logger
from stack_manager.constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_INGRESS_IP_TIMEOUT_SECONDS,
    DEFAULT_INGRESS_POD_TIMEOUT_SECONDS,
    DEFAULT_MIN_CPU_CORES,
    DEFAULT_MIN_MEM_MB,
    DEFAULT_OKE_CLUSTER_NAME,
    DEFAULT_OKE_KUBERNETES_VERSION,
    DEFAULT_OKE_MEMORY_GB,
    DEFAULT_OKE_NODE_COUNT,
    DEFAULT_OKE_NODE_POOL_NAME,
    DEFAULT_OKE_NODE_SHAPE,
    DEFAULT_OKE_OCPUS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_ROLLOUT_TIMEOUT_SECONDS,
    DEFAULT_VERIFY_TIMEOUT_SECONDS,
    INGRESS_POLL_INTERVAL_SECONDS,
    dep_value,
)


# ============================================================================
# Configuration classes
# ============================================================================

class StackConfig(BaseSettings):
    """Deployment configuration, auto-loaded from environment variables.

    Attributes:
        min_cpu_cores: Recommended host CPU core floor (advisory).
        min_mem_mb: Recommended host memory floor in MB (advisory).
        kube_context: kubectl/helm context to target, or None for current.
        rollout_timeout: Seconds to wait for each workload to become ready.
        stack_values_dir: Directory holding values files and the local Jaeger chart.
        verify_timeout: Seconds to probe each verified service.
        poll_interval: Seconds between readiness polls.
    """

    model_config = SettingsConfigDict(extra="ignore")

    min_cpu_cores: int = Field(default=DEFAULT_MIN_CPU_CORES, ge=0)
    min_mem_mb: int = Field(default=DEFAULT_MIN_MEM_MB, ge=0)
    kube_context: str | None = None
    rollout_timeout: int = Field(default=DEFAULT_ROLLOUT_TIMEOUT_SECONDS, ge=1)
    stack_values_dir: Path = Field(default_factory=Path.cwd)
    verify_timeout: int = Field(default=DEFAULT_VERIFY_TIMEOUT_SECONDS, ge=1)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)


class OkeConfig(BaseSettings):
    """OKE cluster shape, auto-loaded from OKE_* env vars.

    Attributes:
        cluster_name: Display name of the OKE cluster.
        node_pool_name: Display name of the node pool.
        kubernetes_version: Kubernetes version for cluster and node pool.
        node_shape: Compute shape for worker nodes.
        ocpus: OCPUs per flex node.
        memory_gb: Memory per flex node in GB.
        node_count: Number of worker nodes in the pool.
        config_file: Path of the KEY=value config record.
    """

    model_config = SettingsConfigDict(env_prefix="OKE_", extra="ignore")

    cluster_name: str = DEFAULT_OKE_CLUSTER_NAME
    node_pool_name: str = DEFAULT_OKE_NODE_POOL_NAME
    kubernetes_version: str = Field(default=DEFAULT_OKE_KUBERNETES_VERSION, pattern=r"^v\d+\.\d+\.\d+$")
    node_shape: str = DEFAULT_OKE_NODE_SHAPE
    ocpus: int = Field(default=DEFAULT_OKE_OCPUS, ge=1)
    memory_gb: int = Field(default=DEFAULT_OKE_MEMORY_GB, ge=1)
    node_count: int = Field(default=DEFAULT_OKE_NODE_COUNT, ge=1, le=100)
    config_file: Path = Path(DEFAULT_CONFIG_FILE)


class IngressConfig(BaseSettings):
    """GKE HTTPS ingress settings, auto-loaded from INGRESS_* env vars.

    Attributes:
        nginx_manifest: URL of the NGINX ingress controller manifest.
        cert_manager_manifest: URL of the cert-manager manifest.
        manifests_dir: Directory holding the ClusterIssuer and TLS ingress files.
        pod_timeout: Seconds to wait for each namespace's pods.
        ip_timeout: Seconds to wait for the controller's external IP.
        poll_interval: Seconds between polls.
    """

    model_config = SettingsConfigDict(env_prefix="INGRESS_", extra="ignore")

    nginx_manifest: str = dep_value("gke_ingress", "nginx_manifest", default="")
    cert_manager_manifest: str = dep_value("gke_ingress", "cert_manager_manifest", default="")
    manifests_dir: Path = Field(default_factory=Path.cwd)
    pod_timeout: int = Field(default=DEFAULT_INGRESS_POD_TIMEOUT_SECONDS, ge=1)
    ip_timeout: int = Field(default=DEFAULT_INGRESS_IP_TIMEOUT_SECONDS, ge=1)
    poll_interval: float = Field(default=INGRESS_POLL_INTERVAL_SECONDS, gt=0)


# ============================================================================
# Action flags
# ============================================================================

@dataclass(frozen=True)
class ActionFlags:
    """Single source of truth for what the deploy pipeline does.

    Attributes:
        prepull_images: Whether to pre-pull container images.
        auto_port_forward: Whether to start port-forwards without prompting.
        prompt_port_forward: Whether to ask before starting port-forwards.
        verify_services: Whether to probe services after they become ready.
    """

    prepull_images: bool = True
    auto_port_forward: bool = False
    prompt_port_forward: bool = True
    verify_services: bool = True


# ============================================================================
# Config resolution
# ============================================================================

def validate_flags(
    auto_port_forward: bool,
    no_port_forward: bool,
    skip_prepull: bool,
) -> None:
    """Validate flag combinations for mutual exclusivity.

    Args:
        auto_port_forward: Whether port-forwards start without prompting.
        no_port_forward: Whether port-forwarding is disabled entirely.
        skip_prepull: Whether image pre-pulling is skipped.

    Raises:
        typer.BadParameter: If both port-forward flags are given.
    """
    if auto_port_forward and no_port_forward:
        raise typer.BadParameter("--auto-port-forward and --no-port-forward are mutually exclusive")
    if skip_prepull:
        logger.warning("Image pre-pull skipped; cluster will pull images on-demand")


def resolve_config(
    auto_port_forward: bool,
    no_port_forward: bool,
    skip_prepull: bool,
    timeout: int | None,
    values_dir: Path | None,
    skip_verify: bool = False,
) -> tuple[StackConfig, ActionFlags]:
    """Merge CLI overrides, environment variables, and defaults into config objects.

    Resolution priority: CLI arguments > environment variables > defaults.

    Args:
        auto_port_forward: Whether port-forwards start without prompting.
        no_port_forward: Whether port-forwarding is disabled entirely.
        skip_prepull: Whether image pre-pulling is skipped.
        timeout: CLI override for the rollout timeout in seconds, or None.
        values_dir: CLI override for the values directory, or None.
        skip_verify: Whether service verification is skipped.

    Returns:
        Tuple of (StackConfig, ActionFlags).
    """
    cfg = StackConfig()

    overrides: dict = {}
    if timeout is not None:
        overrides["rollout_timeout"] = timeout
    if values_dir is not None:
        overrides["stack_values_dir"] = values_dir
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    flags = ActionFlags(
        prepull_images=not skip_prepull,
        auto_port_forward=auto_port_forward,
        prompt_port_forward=not auto_port_forward and not no_port_forward,
        verify_services=not skip_verify,
    )
    return cfg, flags


# ============================================================================
# Display
# ============================================================================

def display_config(flags: ActionFlags, cfg: StackConfig) -> None:
    """Print the resolved deployment configuration.

    Args:
        flags: Resolved action flags.
        cfg: Resolved stack configuration.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print(f"  values_dir      : {cfg.stack_values_dir}")
    console.print(f"  kube_context    : {cfg.kube_context or '(current)'}")
    console.print(f"  rollout_timeout : {cfg.rollout_timeout}s")
    console.print(f"  prepull_images  : {flags.prepull_images}")
    if flags.auto_port_forward:
        port_forward = "auto"
    elif flags.prompt_port_forward:
        port_forward = "prompt"
    else:
        port_forward = "off"
    console.print(f"  port_forward    : {port_forward}")
