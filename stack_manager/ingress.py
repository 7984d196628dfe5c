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

"""GKE HTTPS ingress: NGINX controller, cert-manager, issuer, and TLS ingress."""

from __future__ import annotations

import json
import time
from collections.abc import Callable

import sh
from rich.panel import Panel

from stack_manager import console, logger
from stack_manager.config import IngressConfig
from stack_manager.constants import (
    INGRESS_CERTIFICATE,
    INGRESS_DONE_POD_PHASES,
    INGRESS_HOSTS,
    NS_CERT_MANAGER,
    NS_INGRESS_NGINX,
    REL_CLUSTER_ISSUER,
    REL_INGRESS_TLS,
    SVC_INGRESS_CONTROLLER,
)
from stack_manager.errors import MissingFile
from stack_manager.readiness import Clock, bounded_wait
from stack_manager.utils import kubectl_context_args, run_kubectl


def apply_manifest_source(source: str, context: str | None = None) -> None:
    """``kubectl apply -f`` a manifest URL or path."""
    sh.kubectl(*kubectl_context_args(context), "apply", "-f", source)


def pods_settled(namespace: str, context: str | None = None) -> bool:
    """Return True when *namespace* has pods and all are Running or Succeeded."""
    ok, stdout, _ = run_kubectl(["get", "pods", "-n", namespace, "-o", "json"], context=context)
    if not ok:
        return False
    try:
        pods = json.loads(stdout).get("items", [])
    except json.JSONDecodeError:
        return False
    if not pods:
        return False
    pending = [p["metadata"]["name"] for p in pods
               if p.get("status", {}).get("phase") not in INGRESS_DONE_POD_PHASES]
    if pending:
        logger.info("Still waiting for %d pods in %s", len(pending), namespace)
    return not pending


def external_ip(service: str, namespace: str, context: str | None = None) -> str | None:
    """Return the first LoadBalancer ingress IP of *service*, or None."""
    ok, stdout, _ = run_kubectl(
        ["get", "svc", service, "-n", namespace, "-o", "jsonpath={.status.loadBalancer.ingress[0].ip}"],
        context=context,
    )
    ip = stdout.strip() if ok else ""
    return ip if ip and ip != "null" else None


def run_ingress_setup(
    cfg: IngressConfig,
    context: str | None = None,
    *,
    clock: Clock = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Install HTTPS ingress on a GKE cluster and return its external IP.

    Args:
        cfg: Manifest URLs, manifest directory, and wait bounds.
        context: kubectl context, or None for the current one.
        clock: Monotonic clock returning seconds.
        sleep: Sleep function.

    Returns:
        The ingress controller's external IP.

    Raises:
        MissingFile: If the ClusterIssuer or TLS ingress file is absent.
        WaitTimeout: If pods or the external IP do not appear in time.
    """
    issuer_file = cfg.manifests_dir / REL_CLUSTER_ISSUER
    ingress_file = cfg.manifests_dir / REL_INGRESS_TLS
    for path in (issuer_file, ingress_file):
        if not path.is_file():
            raise MissingFile(path)

    steps = [
        ("Installing NGINX Ingress Controller", cfg.nginx_manifest, NS_INGRESS_NGINX),
        ("Installing cert-manager", cfg.cert_manager_manifest, NS_CERT_MANAGER),
    ]
    for title, manifest, namespace in steps:
        console.print(Panel.fit(title, style="bold blue"))
        apply_manifest_source(manifest, context)
        console.print(f"[yellow]\u2139\ufe0f  Waiting for pods in namespace '{namespace}' to be ready...[/yellow]")
        bounded_wait(
            lambda ns=namespace: pods_settled(ns, context),
            cfg.pod_timeout,
            description=f"pods in namespace {namespace}",
            poll_interval=cfg.poll_interval,
            clock=clock,
            sleep=sleep,
        )
        console.print(f"[green]\u2705 All pods in namespace '{namespace}' are ready![/green]")

    console.print(Panel.fit("Getting external IP for ingress controller", style="bold blue"))
    found: list[str] = []

    def _has_ip() -> bool:
        ip = external_ip(SVC_INGRESS_CONTROLLER, NS_INGRESS_NGINX, context)
        if ip:
            found.append(ip)
        return ip is not None

    bounded_wait(
        _has_ip,
        cfg.ip_timeout,
        description=f"external IP of {SVC_INGRESS_CONTROLLER}",
        poll_interval=cfg.poll_interval,
        clock=clock,
        sleep=sleep,
    )
    ip = found[-1]
    console.print(f"[green]\u2705 External IP assigned: {ip}[/green]")

    console.print(Panel.fit("Applying Let's Encrypt ClusterIssuer", style="bold blue"))
    apply_manifest_source(str(issuer_file), context)
    console.print("[green]\u2705 ClusterIssuer applied successfully[/green]")

    console.print(Panel.fit("Deploying services and ingress with TLS", style="bold blue"))
    apply_manifest_source(str(ingress_file), context)
    console.print("[green]\u2705 Services and ingress with TLS applied successfully[/green]")

    _print_dns_instructions(ip)
    return ip


def _print_dns_instructions(ip: str) -> None:
    console.print(Panel.fit(f"Deployment completed successfully!\nExternal IP: {ip}", style="bold green"))
    console.print(f"[yellow]\u26a0\ufe0f  IMPORTANT: Configure your DNS records to point to {ip}[/yellow]")
    for _, host in INGRESS_HOSTS:
        console.print(f"  {host} -> {ip}")
    console.print("Monitor certificate provisioning with:")
    console.print(f"  kubectl get certificate -n {NS_INGRESS_NGINX}")
    console.print(f"  kubectl describe certificate {INGRESS_CERTIFICATE} -n {NS_INGRESS_NGINX}")
    console.print("Once DNS is configured, you can access:")
    for label, host in INGRESS_HOSTS:
        console.print(f"  https://{host} ({label})")
