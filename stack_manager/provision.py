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

"""OKE cluster provisioning driven by a flat ``KEY=value`` config record."""

from __future__ import annotations

import json
from pathlib import Path

import sh
from rich.panel import Panel

from stack_manager import console, logger
from stack_manager.config import OkeConfig
from stack_manager.constants import (
    KEY_CLUSTER_ID,
    KEY_NODE_POOL_ID,
    OKE_ACTIVE_STATE,
    OKE_CNI_TYPE,
    OKE_REQUIRED_KEYS,
)
from stack_manager.envfile import load_record, save_record
from stack_manager.errors import ConfigError, ProvisionError
from stack_manager.utils import error_detail


class OciCli:
    """Thin wrapper over ``oci ce`` that returns resource OCIDs."""

    def _run(self, *args: str) -> str:
        try:
            output = sh.oci(
                "ce", *args,
                "--wait-for-state", OKE_ACTIVE_STATE,
                "--query", "data.id", "--raw-output",
            )
        except sh.ErrorReturnCode as e:
            raise ProvisionError(f"oci ce {args[0]} {args[1]} failed: {error_detail(e)[:500]}") from e
        ocid = str(output).strip()
        if not ocid:
            raise ProvisionError(f"oci ce {args[0]} {args[1]} returned no id")
        return ocid

    def create_cluster(
        self,
        *,
        compartment_id: str,
        name: str,
        vcn_id: str,
        lb_subnet_id: str,
        kubernetes_version: str,
    ) -> str:
        return self._run(
            "cluster", "create",
            "--compartment-id", compartment_id,
            "--name", name,
            "--vcn-id", vcn_id,
            "--service-lb-subnet-ids", json.dumps([lb_subnet_id]),
            "--kubernetes-version", kubernetes_version,
            "--cluster-pod-network-options", json.dumps({"cniType": OKE_CNI_TYPE}),
        )

    def create_node_pool(
        self,
        *,
        compartment_id: str,
        cluster_id: str,
        name: str,
        kubernetes_version: str,
        node_shape: str,
        ocpus: int,
        memory_gb: int,
        subnet_id: str,
        size: int,
    ) -> str:
        return self._run(
            "node-pool", "create",
            "--compartment-id", compartment_id,
            "--cluster-id", cluster_id,
            "--name", name,
            "--kubernetes-version", kubernetes_version,
            "--node-shape", node_shape,
            "--node-shape-config", json.dumps({"ocpus": ocpus, "memoryInGBs": memory_gb}),
            "--subnet-ids", json.dumps([subnet_id]),
            "--size", str(size),
        )


def provision_oke_cluster(record: dict[str, str], oke_cfg: OkeConfig, oci: OciCli) -> dict[str, str]:
    """Create the OKE cluster and node pool, filling their ids into *record*.

    Ids already present in *record* are reused, so a run that failed after
    the cluster was created resumes at the node pool.

    Args:
        record: Config record, updated in place.
        oke_cfg: Cluster shape and naming.
        oci: Provisioning API.

    Returns:
        The same *record*, with ``CLUSTER_ID`` and ``NODE_POOL_ID`` set.

    Raises:
        ConfigError: If a required networking key is missing.
        ProvisionError: If the provisioning API fails.
    """
    missing = [key for key in OKE_REQUIRED_KEYS if not record.get(key)]
    if missing:
        raise ConfigError(f"Config record is missing required keys: {', '.join(missing)}")

    console.print(Panel.fit("Provisioning OKE cluster", style="bold blue"))
    console.print(f"  Using existing VCN: {record['OCI_VCN_OCID']}")
    console.print(f"  Using existing LB subnet: {record['OCI_PUBLIC_LB_SUBNET_OCID']}")
    console.print(f"  Using existing worker subnet: {record['OCI_WORKER_SUBNET_OCID']}")

    if record.get(KEY_CLUSTER_ID):
        console.print(f"[yellow]   Reusing existing cluster {record[KEY_CLUSTER_ID]}[/yellow]")
    else:
        console.print(f"[yellow]\u2139\ufe0f  Creating cluster '{oke_cfg.cluster_name}' (waits for ACTIVE)...[/yellow]")
        record[KEY_CLUSTER_ID] = oci.create_cluster(
            compartment_id=record["OCI_COMPARTMENT_ID"],
            name=oke_cfg.cluster_name,
            vcn_id=record["OCI_VCN_OCID"],
            lb_subnet_id=record["OCI_PUBLIC_LB_SUBNET_OCID"],
            kubernetes_version=oke_cfg.kubernetes_version,
        )
        console.print(f"[green]\u2705 OKE cluster created: {record[KEY_CLUSTER_ID]}[/green]")

    if record.get(KEY_NODE_POOL_ID):
        console.print(f"[yellow]   Reusing existing node pool {record[KEY_NODE_POOL_ID]}[/yellow]")
    else:
        console.print(f"[yellow]\u2139\ufe0f  Creating node pool '{oke_cfg.node_pool_name}' (waits for ACTIVE)...[/yellow]")
        record[KEY_NODE_POOL_ID] = oci.create_node_pool(
            compartment_id=record["OCI_COMPARTMENT_ID"],
            cluster_id=record[KEY_CLUSTER_ID],
            name=oke_cfg.node_pool_name,
            kubernetes_version=oke_cfg.kubernetes_version,
            node_shape=oke_cfg.node_shape,
            ocpus=oke_cfg.ocpus,
            memory_gb=oke_cfg.memory_gb,
            subnet_id=record["OCI_WORKER_SUBNET_OCID"],
            size=oke_cfg.node_count,
        )
        console.print(f"[green]\u2705 Node pool created: {record[KEY_NODE_POOL_ID]}[/green]")
    return record


def run_provisioning(config_file: Path, oke_cfg: OkeConfig, oci: OciCli | None = None) -> dict[str, str]:
    """Load the config record, provision, and save the record back.

    The record is saved once, at the end, also when provisioning fails part
    way, so an id created before the failure is not lost.

    Args:
        config_file: Path of the ``KEY=value`` config record.
        oke_cfg: Cluster shape and naming.
        oci: Provisioning API, or None for the ``oci`` CLI.

    Returns:
        The saved record.

    Raises:
        ConfigError: If the config file is missing or incomplete.
        ProvisionError: If the provisioning API fails.
    """
    if not config_file.is_file():
        raise ConfigError(f"Config file {config_file} not found")
    loaded = load_record(config_file)
    record = dict(loaded)
    try:
        provision_oke_cluster(record, oke_cfg, oci or OciCli())
    finally:
        if record != loaded:
            save_record(config_file, record)
            logger.info("Saved cluster info to %s", config_file)
    console.print(f"[green]\u2705 Cluster info saved to {config_file}[/green]")
    return record
