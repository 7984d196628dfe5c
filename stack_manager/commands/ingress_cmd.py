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

"""GKE HTTPS ingress command."""

from __future__ import annotations

from pathlib import Path

import typer

from stack_manager.config import IngressConfig, StackConfig
from stack_manager.ingress import run_ingress_setup


def ingress(
    manifests_dir: Path | None = typer.Option(
        None, "--manifests-dir", help="Directory with the ClusterIssuer and ingress files"),
    timeout: int | None = typer.Option(
        None, "--timeout", min=1, help="Seconds to wait for pods and the external IP"),
) -> None:
    """Install NGINX ingress and cert-manager, then apply TLS ingress resources."""
    cfg = IngressConfig()
    overrides: dict = {}
    if manifests_dir is not None:
        overrides["manifests_dir"] = manifests_dir
    if timeout is not None:
        overrides["pod_timeout"] = timeout
        overrides["ip_timeout"] = timeout
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    run_ingress_setup(cfg, StackConfig().kube_context)
