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

"""OKE provisioning command."""

from __future__ import annotations

from pathlib import Path

import typer

from stack_manager.config import OkeConfig
from stack_manager.provision import run_provisioning


def provision_oke(
    config_file: Path | None = typer.Option(
        None, "--config-file", help="KEY=value config record (overrides OKE_CONFIG_FILE)"),
    node_count: int | None = typer.Option(
        None, "--node-count", min=1, help="Worker nodes (overrides OKE_NODE_COUNT)"),
) -> None:
    """Create an OKE cluster and node pool, recording their ids in the config file."""
    oke_cfg = OkeConfig()
    overrides: dict = {}
    if config_file is not None:
        overrides["config_file"] = config_file
    if node_count is not None:
        overrides["node_count"] = node_count
    if overrides:
        oke_cfg = oke_cfg.model_copy(update=overrides)
    run_provisioning(oke_cfg.config_file, oke_cfg)
