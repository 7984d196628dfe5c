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

"""Deploy command: the full observability stack, end to end."""

from __future__ import annotations

from pathlib import Path

import typer

from stack_manager.config import display_config, resolve_config, validate_flags
from stack_manager.orchestrator import run_deploy


def deploy(
    auto_port_forward: bool = typer.Option(
        False, "--auto-port-forward", help="Start port-forwards without prompting"),
    no_port_forward: bool = typer.Option(
        False, "--no-port-forward", help="Never start port-forwards"),
    skip_prepull: bool = typer.Option(
        False, "--skip-prepull", help="Skip image pre-pulling"),
    skip_verify: bool = typer.Option(
        False, "--skip-verify", help="Skip service reachability checks"),
    timeout: int | None = typer.Option(
        None, "--timeout", min=1, help="Rollout timeout in seconds (overrides ROLLOUT_TIMEOUT)"),
    values_dir: Path | None = typer.Option(
        None, "--values-dir", help="Directory with values files (overrides STACK_VALUES_DIR)"),
) -> None:
    """Deploy OpenSearch, Jaeger, and the OTEL demo in dependency order."""
    validate_flags(auto_port_forward, no_port_forward, skip_prepull)
    cfg, flags = resolve_config(
        auto_port_forward, no_port_forward, skip_prepull, timeout, values_dir,
        skip_verify=skip_verify,
    )
    display_config(flags, cfg)
    run_deploy(flags, cfg)
