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

"""
cli.py - Deploy and manage the OpenSearch + Jaeger + OTEL demo stack.

Subcommands:
    deploy         Preflight, pre-pull, install, wait, verify, report
    teardown       Stop port-forwards, uninstall releases, delete namespaces
    preflight      Run environment checks only
    prepull        Pre-pull container images into the local runtime
    provision-oke  Create an OKE cluster and node pool
    ingress        Install HTTPS ingress on a GKE cluster

Examples:
    # Full deploy, prompting for port-forwards at the end
    stack-manager deploy

    # Deploy without pre-pulling and start port-forwards automatically
    stack-manager deploy --skip-prepull --auto-port-forward

    # Remove everything
    stack-manager teardown

For detailed usage information, run: stack-manager --help
"""

from __future__ import annotations

import logging
import sys

import typer

from stack_manager import console
from stack_manager.commands import (
    deploy_cmd,
    ingress_cmd,
    preflight_cmd,
    prepull_cmd,
    provision_cmd,
    teardown_cmd,
)

app = typer.Typer(
    help="Deploy and manage the OpenSearch + Jaeger + OTEL demo stack.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.command("deploy")(deploy_cmd.deploy)
app.command("teardown")(teardown_cmd.teardown)
app.command("preflight")(preflight_cmd.preflight)
app.command("prepull")(prepull_cmd.prepull)
app.command("provision-oke")(provision_cmd.provision_oke)
app.command("ingress")(ingress_cmd.ingress)


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
