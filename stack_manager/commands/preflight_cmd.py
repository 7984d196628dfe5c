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

"""Preflight command: run the environment checks without deploying."""

from __future__ import annotations

from pathlib import Path

import typer

from stack_manager.config import StackConfig
from stack_manager.preflight import run_preflight, stack_requirements


def preflight(
    values_dir: Path | None = typer.Option(
        None, "--values-dir", help="Directory with values files (overrides STACK_VALUES_DIR)"),
) -> None:
    """Check tools, versions, values files, host resources, and the cluster."""
    cfg = StackConfig()
    if values_dir is not None:
        cfg = cfg.model_copy(update={"stack_values_dir": values_dir})
    run_preflight(stack_requirements(cfg))
