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

"""Pre-pull command."""

from __future__ import annotations

import typer

from stack_manager.constants import dep_value
from stack_manager.orchestrator import run_prepull


def prepull(
    image: list[str] | None = typer.Option(
        None, "--image", help="Image to pull (repeatable; defaults to the full stack)"),
    smoke: bool = typer.Option(
        False, "--smoke", help="Pull the small smoke-test image set (busybox, nginx, redis)"),
    verify: bool = typer.Option(
        False, "--verify", help="Check pulled images are present locally"),
) -> None:
    """Pre-pull container images into the local runtime."""
    images = list(image or [])
    if smoke:
        images = [*dep_value("test_images", "smoke", default=[]), *images]
    run_prepull(images or None, verify=verify)
