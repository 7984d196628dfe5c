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

"""Image pre-pulling: backend selection by capability probing and per-image pulls."""

from __future__ import annotations

from dataclasses import dataclass, field

import docker
import sh
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from stack_manager import console, logger
from stack_manager.errors import NoPullBackend
from stack_manager.utils import command_available


# ============================================================================
# Pull backends
# ============================================================================

class PullBackend:
    """A way of getting images onto the cluster's nodes."""

    name = ""

    def available(self) -> bool:
        raise NotImplementedError

    def pull(self, image: str) -> None:
        raise NotImplementedError

    def has_image(self, image: str) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        return None


class CliPullBackend(PullBackend):
    """Backend driven by a runtime CLI (``minikube image pull``, ``nerdctl pull``...).

    Args:
        name: Executable name, also used for the availability probe.
        pull_args: Arguments placed before the image reference when pulling.
        inspect_args: Arguments placed before the image reference to check
            presence, or None to search the output of *list_args* instead.
        list_args: Arguments that list local images.
    """

    def __init__(
        self,
        name: str,
        pull_args: tuple[str, ...],
        inspect_args: tuple[str, ...] | None = None,
        list_args: tuple[str, ...] = (),
    ) -> None:
        self.name = name
        self.pull_args = pull_args
        self.inspect_args = inspect_args
        self.list_args = list_args

    def available(self) -> bool:
        return command_available(self.name)

    def pull(self, image: str) -> None:
        sh.Command(self.name)(*self.pull_args, image)

    def has_image(self, image: str) -> bool:
        cmd = sh.Command(self.name)
        try:
            if self.inspect_args is not None:
                cmd(*self.inspect_args, image)
                return True
            return image in str(cmd(*self.list_args))
        except sh.ErrorReturnCode:
            return False


class DockerPullBackend(PullBackend):
    """Backend that pulls through the Docker Engine API."""

    name = "docker"

    def __init__(self) -> None:
        self._client: docker.DockerClient | None = None

    def available(self) -> bool:
        try:
            client = docker.from_env()
            client.ping()
        except docker.errors.DockerException as e:
            logger.info("Docker engine not usable: %s", e)
            return False
        self._client = client
        return True

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def pull(self, image: str) -> None:
        self.client.images.pull(image)

    def has_image(self, image: str) -> bool:
        try:
            self.client.images.get(image)
            return True
        except docker.errors.ImageNotFound:
            return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


def default_backends() -> list[PullBackend]:
    """Return the supported backends in priority order."""
    return [
        CliPullBackend("minikube", ("image", "pull"), list_args=("image", "ls")),
        DockerPullBackend(),
        CliPullBackend("nerdctl", ("pull",), inspect_args=("image", "inspect")),
        CliPullBackend("crictl", ("pull",), inspect_args=("inspecti",)),
    ]


def select_backend(backends: list[PullBackend] | None = None) -> PullBackend:
    """Return the first available backend, probing each once in order.

    Args:
        backends: Candidates in priority order, or None for the defaults.

    Returns:
        The selected backend.

    Raises:
        NoPullBackend: If no candidate is available.
    """
    candidates = default_backends() if backends is None else backends
    for backend in candidates:
        if backend.available():
            logger.info("Using '%s' to pre-pull images", backend.name)
            return backend
    raise NoPullBackend([backend.name for backend in candidates])


# ============================================================================
# Pre-pull
# ============================================================================

@dataclass
class PrepullReport:
    """Outcome of a pre-pull pass, in manifest order."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


def _pull_one(backend: PullBackend, image: str) -> str | None:
    """Pull a single image. Returns an error description, or None on success."""
    try:
        backend.pull(image)
        return None
    except sh.ErrorReturnCode as e:
        return f"exit code {e.exit_code}"
    except docker.errors.ImageNotFound:
        return "Image not found"
    except docker.errors.APIError as e:
        return f"Docker API error: {e}"
    except Exception as e:
        return str(e)


def prepull_images(images: list[str], backend: PullBackend) -> PrepullReport:
    """Pull every image in order, recording failures instead of stopping.

    Failed images are left for the cluster to pull on demand.

    Args:
        images: Ordered image references to pull.
        backend: Selected pull backend.

    Returns:
        Report of succeeded and failed image references.
    """
    report = PrepullReport()
    if not images:
        return report

    console.print(Panel.fit("Pre-pulling container images", style="bold blue"))
    total = len(images)
    console.print(f"[yellow]Found {total} images to pre-pull (using {backend.name})...[/yellow]")

    with Progress(
        SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
        BarColumn(), TaskProgressColumn(), console=console,
    ) as progress:
        task = progress.add_task("[cyan]Pulling images...", total=total)
        for idx, image in enumerate(images, start=1):
            error = _pull_one(backend, image)
            progress.advance(task)
            if error is None:
                console.print(f"[green]\u2713 [{idx}/{total}] {image}[/green]")
                report.succeeded.append(image)
            else:
                console.print(f"[red]\u2717 [{idx}/{total}] {image} - {error}[/red]")
                report.failed.append(image)

    if report.failed:
        console.print(f"[yellow]\u26a0\ufe0f  {len(report.failed)} images failed to pre-pull; continuing[/yellow]")
        console.print("[yellow]   Cluster will pull these images on-demand (may be slower)[/yellow]")
        logger.info("Failed images: %s", " ".join(report.failed))
    else:
        console.print(f"[green]\u2705 Successfully pre-pulled all {total} images[/green]")
    return report


def verify_local_images(images: list[str], backend: PullBackend) -> list[str]:
    """Check that each image is present locally after a pull.

    Args:
        images: Image references to look for.
        backend: Backend whose local image store is inspected.

    Returns:
        The images that were not found.
    """
    console.print("[yellow]\u2139\ufe0f  Verifying images are now available locally...[/yellow]")
    missing: list[str] = []
    for image in images:
        if backend.has_image(image):
            console.print(f"[green]\u2713 {image} is available locally[/green]")
        else:
            console.print(f"[yellow]\u26a0\ufe0f  {image} not found locally[/yellow]")
            missing.append(image)
    return missing
