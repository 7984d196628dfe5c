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

"""Error hierarchy for the deployment pipelines.

Everything derives from ``RuntimeError`` so callers that only care about
"the run failed" can keep catching that, the way the CLI entry point does.
"""

from __future__ import annotations


class StackError(RuntimeError):
    """Base class for fatal pipeline errors."""


# ============================================================================
# Preflight
# ============================================================================

class PreflightError(StackError):
    """Raised when the environment cannot support a deployment."""


class ToolMissing(PreflightError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Required command '{name}' not found. Please install it first.")
        self.name = name


class VersionTooLow(PreflightError):
    def __init__(self, tool: str, have: str, want: str) -> None:
        super().__init__(f"{tool} >= {want} required (found {have})")
        self.tool = tool
        self.have = have
        self.want = want


class ClusterUnreachable(PreflightError):
    def __init__(self, detail: str = "") -> None:
        message = (
            "Cannot reach a Kubernetes cluster with kubectl. "
            "Start your cluster (e.g., minikube) or configure kubeconfig, then retry."
        )
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class MissingFile(PreflightError):
    def __init__(self, path) -> None:
        super().__init__(f"Missing required file: {path}")
        self.path = path


# ============================================================================
# Pipeline stages
# ============================================================================

class NoPullBackend(StackError):
    def __init__(self, candidates: list[str]) -> None:
        super().__init__(
            f"No supported container runtime found ({'/'.join(candidates)}). Cannot pre-pull images."
        )
        self.candidates = candidates


class InstallFailed(StackError):
    def __init__(self, name: str, detail: str) -> None:
        super().__init__(f"Helm install of release '{name}' failed: {detail}")
        self.name = name
        self.detail = detail


class DependencyError(StackError):
    """Raised when release dependencies are unknown or cyclic."""


class WaitTimeout(StackError):
    """Raised when a bounded wait reaches its deadline."""


class ReadinessTimeout(WaitTimeout):
    def __init__(self, kind: str, namespace: str, name: str, timeout: float) -> None:
        super().__init__(
            f"{kind} {name} failed to become ready in {namespace} within {timeout:g}s"
        )
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.timeout = timeout


class WaitCancelled(StackError):
    """Raised when a bounded wait is cancelled before it resolves."""


class ConfigError(StackError):
    """Raised when the config record is missing required keys."""


class ProvisionError(StackError):
    """Raised when the cloud provisioning CLI fails."""
