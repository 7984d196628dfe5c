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

"""Utility functions for kubectl, helm context flags, versions, and command checks."""

from __future__ import annotations

import re
import subprocess

import sh

from stack_manager.constants import VERSION_COMMAND_TIMEOUT_SECONDS
from stack_manager.errors import ToolMissing

_SEMVER_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        ToolMissing: If the command is not found.
    """
    try:
        sh.which(cmd)
    except (sh.ErrorReturnCode, sh.CommandNotFound) as err:
        raise ToolMissing(cmd) from err


def command_available(cmd: str) -> bool:
    """Return True if *cmd* resolves on the system PATH."""
    try:
        require_command(cmd)
    except ToolMissing:
        return False
    return True


def parse_version(text: str) -> tuple[int, int, int] | None:
    """Extract the first ``X.Y.Z`` version from the first line of *text*.

    Args:
        text: Self-reported version output of a CLI tool.

    Returns:
        Tuple of (major, minor, patch), or None if no version is present.
    """
    lines = text.strip().splitlines()
    if not lines:
        return None
    m = _SEMVER_RE.search(lines[0])
    if not m:
        return None
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def format_version(version: tuple[int, int, int]) -> str:
    return ".".join(str(part) for part in version)


def tool_version_output(tool: str) -> str:
    """Run ``<tool> version`` and return its stdout, or "" on any failure.

    Args:
        tool: Name of the CLI tool.

    Returns:
        Captured standard output of the version command.
    """
    try:
        result = subprocess.run(
            [tool, "version"],
            capture_output=True,
            text=True,
            timeout=VERSION_COMMAND_TIMEOUT_SECONDS,
        )
    except (subprocess.SubprocessError, OSError):
        return ""
    return result.stdout if result.returncode == 0 else ""


def kubectl_context_args(context: str | None) -> list[str]:
    return ["--context", context] if context else []


def helm_context_args(context: str | None) -> list[str]:
    return ["--kube-context", context] if context else []


def run_kubectl(args: list[str], timeout: int = 30, context: str | None = None) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because status parsing needs stdout and
    stderr kept apart (JSON on stdout, "NotFound" on stderr).

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.
        context: kubeconfig context to target, or None for the current one.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            ["kubectl", *kubectl_context_args(context), *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def error_detail(err: sh.ErrorReturnCode) -> str:
    """Return the decoded stderr of a failed sh command, falling back to stdout."""
    stderr = err.stderr.decode(errors="replace").strip() if err.stderr else ""
    if stderr:
        return stderr
    return err.stdout.decode(errors="replace").strip() if err.stdout else f"exit code {err.exit_code}"
