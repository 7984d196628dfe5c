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

"""Flat ``KEY=value`` config record, loaded once and saved once."""

from __future__ import annotations

from pathlib import Path

from dotenv import dotenv_values


def load_record(path: Path) -> dict[str, str]:
    """Read a ``KEY=value`` file into an insertion-ordered dict.

    Blank lines and ``#`` comments are ignored. A repeated key keeps its
    first position and its last value.

    Args:
        path: Config file to read.

    Returns:
        Mapping of key to value; empty if the file does not exist.
    """
    if not path.exists():
        return {}
    return {key: value for key, value in dotenv_values(path, interpolate=False).items() if value is not None}


def _format_value(value: str) -> str:
    """Return *value* as written to the file, double-quoted only when needed."""
    needs_quotes = (
        value != value.strip()
        or value[:1] in ("'", "\"")
        or "#" in value
        or "\n" in value
        or "\r" in value
    )
    if not needs_quotes:
        return value
    escaped = (
        value.replace("\\", "\\\\")
        .replace("\"", "\\\"")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


def save_record(path: Path, record: dict[str, str]) -> None:
    """Rewrite *path* wholesale with one ``KEY=value`` line per entry.

    Values are written unquoted unless they would not read back that way
    (surrounding whitespace, a leading quote, ``#``, or a line break).

    Args:
        path: Config file to write.
        record: Mapping to persist, written in iteration order.
    """
    lines = [f"{key}={_format_value(value)}\n" for key, value in record.items()]
    path.write_text("".join(lines))
