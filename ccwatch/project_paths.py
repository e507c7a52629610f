"""Encode/decode Claude project directory names.

Claude stores each project's sessions under ``~/.claude/projects/<name>``
where ``<name>`` is the project root with every path separator replaced by
``-`` (so ``/Users/a/my-project`` becomes ``-Users-a-my-project``). The
mapping is lossy: a ``-`` may be a separator or a literal hyphen, so decoding
probes the filesystem for the interpretation that actually exists.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Callable

_SEPARATOR_PATTERN = re.compile(r"[\\/]")


@dataclass(frozen=True)
class DecodedProjectPath:
    path: str
    verified: bool  # False when no candidate existed and path is the naive decoding


def encode_project_path(path: str) -> str:
    return _SEPARATOR_PATTERN.sub("-", path)


def _naive_decode(dir_name: str) -> str:
    if dir_name.startswith("-"):
        return "/" + dir_name[1:].replace("-", "/")
    return dir_name.replace("-", "/")


def decode_project_path(
    dir_name: str,
    exists: Callable[[str], bool] = os.path.exists,
) -> DecodedProjectPath:
    """Find the real path behind an encoded project directory name.

    Trailing hyphen-separated parts are re-joined with literal hyphens, from
    zero parts up to all but the first, and the first candidate that exists
    wins. When nothing matches (project moved or deleted) the naive
    all-separators decoding is returned unverified.
    """
    if not dir_name.startswith("-"):
        return DecodedProjectPath(_naive_decode(dir_name), verified=False)

    parts = dir_name[1:].split("-")
    for combine_count in range(len(parts)):
        split_point = len(parts) - combine_count
        candidate = "/" + "/".join(parts[:split_point])
        combined = "-".join(parts[split_point:])
        if combined:
            candidate += "-" + combined
        if exists(candidate):
            return DecodedProjectPath(candidate, verified=True)

    return DecodedProjectPath(_naive_decode(dir_name), verified=False)


def decode_project_dir(dir_name: str, exists: Callable[[str], bool] = os.path.exists) -> str:
    return decode_project_path(dir_name, exists).path


def display_name(path: str) -> str:
    """Last non-empty path segment, or the path itself."""
    segments = [segment for segment in path.split("/") if segment]
    return segments[-1] if segments else path
