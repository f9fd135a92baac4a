# rtree — Personal development-workspace manager.
#
# Copyright (c) 2026 The rtree authors
#
# Licensed under the MIT License. You may obtain a copy
# of the license at:
#
#     https://opensource.org/licenses/MIT
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND.

"""Persistent index of tracked repositories, stored in ~/.rtree/index.yaml.

The file looks like this::

    repos:
    - path: github.com/foo/bar
      remotes:
      - name: origin
        url: https://github.com/foo/bar

Entries are always written sorted by absolute path, so that the file diffs
cleanly between runs.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from repotree.repos.repo import Repo
from repotree.utils.config import Config
from repotree.utils.errors import RtreeError

log = logging.getLogger(__name__)


class IndexCorrupted(RtreeError):
    """The index file failed validation; ``errors`` lists every problem found."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("\n".join(errors))


# ---------------------------------------------------------------------------
# File schema
# ---------------------------------------------------------------------------

class RemoteEntry(BaseModel):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)


class RepoEntry(BaseModel):
    path: str = Field(min_length=1)
    remotes: list[RemoteEntry] = Field(min_length=1)


class IndexFile(BaseModel):
    repos: Optional[list[RepoEntry]] = None


# pydantic error types that mean "absent or empty" rather than "wrong type"
_MISSING_ERROR_TYPES = {"missing", "string_too_short", "too_short"}


def _format_loc(loc: tuple) -> str:
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


def _describe(error: dict, index_path: Path) -> str:
    key = _format_loc(error["loc"])
    if error["type"] in _MISSING_ERROR_TYPES or error.get("input", ...) is None:
        return f'read {index_path}: missing "{key}"'
    return f'read {index_path}: invalid "{key}": {error["msg"]}'


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------

@dataclass
class Index:
    """In-memory index; owned by exactly one operation at a time."""
    repos: list[Repo] = field(default_factory=list)

    def sort(self, config: Config) -> None:
        self.repos.sort(key=lambda r: str(r.absolute_path(config)))

    def find_by_checkout_path(self, checkout_path: str) -> Repo | None:
        for repo in self.repos:
            if repo.checkout_path == checkout_path:
                return repo
        return None

    def remove(self, repo: Repo) -> None:
        self.repos = [r for r in self.repos if r.checkout_path != repo.checkout_path]

    def to_dict(self, config: Config) -> dict:
        return {"repos": [r.to_dict(config.aliases) for r in self.repos]}


def load_index(config: Config) -> Index:
    """Read the index file; a missing file is an empty index.

    Raises IndexCorrupted listing every structural problem in the file.
    """
    path = config.index_path
    try:
        text = path.read_text()
    except FileNotFoundError:
        return Index()

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise IndexCorrupted([f"read {path}: {e}"]) from e
    if data is None:
        data = {}

    try:
        parsed = IndexFile.model_validate(data)
    except ValidationError as e:
        raise IndexCorrupted([_describe(err, path) for err in e.errors()]) from e

    index = Index(repos=[
        Repo.from_dict(entry.model_dump(), config.aliases)
        for entry in parsed.repos or []
    ])
    index.sort(config)
    return index


def find_duplicates(index: Index) -> list[Repo]:
    """Return the first entry of every checkout path listed more than once."""
    seen: set[str] = set()
    reported: set[str] = set()
    duplicates = []
    for repo in index.repos:
        if repo.checkout_path in seen and repo.checkout_path not in reported:
            duplicates.append(repo)
            reported.add(repo.checkout_path)
        seen.add(repo.checkout_path)
    return duplicates


def save_index(index: Index, config: Config) -> list[Repo]:
    """Sort and atomically write the index file.

    Returns duplicated entries (see ``find_duplicates``); they are written
    as-is and left for the caller to warn about.
    """
    index.sort(config)
    path = config.index_path
    path.parent.mkdir(parents=True, exist_ok=True)

    # Atomic write: write to temp file then rename
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with open(fd, "w") as f:
            yaml.safe_dump(index.to_dict(config), f,
                           default_flow_style=False, sort_keys=False)
        Path(tmp).replace(path)
    except Exception:
        Path(tmp).unlink(missing_ok=True)
        raise
    log.info("Wrote index with %d repos to %s", len(index.repos), path)

    duplicates = find_duplicates(index)
    for repo in duplicates:
        log.warning("Duplicate index entry for %s", repo.checkout_path)
    return duplicates
