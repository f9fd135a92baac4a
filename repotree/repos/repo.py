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

"""Repository entities — scanning, checking out and moving a single checkout."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from repotree.repos.remote import AliasTable, Remote, checkout_path_for
from repotree.utils.commands import Command
from repotree.utils.config import Config
from repotree.utils.errors import ConflictError, RtreeError
from repotree.utils.interface import Interface

log = logging.getLogger(__name__)

# Name of the version-control metadata entry that marks a checkout. It is a
# directory normally and a file for submodules with an absorbed git dir.
GIT_MARKER = ".git"

ORIGIN = "origin"

_REMOTE_CONFIG_RX = re.compile(r"^remote\.([^=]+)\.url=(.+)$")


@dataclass
class Repo:
    """One tracked checkout: where it lives and which remotes it has."""
    checkout_path: str                                   # Relative to Config.root_path
    remotes: list[Remote] = field(default_factory=list)  # Canonical URLs, git's order

    def absolute_path(self, config: Config) -> Path:
        return config.absolute_path(self.checkout_path)

    def git_marker_path(self, config: Config) -> Path:
        return self.absolute_path(config) / GIT_MARKER

    def origin(self) -> Remote | None:
        for remote in self.remotes:
            if remote.name == ORIGIN:
                return remote
        return None

    def to_dict(self, aliases: AliasTable) -> dict[str, Any]:
        return {
            "path": self.checkout_path,
            "remotes": [r.encode(aliases) for r in self.remotes],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], aliases: AliasTable) -> Repo:
        return cls(
            checkout_path=d["path"],
            remotes=[Remote.decode(r, aliases) for r in d.get("remotes") or []],
        )

    # -- Construction --------------------------------------------------------

    @classmethod
    def from_absolute_path(cls, path: str | Path, config: Config, ui: Interface) -> Repo:
        """Build a Repo by asking git for the remotes of an existing checkout.

        The checkout path is taken relative to the root; for checkouts outside
        the root it starts with ``..``.
        """
        path = Path(path)
        try:
            checkout_path = os.path.relpath(path, config.root_path)
        except ValueError as e:
            raise RtreeError(f"cannot locate {path} relative to {config.root_path}: {e}") from e

        out = ui.capture_stdout(Command(["git", "config", "-l"], workdir=str(path)))
        remotes = []
        for line in out.splitlines():
            m = _REMOTE_CONFIG_RX.match(line.strip())
            if m:
                remotes.append(Remote(name=m.group(1), url=config.aliases.parse(m.group(2))))
        return cls(checkout_path=Path(checkout_path).as_posix(), remotes=remotes)

    @classmethod
    def from_remote_url(cls, url: str) -> Repo:
        """Build the Repo that a first checkout of ``url`` (canonical) would create.

        Does not touch the filesystem.
        """
        return cls(checkout_path=checkout_path_for(url), remotes=[Remote(name=ORIGIN, url=url)])

    # -- Mutation ------------------------------------------------------------

    def checkout(self, config: Config, ui: Interface) -> None:
        """Create the checkout on disk with all of this repo's remotes.

        Only an ``origin`` remote gets cloned; without one the repository is
        initialized empty. Further remotes are added and fetched in one go.
        """
        target = str(self.absolute_path(config))
        origin = self.origin()
        if origin is None:
            ui.run(Command(["git", "init", target]))
            ui.show_warning('will not checkout anything since there is no remote named "origin"')
        else:
            ui.run(Command(["git", "clone", origin.url, target]))
        log.info("Checked out %s", self.checkout_path)

        extra = [r for r in self.remotes if r.name != ORIGIN]
        for remote in extra:
            ui.run(Command(["git", "remote", "add", remote.name, remote.url], workdir=target))
        if extra:
            ui.run(Command(["git", "remote", "update"], workdir=target))

    def move(self, checkout_path: str, config: Config, make_symlink: bool = False) -> None:
        """Move the checkout to a new checkout path below the root.

        With ``make_symlink``, the old location becomes a symlink to the new
        one so that tools still using the old path keep working.
        """
        source = self.absolute_path(config)
        target = config.absolute_path(checkout_path)

        if os.path.lexists(target):
            raise ConflictError(f"cannot move {source} to {target}: target exists in filesystem")

        target.parent.mkdir(parents=True, exist_ok=True)
        os.rename(source, target)
        self.checkout_path = checkout_path
        log.info("Moved %s to %s", source, target)

        if make_symlink:
            os.symlink(target, source)

    def exec(self, cmdline: list[str], config: Config, ui: Interface) -> None:
        """Run an arbitrary command inside the checkout."""
        path = str(self.absolute_path(config))
        ui.show_progress(path)
        ui.run(Command(list(cmdline), workdir=path))


def iter_physical_repos(config: Config, ui: Interface) -> Iterator[Repo]:
    """Yield a Repo for every checkout found below the root, in path order.

    A directory containing a ``.git`` entry is a checkout; its subtree is not
    searched any further, so submodules and nested checkouts stay invisible.
    OSErrors from the walk propagate to the caller.
    """
    stack = [config.root_path]
    while stack:
        current = stack.pop()
        if (current / GIT_MARKER).exists():
            yield Repo.from_absolute_path(current, config, ui)
            continue

        with os.scandir(current) as it:
            subdirs = sorted(
                entry.name for entry in it
                if entry.is_dir(follow_symlinks=False)
            )
        # reversed, so that the stack pops them in sorted order
        for name in reversed(subdirs):
            stack.append(current / name)
