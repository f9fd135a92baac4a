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

"""Index lifecycle — rebuild from disk, resolve remote URLs, import, drop."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path

from repotree.index.state import Index, save_index
from repotree.repos.remote import Remote, basename, checkout_path_for, same_remote, strip_vcs_suffix
from repotree.repos.repo import ORIGIN, Repo, iter_physical_repos
from repotree.utils.commands import Command
from repotree.utils.config import Config
from repotree.utils.errors import ConflictError, RtreeError
from repotree.utils.interface import Choice, Interface

log = logging.getLogger(__name__)

# Upper bound for the fork-candidate menu
MAX_FORK_CANDIDATES = 10

# Checkout states found by rebuild()
_STATE_OK = "ok"
_STATE_DELETED = "deleted"

# Menu value of the "clone fresh" choice; checkout paths are never empty
_CLONE_FRESH = ""


class IndexManager:
    """Applies rtree's operations to one in-memory Index.

    The index is loaded by the caller, mutated here, and written back with
    ``write()`` at most once per operation.
    """

    def __init__(self, index: Index, config: Config, ui: Interface):
        self.index = index
        self.config = config
        self.ui = ui

    def abs_path(self, repo: Repo) -> str:
        return str(repo.absolute_path(self.config))

    def write(self) -> None:
        """Persist the index and warn about duplicated checkout paths."""
        for repo in save_index(self.index, self.config):
            self.ui.show_warning(f"repo {self.abs_path(repo)} appears multiple times in the index file!")

    # -- Rebuild -------------------------------------------------------------

    def rebuild(self) -> None:
        """Reconcile the index with the checkouts that actually exist.

        Entries whose checkout has vanished are restored, deleted or kept
        according to the user's choice. Then every checkout below the root is
        scanned: tracked ones get their remote list refreshed from git,
        untracked ones are added.
        """
        kept: list[Repo] = []
        for repo in self.index.repos:
            if self._checkout_state(repo) == _STATE_OK:
                kept.append(repo)
                continue

            selection = self._ask_about_deleted(repo)
            if selection == "r":
                repo.checkout(self.config, self.ui)
                kept.append(repo)
            elif selection == "d":
                log.info("Removed %s from index (checkout deleted)", repo.checkout_path)
            else:
                kept.append(repo)

        # duplicated checkout paths are all refreshed
        existing: dict[str, list[Repo]] = {}
        for repo in kept:
            existing.setdefault(repo.checkout_path, []).append(repo)

        for found in iter_physical_repos(self.config, self.ui):
            tracked = existing.get(found.checkout_path)
            if tracked:
                if not found.remotes:
                    self.ui.show_warning(
                        f"repository {self.abs_path(found)} has no remotes; keeping the indexed ones"
                    )
                    continue
                for repo in tracked:
                    repo.remotes = list(found.remotes)
                continue

            if not found.remotes:
                self.ui.show_warning(f"repository {self.abs_path(found)} has no remotes; skipping")
                continue
            log.info("Added %s to index", found.checkout_path)
            kept.append(found)
            existing[found.checkout_path] = [found]

        self.index.repos = kept

    def _checkout_state(self, repo: Repo) -> str:
        marker = repo.git_marker_path(self.config)
        try:
            st = os.stat(marker)
        except FileNotFoundError:
            return _STATE_DELETED
        # .git is a file instead of a directory in submodules with an absorbed git dir
        if stat.S_ISDIR(st.st_mode) or stat.S_ISREG(st.st_mode):
            return _STATE_OK
        raise ConflictError(f"expected repository at {marker}, but is not a directory or file")

    def _ask_about_deleted(self, repo: Repo) -> str:
        origin = repo.origin()
        remotes = [origin] if origin is not None else repo.remotes
        urls = [self.config.aliases.compact(r.url) for r in remotes]

        path = self.abs_path(repo)
        if not urls:
            return self.ui.query(
                f"repository {path} has been deleted; no remote to restore from",
                [
                    Choice("delete from index", "d", shortcut="d"),
                    Choice("skip", "s", shortcut="s"),
                ],
            )
        return self.ui.query(
            f"repository {path} has been deleted",
            [
                Choice("restore from " + " and ".join(urls), "r", shortcut="r"),
                Choice("delete from index", "d", shortcut="d"),
                Choice("skip", "s", shortcut="s"),
            ],
        )

    # -- Find ----------------------------------------------------------------

    def find_repo(self, raw_url: str, allow_clone: bool) -> Repo:
        """Locate the repo for a remote URL, cloning it if needed and allowed.

        An exact remote match always wins. Otherwise, repos with a remote of
        the same basename are offered as fork candidates, next to cloning the
        URL as a new repo. The index is written whenever it changes.
        """
        # the resulting path goes to stdout, so nothing else may
        self.ui.stdout_protected = True

        url = self.config.aliases.parse(raw_url)
        wanted = strip_vcs_suffix(basename(url))

        candidates: list[Repo] = []
        for repo in self.index.repos:
            is_candidate = False
            for remote in repo.remotes:
                if same_remote(url, remote.url):
                    return repo
                if strip_vcs_suffix(basename(remote.url)) == wanted:
                    is_candidate = True
            if is_candidate:
                candidates.append(repo)

        # the index may be stale: refuse to clone over an untracked checkout
        try:
            new_repo = Repo.from_remote_url(url)
        except ValueError as e:
            raise RtreeError(str(e)) from e
        try:
            os.stat(new_repo.absolute_path(self.config))
        except FileNotFoundError:
            pass
        else:
            raise ConflictError(
                f"{self.abs_path(new_repo)} already exists "
                "(if there is a repo there, try `rtree index`)"
            )

        if not allow_clone:
            raise ConflictError("no such remote in index (you can validate the index with `rtree index`)")

        if not candidates:
            return self._clone_new(new_repo)

        choices = [
            Choice(f"add as remote to {self.abs_path(repo)}", repo.checkout_path)
            for repo in candidates[:MAX_FORK_CANDIDATES]
        ]
        choices.append(Choice(f"clone to {self.abs_path(new_repo)}", _CLONE_FRESH, shortcut="n"))
        selection = self.ui.query("Found possible fork candidates. What to do?", choices)

        if selection == _CLONE_FRESH:
            return self._clone_new(new_repo)

        target = self.index.find_by_checkout_path(selection)
        self._add_fork_remote(target, url)
        return target

    def _clone_new(self, repo: Repo) -> Repo:
        repo.checkout(self.config, self.ui)
        self.index.repos.append(repo)
        self.write()
        return repo

    def _add_fork_remote(self, target: Repo, url: str) -> None:
        lines = ["Existing remotes:"]
        for remote in target.remotes:
            lines.append(f"\t({remote.name}) {self.config.aliases.compact(remote.url)}")
        lines.append(f"Enter remote name for {url}:")
        prompt = "\n".join(lines)

        name = ""
        while not name:
            name = self.ui.read_line(prompt)
        if any(r.name == name for r in target.remotes):
            raise ConflictError(f"{self.abs_path(target)} already has a remote named {name}")

        path = self.abs_path(target)
        self.ui.run(_git("remote", "add", name, url, workdir=path))
        self.ui.run(_git("remote", "update", name, workdir=path))

        target.remotes.append(Remote(name=name, url=url))
        log.info("Added remote %s (%s) to %s", name, url, target.checkout_path)
        self.write()

    # -- Import --------------------------------------------------------------

    def import_repo(self, dir_path: str | Path) -> Repo:
        """Move a checkout from outside the root into the tree and track it.

        A symlink is left at the old location. The caller writes the index.
        """
        path = Path(os.path.abspath(dir_path))
        repo = Repo.from_absolute_path(path, self.config, self.ui)
        if not repo.checkout_path.startswith("../"):
            raise ConflictError(f"{path} is already inside {self.config.root_path}")

        checkout_path = ""
        choices = []
        for remote in repo.remotes:
            try:
                this_path = checkout_path_for(remote.url)
            except ValueError as e:
                raise RtreeError(str(e)) from e
            if remote.name == ORIGIN:
                # prefer "origin" over everything else
                checkout_path = this_path
                break
            choices.append(Choice(this_path, this_path))

        if not checkout_path:
            if not choices:
                raise ConflictError("repo has no remotes")
            checkout_path = self.ui.query(
                f"Repo has multiple remotes. Where to put below {self.config.root_path}?",
                choices,
            )

        other = self.index.find_by_checkout_path(checkout_path)
        if other is not None:
            raise ConflictError(f"will not overwrite existing checkout at {self.abs_path(other)}")

        repo.move(checkout_path, self.config, make_symlink=True)
        self.index.repos.append(repo)
        log.info("Imported %s as %s", path, checkout_path)
        return repo

    # -- Drop ----------------------------------------------------------------

    def drop_repo(self, repo: Repo) -> bool:
        """Delete a checkout from disk and from the index, after confirmation.

        Returns False if the user declined.
        """
        repo.exec(["git", "status"], self.config, self.ui)
        if not self.ui.confirm(">> Drop this repo?"):
            return False

        shutil.rmtree(repo.absolute_path(self.config))
        self.index.remove(repo)
        log.info("Dropped %s", repo.checkout_path)
        self.write()
        return True


def _git(*args: str, workdir: str | None = None) -> Command:
    """Build a git command line."""
    return Command(["git", *args], workdir=workdir)
