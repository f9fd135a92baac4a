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

"""Remote URLs and the alias algebra of git's ``url.<base>.insteadOf`` directive.

A remote URL has two projections:

* **canonical** — every alias expanded; rtree uses this form everywhere except
  on screen.
* **compact** — the longest matching alias substituted back in; used for
  display only.

With ``[url "https://github.com/"] insteadOf = gh:`` in ``~/.gitconfig``,
``gh:foo/bar`` and ``https://github.com/foo/bar`` are the same remote.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import urlsplit

# Index files store remote URLs in canonical form. Flipping this changes every
# index file the next time it is written, so it must stay fixed.
PERSIST_COMPACT_URLS = False

_ALIAS_CONFIG_RX = re.compile(r"^url\.([^=]+)\.insteadof=(.+)$")

# scp-like syntax for git remotes ("[user@]example.org:path/to/repo"), see the
# "GIT URLS" section of git-clone(1)
_SCP_SYNTAX_RX = re.compile(r"^(?:[^/@:]+@)?([^/:]+\.[^/:]+):(.+)$")

_VCS_SUFFIX = ".git"


@dataclass(frozen=True)
class RemoteAlias:
    """A rewrite rule: URLs starting with ``alias`` mean ``replacement`` instead."""
    alias: str
    replacement: str


def parse_alias_config(output: str) -> list[RemoteAlias]:
    """Extract alias rules from the output of ``git config --global -l``."""
    aliases = []
    for line in output.splitlines():
        m = _ALIAS_CONFIG_RX.match(line.strip())
        if m:
            aliases.append(RemoteAlias(alias=m.group(2), replacement=m.group(1)))
    return aliases


class AliasTable:
    """The set of alias rules in effect for one process run."""

    def __init__(self, aliases: Iterable[RemoteAlias] = ()):
        self.aliases: list[RemoteAlias] = list(aliases)

    def __len__(self) -> int:
        return len(self.aliases)

    def parse(self, url: str) -> str:
        """Return the canonical form of ``url``.

        The rule with the longest matching ``alias`` wins, and it is applied
        exactly once: ``gh:gh:foo`` becomes ``https://github.com/gh:foo``.
        """
        best = _longest_prefix(url, self.aliases, key=lambda a: a.alias)
        if best is None:
            return url
        return best.replacement + url[len(best.alias):]

    def is_expanded(self, url: str) -> bool:
        """True if ``url`` already starts with the replacement of some rule."""
        return _longest_prefix(url, self.aliases, key=lambda a: a.replacement) is not None

    def compact(self, url: str) -> str:
        """Return the most compact form of the canonical ``url``.

        Mostly the reverse of ``parse``: the rule with the longest matching
        ``replacement`` is substituted once.
        """
        best = _longest_prefix(url, self.aliases, key=lambda a: a.replacement)
        if best is None:
            return url
        return best.alias + url[len(best.replacement):]


def _longest_prefix(url: str, aliases: list[RemoteAlias], key) -> RemoteAlias | None:
    best = None
    for current in aliases:
        prefix = key(current)
        if url.startswith(prefix) and (best is None or len(key(best)) < len(prefix)):
            best = current
    return best


def strip_vcs_suffix(url: str) -> str:
    if url.endswith(_VCS_SUFFIX):
        return url[:-len(_VCS_SUFFIX)]
    return url


def same_remote(a: str, b: str) -> bool:
    """Compare two canonical URLs, tolerating a ``.git`` suffix on either side."""
    return a == b or a + _VCS_SUFFIX == b or a == b + _VCS_SUFFIX


def basename(url: str) -> str:
    """Last path component of a canonical URL (``path.Base`` semantics)."""
    trimmed = url.rstrip("/")
    if not trimmed:
        return "/" if url else "."
    return trimmed.rsplit("/", 1)[-1]


def checkout_path_for(url: str) -> str:
    """Derive the checkout path (relative to the root) for a canonical URL.

        https://example.org/foo/bar   -> example.org/foo/bar
        git@example.org:foo/bar.git   -> example.org/foo/bar

    Raises ValueError if the URL yields no usable path.
    """
    stripped = strip_vcs_suffix(url)

    m = _SCP_SYNTAX_RX.match(stripped)
    if m:
        host, path = m.group(1), m.group(2)
    else:
        parsed = urlsplit(stripped)
        host, path = parsed.hostname or "", parsed.path

    joined = posixpath.normpath(posixpath.join(host, path.lstrip("/")))
    if joined in (".", "") or joined == ".." or joined.startswith("../"):
        raise ValueError(f"cannot derive a checkout path from remote URL {url!r}")
    return joined


@dataclass
class Remote:
    """A named remote of a repository; ``url`` is always canonical."""
    name: str
    url: str

    def encode(self, aliases: AliasTable) -> dict[str, str]:
        """Serialize for the index file."""
        url = aliases.compact(self.url) if PERSIST_COMPACT_URLS else self.url
        return {"name": self.name, "url": url}

    @classmethod
    def decode(cls, data: dict[str, str], aliases: AliasTable) -> Remote:
        """Deserialize from the index file; the inverse of ``encode``.

        Canonical entries are taken as stored; expanding them again would
        apply an alias twice (``test: -> test:test:`` would keep growing).
        Hand-written alias forms that are not yet expanded still load.
        """
        url = data["url"]
        if PERSIST_COMPACT_URLS or not aliases.is_expanded(url):
            url = aliases.parse(url)
        return cls(name=data["name"], url=url)
