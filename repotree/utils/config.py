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

"""Central configuration — tracked root, index location, remote aliases.

Built once at process start by ``load_config`` and handed to every component;
nothing below reads the environment after that.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from importlib.metadata import version as _pkg_version
from pathlib import Path

import yaml

from repotree.repos.remote import AliasTable, RemoteAlias, parse_alias_config
from repotree.utils.commands import Command, CommandError
from repotree.utils.errors import RtreeError
from repotree.utils.interface import Interface

log = logging.getLogger(__name__)

try:
    VERSION = _pkg_version("repotree")
except Exception:
    VERSION = "0.0.0"

RTREE_DIR_NAME = ".rtree"
INDEX_FILE_NAME = "index.yaml"
USER_CONFIG_FILE_NAME = "config.yaml"


class ConfigError(RtreeError):
    """One or more configuration problems; ``errors`` lists all of them."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


@dataclass
class Config:
    """Process-wide settings, passed explicitly instead of living in globals."""
    root_path: Path             # Directory below which all checkouts live
    index_path: Path            # YAML file holding the index
    aliases: AliasTable = field(default_factory=AliasTable)

    def absolute_path(self, checkout_path: str) -> Path:
        return self.root_path / checkout_path


def load_user_config(path: Path) -> dict:
    """Load ``~/.rtree/config.yaml``; a missing file means no overrides."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError([f"read {path}: {e}"]) from e
    if not isinstance(data, dict):
        raise ConfigError([f"read {path}: expected a mapping at the top level"])

    result: dict = {}
    if "root" in data and isinstance(data["root"], str) and data["root"]:
        result["root"] = data["root"]
    if "aliases" in data and isinstance(data["aliases"], list):
        aliases = []
        for entry in data["aliases"]:
            if (isinstance(entry, dict) and isinstance(entry.get("alias"), str)
                    and isinstance(entry.get("replacement"), str)):
                aliases.append(RemoteAlias(alias=entry["alias"],
                                           replacement=entry["replacement"]))
            else:
                log.warning("Ignoring malformed alias entry in %s: %r", path, entry)
        result["aliases"] = aliases
    return result


def load_config(ui: Interface, environ: dict[str, str] | None = None) -> Config:
    """Assemble the Config from the environment, the user config and git.

    Problems are collected so that the user sees all of them at once.
    """
    env = os.environ if environ is None else environ
    errors: list[str] = []
    user_config: dict = {}
    index_path = None
    root_path = None

    home = env.get("HOME", "")
    if not home:
        errors.append("$HOME is not set (rtree needs the HOME variable to locate its index file)")
    else:
        rtree_dir = Path(home) / RTREE_DIR_NAME
        index_path = rtree_dir / INDEX_FILE_NAME
        try:
            user_config = load_user_config(rtree_dir / USER_CONFIG_FILE_NAME)
        except ConfigError as e:
            errors.extend(e.errors)

    if "root" in user_config:
        root_path = Path(user_config["root"]).expanduser()
    else:
        gopath = env.get("GOPATH", "")
        if not gopath:
            errors.append("$GOPATH is not set (rtree needs the GOPATH variable "
                          "to know where to look for and place repos)")
        else:
            root_path = Path(gopath) / "src"

    aliases: list[RemoteAlias] = []
    try:
        out = ui.capture_stdout(Command(["git", "config", "--global", "-l"]))
        aliases = parse_alias_config(out)
    except CommandError as e:
        errors.append(str(e))
    aliases.extend(user_config.get("aliases", []))

    if errors:
        raise ConfigError(errors)

    log.debug("root=%s index=%s aliases=%d", root_path, index_path, len(aliases))
    return Config(root_path=root_path, index_path=index_path, aliases=AliasTable(aliases))
