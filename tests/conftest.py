"""
rtree Test Fixtures

A throwaway root and index location per test, a fixed alias table, and a
CommandSimulator that replays recorded git invocations instead of running git.

Run with: pytest tests/ -v
"""
import io
from dataclasses import dataclass

import pytest

from repotree.index.state import Index, save_index
from repotree.repos.remote import AliasTable, RemoteAlias
from repotree.utils.commands import Command, CommandError
from repotree.utils.config import Config
from repotree.utils.interface import Interface

TEST_ALIASES = [
    RemoteAlias(alias="gh:", replacement="https://github.com/"),
    RemoteAlias(alias="my/", replacement="git@git.example.com:"),
]


@dataclass
class RecordedCommand:
    program: list
    workdir: str | None = None
    stdout: str = ""
    fails: bool = False


def recorded(*lines):
    """Build RecordedCommands from strings; a leading "@/some/path" sets the workdir."""
    result = []
    for line in lines:
        words = line.split()
        workdir = None
        if words[0].startswith("@"):
            workdir = words[0][1:]
            words = words[1:]
        result.append(RecordedCommand(program=words, workdir=workdir))
    return result


class CommandSimulator:
    """CommandRunner that checks every command against the next recorded one."""

    def __init__(self, commands=()):
        self.commands = list(commands)
        self.executed = []

    def __call__(self, cmd: Command, stdout, stderr):
        assert self.commands, f"unexpected command: {cmd.cmdline} (in {cmd.workdir})"
        expected = self.commands.pop(0)
        assert cmd.program == expected.program, \
            f"expected command {' '.join(expected.program)!r}, got {cmd.cmdline!r}"
        assert cmd.workdir == expected.workdir, \
            f"expected workdir {expected.workdir}, got {cmd.workdir}"
        self.executed.append(cmd)
        stdout.write(expected.stdout)
        if expected.fails:
            raise CommandError(cmd, "exit status 1")

    def assert_done(self):
        assert not self.commands, f"commands not executed: {self.commands}"


@dataclass
class Console:
    ui: Interface
    sim: CommandSimulator

    @property
    def stdout(self) -> str:
        return self.ui.stdout.getvalue()

    @property
    def stderr(self) -> str:
        return self.ui.stderr.getvalue()


def make_console(stdin: str = "", commands=()) -> Console:
    sim = CommandSimulator(commands)
    ui = Interface(
        stdin=io.StringIO(stdin), stdout=io.StringIO(), stderr=io.StringIO(),
        runner=sim, interactive=False,
    )
    return Console(ui=ui, sim=sim)


@pytest.fixture
def config(tmp_path):
    """Config pointing at a fresh root and index below tmp_path."""
    root = tmp_path / "gopath" / "src"
    root.mkdir(parents=True)
    return Config(
        root_path=root,
        index_path=tmp_path / "home" / ".rtree" / "index.yaml",
        aliases=AliasTable(TEST_ALIASES),
    )


@pytest.fixture
def write_index(config):
    """Persist the given repos as the index file of ``config``."""
    def _write(repos):
        save_index(Index(repos=list(repos)), config)
    return _write


def make_checkout(config, checkout_path, marker="dir"):
    """Create a directory below the root that looks like a git checkout."""
    path = config.root_path / checkout_path
    path.mkdir(parents=True, exist_ok=True)
    if marker == "dir":
        (path / ".git").mkdir()
    elif marker == "file":
        (path / ".git").write_text("gitdir: ../.git/modules/x\n")
    return path
