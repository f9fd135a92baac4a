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

"""Subprocess execution — the one place where rtree spawns external programs."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, TextIO

from repotree.utils.errors import RtreeError

log = logging.getLogger(__name__)


@dataclass
class Command:
    """A command line plus the directory it runs in (None = inherit)."""
    program: list[str]
    workdir: str | None = None

    @property
    def cmdline(self) -> str:
        return " ".join(self.program)


class CommandError(RtreeError):
    """A command exited non-zero or could not be started."""

    def __init__(self, command: Command, reason: str):
        self.command = command
        self.reason = reason
        if command.workdir:
            msg = f"exec `{command.cmdline}` in {command.workdir}: {reason}"
        else:
            msg = f"exec `{command.cmdline}`: {reason}"
        super().__init__(msg)


# A runner executes a Command with its output going into the given streams,
# and raises CommandError on failure.
CommandRunner = Callable[[Command, TextIO, TextIO], None]


def _fileno(stream: TextIO) -> int | None:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def run_command(cmd: Command, stdout: TextIO, stderr: TextIO) -> None:
    """Default CommandRunner: run the command for real via subprocess.

    Streams backed by a file descriptor are handed to the child directly so
    that progress output and colours survive; anything else (e.g. StringIO)
    receives the captured text afterwards.
    """
    log.debug("exec %s (cwd=%s)", cmd.cmdline, cmd.workdir or ".")
    out_fd, err_fd = _fileno(stdout), _fileno(stderr)
    for stream in (stdout, stderr):
        stream.flush()

    try:
        r = subprocess.run(
            cmd.program, cwd=cmd.workdir,
            stdin=subprocess.DEVNULL,
            stdout=out_fd if out_fd is not None else subprocess.PIPE,
            stderr=err_fd if err_fd is not None else subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        raise CommandError(cmd, e.strerror or str(e)) from e

    if r.stdout:
        stdout.write(r.stdout)
    if r.stderr:
        stderr.write(r.stderr)
    if r.returncode != 0:
        raise CommandError(cmd, f"exit status {r.returncode}")
