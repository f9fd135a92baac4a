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

"""Terminal I/O for one rtree invocation — output channels, prompts, subprocesses.

Every side effect that touches the user's terminal or spawns a program goes
through an ``Interface`` instance, so that tests can swap in ``StringIO``
streams and a scripted command runner.
"""

from __future__ import annotations

import io
import sys
from dataclasses import dataclass
from typing import TextIO

import click

from repotree.utils.commands import Command, CommandRunner, run_command
from repotree.utils.errors import Interrupted


@dataclass
class Choice:
    """One answer offered by ``Interface.query``."""
    text: str                   # Display string
    value: str                  # Returned when this choice is selected
    shortcut: str | None = None  # Single key that selects this choice


class Interface:
    """Output channels, interactive prompts and command execution.

    When ``stdout_protected`` is set, only ``show_result`` writes to stdout;
    prompts, progress and the output of spawned commands go to stderr
    instead. Callers whose stdout is consumed by another program (``rtree
    get`` inside ``cd $(rtree get …)``) rely on this.
    """

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None,
                 stderr: TextIO | None = None, runner: CommandRunner = run_command,
                 interactive: bool | None = None):
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.runner = runner
        self.stdout_protected = False
        if interactive is None:
            interactive = _isatty(self.stdin)
        self.interactive = interactive

    @property
    def safe_stdout(self) -> TextIO:
        return self.stderr if self.stdout_protected else self.stdout

    # -- Subprocesses --------------------------------------------------------

    def run(self, cmd: Command) -> None:
        """Run a command with its stdout on the (possibly protected) stdout."""
        self.runner(cmd, self.safe_stdout, self.stderr)

    def capture_stdout(self, cmd: Command) -> str:
        """Run a command and return what it printed on stdout."""
        buf = io.StringIO()
        self.runner(cmd, buf, self.stderr)
        return buf.getvalue()

    # -- Output --------------------------------------------------------------

    def show_result(self, text: str) -> None:
        click.echo(text.strip(), file=self.stdout)

    def show_results_sorted(self, items: list[str]) -> None:
        for item in sorted(items):
            self.show_result(item)

    def show_progress(self, text: str) -> None:
        self._decorated(">>", "cyan", text)

    def show_warning(self, text: str) -> None:
        self._decorated("!!", "yellow", text)

    def show_error(self, text: str) -> None:
        self._decorated("!!", "red", text)

    def show_usage(self, text: str) -> None:
        click.echo(text.strip(), file=self.stderr)

    def _decorated(self, marker: str, color: str, text: str) -> None:
        line = click.style(marker, fg=color, bold=True) + " " + click.style(text.strip(), fg=color)
        click.echo(line, file=self.stderr)

    # -- Input ---------------------------------------------------------------

    def read_line(self, prompt: str) -> str:
        """Ask for a line of free text."""
        if self.interactive:
            try:
                return click.prompt(prompt.strip(), prompt_suffix=" ",
                                    err=self.stdout_protected).strip()
            except click.Abort as e:
                raise Interrupted() from e

        out = self.safe_stdout
        out.write(prompt.strip() + " ")
        answer = self._next_line()
        out.write(answer + "\n")
        return answer

    def confirm(self, question: str) -> bool:
        """Ask a yes/no question."""
        if self.interactive:
            try:
                return click.confirm(question.strip(), err=self.stdout_protected)
            except click.Abort as e:
                raise Interrupted() from e

        out = self.safe_stdout
        out.write(question.strip() + " [y/n] ")
        while True:
            answer = self._next_line().lower()
            if answer in ("y", "yes"):
                out.write("-> yes\n")
                return True
            if answer in ("n", "no"):
                out.write("-> no\n")
                return False
            out.write("Please type 'y' or 'n': ")

    def query(self, prompt: str, choices: list[Choice]) -> str:
        """Let the user pick one of ``choices``; returns the choice's ``value``."""
        if not choices:
            raise ValueError("query() needs at least one choice")
        out = self.safe_stdout
        prompt = prompt.strip()

        if self.interactive:
            click.echo(prompt, file=out)
            for idx, choice in enumerate(choices):
                click.echo(f"  [{_key_for(choice, idx)}] {choice.text.strip()}", file=out)
            while True:
                try:
                    answer = click.prompt(">>", prompt_suffix=" ",
                                          err=self.stdout_protected).strip()
                except click.Abort as e:
                    raise Interrupted() from e
                selected = _match_choice(answer, choices, allow_numbers=True)
                if selected is not None:
                    break
                click.echo("Please type one of the keys in brackets.", file=out)
        else:
            while True:
                selected = _match_choice(self._next_line(), choices, allow_numbers=False)
                if selected is not None:
                    break
                out.write("Please type a shortcut or the full text of a choice: ")

        out.write(f"{prompt} -> {selected.text.strip()}\n")
        return selected.value

    def _next_line(self) -> str:
        try:
            line = self.stdin.readline()
        except KeyboardInterrupt as e:
            raise Interrupted() from e
        if not line:
            raise Interrupted()
        return line.strip()


def _isatty(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def _key_for(choice: Choice, idx: int) -> str:
    return choice.shortcut or str(idx + 1)


def _match_choice(answer: str, choices: list[Choice], allow_numbers: bool) -> Choice | None:
    for idx, choice in enumerate(choices):
        if choice.shortcut and answer.lower() == choice.shortcut.lower():
            return choice
        if allow_numbers and answer == str(idx + 1) and not choice.shortcut:
            return choice
        if answer == choice.text.strip():
            return choice
    return None
