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

"""Error types shared by all rtree components."""


class RtreeError(Exception):
    """Base class for every failure that the CLI reports as a single line."""


class ConflictError(RtreeError):
    """The requested operation contradicts the state of the index or the filesystem."""


class Interrupted(RtreeError):
    """The user aborted an interactive prompt (Ctrl-C or end of input)."""

    def __init__(self, message: str = "Interrupted!"):
        super().__init__(message)
