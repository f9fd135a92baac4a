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

"""Entry point — delegates to the Click CLI in cli/main."""

from cli.main import main

if __name__ == "__main__":
    main()
