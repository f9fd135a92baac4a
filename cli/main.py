import logging
import sys
from dataclasses import dataclass, field

import click

from repotree.index.manager import IndexManager
from repotree.index.state import IndexCorrupted, load_index
from repotree.utils.config import VERSION, Config, ConfigError, load_config
from repotree.utils.errors import RtreeError
from repotree.utils.interface import Interface

USAGE = """
Usage:
  rtree [get|drop] <url>
  rtree [index|repos|remotes]
  rtree import <path>
  rtree each <command>
"""


@dataclass
class Invocation:
    """What a subcommand needs: the terminal, plus config overrides for tests."""
    ui: Interface
    config: Config | None = None
    environ: dict | None = field(default=None, repr=False)

    def open_index(self) -> IndexManager:
        if self.config is None:
            self.config = load_config(self.ui, self.environ)
        index = load_index(self.config)
        return IndexManager(index, self.config, self.ui)


pass_invocation = click.make_pass_decorator(Invocation)


@click.group(no_args_is_help=False)
@click.version_option(VERSION, prog_name="rtree")
@click.option("-v", "--verbose", count=True, help="Log more (-vv for debug output)")
def cli(verbose):
    """rtree - Keep track of all repositories below $GOPATH/src."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, stream=sys.stderr,
                        format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("url")
@pass_invocation
def get(inv, url):
    """Print the path of the repo for URL, cloning it first if necessary.

    Use as: cd "$(rtree get gh:foo/bar)"
    """
    manager = inv.open_index()
    repo = manager.find_repo(url, allow_clone=True)
    inv.ui.show_result(manager.abs_path(repo))


@cli.command()
@click.argument("url")
@pass_invocation
def drop(inv, url):
    """Delete the repo for URL from disk and from the index."""
    manager = inv.open_index()
    repo = manager.find_repo(url, allow_clone=False)
    manager.drop_repo(repo)


@cli.command("index")
@pass_invocation
def index_cmd(inv):
    """Reconcile the index with the checkouts on disk."""
    manager = inv.open_index()
    manager.rebuild()
    manager.write()


@cli.command()
@pass_invocation
def repos(inv):
    """List the checkout paths of all repos."""
    manager = inv.open_index()
    inv.ui.show_results_sorted([r.checkout_path for r in manager.index.repos])


@cli.command()
@pass_invocation
def remotes(inv):
    """List the remote URLs of all repos."""
    manager = inv.open_index()
    inv.ui.show_results_sorted([rm.url for r in manager.index.repos for rm in r.remotes])


@cli.command("import")
@click.argument("path", type=click.Path(file_okay=False))
@pass_invocation
def import_cmd(inv, path):
    """Move the checkout at PATH into the tree and add it to the index."""
    manager = inv.open_index()
    manager.import_repo(path)
    manager.write()


@cli.command(context_settings={"ignore_unknown_options": True,
                               "allow_interspersed_args": False})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@pass_invocation
def each(inv, command):
    """Run COMMAND in every repo; keeps going when it fails somewhere.

    Examples:
        rtree each git fetch --all
        rtree each git status --short
    """
    manager = inv.open_index()
    exit_code = 0
    for repo in manager.index.repos:
        try:
            repo.exec(list(command), manager.config, inv.ui)
        except RtreeError as e:
            inv.ui.show_error(str(e))
            exit_code = 1
    return exit_code


def run_cli(args, ui: Interface | None = None, config: Config | None = None,
            environ: dict | None = None) -> int:
    """Run rtree with the given arguments and return the process exit code."""
    ui = ui or Interface()
    try:
        rv = cli.main(args=list(args), prog_name="rtree", standalone_mode=False,
                      obj=Invocation(ui=ui, config=config, environ=environ))
    except click.UsageError:
        ui.show_usage(USAGE)
        return 1
    except click.Abort:
        ui.show_error("Interrupted!")
        return 1
    except (ConfigError, IndexCorrupted) as e:
        for err in e.errors:
            ui.show_error(err)
        return 1
    except RtreeError as e:
        ui.show_error(str(e))
        return 1
    except OSError as e:
        ui.show_error(str(e))
        return 1
    return rv if isinstance(rv, int) else 0


def main():
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
