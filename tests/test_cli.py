"""End-to-end tests for the rtree command line, driven through run_cli."""

import pytest

from cli.main import USAGE, run_cli
from repotree.index.state import load_index
from repotree.repos.remote import Remote
from repotree.repos.repo import Repo

from conftest import RecordedCommand, make_checkout, make_console, recorded

TWO_REPOS = [
    Repo("github.com/foo/bar", [Remote("origin", "https://github.com/foo/bar")]),
    Repo("github.com/git/git", [Remote("origin", "https://github.com/git/git")]),
]


@pytest.fixture
def two_repos(write_index):
    write_index([Repo(r.checkout_path, list(r.remotes)) for r in TWO_REPOS])


class TestUsage:

    @pytest.mark.parametrize("args", [
        [],
        ["frobnicate"],
        ["get"],
        ["get", "a", "b"],
        ["repos", "extra"],
        ["each"],
    ])
    def test_bad_invocation_prints_usage(self, config, args):
        con = make_console()
        assert run_cli(args, ui=con.ui, config=config) == 1
        assert con.stderr == USAGE.strip() + "\n"
        assert con.stdout == ""


class TestGet:

    def test_exact_match_prints_path(self, config, two_repos):
        con = make_console()
        assert run_cli(["get", "gh:git/git"], ui=con.ui, config=config) == 0
        assert con.stdout == f"{config.root_path}/github.com/git/git\n"
        assert con.sim.executed == []

    def test_clone_new(self, config, two_repos):
        target = f"{config.root_path}/github.com/another/repo"
        con = make_console(commands=recorded(f"git clone https://github.com/another/repo.git {target}"))

        assert run_cli(["get", "https://github.com/another/repo.git"], ui=con.ui, config=config) == 0

        assert con.stdout == target + "\n"
        assert [r.checkout_path for r in load_index(config).repos] == [
            "github.com/another/repo", "github.com/foo/bar", "github.com/git/git",
        ]
        con.sim.assert_done()

    def test_clone_output_goes_to_stderr(self, config, two_repos):
        target = f"{config.root_path}/github.com/another/repo"
        con = make_console(commands=[RecordedCommand(
            ["git", "clone", "https://github.com/another/repo", target],
            stdout="Cloning into 'repo'...\n",
        )])

        assert run_cli(["get", "gh:another/repo"], ui=con.ui, config=config) == 0

        assert con.stdout == target + "\n"
        assert con.stderr == "Cloning into 'repo'...\n"

    def test_failed_clone_leaves_index_alone(self, config, two_repos):
        before = config.index_path.read_text()
        target = f"{config.root_path}/github.com/another/repo"
        con = make_console(commands=[RecordedCommand(
            ["git", "clone", "https://github.com/another/repo", target], fails=True,
        )])

        assert run_cli(["get", "gh:another/repo"], ui=con.ui, config=config) == 1

        assert con.stdout == ""
        assert con.stderr == (
            f"!! exec `git clone https://github.com/another/repo {target}`: exit status 1\n"
        )
        assert config.index_path.read_text() == before

    def test_fork_as_remote(self, config, two_repos):
        target = f"{config.root_path}/github.com/git/git"
        con = make_console(
            stdin=f"add as remote to {target}\nmyfork\n",
            commands=recorded(
                f"@{target} git remote add myfork https://example.com/git",
                f"@{target} git remote update myfork",
            ),
        )

        assert run_cli(["get", "https://example.com/git"], ui=con.ui, config=config) == 0

        assert con.stdout == target + "\n"
        assert con.stderr == (
            f"Found possible fork candidates. What to do? -> add as remote to {target}\n"
            "Existing remotes:\n\t(origin) gh:git/git\n"
            "Enter remote name for https://example.com/git: myfork\n"
        )
        assert load_index(config).repos[1].remotes == [
            Remote("origin", "https://github.com/git/git"),
            Remote("myfork", "https://example.com/git"),
        ]
        con.sim.assert_done()

    def test_fork_cloned_fresh(self, config, two_repos):
        target = f"{config.root_path}/example.com/git"
        con = make_console(stdin="n\n", commands=recorded(f"git clone https://example.com/git {target}"))

        assert run_cli(["get", "https://example.com/git"], ui=con.ui, config=config) == 0

        assert con.stdout == target + "\n"
        assert len(load_index(config).repos) == 3

    def test_interrupted_menu(self, config, two_repos):
        con = make_console(stdin="")
        assert run_cli(["get", "https://example.com/git"], ui=con.ui, config=config) == 1
        assert con.stderr.endswith("!! Interrupted!\n")
        assert con.stdout == ""

    def test_untranslatable_url(self, config, two_repos):
        con = make_console()
        assert run_cli(["get", "file:///"], ui=con.ui, config=config) == 1
        assert con.stderr.startswith("!! cannot derive a checkout path")
        assert con.sim.executed == []


class TestDrop:

    def test_unknown_url(self, config, two_repos):
        con = make_console()
        assert run_cli(["drop", "gh:another/repo"], ui=con.ui, config=config) == 1
        assert con.stderr == (
            "!! no such remote in index (you can validate the index with `rtree index`)\n"
        )

    def test_drop_confirmed(self, config, two_repos):
        path = make_checkout(config, "github.com/foo/bar")
        con = make_console(stdin="yes\n", commands=[RecordedCommand(
            ["git", "status"], str(path), stdout="On branch main\n",
        )])

        assert run_cli(["drop", "gh:foo/bar"], ui=con.ui, config=config) == 0

        assert not path.exists()
        assert con.stdout == ""
        assert con.stderr == (
            f">> {path}\nOn branch main\n>> Drop this repo? [y/n] -> yes\n"
        )
        assert [r.checkout_path for r in load_index(config).repos] == ["github.com/git/git"]


class TestIndex:

    def test_corrupted_index_lists_all_errors(self, config):
        config.index_path.parent.mkdir(parents=True)
        config.index_path.write_text(
            "repos:\n"
            "- path: github.com/foo/bar\n"
            "  remotes:\n"
            "  - name: origin\n"
            "- remotes:\n"
            "  - name: origin\n"
            "    url: https://example.org/x\n"
        )
        con = make_console()

        assert run_cli(["repos"], ui=con.ui, config=config) == 1

        assert con.stderr == (
            f'!! read {config.index_path}: missing "repos[0].remotes[0].url"\n'
            f'!! read {config.index_path}: missing "repos[1].path"\n'
        )

    def test_rebuild_twice_is_stable(self, config):
        a = make_checkout(config, "github.com/git/git")
        b = make_checkout(config, "example.org/tools")

        def scan():
            return [
                RecordedCommand(["git", "config", "-l"], str(b),
                                stdout="remote.origin.url=https://example.org/tools\n"),
                RecordedCommand(["git", "config", "-l"], str(a),
                                stdout="core.bare=false\nremote.origin.url=gh:git/git\n"),
            ]

        con = make_console(commands=scan())
        assert run_cli(["index"], ui=con.ui, config=config) == 0
        first = config.index_path.read_text()

        con = make_console(commands=scan())
        assert run_cli(["index"], ui=con.ui, config=config) == 0

        assert config.index_path.read_text() == first
        assert first == (
            "repos:\n"
            "- path: example.org/tools\n"
            "  remotes:\n"
            "  - name: origin\n"
            "    url: https://example.org/tools\n"
            "- path: github.com/git/git\n"
            "  remotes:\n"
            "  - name: origin\n"
            "    url: https://github.com/git/git\n"
        )

    def test_rebuild_drops_deleted_repo(self, config, two_repos):
        path = make_checkout(config, "github.com/git/git")
        con = make_console(stdin="d\n", commands=[
            RecordedCommand(["git", "config", "-l"], str(path),
                            stdout="remote.origin.url=https://github.com/git/git\n"),
        ])

        assert run_cli(["index"], ui=con.ui, config=config) == 0

        assert [r.checkout_path for r in load_index(config).repos] == ["github.com/git/git"]

    def test_duplicate_entries_are_reported(self, config, write_index):
        path = make_checkout(config, "github.com/foo/bar")
        write_index([TWO_REPOS[0], TWO_REPOS[0]])
        con = make_console(commands=[
            RecordedCommand(["git", "config", "-l"], str(path),
                            stdout="remote.origin.url=https://github.com/foo/bar\n"),
        ])

        assert run_cli(["index"], ui=con.ui, config=config) == 0

        assert con.stderr == f"!! repo {path} appears multiple times in the index file!\n"
        assert len(load_index(config).repos) == 2


class TestListing:

    def test_repos_sorted(self, config, two_repos):
        con = make_console()
        assert run_cli(["repos"], ui=con.ui, config=config) == 0
        assert con.stdout == "github.com/foo/bar\ngithub.com/git/git\n"

    def test_remotes_are_canonical(self, config, write_index):
        write_index([
            Repo("github.com/git/git", [
                Remote("origin", "https://github.com/git/git"),
                Remote("mine", "git@git.example.com:git"),
            ]),
        ])
        con = make_console()
        assert run_cli(["remotes"], ui=con.ui, config=config) == 0
        assert con.stdout == "git@git.example.com:git\nhttps://github.com/git/git\n"

    def test_empty_index(self, config):
        con = make_console()
        assert run_cli(["repos"], ui=con.ui, config=config) == 0
        assert con.stdout == ""


class TestImport:

    def test_import_moves_and_records(self, config, tmp_path):
        src = tmp_path / "work" / "thing"
        (src / ".git").mkdir(parents=True)
        con = make_console(commands=[
            RecordedCommand(["git", "config", "-l"], str(src),
                            stdout="remote.origin.url=gh:me/thing\n"),
        ])

        assert run_cli(["import", str(src)], ui=con.ui, config=config) == 0

        assert src.is_symlink()
        assert (config.root_path / "github.com/me/thing/.git").is_dir()
        repos = load_index(config).repos
        assert repos == [Repo("github.com/me/thing", [Remote("origin", "https://github.com/me/thing")])]

    def test_import_inside_root(self, config):
        path = make_checkout(config, "example.org/x")
        con = make_console(commands=[
            RecordedCommand(["git", "config", "-l"], str(path),
                            stdout="remote.origin.url=https://example.org/x\n"),
        ])
        assert run_cli(["import", str(path)], ui=con.ui, config=config) == 1
        assert con.stderr == f"!! {path} is already inside {config.root_path}\n"
        assert not config.index_path.exists()


class TestEach:

    def test_runs_in_every_repo(self, config, two_repos):
        bar = f"{config.root_path}/github.com/foo/bar"
        git = f"{config.root_path}/github.com/git/git"
        con = make_console(commands=recorded(
            f"@{bar} git status --short",
            f"@{git} git status --short",
        ))

        assert run_cli(["each", "git", "status", "--short"], ui=con.ui, config=config) == 0

        assert con.stderr == f">> {bar}\n>> {git}\n"
        con.sim.assert_done()

    def test_keeps_going_after_failure(self, config, two_repos):
        bar = f"{config.root_path}/github.com/foo/bar"
        git = f"{config.root_path}/github.com/git/git"
        con = make_console(commands=[
            RecordedCommand(["git", "fetch"], bar, fails=True),
            RecordedCommand(["git", "fetch"], git),
        ])

        assert run_cli(["each", "git", "fetch"], ui=con.ui, config=config) == 1

        assert con.stderr == (
            f">> {bar}\n!! exec `git fetch` in {bar}: exit status 1\n>> {git}\n"
        )
        con.sim.assert_done()


def test_version(config):
    con = make_console()
    assert run_cli(["--version"], ui=con.ui, config=config) == 0
