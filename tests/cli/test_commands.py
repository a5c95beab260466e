"""
Tests for the toolchain and repo commands.

The commands build their own Provisioner; these tests swap in one wired to
fake collaborators.
"""

from pathlib import Path

import pytest

from provisionkit.cli.commands import repo as repo_command
from provisionkit.cli.commands import toolchain as toolchain_command
from provisionkit.cli.parser import CLI
from provisionkit.config.settings import Settings
from provisionkit.core.exceptions import UsageError
from provisionkit.core.interfaces import ProcessResult
from provisionkit.provision.models import VersionChoice
from tests.mocks import FakeCompiler, FakeRunner


@pytest.fixture
def patch_provisioner(monkeypatch, make_provisioner):
    """Replace the commands' Provisioner with a fake-wired one."""
    created = []

    def install(module, **collaborators):
        def factory(settings, **kwargs):
            provisioner = make_provisioner(**{**collaborators, **kwargs})
            created.append(provisioner)
            return provisioner

        monkeypatch.setattr(module, "Provisioner", factory)
        return created

    return install


class TestRepoCommand:
    def test_success_prints_summary(
        self, patch_provisioner, release_vcs, temp_dir, isolated_home, capsys
    ):
        patch_provisioner(repo_command, vcs=release_vcs)
        destination = temp_dir / "app"

        code = CLI().run(["repo", "https://example.com/org/app.git", "-d", str(destination)])

        out = capsys.readouterr().out
        assert code == 0
        assert "Installation Complete!" in out
        assert "v1.3.0" in out
        assert "go build -o app ." in out

    def test_build_summary_has_path_tip(
        self, patch_provisioner, release_vcs, temp_dir, isolated_home, capsys
    ):
        runner = FakeRunner({"app": lambda args: ProcessResult(0, "")})
        patch_provisioner(repo_command, vcs=release_vcs, runner=runner)
        destination = temp_dir / "app"

        code = CLI().run(
            ["repo", "https://example.com/org/app.git", "-d", str(destination), "-b"]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert f"Binary: {destination / 'app'}" in out
        assert f"export PATH=$PATH:{destination}" in out

    def test_existing_destination_exits_one(
        self, patch_provisioner, release_vcs, temp_dir, isolated_home, capsys
    ):
        patch_provisioner(repo_command, vcs=release_vcs)
        destination = temp_dir / "app"
        destination.mkdir()

        code = CLI().run(["repo", "https://example.com/org/app.git", "-d", str(destination)])

        assert code == 1
        assert "already exists" in capsys.readouterr().err

    def test_smoke_warning_keeps_exit_zero(
        self, patch_provisioner, release_vcs, temp_dir, isolated_home, capsys
    ):
        runner = FakeRunner({"app": lambda args: ProcessResult(1, "")})
        patch_provisioner(repo_command, vcs=release_vcs, runner=runner)

        code = CLI().run(
            ["repo", "https://example.com/org/app.git", "-d", str(temp_dir / "app"), "-b"]
        )

        assert code == 0
        assert "WARNING: Smoke test" in capsys.readouterr().err

    def test_yes_accepts_old_compiler(
        self, patch_provisioner, release_vcs, temp_dir, isolated_home
    ):
        runner = FakeRunner({"app": lambda args: ProcessResult(0, "")})
        patch_provisioner(
            repo_command,
            vcs=release_vcs,
            runner=runner,
            compiler=FakeCompiler(version="1.18.0"),
        )

        code = CLI().run(
            ["repo", "https://example.com/org/app.git", "-d", str(temp_dir / "app"), "-b", "-y"]
        )

        assert code == 0

    def test_missing_url_is_usage_error(self, isolated_home, capsys):
        code = CLI().run(["repo"])

        assert code == 1
        assert "Repository URL is required" in capsys.readouterr().err


class TestRepoBuildRequest:
    def _args(self, *argv):
        return CLI().parse_args(["repo", *argv])

    def test_default_directory_from_repository_name(self, isolated_home):
        request = repo_command.build_request(
            self._args("https://example.com/org/tool.git"), Settings()
        )

        assert request.destination == isolated_home / "tool"
        assert request.version_choice is VersionChoice.RELEASE

    def test_dev_flag(self, isolated_home):
        request = repo_command.build_request(
            self._args("https://example.com/org/tool.git", "--dev"), Settings()
        )

        assert request.version_choice is VersionChoice.DEVELOPMENT

    def test_interactive_prompt(self, isolated_home, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt: "2")

        request = repo_command.build_request(
            self._args("https://example.com/org/tool.git", "--interactive"), Settings()
        )

        assert request.version_choice is VersionChoice.DEVELOPMENT

    def test_ref_conflicts_with_dev(self, isolated_home):
        with pytest.raises(UsageError):
            repo_command.build_request(
                self._args("https://example.com/org/tool.git", "-r", "v1", "--dev"),
                Settings(),
            )


class TestToolchainCommand:
    def test_success(
        self, patch_provisioner, go_fetcher, go_runner, temp_dir, isolated_home, capsys
    ):
        created = patch_provisioner(toolchain_command, fetcher=go_fetcher, runner=go_runner)
        destination = temp_dir / "go"

        code = CLI().run(["toolchain", "-d", str(destination)])

        out = capsys.readouterr().out
        assert code == 0
        assert created[0].progress_callback is not None
        assert "go installation complete!" in out
        assert f"export PATH=$PATH:{destination / 'bin'}" in out

    def test_unknown_toolchain(self, isolated_home, capsys):
        code = CLI().run(["toolchain", "--name", "rust"])

        assert code == 1
        assert "Unknown toolchain 'rust'" in capsys.readouterr().err

    def test_default_directory(self, isolated_home):
        args = CLI().parse_args(["toolchain"])
        request = toolchain_command.build_request(args, Settings())

        assert request.destination == Path("/usr/local/go")

    def test_quiet_disables_progress(
        self, patch_provisioner, go_fetcher, go_runner, temp_dir, isolated_home
    ):
        created = patch_provisioner(toolchain_command, fetcher=go_fetcher, runner=go_runner)

        code = CLI().run(["-q", "toolchain", "-d", str(temp_dir / "go")])

        assert code == 0
        assert created[0].progress_callback is None


def test_build_hint_uses_configured_compiler(
    patch_provisioner, release_vcs, temp_dir, isolated_home, capsys
):
    config = temp_dir / "config.yaml"
    config.write_text("repository:\n  compiler: go1.22\n")
    patch_provisioner(repo_command, vcs=release_vcs)

    code = CLI().run(
        [
            "--config",
            str(config),
            "repo",
            "https://example.com/org/app.git",
            "-d",
            str(temp_dir / "app"),
        ]
    )

    assert code == 0
    assert "go1.22 build -o app ." in capsys.readouterr().out
