"""
Tests for the deploy-key provisioner state machine.

Every session runs against a FakeRunner and a ScriptedConsole, so no
real ssh, git or GitHub is involved.
"""

from datetime import date
from pathlib import Path

import pytest

from vmstrap.core.config.loader import DeployKeySettings
from vmstrap.core.console import ScriptedConsole
from vmstrap.core.errors import (
    CloneFailure,
    CommandFailure,
    ConnectivityFailure,
    FileWriteError,
    InvalidInputError,
    OperatorAbort,
)
from vmstrap.core.models.command import CommandResult
from vmstrap.core.services.provisioner import (
    TRANSITIONS,
    DeployKeyProvisioner,
    ProvisionState,
)
from vmstrap.core.services.ssh_config import count_alias_blocks

S = ProvisionState

# pause, username, repo (default), destination (default)
CLONE_ANSWERS = ["", "octocat", "", ""]


def _provisioner(runner, home, key_settings, answers):
    console = ScriptedConsole(answers)
    prov = DeployKeyProvisioner(
        runner,
        console,
        home=home,
        settings=key_settings,
        hostname="testvm",
        today=date(2026, 1, 2),
    )
    return prov, console


def _seed_key(home: Path) -> tuple[str, str]:
    ssh_dir = home / ".ssh"
    ssh_dir.mkdir(mode=0o700, exist_ok=True)
    (ssh_dir / "dotfiles_deploy_key").write_text("OLD PRIVATE\n")
    (ssh_dir / "dotfiles_deploy_key.pub").write_text("ssh-ed25519 OLD old@host\n")
    return "OLD PRIVATE\n", "ssh-ed25519 OLD old@host\n"


class TestTransitionTable:
    def test_every_state_has_an_entry(self):
        assert set(TRANSITIONS) == set(ProvisionState)

    def test_terminal_states(self):
        terminal = {s for s, nxt in TRANSITIONS.items() if not nxt}
        assert terminal == {S.KEY_ABORT, S.ABORT, S.END}

    def test_illegal_transition_rejected(self, runner, home, key_settings):
        prov, _ = _provisioner(runner, home, key_settings, [])
        prov._handlers[S.START] = lambda: S.CLONE
        with pytest.raises(RuntimeError, match="Illegal transition"):
            prov.run()


class TestFreshSession:
    def test_happy_path(self, runner, home, key_settings):
        prov, console = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        outcome = prov.run()

        assert outcome.history == [
            S.START, S.KEY_CHECK, S.KEY_GENERATE, S.CONFIG_WRITE,
            S.AWAIT_REGISTRATION, S.CONNECTIVITY_TEST, S.CLONE_REQUEST,
            S.DIRECTORY_CHECK, S.CLONE, S.SETUP_DETECTION, S.END,
        ]
        assert outcome.final_state is S.END
        assert outcome.key_generated
        assert outcome.cloned_to == home / "dotfiles"
        assert (home / "dotfiles").is_dir()
        assert console.remaining_answers == 0

    def test_key_and_permissions(self, runner, home, key_settings):
        prov, _ = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        prov.run()

        ssh_dir = home / ".ssh"
        private = ssh_dir / "dotfiles_deploy_key"
        public = ssh_dir / "dotfiles_deploy_key.pub"
        assert ssh_dir.stat().st_mode & 0o777 == 0o700
        assert private.stat().st_mode & 0o777 == 0o600
        assert public.stat().st_mode & 0o777 == 0o644
        assert public.read_text().rstrip().endswith("dotfiles-deploy-testvm-20260102")

    def test_keygen_invocation(self, runner, home, key_settings):
        prov, _ = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        prov.run()

        keygen = [argv for argv in runner.calls if argv[0] == "ssh-keygen"]
        assert keygen == [[
            "ssh-keygen", "-t", "ed25519",
            "-C", "dotfiles-deploy-testvm-20260102",
            "-f", str(home / ".ssh" / "dotfiles_deploy_key"),
            "-N", "",
        ]]

    def test_public_key_shown_before_pause(self, runner, home, key_settings):
        prov, console = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        prov.run()

        public = (home / ".ssh" / "dotfiles_deploy_key.pub").read_text().strip()
        assert public in console.lines
        assert console.prompts[0].startswith("Press Enter when you've added the deploy key")
        assert "  4. Title: 'VM Deploy Key - testvm - 2026-01-02'" in console.lines

    def test_ssh_config_written(self, runner, home, key_settings):
        prov, _ = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        outcome = prov.run()

        config = (home / ".ssh" / "config").read_text()
        assert config.startswith("# Dotfiles deploy key configuration\nHost github-dotfiles\n")
        assert outcome.config_backup is None

    def test_probe_and_clone_commands(self, runner, home, key_settings):
        prov, _ = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        prov.run()

        probe = next(c for c in runner.call_log if c.argv[:2] == ["ssh", "-T"])
        assert probe.argv == [
            "ssh", "-T", "-o", "StrictHostKeyChecking=accept-new", "github-dotfiles",
        ]
        assert probe.timeout == 10
        assert [
            "git", "clone", "github-dotfiles:octocat/dotfiles.git", str(home / "dotfiles"),
        ] in runner.calls

    def test_prompts_in_order(self, runner, home, key_settings):
        prov, console = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        prov.run()
        assert console.prompts[1:] == [
            "Enter your GitHub username",
            "Enter your dotfiles repository name",
            "Clone to which directory?",
        ]

    def test_custom_repo_and_tilde_destination(self, runner, home, key_settings, monkeypatch):
        monkeypatch.setenv("HOME", str(home))
        prov, _ = _provisioner(
            runner, home, key_settings, ["", "octocat", "configs", "~/src/configs"]
        )
        outcome = prov.run()

        assert outcome.clone_request.remote_repo == "configs"
        assert outcome.cloned_to == home / "src" / "configs"
        assert runner.ran("git", "clone", "github-dotfiles:octocat/configs.git")

    def test_usage_examples_at_end(self, runner, home, key_settings):
        prov, console = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        prov.run()
        transcript = console.transcript
        assert "[INFO] Usage examples:" in transcript
        assert "Test:    ssh -T github-dotfiles" in transcript
        assert "rm ~/.ssh/dotfiles_deploy_key ~/.ssh/dotfiles_deploy_key.pub" in transcript

    def test_connect_timeout_from_settings(self, runner, home):
        settings = DeployKeySettings(
            connect_timeout=3, default_destination=str(home / "dotfiles")
        )
        prov, _ = _provisioner(runner, home, settings, CLONE_ANSWERS)
        prov.run()
        probe = next(c for c in runner.call_log if c.argv[:2] == ["ssh", "-T"])
        assert probe.timeout == 3


class TestExistingKey:
    def test_exit_leaves_everything_untouched(self, runner, home, key_settings):
        private, public = _seed_key(home)
        prov, console = _provisioner(runner, home, key_settings, ["3"])

        with pytest.raises(OperatorAbort) as exc_info:
            prov.run()

        assert exc_info.value.exit_code == 0
        assert prov.history[-1] is S.KEY_ABORT
        assert (home / ".ssh" / "dotfiles_deploy_key").read_text() == private
        assert (home / ".ssh" / "dotfiles_deploy_key.pub").read_text() == public
        assert not (home / ".ssh" / "config").exists()
        assert runner.call_count == 0
        assert "[WARN] Deploy key already exists at ~/.ssh/dotfiles_deploy_key" in console.lines

    def test_reuse_keeps_key(self, runner, home, key_settings):
        private, public = _seed_key(home)
        prov, _ = _provisioner(runner, home, key_settings, ["1", *CLONE_ANSWERS])
        outcome = prov.run()

        assert S.KEY_REUSE in outcome.history
        assert S.KEY_GENERATE not in outcome.history
        assert not outcome.key_generated
        assert not runner.ran("ssh-keygen")
        assert (home / ".ssh" / "dotfiles_deploy_key").read_text() == private

    def test_regenerate_replaces_key(self, runner, home, key_settings):
        private, public = _seed_key(home)
        prov, _ = _provisioner(runner, home, key_settings, ["2", *CLONE_ANSWERS])
        outcome = prov.run()

        assert outcome.history[2:4] == [S.KEY_REGEN, S.KEY_GENERATE]
        new_private = home / ".ssh" / "dotfiles_deploy_key"
        new_public = home / ".ssh" / "dotfiles_deploy_key.pub"
        assert new_private.read_text() != private
        assert new_public.read_text() != public
        assert new_private.stat().st_mode & 0o777 == 0o600
        assert new_public.stat().st_mode & 0o777 == 0o644

    def test_private_key_without_public_regenerates(self, runner, home, key_settings):
        ssh_dir = home / ".ssh"
        ssh_dir.mkdir(mode=0o700)
        (ssh_dir / "dotfiles_deploy_key").write_text("ORPHAN PRIVATE\n")

        prov, console = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        outcome = prov.run()

        assert outcome.history[:3] == [S.START, S.KEY_CHECK, S.KEY_GENERATE]
        assert outcome.key_generated
        assert (ssh_dir / "dotfiles_deploy_key").read_text() != "ORPHAN PRIVATE\n"
        assert (ssh_dir / "dotfiles_deploy_key.pub").is_file()
        assert "[WARN] Incomplete deploy key found; generating a new pair" in console.lines

    def test_public_key_without_private_regenerates(self, runner, home, key_settings):
        ssh_dir = home / ".ssh"
        ssh_dir.mkdir(mode=0o700)
        (ssh_dir / "dotfiles_deploy_key.pub").write_text("ssh-ed25519 ORPHAN\n")

        prov, _ = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        outcome = prov.run()

        assert outcome.key_generated
        assert "ORPHAN" not in (ssh_dir / "dotfiles_deploy_key.pub").read_text()

    @pytest.mark.parametrize("answer", ["4", "", "yes", "exit"])
    def test_invalid_choice(self, runner, home, key_settings, answer):
        _seed_key(home)
        prov, _ = _provisioner(runner, home, key_settings, [answer])
        with pytest.raises(InvalidInputError) as exc_info:
            prov.run()
        assert exc_info.value.exit_code == 1

    def test_rerun_keeps_single_alias_with_backup(self, runner, home, key_settings):
        first, _ = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        first.run()
        # second run: reuse key, skip the now-existing clone
        second, _ = _provisioner(runner, home, key_settings, ["1", *CLONE_ANSWERS, "2"])
        outcome = second.run()

        config = (home / ".ssh" / "config").read_text()
        assert count_alias_blocks(config, "github-dotfiles") == 1
        assert outcome.config_backup == home / ".ssh" / "config.backup"
        assert outcome.config_backup.is_file()


class TestConnectivity:
    def test_missing_marker_aborts(self, runner, home, key_settings):
        runner.set_response(["ssh", "-T"], returncode=255, stderr="Permission denied (publickey).")
        prov, console = _provisioner(runner, home, key_settings, [""])

        with pytest.raises(ConnectivityFailure):
            prov.run()

        assert prov.history[-2:] == [S.CONNECTIVITY_TEST, S.ABORT]
        assert not runner.ran("git", "clone")
        assert "  2. Test the connection manually:  ssh -T github-dotfiles" in console.lines

    def test_timeout_aborts(self, runner, home, key_settings):
        runner.set_response(["ssh", "-T"], timed_out=True)
        prov, _ = _provisioner(runner, home, key_settings, [""])
        with pytest.raises(ConnectivityFailure):
            prov.run()

    def test_marker_on_stdout_with_zero_exit(self, runner, home, key_settings):
        runner.set_response(
            ["ssh", "-T"], returncode=0, stdout="You've successfully authenticated"
        )
        prov, _ = _provisioner(runner, home, key_settings, CLONE_ANSWERS)
        assert prov.run().final_state is S.END

    def test_key_and_config_persist_after_abort(self, runner, home, key_settings):
        runner.set_response(["ssh", "-T"], returncode=255)
        prov, _ = _provisioner(runner, home, key_settings, [""])
        with pytest.raises(ConnectivityFailure):
            prov.run()
        assert (home / ".ssh" / "dotfiles_deploy_key").is_file()
        assert (home / ".ssh" / "config").is_file()


class TestCloneRequest:
    def test_empty_username_rejected(self, runner, home, key_settings):
        prov, _ = _provisioner(runner, home, key_settings, ["", ""])
        with pytest.raises(InvalidInputError, match="Username"):
            prov.run()
        assert not runner.ran("git", "clone")


class TestDirectoryCollision:
    def test_overwrite(self, runner, home, key_settings):
        dest = home / "dotfiles"
        dest.mkdir()
        (dest / "stale.txt").write_text("old")

        prov, console = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, "1"])
        outcome = prov.run()

        assert S.OVERWRITE in outcome.history
        assert not (dest / "stale.txt").exists()
        assert outcome.cloned_to == dest
        assert "[WARN] Directory " + str(dest) + " already exists" in console.lines

    def test_overwrite_plain_file(self, runner, home, key_settings):
        dest = home / "dotfiles"
        dest.write_text("not a directory")

        prov, _ = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, "1"])
        prov.run()
        assert dest.is_dir()

    def test_overwrite_failure(self, runner, home, key_settings, monkeypatch):
        (home / "dotfiles").mkdir()

        def refuse(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("vmstrap.core.services.provisioner.shutil.rmtree", refuse)
        prov, _ = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, "1"])

        with pytest.raises(FileWriteError, match="Cannot remove"):
            prov.run()
        assert not runner.ran("git", "clone")

    def test_skip(self, runner, home, key_settings):
        dest = home / "dotfiles"
        dest.mkdir()
        (dest / "keep.txt").write_text("mine")

        prov, console = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, "2"])
        outcome = prov.run()

        assert outcome.history[-2:] == [S.SKIP, S.END]
        assert (dest / "keep.txt").read_text() == "mine"
        assert not runner.ran("git", "clone")
        assert outcome.cloned_to is None
        assert "[INFO] Usage examples:" in console.lines

    def test_redirect(self, runner, home, key_settings):
        (home / "dotfiles").mkdir()
        other = home / "elsewhere"

        prov, console = _provisioner(
            runner, home, key_settings, [*CLONE_ANSWERS, "3", str(other)]
        )
        outcome = prov.run()

        assert S.REDIRECT in outcome.history
        assert outcome.cloned_to == other
        assert other.is_dir()
        assert console.prompts[-1] == "Enter new directory path"

    def test_invalid_choice(self, runner, home, key_settings):
        (home / "dotfiles").mkdir()
        prov, _ = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, "9"])
        with pytest.raises(InvalidInputError):
            prov.run()
        assert (home / "dotfiles").is_dir()


class TestCloneAndSetup:
    def test_clone_failure(self, runner, home, key_settings):
        runner.set_failure(["git", "clone"], stderr="ERROR: Repository not found.")
        prov, console = _provisioner(runner, home, key_settings, CLONE_ANSWERS)

        with pytest.raises(CloneFailure):
            prov.run()

        assert prov.history[-1] is S.CLONE
        assert "[ERROR] Failed to clone dotfiles repository" in console.lines

    def _clone_with(self, *files: str):
        def handler(argv, cwd):
            dest = Path(argv[3])
            dest.mkdir(parents=True)
            for name in files:
                (dest / name).write_text("#!/bin/sh\n")
            return CommandResult(argv=argv, returncode=0)
        return handler

    def test_setup_declined(self, runner, home, key_settings):
        runner.on(["git", "clone"], self._clone_with("install.sh"))
        prov, console = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, ""])
        outcome = prov.run()

        assert outcome.setup_entry.path == home / "dotfiles" / "install.sh"
        assert not outcome.setup_ran
        assert not runner.ran("bash")
        assert console.prompts[-1] == "Run 'bash install.sh' now?"

    def test_setup_accepted(self, runner, home, key_settings):
        runner.on(["git", "clone"], self._clone_with("setup.sh", "Makefile"))
        prov, _ = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, "y"])
        outcome = prov.run()

        assert outcome.history[-2:] == [S.EXECUTE_SETUP, S.END]
        assert outcome.setup_ran
        call = runner.call_log[-1]
        assert call.argv == ["bash", "setup.sh"]
        assert call.cwd == str(home / "dotfiles")

    def test_makefile_fallback(self, runner, home, key_settings):
        runner.on(["git", "clone"], self._clone_with("Makefile"))
        prov, _ = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, "yes"])
        prov.run()
        assert runner.calls[-1] == ["make", "install"]

    def test_setup_failure(self, runner, home, key_settings):
        runner.on(["git", "clone"], self._clone_with("install.sh"))
        runner.set_failure(["bash", "install.sh"])
        prov, _ = _provisioner(runner, home, key_settings, [*CLONE_ANSWERS, "y"])

        with pytest.raises(CommandFailure):
            prov.run()
        assert prov.history[-1] is S.EXECUTE_SETUP
