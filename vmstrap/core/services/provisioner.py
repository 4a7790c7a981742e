"""
Deploy-key provisioner — the interactive session as an explicit state machine.

Flow::

    START → KEY_CHECK → {KEY_REUSE | KEY_REGEN | KEY_ABORT}
          → KEY_GENERATE (when no usable key) → CONFIG_WRITE
          → AWAIT_REGISTRATION → CONNECTIVITY_TEST → {CLONE_REQUEST | ABORT}
    CLONE_REQUEST → DIRECTORY_CHECK → {OVERWRITE | SKIP | REDIRECT}
          → CLONE → SETUP_DETECTION → (EXECUTE_SETUP) → END

Each state has one handler returning the next state; ``TRANSITIONS``
lists the legal successors and the driver loop rejects anything else.
All operator I/O goes through a Console, so the same session runs
under click prompts or a scripted test console.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path

from vmstrap.adapters.base import CommandRunner
from vmstrap.core.config.loader import DeployKeySettings
from vmstrap.core.console import Console
from vmstrap.core.errors import (
    CloneFailure,
    CommandFailure,
    ConnectivityFailure,
    FileWriteError,
    InvalidInputError,
    OperatorAbort,
)
from vmstrap.core.models.deploy_key import (
    CloneRequest,
    DeployKeyMaterial,
    SetupEntry,
    SshAlias,
)
from vmstrap.core.services import deploy_key as keys
from vmstrap.core.services import dotfiles
from vmstrap.core.services.ssh_config import upsert_alias

logger = logging.getLogger(__name__)


class ProvisionState(str, Enum):
    START = "start"
    KEY_CHECK = "key_check"
    KEY_REUSE = "key_reuse"
    KEY_REGEN = "key_regen"
    KEY_ABORT = "key_abort"
    KEY_GENERATE = "key_generate"
    CONFIG_WRITE = "config_write"
    AWAIT_REGISTRATION = "await_registration"
    CONNECTIVITY_TEST = "connectivity_test"
    CLONE_REQUEST = "clone_request"
    DIRECTORY_CHECK = "directory_check"
    OVERWRITE = "overwrite"
    SKIP = "skip"
    REDIRECT = "redirect"
    CLONE = "clone"
    SETUP_DETECTION = "setup_detection"
    EXECUTE_SETUP = "execute_setup"
    ABORT = "abort"
    END = "end"


S = ProvisionState

# Terminal states map to an empty set.
TRANSITIONS: dict[ProvisionState, frozenset[ProvisionState]] = {
    S.START: frozenset({S.KEY_CHECK}),
    S.KEY_CHECK: frozenset({S.KEY_REUSE, S.KEY_REGEN, S.KEY_ABORT, S.KEY_GENERATE}),
    S.KEY_REUSE: frozenset({S.CONFIG_WRITE}),
    S.KEY_REGEN: frozenset({S.KEY_GENERATE}),
    S.KEY_ABORT: frozenset(),
    S.KEY_GENERATE: frozenset({S.CONFIG_WRITE}),
    S.CONFIG_WRITE: frozenset({S.AWAIT_REGISTRATION}),
    S.AWAIT_REGISTRATION: frozenset({S.CONNECTIVITY_TEST}),
    S.CONNECTIVITY_TEST: frozenset({S.CLONE_REQUEST, S.ABORT}),
    S.CLONE_REQUEST: frozenset({S.DIRECTORY_CHECK}),
    S.DIRECTORY_CHECK: frozenset({S.OVERWRITE, S.SKIP, S.REDIRECT, S.CLONE}),
    S.OVERWRITE: frozenset({S.CLONE}),
    S.SKIP: frozenset({S.END}),
    S.REDIRECT: frozenset({S.CLONE}),
    S.CLONE: frozenset({S.SETUP_DETECTION}),
    S.SETUP_DETECTION: frozenset({S.EXECUTE_SETUP, S.END}),
    S.EXECUTE_SETUP: frozenset({S.END}),
    S.ABORT: frozenset(),
    S.END: frozenset(),
}

KEY_MENU: dict[str, ProvisionState] = {
    "1": S.KEY_REUSE,
    "2": S.KEY_REGEN,
    "3": S.KEY_ABORT,
}

DIRECTORY_MENU: dict[str, ProvisionState] = {
    "1": S.OVERWRITE,
    "2": S.SKIP,
    "3": S.REDIRECT,
}


@dataclass
class ProvisionOutcome:
    """What a completed session did."""

    material: DeployKeyMaterial
    history: list[ProvisionState] = field(default_factory=list)
    key_generated: bool = False
    config_backup: Path | None = None
    clone_request: CloneRequest | None = None
    cloned_to: Path | None = None
    setup_entry: SetupEntry | None = None
    setup_ran: bool = False

    @property
    def final_state(self) -> ProvisionState | None:
        return self.history[-1] if self.history else None


class DeployKeyProvisioner:
    """Drive one interactive deploy-key session."""

    def __init__(
        self,
        runner: CommandRunner,
        console: Console,
        *,
        home: Path | None = None,
        settings: DeployKeySettings | None = None,
        hostname: str | None = None,
        today: date | None = None,
    ):
        self.runner = runner
        self.console = console
        self.home = home or Path.home()
        self.settings = settings or DeployKeySettings()
        self.hostname = hostname or keys.host_name()
        self.today = today or date.today()

        self.ssh_dir = self.home / ".ssh"
        self.alias = SshAlias()
        self.outcome = ProvisionOutcome(
            material=DeployKeyMaterial.in_dir(
                self.ssh_dir, comment=keys.key_comment(self.hostname, self.today)
            )
        )

        self._handlers: dict[ProvisionState, Callable[[], ProvisionState | None]] = {
            S.START: self._start,
            S.KEY_CHECK: self._key_check,
            S.KEY_REUSE: self._key_reuse,
            S.KEY_REGEN: self._key_regen,
            S.KEY_ABORT: self._key_abort,
            S.KEY_GENERATE: self._key_generate,
            S.CONFIG_WRITE: self._config_write,
            S.AWAIT_REGISTRATION: self._await_registration,
            S.CONNECTIVITY_TEST: self._connectivity_test,
            S.CLONE_REQUEST: self._clone_request,
            S.DIRECTORY_CHECK: self._directory_check,
            S.OVERWRITE: self._overwrite,
            S.SKIP: self._skip,
            S.REDIRECT: self._redirect,
            S.CLONE: self._clone,
            S.SETUP_DETECTION: self._setup_detection,
            S.EXECUTE_SETUP: self._execute_setup,
            S.ABORT: self._abort,
            S.END: self._end,
        }

    @property
    def history(self) -> list[ProvisionState]:
        return self.outcome.history

    @property
    def material(self) -> DeployKeyMaterial:
        return self.outcome.material

    # ── Driver ──────────────────────────────────────────────────

    def run(self, start: ProvisionState = S.START) -> ProvisionOutcome:
        """Run the session until a terminal state.

        Raises:
            BootstrapError: Any fatal step (see ``vmstrap.core.errors``).
            RuntimeError: A handler attempted an illegal transition.
        """
        state: ProvisionState | None = start
        while state is not None:
            self.history.append(state)
            logger.debug("Provisioner state: %s", state.value)
            nxt = self._handlers[state]()
            if nxt is not None and nxt not in TRANSITIONS[state]:
                raise RuntimeError(f"Illegal transition {state.value} -> {nxt.value}")
            state = nxt
        return self.outcome

    # ── Key handling ────────────────────────────────────────────

    def _start(self) -> ProvisionState:
        self.console.info("Setting up deploy key for secure dotfiles access...")
        keys.ensure_ssh_dir(self.ssh_dir)
        return S.KEY_CHECK

    def _key_check(self) -> ProvisionState:
        if not self.material.exists():
            if self.material.partial():
                self.console.warn("Incomplete deploy key found; generating a new pair")
                keys.remove_key(self.material)
            return S.KEY_GENERATE

        self.console.warn(
            f"Deploy key already exists at {self._display(self.material.private_key_path)}"
        )
        self.console.echo("Do you want to:")
        self.console.echo("1. Use existing key")
        self.console.echo("2. Generate new key (will overwrite)")
        self.console.echo("3. Exit")
        return self._menu_choice(KEY_MENU)

    def _key_reuse(self) -> ProvisionState:
        self.console.info("Using existing deploy key...")
        return S.CONFIG_WRITE

    def _key_regen(self) -> ProvisionState:
        self.console.info("Generating new deploy key...")
        keys.remove_key(self.material)
        return S.KEY_GENERATE

    def _key_abort(self) -> None:
        raise OperatorAbort("Exiting; existing deploy key left untouched.")

    def _key_generate(self) -> ProvisionState:
        self.console.info("Generating dedicated deploy key for dotfiles...")
        keys.ensure_keygen(self.runner, self.console)
        keys.generate_key(self.runner, self.material)
        self.outcome.key_generated = True
        self.console.success("Deploy key generated!")
        return S.CONFIG_WRITE

    def _config_write(self) -> ProvisionState:
        self.console.info("Configuring SSH for deploy key...")
        self.outcome.config_backup = upsert_alias(self.ssh_dir, self.alias)
        return S.AWAIT_REGISTRATION

    # ── Registration and connectivity ───────────────────────────

    def _await_registration(self) -> ProvisionState:
        c = self.console
        c.echo()
        c.banner()
        c.success("Deploy key ready! Add this as a Deploy Key to your dotfiles repository:")
        c.banner()
        c.echo()
        c.echo(self.material.public_key())
        c.echo()
        c.banner()
        c.echo()
        c.info("Steps to add deploy key to GitHub:")
        c.echo()
        c.echo("  1. Copy the key above (triple-click to select all)")
        c.echo("  2. Go to your dotfiles repository on GitHub")
        c.echo("  3. Click: Settings → Deploy keys → Add deploy key")
        c.echo(f"  4. Title: 'VM Deploy Key - {self.hostname} - {self.today:%Y-%m-%d}'")
        c.echo("  5. Paste the key in the 'Key' field")
        c.echo("  6. IMPORTANT: Leave 'Allow write access' UNCHECKED (read-only)")
        c.echo("  7. Click 'Add key'")
        c.echo()
        c.banner()
        c.echo()
        c.pause("Press Enter when you've added the deploy key to continue...")
        return S.CONNECTIVITY_TEST

    def _connectivity_test(self) -> ProvisionState:
        self.console.info("Testing deploy key connection to GitHub...")
        timeout = self.settings.connect_timeout
        if keys.probe_connection(self.runner, self.alias.alias_name, timeout=timeout):
            self.console.success("Deploy key connection successful!")
            return S.CLONE_REQUEST
        return S.ABORT

    def _abort(self) -> None:
        c = self.console
        alias = self.alias.alias_name
        c.error("Deploy key connection failed")
        c.echo()
        c.info("Troubleshooting:")
        c.echo("  1. Check the key was added under the repository's Settings → Deploy keys")
        c.echo(f"  2. Test the connection manually:  ssh -T {alias}")
        c.echo(f"  3. Clone manually:  git clone {alias}:USERNAME/"
               f"{self.settings.default_repo}.git {self.settings.default_destination}")
        c.echo()
        raise ConnectivityFailure(
            f"No '{keys.SUCCESS_MARKER}' reply from {alias} within "
            f"{self.settings.connect_timeout}s"
        )

    # ── Clone flow ──────────────────────────────────────────────

    def _clone_request(self) -> ProvisionState:
        c = self.console
        c.echo()
        owner = c.prompt("Enter your GitHub username")
        if not owner:
            raise InvalidInputError("Username cannot be empty")

        repo = c.prompt(
            "Enter your dotfiles repository name", default=self.settings.default_repo
        )
        raw_dest = c.prompt(
            "Clone to which directory?", default=self.settings.default_destination
        )

        self.outcome.clone_request = CloneRequest(
            remote_owner=owner,
            remote_repo=repo,
            destination_path=dotfiles.expand_path(raw_dest),
        )
        return S.DIRECTORY_CHECK

    def _directory_check(self) -> ProvisionState:
        dest = self._request.destination_path
        if not dest.exists():
            return S.CLONE

        c = self.console
        c.warn(f"Directory {dest} already exists")
        c.echo("Do you want to:")
        c.echo("1. Remove and re-clone")
        c.echo("2. Skip cloning")
        c.echo("3. Clone to different location")
        return self._menu_choice(DIRECTORY_MENU)

    def _overwrite(self) -> ProvisionState:
        dest = self._request.destination_path
        self.console.info("Removing existing directory...")
        try:
            if dest.is_dir() and not dest.is_symlink():
                shutil.rmtree(dest)
            else:
                dest.unlink()
        except OSError as e:
            raise FileWriteError(f"Cannot remove {dest}: {e}") from e
        return S.CLONE

    def _skip(self) -> ProvisionState:
        self.console.info("Skipping clone. Deploy key is ready for manual use.")
        return S.END

    def _redirect(self) -> ProvisionState:
        raw = self.console.prompt("Enter new directory path")
        if not raw:
            raise InvalidInputError("Directory path cannot be empty")
        self.outcome.clone_request = self._request.model_copy(
            update={"destination_path": dotfiles.expand_path(raw)}
        )
        return S.CLONE

    def _clone(self) -> ProvisionState:
        request = self._request
        dest = request.destination_path
        self.console.info(f"Cloning {request.remote_owner}/{request.remote_repo} to {dest}...")
        try:
            dotfiles.clone(self.runner, request, self.alias.alias_name)
        except CloneFailure:
            c = self.console
            c.error("Failed to clone dotfiles repository")
            c.echo()
            c.info("Check that:")
            c.echo(f"  • The repository {request.remote_owner}/{request.remote_repo} exists")
            c.echo("  • The deploy key was added to THIS repository")
            c.echo(f"  • You can clone manually:  git clone {request.url(self.alias.alias_name)} {dest}")
            c.echo()
            raise
        self.outcome.cloned_to = dest
        self.console.success(f"Dotfiles cloned successfully to {dest}!")
        return S.SETUP_DETECTION

    def _setup_detection(self) -> ProvisionState:
        dest = self._request.destination_path
        entry = dotfiles.detect_setup_entry(dest)
        if entry is None:
            self.console.info("No setup script found (install.sh, setup.sh, Makefile).")
            return S.END

        self.outcome.setup_entry = entry
        self.console.info(f"Found setup entry point: {entry.kind.value}")
        if self.console.confirm(f"Run '{' '.join(entry.argv)}' now?", default=False):
            return S.EXECUTE_SETUP

        self.console.info(f"Run it later with:  cd {dest} && {' '.join(entry.argv)}")
        return S.END

    def _execute_setup(self) -> ProvisionState:
        entry = self.outcome.setup_entry
        assert entry is not None  # set by SETUP_DETECTION
        command = " ".join(entry.argv)
        result = dotfiles.run_setup_entry(self.runner, entry)
        if not result.ok:
            self.console.error(f"Setup entry point failed: {command}")
            self.console.info(f"Re-run it manually:  cd {entry.path.parent} && {command}")
            raise CommandFailure(result.describe(), result)
        self.outcome.setup_ran = True
        self.console.success("Dotfiles setup complete!")
        return S.END

    def _end(self) -> None:
        self._show_usage_examples()
        return None

    # ── Helpers ─────────────────────────────────────────────────

    @property
    def _request(self) -> CloneRequest:
        request = self.outcome.clone_request
        assert request is not None  # set by CLONE_REQUEST
        return request

    def _menu_choice(self, menu: dict[str, ProvisionState]) -> ProvisionState:
        choice = self.console.prompt("Choice")
        if choice not in menu:
            raise InvalidInputError("Invalid choice. Exiting.")
        return menu[choice]

    def _display(self, path: Path) -> str:
        try:
            return f"~/{path.relative_to(self.home)}"
        except ValueError:
            return str(path)

    def _show_usage_examples(self) -> None:
        c = self.console
        alias = self.alias.alias_name
        request = self._request
        dest = self._display(request.destination_path)

        c.echo()
        c.info("Usage examples:")
        c.echo(f"  Clone:   git clone {request.url(alias)} {dest}")
        c.echo(f"  Update:  cd {dest} && git pull")
        c.echo(f"  Test:    ssh -T {alias}")
        c.echo()
        c.info("To remove the deploy key from this machine:")
        c.echo(f"  rm {self._display(self.material.private_key_path)} "
               f"{self._display(self.material.public_key_path)}")
        c.echo(f"  and delete the 'Host {alias}' block from ~/.ssh/config")
        c.echo("  then remove the key from the repository's Deploy keys page.")
