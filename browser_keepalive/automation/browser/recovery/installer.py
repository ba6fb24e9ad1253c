"""Interactive installation of missing engines and browser binaries."""

from __future__ import annotations

import importlib
import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TextIO

from browser_keepalive.infrastructure.constants import (
    ENGINE_DISTRIBUTIONS,
    ENGINE_PLAYWRIGHT,
    ENGINE_SELENIUM,
)
from browser_keepalive.infrastructure.errors import InstallError
from browser_keepalive.tracking import t

PACKAGE_MANAGER_UV = "uv"
PACKAGE_MANAGER_PIP = "pip"

_SELENIUM_BROWSER_INSTALL = (
    "from selenium.webdriver.common.selenium_manager import SeleniumManager; "
    "SeleniumManager().binary_paths(['--browser', 'chrome', '--force-browser-download'])"
)


@dataclass(frozen=True)
class BrowserInstallProfile:
    """How to fetch the browser binaries an engine drives."""

    label: str
    browser: str
    manual_command: str


BROWSER_PROFILES = {
    ENGINE_PLAYWRIGHT: BrowserInstallProfile(
        label="Playwright",
        browser="Chromium",
        manual_command="python -m playwright install chromium",
    ),
    ENGINE_SELENIUM: BrowserInstallProfile(
        label="Selenium",
        browser="Chrome",
        manual_command="selenium-manager --browser chrome --force-browser-download",
    ),
}


class EngineInstaller:
    """Prompt for consent and shell out to the package manager.

    ``assume_yes`` auto-confirms every prompt. Without it a prompt is only
    shown on an interactive terminal; anywhere else it counts as declined.
    """

    def __init__(
        self,
        *,
        assume_yes: bool = False,
        stdin: Optional[TextIO] = None,
        input_func: Callable[[str], str] = input,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
        python: str = sys.executable,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('automation.browser.recovery.installer.EngineInstaller.__init__')
        self.assume_yes = assume_yes
        self._stdin = stdin
        self._input = input_func
        self._runner = runner
        self._which = which
        self.python = python
        self.logger = logger or logging.getLogger('EngineInstaller')

    @property
    def stdin(self) -> TextIO:
        return self._stdin if self._stdin is not None else sys.stdin

    # ------------------------------------------------------------------
    # Environment probing
    # ------------------------------------------------------------------
    def command_exists(self, command: Sequence[str]) -> bool:
        try:
            result = self._runner(
                list(command),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError:
            return False
        return result.returncode == 0

    def pick_package_manager(self) -> Optional[str]:
        """Prefer ``uv`` when available, otherwise this interpreter's ``pip``."""
        t('automation.browser.recovery.installer.EngineInstaller.pick_package_manager')
        if self._which(PACKAGE_MANAGER_UV) and self.command_exists([PACKAGE_MANAGER_UV, "--version"]):
            return PACKAGE_MANAGER_UV
        if self.command_exists([self.python, "-m", "pip", "--version"]):
            return PACKAGE_MANAGER_PIP
        return None

    # ------------------------------------------------------------------
    # Prompting
    # ------------------------------------------------------------------
    def prompt_yes_no(self, question: str, default_yes: bool = False) -> bool:
        t('automation.browser.recovery.installer.EngineInstaller.prompt_yes_no')
        if self.assume_yes:
            self.logger.info("%s [auto-confirmed with --yes]", question)
            return True

        isatty = getattr(self.stdin, "isatty", None)
        if not callable(isatty) or not isatty():
            return False

        suffix = "[Y/n]" if default_yes else "[y/N]"
        try:
            answer = self._input(f"{question} {suffix} ").strip().lower()
        except EOFError:
            return False
        if not answer:
            return default_yes
        return answer in {"y", "yes"}

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def engine_install_command(self, package_manager: str, engine: str) -> List[str]:
        dist = ENGINE_DISTRIBUTIONS[engine]
        if package_manager == PACKAGE_MANAGER_UV:
            return [PACKAGE_MANAGER_UV, "pip", "install", "--python", self.python, dist]
        if package_manager == PACKAGE_MANAGER_PIP:
            return [self.python, "-m", "pip", "install", dist]
        raise InstallError(f"Unknown package manager: {package_manager}")

    def browser_install_command(self, engine: str) -> List[str]:
        if engine == ENGINE_PLAYWRIGHT:
            return [self.python, "-m", "playwright", "install", "chromium"]
        if engine == ENGINE_SELENIUM:
            return [self.python, "-c", _SELENIUM_BROWSER_INSTALL]
        raise InstallError(f"No browser installer known for engine '{engine}'")

    def manual_engine_command(self, package_manager: Optional[str], engine: str) -> str:
        dist = ENGINE_DISTRIBUTIONS[engine]
        if package_manager == PACKAGE_MANAGER_UV:
            return f"uv pip install {dist}"
        return f"pip install {dist}"

    def run(self, command: Sequence[str]) -> int:
        t('automation.browser.recovery.installer.EngineInstaller.run')
        self.logger.info("Running: %s", " ".join(command))
        try:
            result = self._runner(list(command), check=False)
        except OSError as exc:
            self.logger.error("Could not run %s: %s", command[0], exc)
            return 127
        return result.returncode

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------
    def ensure_engine_installed(self, engine: str) -> None:
        """Install the engine's package, then optionally its browser."""
        t('automation.browser.recovery.installer.EngineInstaller.ensure_engine_installed')
        package_manager = self.pick_package_manager()
        if not package_manager:
            raise InstallError(
                "No supported package manager found. Install pip or uv, then install "
                f"the engine (e.g. `pip install {ENGINE_DISTRIBUTIONS[engine]}`)."
            )

        if not self.prompt_yes_no(f"'{engine}' is not installed. Install it now?"):
            raise InstallError(
                f"Missing engine '{engine}'. Install it with: "
                f"{self.manual_engine_command(package_manager, engine)}"
            )

        code = self.run(self.engine_install_command(package_manager, engine))
        if code != 0:
            raise InstallError(f"Failed to install '{engine}' (exit code {code}).")
        importlib.invalidate_caches()

        profile = BROWSER_PROFILES.get(engine)
        if profile is None:
            return
        question = f"Install {profile.label} {profile.browser} browser binaries too? (recommended)"
        if self.prompt_yes_no(question, default_yes=True):
            code = self.run(self.browser_install_command(engine))
            if code != 0:
                raise InstallError(
                    f"{profile.label} installed, but failed to install {profile.browser} "
                    f"(exit code {code})."
                )

    def ensure_browser_installed(self, engine: str) -> None:
        """Install the browser binaries for an engine that is already present."""
        t('automation.browser.recovery.installer.EngineInstaller.ensure_browser_installed')
        profile = BROWSER_PROFILES[engine]

        question = f"{profile.label} browser binaries are missing. Install {profile.browser} now?"
        if not self.prompt_yes_no(question):
            raise InstallError(
                f"{profile.label} browser binaries missing. "
                f"Run `{profile.manual_command}` and retry."
            )

        code = self.run(self.browser_install_command(engine))
        if code != 0:
            raise InstallError(
                f"Failed to install {profile.label} {profile.browser} (exit code {code})."
            )
