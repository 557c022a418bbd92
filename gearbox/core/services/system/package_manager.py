"""
System package manager detection and bulk install.

Used for bundle ``system_packages``: detect the host's manager once,
then install the collected package list in a single command.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field

from gearbox.core.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageManager:
    """A system package manager gearbox knows how to drive."""

    name: str
    install_cmd: tuple[str, ...]
    update_cmd: tuple[str, ...] = ()
    needs_sudo: bool = True

    @property
    def binary(self) -> str:
        return self.install_cmd[0]


# Probed in order; first one on PATH wins
KNOWN_MANAGERS: tuple[PackageManager, ...] = (
    PackageManager("apt", ("apt-get", "install", "-y"), ("apt-get", "update")),
    PackageManager("dnf", ("dnf", "install", "-y")),
    PackageManager("yum", ("yum", "install", "-y")),
    PackageManager("pacman", ("pacman", "-S", "--noconfirm", "--needed"), ("pacman", "-Sy")),
    PackageManager("brew", ("brew", "install"), needs_sudo=False),
)


def detect_package_manager() -> PackageManager | None:
    """Return the first known package manager found on PATH."""
    for manager in KNOWN_MANAGERS:
        if shutil.which(manager.binary):
            logger.debug("Detected package manager: %s", manager.name)
            return manager
    logger.info("No supported system package manager found")
    return None


@dataclass
class PackageInstallResult:
    """Outcome of a bulk system package install."""

    manager: str
    packages: list[str] = field(default_factory=list)
    ok: bool = True
    error: str = ""


def install_packages(
    manager: PackageManager,
    packages: list[str],
    *,
    dry_run: bool = False,
    timeout: int = 900,
) -> PackageInstallResult:
    """Install packages in one command. A failed index update is only logged."""
    result = PackageInstallResult(manager=manager.name, packages=list(packages))
    if not packages or dry_run:
        return result

    if manager.update_cmd:
        update = run_command(list(manager.update_cmd), needs_sudo=manager.needs_sudo, timeout=timeout)
        if not update["ok"]:
            logger.warning("Package index update failed (%s): %s", manager.name, update["error"])

    logger.info("Installing system packages via %s: %s", manager.name, ", ".join(packages))
    outcome = run_command(
        list(manager.install_cmd) + list(packages),
        needs_sudo=manager.needs_sudo,
        timeout=timeout,
    )
    if not outcome["ok"]:
        result.ok = False
        result.error = outcome.get("stderr") or outcome["error"]
    return result
