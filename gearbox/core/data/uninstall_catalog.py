"""
Uninstall commands for each removal method and system package manager.

Templates use a ``{package}`` placeholder resolved at removal time.
"""

from __future__ import annotations

from gearbox.core.models.removal import RemovalMethod

UNINSTALL_COMMANDS: dict[RemovalMethod, dict] = {
    RemovalMethod.CARGO_UNINSTALL: {
        "command": ["cargo", "uninstall", "{package}"],
        "needs_sudo": False,
    },
    RemovalMethod.PIPX_UNINSTALL: {
        "command": ["pipx", "uninstall", "{package}"],
        "needs_sudo": False,
    },
    RemovalMethod.NPM_UNINSTALL: {
        "command": ["npm", "uninstall", "-g", "{package}"],
        "needs_sudo": False,
    },
    RemovalMethod.GO_CLEAN: {
        "command": ["go", "clean", "-modcache"],
        "needs_sudo": False,
    },
}

SYSTEM_REMOVE_COMMANDS: dict[str, dict] = {
    "apt": {
        "command": ["apt-get", "remove", "-y", "{package}"],
        "needs_sudo": True,
    },
    "dnf": {
        "command": ["dnf", "remove", "-y", "{package}"],
        "needs_sudo": True,
    },
    "yum": {
        "command": ["yum", "remove", "-y", "{package}"],
        "needs_sudo": True,
    },
    "pacman": {
        "command": ["pacman", "-Rns", "--noconfirm", "{package}"],
        "needs_sudo": True,
    },
    "brew": {
        "command": ["brew", "uninstall", "{package}"],
        "needs_sudo": False,
    },
}


def render(template: dict, package: str) -> list[str]:
    """Fill ``{package}`` into a command template."""
    return [part.replace("{package}", package) for part in template["command"]]
