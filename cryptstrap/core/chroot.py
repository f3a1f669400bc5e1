"""
Chroot finalization module.

This module runs the last fixed set of commands inside the installed system:
clock and locale, the user account, the initramfs, the boot loader and its
theme, and the services that bring up the network and the firewall.
Network access inside the chroot is assumed, not checked.
"""
import logging
from typing import List, Protocol, Sequence

from cryptstrap.utils.command import COMMAND_ERRORS, CommandRunner
from cryptstrap.utils.format import TermColors, colorize, format_command
from cryptstrap.utils.settings import InstallConfig
from cryptstrap.config.refind import REFIND_DIR, theme_name
from cryptstrap.core.exceptions import ChrootCommandError

logger = logging.getLogger('cryptstrap')

REFIND_STUB = "/boot/refind_linux.conf"
NETWORK_SERVICES = ("systemd-networkd", "systemd-resolved")
FIREWALL_SERVICE = "iptables"


class ThemeFetcher(Protocol):
    """Downloads the boot loader theme into a directory of the target system"""

    def fetch(self, url: str, destination: str) -> None:
        ...


def run_in_chroot(target: str, cmd: Sequence[str], cmd_runner: CommandRunner) -> None:
    """
    Run a command with the target tree as root directory.

    Raises:
        ChrootCommandError: If the command exits non-zero
    """
    try:
        cmd_runner.run(["arch-chroot", target, *cmd])
    except COMMAND_ERRORS as e:
        raise ChrootCommandError(f"Command failed in {target}: {format_command(list(cmd))}: {e}")


class GitThemeFetcher:
    """Clones the theme repository from inside the target system"""

    def __init__(self, target: str, cmd_runner: CommandRunner):
        self.target = target
        self.cmd_runner = cmd_runner

    def fetch(self, url: str, destination: str) -> None:
        run_in_chroot(self.target, ["git", "clone", "--depth", "1", url, destination],
                      self.cmd_runner)


def theme_destination(url: str) -> str:
    """Path of the theme directory, as seen from inside the target system"""
    return f"/boot/efi/{REFIND_DIR}/themes/{theme_name(url)}"


def user_command(config: InstallConfig) -> List[str]:
    policy = config.policy
    cmd = ["useradd", "--create-home", "--groups", "wheel", "--shell", "/bin/bash"]
    if policy.password_hash:
        cmd += ["--password", policy.password_hash]
    return cmd + [policy.username]


def setup_commands(config: InstallConfig) -> List[List[str]]:
    """Commands run before the theme is fetched"""
    return [
        ["hwclock", "--systohc"],
        ["locale-gen"],
        user_command(config),
        ["mkinitcpio", "--allpresets"],
        ["refind-install"],
        ["rm", REFIND_STUB],
    ]


def service_commands(config: InstallConfig) -> List[List[str]]:
    """Commands run after the theme is in place"""
    wpa_unit = f"wpa_supplicant@{config.policy.wireless_interface}"
    return [
        ["systemctl", "enable", *NETWORK_SERVICES, wpa_unit],
        ["systemctl", "enable", FIREWALL_SERVICE],
    ]


def finalize(config: InstallConfig, cmd_runner: CommandRunner, fetcher: ThemeFetcher) -> None:
    """
    Run the fixed finalization commands inside the target tree.

    Args:
        config: Run configuration
        cmd_runner: CommandRunner instance for executing commands
        fetcher: Where the boot loader theme comes from

    Raises:
        ChrootCommandError: If any command fails
    """
    if not config.policy.password_hash:
        logger.warning(f"No password hash configured: account {config.policy.username} "
                       f"stays locked until a password is set")

    for cmd in setup_commands(config):
        run_in_chroot(config.target, cmd, cmd_runner)

    destination = theme_destination(config.policy.theme_url)
    logger.info(f"Fetching boot loader theme into {destination}")
    fetcher.fetch(config.policy.theme_url, destination)

    for cmd in service_commands(config):
        run_in_chroot(config.target, cmd, cmd_runner)

    logger.info(colorize("Target system finalized", TermColors.SUCCESS, cmd_runner.colored_output))
