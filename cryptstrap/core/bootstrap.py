"""
Base system installation.
"""
import logging
from typing import Sequence

from cryptstrap.utils.command import COMMAND_ERRORS, CommandRunner
from cryptstrap.utils.format import TermColors, colorize
from cryptstrap.core.exceptions import BootstrapError

logger = logging.getLogger('cryptstrap')


def bootstrap_system(target: str, packages: Sequence[str], cmd_runner: CommandRunner) -> None:
    """
    Install the package set into the mounted target tree with pacstrap.

    Args:
        target: Mounted target root
        packages: Packages to install
        cmd_runner: CommandRunner instance for executing commands

    Raises:
        BootstrapError: If pacstrap fails. A half-populated tree is not recoverable.
    """
    logger.info(f"Installing {len(packages)} packages into {target}")
    try:
        cmd_runner.run(["pacstrap", target, *packages])
    except COMMAND_ERRORS as e:
        raise BootstrapError(f"Failed to install the base system into {target}: {e}")
    logger.info(colorize("Base system installed", TermColors.SUCCESS, cmd_runner.colored_output))
