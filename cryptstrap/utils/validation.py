"""
Validation utilities.

This module provides functions for validating prerequisites.
"""
import os
import shutil
import logging

from cryptstrap.utils.command import CommandRunner

logger = logging.getLogger('cryptstrap')

# Tools every run needs on the live system
REQUIRED_TOOLS = [
    "lsblk", "sgdisk", "partprobe", "cryptsetup", "mkfs.btrfs", "mkfs.fat",
    "blkid", "mount", "pacstrap", "arch-chroot",
]


def check_prerequisites(cmd_runner: CommandRunner) -> None:
    """
    Check for required tools and permissions.

    Args:
        cmd_runner: CommandRunner instance for executing commands

    Raises:
        RuntimeError: If prerequisites are not met
    """
    if cmd_runner.simulating:
        logger.info("Checking for required tools (simulated)")
        for tool in REQUIRED_TOOLS:
            logger.info(f"Tool '{tool}' would be checked")
        return

    if os.geteuid() != 0:
        raise RuntimeError("This script must be run as root")

    missing_tools = [tool for tool in REQUIRED_TOOLS if not shutil.which(tool)]
    if missing_tools:
        raise RuntimeError(
            f"Missing required tools: {', '.join(missing_tools)}\n"
            "Boot the Arch Linux installation medium (or install arch-install-scripts, "
            "gptfdisk, cryptsetup, btrfs-progs and dosfstools) and try again"
        )
