"""
Device validation module.

This module confirms that caller-supplied device paths name existing block
devices. It must succeed for every device before anything destructive runs.
"""
import logging
from typing import Tuple

from cryptstrap.utils.command import COMMAND_ERRORS, CommandRunner
from cryptstrap.utils.format import TermColors, colorize
from cryptstrap.utils.settings import InstallConfig
from cryptstrap.utils.types import DeviceSpec
from cryptstrap.core.exceptions import DeviceNotFoundError

logger = logging.getLogger('cryptstrap')


def query_device_path(device: str, cmd_runner: CommandRunner) -> str:
    """
    Ask lsblk for the canonical path of a device.

    Args:
        device: Path to the device
        cmd_runner: CommandRunner instance for executing commands

    Returns:
        The path reported by lsblk

    Raises:
        DeviceNotFoundError: If the device cannot be queried
    """
    try:
        result = cmd_runner.run(["lsblk", "--nodeps", "--noheadings", "--output", "PATH", device])
    except COMMAND_ERRORS as e:
        raise DeviceNotFoundError(f"Device {device} could not be queried: {e}")
    return result.stdout.strip()


def validate_device(device: str, cmd_runner: CommandRunner) -> DeviceSpec:
    """
    Check that lsblk reports exactly this path for the device.

    Args:
        device: Path to the device
        cmd_runner: CommandRunner instance for executing commands

    Returns:
        Validated DeviceSpec

    Raises:
        DeviceNotFoundError: If the device is missing or resolves to another path
    """
    reported = query_device_path(device, cmd_runner)
    if reported != device:
        raise DeviceNotFoundError(
            f"Device {device} not found (lsblk reported {reported or 'nothing'})"
        )

    logger.info(colorize(f"Device {device} is available", TermColors.SUCCESS, cmd_runner.colored_output))
    return DeviceSpec(path=device)


def validate_devices(config: InstallConfig, cmd_runner: CommandRunner) -> Tuple[DeviceSpec, DeviceSpec]:
    """
    Validate the root and boot devices of a run.

    Args:
        config: Run configuration
        cmd_runner: CommandRunner instance for executing commands

    Returns:
        Tuple of (root device, boot device)

    Raises:
        DeviceNotFoundError: If either device is invalid or both name the same disk
    """
    if config.root_device == config.boot_device:
        raise DeviceNotFoundError(
            f"Root and boot devices must be different disks, got {config.root_device} twice"
        )

    root = validate_device(config.root_device, cmd_runner)
    boot = validate_device(config.boot_device, cmd_runner)
    return root, boot
