"""
Filesystem creation module.

This module formats the opened root volume, the boot partition and the EFI
system partition, one after the other.
"""
import logging
from typing import List

from cryptstrap.utils.command import COMMAND_ERRORS, CommandRunner
from cryptstrap.utils.format import TermColors, colorize
from cryptstrap.utils.types import FormattedVolume, PartitionTable, VolumeTable
from cryptstrap.core.exceptions import DestructiveOperationError

logger = logging.getLogger('cryptstrap')

ROLES = ("ROOT", "BOOT", "ESP")


def volume_label(prefix: str, role: str) -> str:
    """Build the label of a volume, e.g. T440S_ROOT"""
    return f"{prefix}_{role}"


def plan_volumes(mapped_device: str, partitions: PartitionTable, label_prefix: str) -> VolumeTable:
    """
    Decide which filesystem goes on which device.

    Args:
        mapped_device: Clear-text device of the encrypted root
        partitions: Dict mapping partition roles to device paths
        label_prefix: Prefix shared by the three labels

    Returns:
        Dict mapping volume roles to FormattedVolume, in format order
    """
    return {
        "ROOT": FormattedVolume("ROOT", mapped_device, "btrfs", volume_label(label_prefix, "ROOT")),
        "BOOT": FormattedVolume("BOOT", partitions["boot"], "btrfs", volume_label(label_prefix, "BOOT")),
        "ESP": FormattedVolume("ESP", partitions["efi"], "vfat", volume_label(label_prefix, "ESP")),
    }


def mkfs_command(volume: FormattedVolume) -> List[str]:
    """
    Build the format command for a volume, overwriting any existing signature.

    Raises:
        DestructiveOperationError: If the filesystem type is not supported
    """
    if volume.fstype == "btrfs":
        return ["mkfs.btrfs", "--force", "--label", volume.label, volume.device]
    if volume.fstype == "vfat":
        return ["mkfs.fat", "-F32", "-n", volume.label, volume.device]
    raise DestructiveOperationError(f"Unsupported filesystem type: {volume.fstype}")


def create_filesystems(volumes: VolumeTable, cmd_runner: CommandRunner) -> None:
    """
    Format every planned volume.

    Args:
        volumes: Dict mapping volume roles to FormattedVolume
        cmd_runner: CommandRunner instance for executing commands

    Raises:
        DestructiveOperationError: If there's an error in filesystem creation
    """
    logger.info("Creating filesystems")

    for role in ROLES:
        volume = volumes[role]
        try:
            cmd_runner.run(mkfs_command(volume))
        except COMMAND_ERRORS as e:
            raise DestructiveOperationError(
                f"Failed to create {volume.fstype} filesystem on {volume.device}: {e}"
            )
        logger.info(f"Created {volume.fstype} filesystem on {volume.device} (label {volume.label})")

    logger.info(colorize("All filesystems created successfully",
                         TermColors.SUCCESS, cmd_runner.colored_output))
