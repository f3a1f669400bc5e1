"""
Disk partitioning module.

This module derives the fixed partition layouts and writes them with sgdisk.
The root disk carries a single partition holding the LUKS container; the boot
disk carries a small boot partition followed by the EFI system partition.
Sizes are constants and never depend on the capacity of the disk.
"""
import logging
import re
from typing import Dict

from cryptstrap.utils.command import COMMAND_ERRORS, CommandRunner
from cryptstrap.utils.format import TermColors, colorize, mib_end_spec
from cryptstrap.utils.types import DeviceSpec, PartitionDescriptor, PartitionLayout, PartitionTable
from cryptstrap.core.exceptions import DestructiveOperationError

logger = logging.getLogger('cryptstrap')

# Constants
BOOT_PARTITION_SIZE_MIB = 200
EFI_PARTITION_SIZE_MIB = 512
EFI_TYPE_CODE = "ef00"

# Full GUIDs of the short codes this module writes
TYPE_CODE_GUIDS: Dict[str, str] = {
    EFI_TYPE_CODE: "C12A7328-F81F-11D2-BA4B-00A0C93EC93B",
}

GUID_CODE_RE = re.compile(r"^Partition GUID code:\s*([0-9A-Fa-f-]{36})", re.MULTILINE)


def partition_device_name(disk: str, partition_number: int) -> str:
    """
    Generate the partition device name for a disk.

    Args:
        disk: Path to the disk device
        partition_number: Partition number

    Returns:
        Partition device path (/dev/sda1, /dev/nvme0n1p1, /dev/mmcblk0p1)
    """
    # Kernel names ending in a digit get a "p" separator
    if disk[-1:].isdigit():
        return f"{disk}p{partition_number}"
    return f"{disk}{partition_number}"


def root_layout(device: DeviceSpec) -> PartitionLayout:
    """One partition spanning the whole root disk"""
    return PartitionLayout(
        device=device,
        partitions=(PartitionDescriptor(index=1),),
    )


def boot_layout(device: DeviceSpec) -> PartitionLayout:
    """Boot partition, then the EFI system partition"""
    return PartitionLayout(
        device=device,
        partitions=(
            PartitionDescriptor(index=1, size=mib_end_spec(BOOT_PARTITION_SIZE_MIB)),
            PartitionDescriptor(index=2, size=mib_end_spec(EFI_PARTITION_SIZE_MIB),
                                type_code=EFI_TYPE_CODE),
        ),
    )


def _sgdisk(args: list, disk: str, cmd_runner: CommandRunner, action: str):
    try:
        return cmd_runner.run(["sgdisk", *args, disk])
    except COMMAND_ERRORS as e:
        raise DestructiveOperationError(f"Failed to {action} on {disk}: {e}")


def apply_layout(layout: PartitionLayout, cmd_runner: CommandRunner) -> None:
    """
    Clear the partition table of a disk and write a layout to it.

    Args:
        layout: Layout to write
        cmd_runner: CommandRunner instance for executing commands

    Raises:
        DestructiveOperationError: If clearing or writing the table fails
    """
    disk = layout.device.path
    logger.info(colorize(f"Partitioning {disk}", TermColors.INFO, cmd_runner.colored_output))

    _sgdisk(["--zap-all"], disk, cmd_runner, "clear the partition table")

    for part in layout.partitions:
        end = part.size if part.size is not None else "0"
        _sgdisk([f"--new={part.index}:{part.start}:{end}"], disk, cmd_runner,
                f"create partition {part.index}")
        if part.type_code is not None:
            _sgdisk([f"--typecode={part.index}:{part.type_code}"], disk, cmd_runner,
                    f"set the type of partition {part.index}")
        logger.info(f"  partition {part.index}: size={part.size or 'rest of disk'}, "
                    f"type={part.type_code or 'default'}")

    # Let the kernel pick up the new table before anything opens the partitions
    try:
        cmd_runner.run(["partprobe", disk])
    except COMMAND_ERRORS as e:
        raise DestructiveOperationError(f"Kernel did not re-read the partition table of {disk}: {e}")


def verify_layout(layout: PartitionLayout, cmd_runner: CommandRunner) -> None:
    """
    Re-read the type of every typed partition and compare it with the layout.

    Raises:
        DestructiveOperationError: If a partition type was not written as requested
    """
    disk = layout.device.path
    for part in layout.partitions:
        if part.type_code is None:
            continue
        expected = TYPE_CODE_GUIDS[part.type_code]
        result = _sgdisk([f"--info={part.index}"], disk, cmd_runner,
                         f"read partition {part.index}")
        match = GUID_CODE_RE.search(result.stdout)
        found = match.group(1).upper() if match else None
        if found != expected:
            raise DestructiveOperationError(
                f"Partition {part.index} on {disk} has type {found or 'unknown'}, expected {expected}"
            )
        logger.debug(f"Partition {part.index} on {disk} has type {found}")


def prepare_disks(root: DeviceSpec, boot: DeviceSpec, cmd_runner: CommandRunner) -> PartitionTable:
    """
    Partition both disks.

    Args:
        root: Validated root disk
        boot: Validated boot disk
        cmd_runner: CommandRunner instance for executing commands

    Returns:
        Dict mapping partition roles to device paths

    Raises:
        DestructiveOperationError: If there's an error in partitioning
    """
    for layout in (root_layout(root), boot_layout(boot)):
        apply_layout(layout, cmd_runner)
        verify_layout(layout, cmd_runner)

    partitions: PartitionTable = {
        "system": partition_device_name(root.path, 1),
        "boot": partition_device_name(boot.path, 1),
        "efi": partition_device_name(boot.path, 2),
    }

    logger.info(colorize("Partitioning completed successfully",
                         TermColors.SUCCESS, cmd_runner.colored_output))
    return partitions
