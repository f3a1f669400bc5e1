"""
Filesystem mounting module.

This module assembles the target tree: the root volume at the target
directory, the boot volume on /boot and the EFI system partition on
/boot/efi. A mount is only attempted once the mount it nests in has
succeeded, so the order root -> boot -> efi is enforced, never repaired.
"""
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Set

from cryptstrap.utils.command import COMMAND_ERRORS, CommandRunner
from cryptstrap.utils.format import TermColors, colorize
from cryptstrap.utils.types import MountPlan, MountPoint, VolumeTable
from cryptstrap.core.exceptions import MountError

logger = logging.getLogger('cryptstrap')

# Mount options used while installing, by volume role
MOUNT_OPTIONS: Dict[str, str] = {
    "ROOT": "rw,relatime,ssd,space_cache=v2",
    "BOOT": "rw,relatime,ssd,space_cache=v2",
    "ESP": "rw,relatime,fmask=0022,dmask=0022",
}

# Location of each role below the target root
MOUNT_PATHS: Dict[str, str] = {
    "ROOT": "",
    "BOOT": "boot",
    "ESP": "boot/efi",
}


def plan_mounts(volumes: VolumeTable, target: str) -> MountPlan:
    """
    Build the ordered mount plan, parents first.

    Args:
        volumes: Dict mapping volume roles to FormattedVolume
        target: Target root directory

    Returns:
        List of MountPoint in mount order
    """
    target_path = Path(target)
    plan: MountPlan = []
    for role in ("ROOT", "BOOT", "ESP"):
        path = target_path / MOUNT_PATHS[role] if MOUNT_PATHS[role] else target_path
        plan.append(MountPoint(volume=volumes[role], path=str(path), options=MOUNT_OPTIONS[role]))
    return plan


def _parent_mount(path: str, plan_paths: List[str]) -> Optional[str]:
    """Return the closest planned mount path that contains path"""
    candidates = [
        p for p in plan_paths
        if p != path and os.path.commonpath([p, path]) == p
    ]
    return max(candidates, key=len) if candidates else None


def _create_directory(path: Path, cmd_runner: CommandRunner) -> None:
    """
    Create directory if it doesn't exist or log that it would be created in simulation mode.

    Raises:
        MountError: If the directory cannot be created
    """
    if cmd_runner.simulating:
        logger.info(f"Would create directory: {path}")
        return
    try:
        path.mkdir(exist_ok=True, parents=True)
    except OSError as e:
        raise MountError(f"Failed to create mount point {path}: {e}")


def _mount_filesystem(device: str, mount_point: str, options: str, cmd_runner: CommandRunner) -> None:
    """
    Mount a filesystem or log that it would be mounted in simulation mode.

    Raises:
        MountError: If mount command fails
    """
    try:
        cmd_runner.run(["mount", "-o", options, device, mount_point])
        logger.info(colorize(f"Mounted {device} to {mount_point} with options: {options}",
                             TermColors.SUCCESS, cmd_runner.colored_output))
    except COMMAND_ERRORS as e:
        raise MountError(f"Failed to mount {device} to {mount_point}: {e}")


def mount_filesystems(plan: MountPlan, cmd_runner: CommandRunner) -> Set[str]:
    """
    Mount every entry of a plan in order.

    Args:
        plan: Ordered list of mounts
        cmd_runner: CommandRunner instance for executing commands

    Returns:
        Set of paths mounted by this call

    Raises:
        MountError: If a mount fails or a mount comes before the mount it nests in
    """
    plan_paths = [m.path for m in plan]
    mounted: Set[str] = set()

    for mount in plan:
        parent = _parent_mount(mount.path, plan_paths)
        if parent is not None and parent not in mounted:
            raise MountError(
                f"Refusing to mount {mount.volume.device} on {mount.path}: "
                f"{parent} is not mounted yet"
            )

        # Directories are created only once the parent filesystem is in place
        _create_directory(Path(mount.path), cmd_runner)
        _mount_filesystem(mount.volume.device, mount.path, mount.options, cmd_runner)
        mounted.add(mount.path)

    logger.info(colorize("All filesystems mounted successfully", TermColors.SUCCESS, cmd_runner.colored_output))
    return mounted
