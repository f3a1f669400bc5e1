"""
fstab generation.

Every entry is keyed by filesystem UUID, in mount order: root, boot, efi.
"""
from string import Template
from typing import Dict, List, Tuple

import attr

from cryptstrap.utils.types import ConfigArtifact, Identifiers, VolumeTable

FSTAB_PATH = "/etc/fstab"

# Options written to fstab, by volume role
FSTAB_OPTIONS: Dict[str, str] = {
    "ROOT": "rw,relatime,ssd,space_cache=v2,subvol=/",
    "BOOT": "rw,relatime,ssd,space_cache=v2",
    "ESP": ("rw,relatime,fmask=0022,dmask=0022,codepage=437,iocharset=ascii,"
            "shortname=mixed,utf8,errors=remount-ro"),
}

# fsck pass number, by filesystem type; btrfs is never checked at boot
FSCK_PASS: Dict[str, int] = {
    "btrfs": 0,
    "vfat": 2,
}

HEADER = "# Static information about the filesystems.\n# See fstab(5) for details.\n"

ENTRY = Template(
    "# $device LABEL=$label\n"
    "UUID=$uuid\t$mountpoint\t$fstype\t$options\t0 $passno\n"
)

MOUNTPOINTS: Tuple[Tuple[str, str], ...] = (
    ("ROOT", "/"),
    ("BOOT", "/boot"),
    ("ESP", "/boot/efi"),
)


@attr.s(auto_attribs=True, frozen=True)
class FstabEntry:
    device: str
    label: str
    uuid: str
    mountpoint: str
    fstype: str
    options: str
    passno: int


def fstab_entries(volumes: VolumeTable, identifiers: Identifiers) -> List[FstabEntry]:
    uuids = {
        "ROOT": identifiers.root_uuid,
        "BOOT": identifiers.boot_uuid,
        "ESP": identifiers.esp_uuid,
    }
    entries = []
    for role, mountpoint in MOUNTPOINTS:
        volume = volumes[role]
        entries.append(FstabEntry(
            device=volume.device,
            label=volume.label,
            uuid=uuids[role],
            mountpoint=mountpoint,
            fstype=volume.fstype,
            options=FSTAB_OPTIONS[role],
            passno=FSCK_PASS[volume.fstype],
        ))
    return entries


def generate_fstab(volumes: VolumeTable, identifiers: Identifiers) -> ConfigArtifact:
    """
    Render /etc/fstab.

    Args:
        volumes: Dict mapping volume roles to FormattedVolume
        identifiers: Resolved identifiers

    Returns:
        ConfigArtifact for /etc/fstab
    """
    blocks = [HEADER]
    for entry in fstab_entries(volumes, identifiers):
        blocks.append(ENTRY.substitute(attr.asdict(entry)))
    return ConfigArtifact(path=FSTAB_PATH, content="\n".join(blocks))
