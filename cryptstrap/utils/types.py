"""
Type definitions for cryptstrap.

This module provides the immutable value objects passed between the
pipeline stages, plus a few type aliases for better type checking.
"""
from typing import Dict, List, Optional, Tuple

import attr


# Mapping of partition roles ("system", "boot", "efi") to device paths
PartitionTable = Dict[str, str]


@attr.s(auto_attribs=True, frozen=True)
class DeviceSpec:
    """A physical block device that passed validation"""
    path: str


@attr.s(auto_attribs=True, frozen=True)
class PartitionDescriptor:
    """
    A single GPT entry.

    ``size`` is an sgdisk end specification such as ``+200M``; ``None`` means
    the partition extends to the end of the disk. ``type_code`` is an sgdisk
    short type code; ``None`` leaves the tool default in place.
    """
    index: int
    start: str = "0"
    size: Optional[str] = None
    type_code: Optional[str] = None


@attr.s(auto_attribs=True, frozen=True)
class PartitionLayout:
    """Ordered partition descriptors applied to one device"""
    device: DeviceSpec
    partitions: Tuple[PartitionDescriptor, ...]


@attr.s(auto_attribs=True, frozen=True)
class EncryptedVolume:
    """A LUKS container on a partition, unlocked with a key file"""
    partition: str
    mapped_name: str
    key_file: str

    @property
    def mapped_device(self) -> str:
        return f"/dev/mapper/{self.mapped_name}"


@attr.s(auto_attribs=True, frozen=True)
class FormattedVolume:
    """A block device plus the filesystem created on it"""
    role: str
    device: str
    fstype: str
    label: str


@attr.s(auto_attribs=True, frozen=True)
class MountPoint:
    """A formatted volume attached at a path inside the target tree"""
    volume: FormattedVolume
    path: str
    options: str


@attr.s(auto_attribs=True, frozen=True)
class Identifiers:
    """Stable identifiers resolved once after formatting"""
    luks_uuid: str
    root_uuid: str
    boot_uuid: str
    boot_partuuid: str
    esp_uuid: str


@attr.s(auto_attribs=True, frozen=True)
class ConfigArtifact:
    """Text destined for a path relative to the target root"""
    path: str
    content: str
    mode: Optional[int] = None


@attr.s(auto_attribs=True, frozen=True)
class ConfigLink:
    """Symbolic link at a path relative to the target root"""
    path: str
    destination: str


@attr.s(auto_attribs=True, frozen=True)
class WirelessNetwork:
    ssid: str
    psk: str


# Volumes keyed by role ("ROOT", "BOOT", "ESP")
VolumeTable = Dict[str, FormattedVolume]

# Ordered list of mounts, parents first
MountPlan = List[MountPoint]
