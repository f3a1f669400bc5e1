"""
Identifier resolution module.

This module looks up the UUIDs and PARTUUIDs that fstab and the boot loader
refer to. Device paths are not stable across reboots, so there is no
fallback: a volume without an identifier stops the run.
"""
import logging
from typing import Dict, Tuple

from cryptstrap.utils.command import COMMAND_ERRORS, CommandRunner
from cryptstrap.utils.types import EncryptedVolume, Identifiers, VolumeTable
from cryptstrap.core.exceptions import IdentifierResolutionError

logger = logging.getLogger('cryptstrap')


class IdentityResolver:
    """
    Resolves identifiers with blkid and remembers them for the rest of the run.
    """
    def __init__(self, cmd_runner: CommandRunner):
        self.cmd_runner = cmd_runner
        self._cache: Dict[Tuple[str, str], str] = {}

    def _lookup(self, tag: str, device: str) -> str:
        key = (tag, device)
        if key in self._cache:
            return self._cache[key]

        try:
            result = self.cmd_runner.run(
                ["blkid", "--match-tag", tag, "--output", "value", device]
            )
        except COMMAND_ERRORS as e:
            raise IdentifierResolutionError(f"Could not read {tag} of {device}: {e}")

        value = result.stdout.strip()
        if not value:
            raise IdentifierResolutionError(f"{device} has no {tag}")

        logger.debug(f"{tag} of {device}: {value}")
        self._cache[key] = value
        return value

    def uuid(self, device: str) -> str:
        """Filesystem (or LUKS header) UUID of a device"""
        return self._lookup("UUID", device)

    def partuuid(self, device: str) -> str:
        """GPT partition entry UUID of a partition"""
        return self._lookup("PARTUUID", device)


def resolve_identifiers(
    encrypted: EncryptedVolume,
    volumes: VolumeTable,
    resolver: IdentityResolver,
) -> Identifiers:
    """
    Resolve every identifier the configuration files need.

    Args:
        encrypted: The encrypted root container
        volumes: Dict mapping volume roles to FormattedVolume
        resolver: IdentityResolver for this run

    Returns:
        Identifiers instance

    Raises:
        IdentifierResolutionError: If any identifier is missing
    """
    identifiers = Identifiers(
        luks_uuid=resolver.uuid(encrypted.partition),
        root_uuid=resolver.uuid(volumes["ROOT"].device),
        boot_uuid=resolver.uuid(volumes["BOOT"].device),
        boot_partuuid=resolver.partuuid(volumes["BOOT"].device),
        esp_uuid=resolver.uuid(volumes["ESP"].device),
    )
    logger.info(f"Root filesystem UUID: {identifiers.root_uuid}")
    logger.info(f"Boot partition PARTUUID: {identifiers.boot_partuuid}")
    return identifiers
