"""
Disk encryption module.

This module generates the key file, creates the LUKS container on the root
partition and opens it. The key file is later moved into the installed system
so the initramfs can unlock the root volume without a passphrase.
"""
import logging
import os
import secrets
import shutil
import stat

from cryptstrap.utils.command import COMMAND_ERRORS, CommandRunner
from cryptstrap.utils.format import TermColors, colorize, format_mode
from cryptstrap.utils.types import EncryptedVolume
from cryptstrap.core.exceptions import ConfigWriteError, DestructiveOperationError

logger = logging.getLogger('cryptstrap')

# Constants
KEY_FILE_PATH = "/root/crypto_keyfile.bin"
KEY_FILE_SIZE = 4096
TARGET_KEY_FILE = "/crypto_keyfile.bin"
MAPPED_NAME = "cryptroot"
LUKS_KEY_SIZE = 512
LUKS_ITER_TIME_MS = 2000
INSTALLED_KEY_MODE = stat.S_IRUSR | stat.S_IWUSR


def create_key_file(path: str, cmd_runner: CommandRunner) -> None:
    """
    Write random key material to a new file nobody can open.

    The file is created with mode 0000 so no other process can read it while
    it is being filled. Root still reads it through its capabilities. A key
    file left behind by an aborted run is replaced, never reused.

    Args:
        path: Path of the key file
        cmd_runner: CommandRunner instance for executing commands

    Raises:
        DestructiveOperationError: If the file cannot be written
    """
    if cmd_runner.simulating:
        logger.info(f"Would write {KEY_FILE_SIZE} random bytes to {path} (mode 0000)")
        return

    try:
        if os.path.lexists(path):
            logger.warning(f"Replacing stale key file {path}")
            os.unlink(path)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o000)
        try:
            os.write(fd, secrets.token_bytes(KEY_FILE_SIZE))
            os.fchmod(fd, 0o000)
        finally:
            os.close(fd)
    except OSError as e:
        raise DestructiveOperationError(f"Failed to create key file {path}: {e}")

    logger.info(f"Created key file {path} ({KEY_FILE_SIZE} bytes, mode 0000)")


def format_luks(partition: str, key_file: str, cmd_runner: CommandRunner) -> None:
    """
    Initialize a LUKS header on a partition.

    Raises:
        DestructiveOperationError: If cryptsetup fails. Never retried.
    """
    logger.info(f"Creating LUKS container on {partition}")
    try:
        cmd_runner.run([
            "cryptsetup", "--batch-mode", "luksFormat",
            "--key-size", str(LUKS_KEY_SIZE),
            "--iter-time", str(LUKS_ITER_TIME_MS),
            "--use-random",
            partition, key_file
        ])
    except COMMAND_ERRORS as e:
        raise DestructiveOperationError(f"Failed to format LUKS container on {partition}: {e}")


def open_luks(partition: str, key_file: str, name: str, cmd_runner: CommandRunner) -> str:
    """
    Open a LUKS container.

    Returns:
        Path of the clear-text mapped device

    Raises:
        DestructiveOperationError: If cryptsetup fails
    """
    try:
        cmd_runner.run(["cryptsetup", "open", "--key-file", key_file, partition, name])
    except COMMAND_ERRORS as e:
        raise DestructiveOperationError(f"Failed to open LUKS container on {partition}: {e}")
    return f"/dev/mapper/{name}"


def setup_encryption(
    partition: str,
    cmd_runner: CommandRunner,
    key_file: str = KEY_FILE_PATH,
    name: str = MAPPED_NAME,
) -> EncryptedVolume:
    """
    Encrypt the root partition and open it.

    Args:
        partition: Root partition to encrypt
        cmd_runner: CommandRunner instance for executing commands
        key_file: Where to generate the key file on the live system
        name: Device-mapper name of the opened volume

    Returns:
        EncryptedVolume describing the opened container

    Raises:
        DestructiveOperationError: If there's an error in encryption setup
    """
    create_key_file(key_file, cmd_runner)
    format_luks(partition, key_file, cmd_runner)
    mapped = open_luks(partition, key_file, name, cmd_runner)

    volume = EncryptedVolume(partition=partition, mapped_name=name, key_file=key_file)
    logger.info(colorize(f"Encrypted {partition}, opened as {mapped}",
                         TermColors.SUCCESS, cmd_runner.colored_output))
    return volume


def install_key_file(volume: EncryptedVolume, target: str, cmd_runner: CommandRunner) -> str:
    """
    Move the key file into the target root and make it owner read/write only.

    Args:
        volume: The opened encrypted volume
        target: Mounted target root
        cmd_runner: CommandRunner instance for executing commands

    Returns:
        Path of the installed key file

    Raises:
        ConfigWriteError: If the key file cannot be moved or its mode set
    """
    destination = os.path.join(target, TARGET_KEY_FILE.lstrip("/"))

    if cmd_runner.simulating:
        logger.info(f"Would move {volume.key_file} to {destination} "
                    f"(mode {format_mode(INSTALLED_KEY_MODE)})")
        return destination

    try:
        shutil.move(volume.key_file, destination)
        os.chmod(destination, INSTALLED_KEY_MODE)
    except OSError as e:
        raise ConfigWriteError(f"Failed to install key file to {destination}: {e}")

    logger.info(f"Installed key file to {destination} (mode {format_mode(INSTALLED_KEY_MODE)})")
    return destination
