"""
Configuration file generation for the target system.

This module provides common utilities for writing generated configuration
into the target tree. The generators themselves live in the submodules and
only return ConfigArtifact / ConfigLink values.
"""
import logging
import os
from pathlib import Path

from cryptstrap.utils.command import CommandRunner
from cryptstrap.utils.format import format_mode
from cryptstrap.utils.types import ConfigArtifact, ConfigLink
from cryptstrap.core.exceptions import ConfigWriteError

logger = logging.getLogger('cryptstrap')


def target_path(target: str, path: str) -> Path:
    """Resolve an absolute path of the installed system below the target root"""
    return Path(target) / path.lstrip("/")


def create_directory(path: Path, cmd_runner: CommandRunner) -> None:
    """
    Create a directory if it doesn't exist or log that it would be created in simulation mode.

    Args:
        path: Directory path to create
        cmd_runner: CommandRunner instance for executing commands

    Raises:
        ConfigWriteError: If the directory cannot be created
    """
    if cmd_runner.simulating:
        logger.info(f"Would create directory: {path}")
        return
    try:
        path.mkdir(exist_ok=True, parents=True)
    except OSError as e:
        raise ConfigWriteError(f"Failed to create directory {path}: {e}")
    logger.debug(f"Created directory: {path}")


def write_artifact(artifact: ConfigArtifact, target: str, cmd_runner: CommandRunner) -> Path:
    """
    Write a generated file into the target tree.

    Args:
        artifact: File to write
        target: Target root directory
        cmd_runner: CommandRunner instance for executing commands

    Returns:
        Path written

    Raises:
        ConfigWriteError: If the file cannot be written
    """
    path = target_path(target, artifact.path)
    mode = f" (mode {format_mode(artifact.mode)})" if artifact.mode is not None else ""

    if cmd_runner.simulating:
        logger.info(f"Would write {path}{mode}")
        logger.debug(f"Content of {path}:\n{artifact.content}")
        return path

    create_directory(path.parent, cmd_runner)
    try:
        path.write_text(artifact.content)
        if artifact.mode is not None:
            os.chmod(path, artifact.mode)
    except OSError as e:
        raise ConfigWriteError(f"Failed to write {path}: {e}")

    logger.info(f"Wrote {path}{mode}")
    return path


def write_link(link: ConfigLink, target: str, cmd_runner: CommandRunner) -> Path:
    """
    Create (or replace) a symbolic link inside the target tree.

    The link destination is left as given, so absolute destinations resolve
    inside the installed system, not on the live system.

    Raises:
        ConfigWriteError: If the link cannot be created
    """
    path = target_path(target, link.path)

    if cmd_runner.simulating:
        logger.info(f"Would link {path} -> {link.destination}")
        return path

    create_directory(path.parent, cmd_runner)
    try:
        if path.is_symlink() or path.exists():
            path.unlink()
        path.symlink_to(link.destination)
    except OSError as e:
        raise ConfigWriteError(f"Failed to link {path} -> {link.destination}: {e}")

    logger.info(f"Linked {path} -> {link.destination}")
    return path
