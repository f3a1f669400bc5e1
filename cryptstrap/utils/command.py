"""
Command execution utilities.

This module provides tools for executing external tools with simulation support.
Every collaborator (sgdisk, cryptsetup, mkfs, pacstrap, arch-chroot...) is
reached through a CommandRunner, so a whole run can be rehearsed with
--simulate before any disk is touched.
"""
import logging
import os
import subprocess
import uuid
from collections import Counter
from enum import Enum
from typing import Any, Dict, List

from cryptstrap.utils.format import TermColors, colorize, format_command

logger = logging.getLogger('cryptstrap')

# Errors a collaborator call can raise: non-zero exit, or the tool is missing
COMMAND_ERRORS = (subprocess.CalledProcessError, OSError)

# GUID reported by sgdisk for the ef00 short code
EFI_SYSTEM_GUID = "C12A7328-F81F-11D2-BA4B-00A0C93EC93B"


class SimulationMode(Enum):
    """Enumeration for simulation modes"""
    DISABLED = 0  # Normal operation
    SIMULATE = 1  # Simulate operations


class CommandRunner:
    """
    Class responsible for command execution with simulation support.
    Acts as a wrapper around subprocess.run with additional functionality.
    """
    def __init__(self, simulation_mode: SimulationMode, colored_output: bool = True):
        """
        Initialize the command runner.

        Args:
            simulation_mode: Simulation mode to operate in
            colored_output: Whether to use colored output in terminal
        """
        self.simulation_mode = simulation_mode
        self.colored_output = colored_output
        self.commands_run: List[Dict[str, Any]] = []

        # Generate a unique simulation ID
        self.simulation_id = str(uuid.uuid4())[:8]

        # Keep track of simulated identifiers for consistency
        self.simulated_uuids: Dict[str, str] = {}
        self.simulated_partuuids: Dict[str, str] = {}

    @property
    def simulating(self) -> bool:
        return self.simulation_mode == SimulationMode.SIMULATE

    def run(self, cmd: List[str], check: bool = True, **kwargs) -> subprocess.CompletedProcess:
        """
        Run a command or simulate running it.

        Args:
            cmd: Command to run as list of strings
            check: Whether to check for non-zero return code
            **kwargs: Additional arguments to pass to subprocess.run

        Returns:
            CompletedProcess instance from subprocess.run

        Raises:
            subprocess.CalledProcessError: If check is set and the command fails
            FileNotFoundError: If the tool is not installed
        """
        cmd_str = format_command(cmd)
        logger.debug(f"Command requested: {cmd_str}")

        self.commands_run.append({
            "command": list(cmd),
            "simulated": self.simulating
        })

        if self.simulating:
            sim_prefix = colorize(f"[SIM:{self.simulation_id}]", TermColors.SIM, self.colored_output)
            logger.info(f"{sim_prefix} Would execute: {cmd_str}")
            return self._simulate_command(cmd, **kwargs)

        try:
            return subprocess.run(
                cmd,
                check=check,
                text=True,
                capture_output=True,
                **kwargs
            )
        except subprocess.CalledProcessError as e:
            logger.error(colorize(f"Command failed: {cmd_str}", TermColors.ERROR, self.colored_output))
            logger.error(f"Return code: {e.returncode}")
            logger.error(f"Stdout: {e.stdout}")
            logger.error(f"Stderr: {e.stderr}")
            raise
        except FileNotFoundError:
            logger.error(colorize(f"Command not found: {cmd[0]}", TermColors.ERROR, self.colored_output))
            raise

    def _simulate_command(self, cmd: List[str], **kwargs) -> subprocess.CompletedProcess:
        """
        Generate simulated output for a command.

        Args:
            cmd: Command to simulate
            **kwargs: Additional arguments passed to the original command

        Returns:
            CompletedProcess with simulated output
        """
        result = subprocess.CompletedProcess(
            args=cmd,
            returncode=0,
            stdout="",
            stderr=""
        )

        cmd_name = os.path.basename(cmd[0]) if cmd else ""

        if cmd_name == "lsblk":
            return self._handle_lsblk_simulation(cmd, result)
        elif cmd_name == "blkid":
            return self._handle_blkid_simulation(cmd, result)
        elif cmd_name == "sgdisk":
            return self._handle_sgdisk_simulation(cmd, result)

        if "input" in kwargs:
            logger.debug(f"Command input: {kwargs['input']}")

        return result

    def _handle_lsblk_simulation(self, cmd: List[str], result: subprocess.CompletedProcess) -> subprocess.CompletedProcess:
        """Simulate lsblk by reporting the queried path as canonical"""
        result.stdout = cmd[-1] + "\n"
        return result

    def _handle_blkid_simulation(self, cmd: List[str], result: subprocess.CompletedProcess) -> subprocess.CompletedProcess:
        """Simulate blkid, handing out the same identifier for the same device"""
        device_path = cmd[-1]
        if "PARTUUID" in cmd:
            table = self.simulated_partuuids
        else:
            table = self.simulated_uuids

        if device_path not in table:
            table[device_path] = str(uuid.uuid4())
        result.stdout = table[device_path] + "\n"
        return result

    def _handle_sgdisk_simulation(self, cmd: List[str], result: subprocess.CompletedProcess) -> subprocess.CompletedProcess:
        """Simulate sgdisk --info for a partition written with the ef00 code"""
        if any(arg.startswith("--info=") for arg in cmd):
            result.stdout = (
                f"Partition GUID code: {EFI_SYSTEM_GUID} (EFI system partition)\n"
                f"Partition unique GUID: {str(uuid.uuid4()).upper()}\n"
            )
        return result

    def get_simulation_report(self) -> str:
        """
        Render the recorded commands in execution order, followed by a count
        per tool.

        Returns:
            Multi-line report, or a one-line notice outside simulation mode
        """
        if not self.simulating:
            return "Simulation mode is not active."

        rule = "=" * 72
        lines = [rule, f"Simulated run {self.simulation_id}: {len(self.commands_run)} commands", rule]
        width = len(str(len(self.commands_run)))
        for step, record in enumerate(self.commands_run, 1):
            lines.append(f"{step:>{width}}  {format_command(record['command'])}")

        tools = Counter(os.path.basename(r["command"][0]) for r in self.commands_run if r["command"])
        lines.append(rule)
        lines.append("Per tool: " + ", ".join(f"{tool} x{count}" for tool, count in sorted(tools.items())))
        return "\n".join(lines)
