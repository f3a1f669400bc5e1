"""
Formatting utilities.

This module provides helpers for rendering commands and sizes, and consistent
terminal output formatting.
"""
import shlex
from typing import List


# ANSI Terminal Colors
class TermColors:
    """ANSI color codes for terminal output"""
    INFO = '\033[94m'     # Blue for informational messages
    SUCCESS = '\033[92m'  # Green for success messages
    WARNING = '\033[93m'  # Yellow for warnings
    ERROR = '\033[91m'    # Red for errors
    SIM = '\033[96m'      # Cyan for simulation messages
    BOLD = '\033[1m'      # Bold text
    ENDC = '\033[0m'      # End color


def colorize(message: str, color: str, enabled: bool = True) -> str:
    """
    Add color to a message if color output is enabled.

    Args:
        message: The message to colorize
        color: The color to use (from TermColors)
        enabled: Whether colorization is enabled

    Returns:
        Colorized message or original message if colors disabled
    """
    if not enabled:
        return message
    return f"{color}{message}{TermColors.ENDC}"


def format_command(cmd: List[str]) -> str:
    """Render an argument vector the way a shell user would type it."""
    return shlex.join(cmd)


def mib_end_spec(size_mib: int) -> str:
    """
    Build an sgdisk end specification relative to the partition start.

    Args:
        size_mib: Partition size in MiB

    Returns:
        String such as "+200M"
    """
    if size_mib <= 0:
        raise ValueError(f"Partition size must be positive, got {size_mib} MiB")
    return f"+{size_mib}M"


def format_mode(mode: int) -> str:
    """Render a permission mode as an octal string (e.g. 0600)."""
    return f"{mode:04o}"
