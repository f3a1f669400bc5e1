"""
Base exceptions for cryptstrap.

This module defines the hierarchy of exceptions used by cryptstrap. Every
category is fatal: the pipeline stops at the first one raised.
"""

class InstallerError(Exception):
    """Base exception for cryptstrap errors"""
    pass


class ConfigurationError(InstallerError):
    """Exception raised when the run configuration is invalid"""
    pass


class DeviceNotFoundError(InstallerError):
    """Exception raised when a device does not resolve to an existing block device"""
    pass


class DestructiveOperationError(InstallerError):
    """Exception raised when partitioning, encryption setup or formatting fails"""
    pass


class MountError(InstallerError):
    """Exception raised when there's an error in mounting"""
    pass


class IdentifierResolutionError(InstallerError):
    """Exception raised when a UUID or PARTUUID cannot be resolved"""
    pass


class BootstrapError(InstallerError):
    """Exception raised when the base system cannot be installed"""
    pass


class ConfigWriteError(InstallerError):
    """Exception raised when a configuration file cannot be written to the target"""
    pass


class ChrootCommandError(InstallerError):
    """Exception raised when a command inside the target tree fails"""
    pass
