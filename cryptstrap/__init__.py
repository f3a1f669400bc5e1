"""
cryptstrap - Unattended Arch Linux installer with full-disk encryption

This package partitions a root disk and a boot disk, encrypts the root disk
with a key file, creates and mounts the filesystems, installs a base system
and writes its boot, network and firewall configuration in a single pass.
"""

__version__ = "0.1.0"
