"""
mkinitcpio configuration.

The encrypt hook has to come before filesystems and fsck so the root volume
is unlocked before anything tries to check or mount it. The key file is
embedded in the image so no passphrase is asked at boot.
"""
from string import Template
from typing import Sequence

from cryptstrap.utils.types import ConfigArtifact

MKINITCPIO_PATH = "/etc/mkinitcpio.conf"

HOOKS = (
    "base", "udev", "autodetect", "modconf", "keyboard", "keymap",
    "block", "encrypt", "filesystems", "fsck",
)
BINARIES = ("/usr/bin/btrfs",)

TEMPLATE = Template("""\
# vim:set ft=sh
# Generated at installation, see mkinitcpio.conf(5)
MODULES=()
BINARIES=($binaries)
FILES=($files)
HOOKS=($hooks)
""")


def check_hook_order(hooks: Sequence[str]) -> None:
    """
    Raise ValueError if encrypt does not precede filesystems and fsck.
    """
    if "encrypt" not in hooks:
        raise ValueError("encrypt hook missing")
    position = hooks.index("encrypt")
    for later in ("filesystems", "fsck"):
        if later in hooks and hooks.index(later) < position:
            raise ValueError(f"{later} hook runs before encrypt")


def generate_mkinitcpio(key_file: str, hooks: Sequence[str] = HOOKS) -> ConfigArtifact:
    """
    Render /etc/mkinitcpio.conf.

    Args:
        key_file: Path of the key file inside the installed system
        hooks: Ordered hook list

    Returns:
        ConfigArtifact for /etc/mkinitcpio.conf
    """
    check_hook_order(hooks)
    content = TEMPLATE.substitute(
        binaries=" ".join(BINARIES),
        files=key_file,
        hooks=" ".join(hooks),
    )
    return ConfigArtifact(path=MKINITCPIO_PATH, content=content)
