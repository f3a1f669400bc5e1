"""
rEFInd boot loader configuration.

The boot partition is referenced by PARTUUID, the LUKS container by UUID.
Kernel and initramfs paths are relative to the boot volume.
"""
import posixpath
from string import Template

import attr

from cryptstrap.utils.types import ConfigArtifact

REFIND_DIR = "EFI/refind"
REFIND_CONF_PATH = f"/boot/efi/{REFIND_DIR}/refind.conf"

KERNEL = "/vmlinuz-linux"
INITRD = "/initramfs-linux.img"
FALLBACK_INITRD = "/initramfs-linux-fallback.img"
MICROCODE = "/intel-ucode.img"

TEMPLATE = Template("""\
timeout 5
use_nvram false
scanfor manual
include themes/$theme/theme.conf

menuentry "Arch Linux" {
    icon     /$refind_dir/themes/$theme/icons/128-48/os_arch.png
    volume   $boot_partuuid
    loader   $kernel
    initrd   $initrd
    options  "$options"
    submenuentry "Boot using fallback initramfs" {
        initrd $fallback_initrd
    }
    submenuentry "Boot to terminal" {
        add_options "systemd.unit=multi-user.target"
    }
}
""")


@attr.s(auto_attribs=True, frozen=True)
class BootEntry:
    luks_uuid: str
    boot_partuuid: str
    mapped_name: str
    key_file: str
    theme: str


def theme_name(url: str) -> str:
    """Directory name of a theme cloned from url"""
    name = posixpath.basename(url.rstrip("/"))
    if name.endswith(".git"):
        name = name[:-4]
    return name


def kernel_options(entry: BootEntry) -> str:
    return " ".join([
        f"cryptdevice=UUID={entry.luks_uuid}:{entry.mapped_name}",
        f"cryptkey=rootfs:{entry.key_file}",
        f"root=/dev/mapper/{entry.mapped_name}",
        "rw",
        f"initrd={MICROCODE}",
    ])


def generate_refind_conf(entry: BootEntry) -> ConfigArtifact:
    """
    Render refind.conf with a single Arch Linux entry.

    Args:
        entry: Identifiers and names the entry refers to

    Returns:
        ConfigArtifact for refind.conf on the EFI system partition
    """
    content = TEMPLATE.substitute(
        theme=entry.theme,
        refind_dir=REFIND_DIR,
        boot_partuuid=entry.boot_partuuid,
        kernel=KERNEL,
        initrd=INITRD,
        fallback_initrd=FALLBACK_INITRD,
        options=kernel_options(entry),
    )
    return ConfigArtifact(path=REFIND_CONF_PATH, content=content)
