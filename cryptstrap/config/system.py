"""
System identity: host name, hosts file, locale, console keymap and time zone.
"""
from string import Template
from typing import List, Union

from cryptstrap.utils.types import ConfigArtifact, ConfigLink

HOSTS_TEMPLATE = Template("""\
127.0.0.1\tlocalhost
::1\t\tlocalhost
127.0.1.1\t$hostname.localdomain\t$hostname
""")


def locale_charset(locale: str) -> str:
    """Character set of a locale name, e.g. UTF-8 for en_US.UTF-8"""
    _, _, charset = locale.partition(".")
    return charset or "ISO-8859-1"


def generate_identity(
    hostname: str,
    locale: str,
    keymap: str,
    timezone: str,
) -> List[Union[ConfigArtifact, ConfigLink]]:
    """
    Render the files that identify and localize the installed system.

    Args:
        hostname: Host name
        locale: Locale, e.g. en_US.UTF-8
        keymap: Console keymap, e.g. us
        timezone: Zone name, e.g. Europe/Paris

    Returns:
        List of ConfigArtifact and ConfigLink
    """
    return [
        ConfigArtifact(path="/etc/hostname", content=f"{hostname}\n"),
        ConfigArtifact(path="/etc/hosts", content=HOSTS_TEMPLATE.substitute(hostname=hostname)),
        ConfigArtifact(path="/etc/locale.gen", content=f"{locale} {locale_charset(locale)}\n"),
        ConfigArtifact(path="/etc/locale.conf", content=f"LANG={locale}\n"),
        ConfigArtifact(path="/etc/vconsole.conf", content=f"KEYMAP={keymap}\n"),
        ConfigLink(path="/etc/localtime", destination=f"/usr/share/zoneinfo/{timezone}"),
    ]
