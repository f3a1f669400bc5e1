"""
Network configuration: systemd-networkd units, systemd-resolved and
wpa_supplicant.
"""
from string import Template
from typing import List, Sequence, Union

from cryptstrap.utils.types import ConfigArtifact, ConfigLink, WirelessNetwork

NETWORK_DIR = "/etc/systemd/network"
RESOLV_CONF = "/etc/resolv.conf"
RESOLVED_STUB = "/run/systemd/resolve/stub-resolv.conf"
RESOLVED_CONF = "/etc/systemd/resolved.conf"
WPA_MODE = 0o600

# Lower value wins when both links are up
WIRED_METRIC = 10
WIRELESS_METRIC = 20

NETWORK_UNIT = Template("""\
[Match]
Name=$interface

[Network]
DHCP=ipv4

[DHCPv4]
RouteMetric=$metric
""")

RESOLVED_TEMPLATE = Template("""\
#  See resolved.conf(5) for details.

[Resolve]
FallbackDNS=$fallback_dns
DNSSEC=allow-downgrade
DNSOverTLS=opportunistic
""")

FALLBACK_DNS = ("9.9.9.9", "149.112.112.112", "1.1.1.1")

WPA_HEADER = """\
ctrl_interface=/run/wpa_supplicant
ctrl_interface_group=wheel
update_config=1
"""

WPA_NETWORK = Template("""
network={
    ssid="$ssid"
    psk="$psk"
}
""")


def generate_network_units(wired: str, wireless: str) -> List[ConfigArtifact]:
    """One DHCPv4 unit for the wired and one for the wireless interface"""
    return [
        ConfigArtifact(
            path=f"{NETWORK_DIR}/20-wired.network",
            content=NETWORK_UNIT.substitute(interface=wired, metric=WIRED_METRIC),
        ),
        ConfigArtifact(
            path=f"{NETWORK_DIR}/25-wireless.network",
            content=NETWORK_UNIT.substitute(interface=wireless, metric=WIRELESS_METRIC),
        ),
    ]


def generate_resolver() -> List[Union[ConfigLink, ConfigArtifact]]:
    """resolv.conf pointing at the resolved stub, plus resolved.conf"""
    return [
        ConfigLink(path=RESOLV_CONF, destination=RESOLVED_STUB),
        ConfigArtifact(
            path=RESOLVED_CONF,
            content=RESOLVED_TEMPLATE.substitute(fallback_dns=" ".join(FALLBACK_DNS)),
        ),
    ]


def generate_wpa_supplicant(interface: str, networks: Sequence[WirelessNetwork] = ()) -> ConfigArtifact:
    """
    Render the per-interface wpa_supplicant configuration.

    The file may hold pre-shared keys, so it is only readable by root.
    """
    blocks = [WPA_HEADER]
    for network in networks:
        blocks.append(WPA_NETWORK.substitute(
            ssid=network.ssid,
            psk=network.psk,
        ))
    return ConfigArtifact(
        path=f"/etc/wpa_supplicant/wpa_supplicant-{interface}.conf",
        content="".join(blocks),
        mode=WPA_MODE,
    )
