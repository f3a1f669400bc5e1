"""
Run configuration.

The whole run is driven by one immutable InstallConfig built at startup from
the command line and an optional YAML policy file, then handed to every stage.
"""
import logging
import re
from typing import Any, Dict, Optional, Tuple

import attr
import yaml

from cryptstrap.core.exceptions import ConfigurationError
from cryptstrap.utils.types import WirelessNetwork

logger = logging.getLogger('cryptstrap')

DEFAULT_TARGET = "/mnt"

DEFAULT_PACKAGES = (
    "base", "linux", "linux-firmware", "intel-ucode", "btrfs-progs",
    "dosfstools", "refind", "git", "sudo", "iptables", "wpa_supplicant", "vim",
)

DEFAULT_THEME_URL = "https://github.com/bobafetthotmail/refind-theme-regular.git"

# RFC 1123 host name label
HOSTNAME_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")
USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
# FAT labels are limited to 11 characters and "_ESP" takes four of them
LABEL_PREFIX_RE = re.compile(r"^[A-Z0-9]{1,7}$")
# Kernel network interface names: IFNAMSIZ - 1
INTERFACE_RE = re.compile(r"^[A-Za-z0-9_.-]{1,15}$")
TIMEZONE_RE = re.compile(r"^[A-Za-z0-9_+-]+(/[A-Za-z0-9_+-]+)*$")

_str = attr.validators.instance_of(str)


def _port_tuple(value: Any) -> Tuple[int, ...]:
    return tuple(value)


def _name_tuple(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        raise ValueError(f"expected a list of names, got {value!r}")
    return tuple(value)


def _validate_ports(instance, attribute, value) -> None:
    for port in value:
        if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
            raise ValueError(f"{attribute.name}: invalid port {port!r}")


def _validate_username(instance, attribute, value) -> None:
    if not USERNAME_RE.fullmatch(value):
        raise ValueError(f"username: invalid user name {value!r}")


def _validate_interface(instance, attribute, value) -> None:
    if not INTERFACE_RE.fullmatch(value) or value in (".", ".."):
        raise ValueError(f"{attribute.name}: invalid interface name {value!r}")


def _validate_timezone(instance, attribute, value) -> None:
    if not TIMEZONE_RE.fullmatch(value):
        raise ValueError(f"timezone: invalid zone name {value!r}")


def _validate_label_prefix(instance, attribute, value) -> None:
    if not LABEL_PREFIX_RE.fullmatch(value):
        raise ValueError(
            f"label_prefix: {value!r} must be 1-7 upper-case letters or digits"
        )


def _networks(value: Any) -> Tuple[WirelessNetwork, ...]:
    networks = []
    for entry in value:
        if isinstance(entry, WirelessNetwork):
            networks.append(entry)
        elif isinstance(entry, dict) and set(entry) == {"ssid", "psk"}:
            networks.append(WirelessNetwork(ssid=str(entry["ssid"]), psk=str(entry["psk"])))
        else:
            raise ValueError(f"wireless_networks: expected {{ssid, psk}}, got {entry!r}")
    for network in networks:
        # Both values end up inside double quotes in wpa_supplicant.conf
        if any(c in value for value in (network.ssid, network.psk) for c in '"\n'):
            raise ValueError(f"wireless_networks: quotes and newlines are not allowed ({network.ssid!r})")
    return tuple(networks)


@attr.s(auto_attribs=True, frozen=True, kw_only=True)
class Policy:
    """Installation policy: everything that is not a device or a host name"""
    username: str = attr.ib(default="user", validator=[_str, _validate_username])
    password_hash: Optional[str] = attr.ib(
        default=None, validator=attr.validators.optional(_str))
    timezone: str = attr.ib(default="UTC", validator=[_str, _validate_timezone])
    locale: str = attr.ib(default="en_US.UTF-8", validator=_str)
    keymap: str = attr.ib(default="us", validator=_str)
    label_prefix: str = attr.ib(default="T440S", validator=[_str, _validate_label_prefix])
    wired_interface: str = attr.ib(default="enp0s25", validator=[_str, _validate_interface])
    wireless_interface: str = attr.ib(default="wlp3s0", validator=[_str, _validate_interface])
    packages: Tuple[str, ...] = attr.ib(default=DEFAULT_PACKAGES, converter=_name_tuple)
    theme_url: str = attr.ib(default=DEFAULT_THEME_URL, validator=_str)
    allowed_tcp_ports: Tuple[int, ...] = attr.ib(
        default=(), converter=_port_tuple, validator=_validate_ports)
    allowed_udp_ports: Tuple[int, ...] = attr.ib(
        default=(), converter=_port_tuple, validator=_validate_ports)
    wireless_networks: Tuple[WirelessNetwork, ...] = attr.ib(default=(), converter=_networks)

    @packages.validator
    def _check_packages(self, attribute, value) -> None:
        if not value or not all(isinstance(p, str) and p for p in value):
            raise ValueError("packages: expected a non-empty list of package names")


@attr.s(auto_attribs=True, frozen=True, kw_only=True)
class InstallConfig:
    """Immutable configuration of a single provisioning run"""
    root_device: str
    boot_device: str
    hostname: str = attr.ib()
    target: str = DEFAULT_TARGET
    policy: Policy = attr.Factory(Policy)
    simulate: bool = False

    @hostname.validator
    def _check_hostname(self, attribute, value) -> None:
        if not HOSTNAME_RE.fullmatch(value):
            raise ValueError(f"hostname: invalid host name {value!r}")


def policy_from_dict(data: Dict[str, Any]) -> Policy:
    """
    Build a Policy from a mapping, rejecting unknown keys and bad values.

    Raises:
        ConfigurationError: If the mapping does not describe a valid policy
    """
    known = {a.name for a in attr.fields(Policy)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
    try:
        return Policy(**data)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def load_policy(path: Optional[str]) -> Policy:
    """
    Load the installation policy from a YAML file.

    Args:
        path: Path to the YAML file, or None for the built-in defaults

    Returns:
        Policy instance

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    if path is None:
        return Policy()

    try:
        with open(path) as fp:
            data = yaml.safe_load(fp)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse configuration file {path}: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    logger.debug(f"Loaded configuration from {path}: {sorted(data)}")
    return policy_from_dict(data)


def build_config(
    root_device: str,
    boot_device: str,
    hostname: str,
    target: str = DEFAULT_TARGET,
    policy: Optional[Policy] = None,
    simulate: bool = False,
) -> InstallConfig:
    """
    Construct the run configuration.

    Raises:
        ConfigurationError: If an argument is invalid
    """
    try:
        return InstallConfig(
            root_device=root_device,
            boot_device=boot_device,
            hostname=hostname,
            target=target,
            policy=policy or Policy(),
            simulate=simulate,
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(str(e))
