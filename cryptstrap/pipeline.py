"""
Provisioning pipeline.

Stages run strictly in order. Each one is wrapped into a StepResult; the
first failed result stops the run, leaving the disks in whatever state the
last successful stage produced. Nothing is retried or rolled back.
"""
import logging
from typing import Any, Callable, List, Optional, Set, Tuple, Union

import attr

from cryptstrap.config import write_artifact, write_link
from cryptstrap.config.firewall import generate_iptables_rules
from cryptstrap.config.fstab import generate_fstab
from cryptstrap.config.mkinitcpio import generate_mkinitcpio
from cryptstrap.config.network import (
    generate_network_units, generate_resolver, generate_wpa_supplicant,
)
from cryptstrap.config.refind import BootEntry, generate_refind_conf, theme_name
from cryptstrap.config.sudoers import generate_sudoers
from cryptstrap.config.system import generate_identity
from cryptstrap.core.bootstrap import bootstrap_system
from cryptstrap.core.chroot import GitThemeFetcher, ThemeFetcher, finalize
from cryptstrap.core.disk import validate_devices
from cryptstrap.core.encryption import (
    KEY_FILE_PATH, TARGET_KEY_FILE, install_key_file, setup_encryption,
)
from cryptstrap.core.exceptions import InstallerError
from cryptstrap.core.filesystem import create_filesystems, plan_volumes
from cryptstrap.core.identity import IdentityResolver, resolve_identifiers
from cryptstrap.core.mount import mount_filesystems, plan_mounts
from cryptstrap.core.partition import prepare_disks
from cryptstrap.utils.command import CommandRunner
from cryptstrap.utils.format import TermColors, colorize
from cryptstrap.utils.settings import InstallConfig
from cryptstrap.utils.types import (
    ConfigArtifact, ConfigLink, DeviceSpec, EncryptedVolume, Identifiers,
    MountPlan, PartitionTable, VolumeTable,
)

logger = logging.getLogger('cryptstrap')

Artifact = Union[ConfigArtifact, ConfigLink]


@attr.s(auto_attribs=True, frozen=True)
class StepResult:
    """Outcome of one stage: its value on success, its error on failure"""
    name: str
    ok: bool
    value: Any = None
    error: Optional[InstallerError] = None


@attr.s(auto_attribs=True, frozen=True)
class PipelineResult:
    results: Tuple[StepResult, ...]

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> Optional[StepResult]:
        for result in self.results:
            if not result.ok:
                return result
        return None


def generate_artifacts(
    config: InstallConfig,
    volumes: VolumeTable,
    encrypted: EncryptedVolume,
    identifiers: Identifiers,
) -> List[Artifact]:
    """
    Render every configuration file of the installed system.

    Pure: the same inputs always give the same list.
    """
    policy = config.policy
    entry = BootEntry(
        luks_uuid=identifiers.luks_uuid,
        boot_partuuid=identifiers.boot_partuuid,
        mapped_name=encrypted.mapped_name,
        key_file=TARGET_KEY_FILE,
        theme=theme_name(policy.theme_url),
    )

    artifacts: List[Artifact] = [
        generate_fstab(volumes, identifiers),
        generate_mkinitcpio(TARGET_KEY_FILE),
        generate_refind_conf(entry),
    ]
    artifacts += generate_network_units(policy.wired_interface, policy.wireless_interface)
    artifacts += generate_resolver()
    artifacts.append(generate_wpa_supplicant(policy.wireless_interface, policy.wireless_networks))
    artifacts.append(generate_iptables_rules(policy.allowed_tcp_ports, policy.allowed_udp_ports))
    artifacts.append(generate_sudoers())
    artifacts += generate_identity(config.hostname, policy.locale, policy.keymap, policy.timezone)
    return artifacts


class Pipeline:
    """
    One forward-only provisioning run.

    Each stage stores what it produced on the instance; later stages only
    read what earlier ones stored.
    """
    def __init__(
        self,
        config: InstallConfig,
        cmd_runner: CommandRunner,
        fetcher: Optional[ThemeFetcher] = None,
        key_file: str = KEY_FILE_PATH,
    ):
        self.config = config
        self.cmd_runner = cmd_runner
        self.fetcher = fetcher or GitThemeFetcher(config.target, cmd_runner)
        self.key_file = key_file
        self.resolver = IdentityResolver(cmd_runner)

        self.devices: Optional[Tuple[DeviceSpec, DeviceSpec]] = None
        self.partitions: Optional[PartitionTable] = None
        self.encrypted: Optional[EncryptedVolume] = None
        self.volumes: Optional[VolumeTable] = None
        self.mounts: Optional[MountPlan] = None
        self.identifiers: Optional[Identifiers] = None

    def steps(self) -> List[Tuple[str, Callable[[], Any]]]:
        return [
            ("validate devices", self.validate),
            ("partition disks", self.partition),
            ("set up encryption", self.encrypt),
            ("create filesystems", self.make_filesystems),
            ("mount filesystems", self.mount),
            ("resolve identifiers", self.resolve),
            ("install base system", self.bootstrap),
            ("install key file", self.install_key),
            ("write configuration", self.write_configuration),
            ("finalize target system", self.finish),
        ]

    def validate(self) -> Tuple[DeviceSpec, DeviceSpec]:
        self.devices = validate_devices(self.config, self.cmd_runner)
        return self.devices

    def partition(self) -> PartitionTable:
        root, boot = self.devices
        self.partitions = prepare_disks(root, boot, self.cmd_runner)
        return self.partitions

    def encrypt(self) -> EncryptedVolume:
        self.encrypted = setup_encryption(self.partitions["system"], self.cmd_runner,
                                          key_file=self.key_file)
        return self.encrypted

    def make_filesystems(self) -> VolumeTable:
        volumes = plan_volumes(self.encrypted.mapped_device, self.partitions,
                               self.config.policy.label_prefix)
        create_filesystems(volumes, self.cmd_runner)
        self.volumes = volumes
        return volumes

    def mount(self) -> Set[str]:
        self.mounts = plan_mounts(self.volumes, self.config.target)
        return mount_filesystems(self.mounts, self.cmd_runner)

    def resolve(self) -> Identifiers:
        self.identifiers = resolve_identifiers(self.encrypted, self.volumes, self.resolver)
        return self.identifiers

    def bootstrap(self) -> None:
        bootstrap_system(self.config.target, self.config.policy.packages, self.cmd_runner)

    def install_key(self) -> str:
        return install_key_file(self.encrypted, self.config.target, self.cmd_runner)

    def write_configuration(self) -> List[str]:
        written = []
        for artifact in generate_artifacts(self.config, self.volumes, self.encrypted, self.identifiers):
            if isinstance(artifact, ConfigLink):
                path = write_link(artifact, self.config.target, self.cmd_runner)
            else:
                path = write_artifact(artifact, self.config.target, self.cmd_runner)
            written.append(str(path))
        return written

    def finish(self) -> None:
        finalize(self.config, self.cmd_runner, self.fetcher)

    def _run_step(self, name: str, func: Callable[[], Any]) -> StepResult:
        logger.info(colorize(f"==> {name}", TermColors.BOLD, self.cmd_runner.colored_output))
        try:
            value = func()
        except InstallerError as e:
            logger.error(colorize(f"Step '{name}' failed: {e}", TermColors.ERROR,
                                  self.cmd_runner.colored_output))
            return StepResult(name=name, ok=False, error=e)
        return StepResult(name=name, ok=True, value=value)

    def run(self) -> PipelineResult:
        """
        Run every stage in order, stopping at the first failure.

        Returns:
            PipelineResult holding one StepResult per stage that ran
        """
        results: List[StepResult] = []
        for name, func in self.steps():
            result = self._run_step(name, func)
            results.append(result)
            if not result.ok:
                break
        return PipelineResult(results=tuple(results))
