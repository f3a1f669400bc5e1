"""
sudoers fragment granting the wheel group administrative rights.
"""
from cryptstrap.utils.types import ConfigArtifact

SUDOERS_PATH = "/etc/sudoers.d/01-base"
SUDOERS_MODE = 0o440

CONTENT = """\
Defaults env_reset
Defaults secure_path="/usr/local/sbin:/usr/local/bin:/usr/bin"
Defaults passwd_timeout=0
%wheel ALL=(ALL:ALL) ALL
"""


def generate_sudoers() -> ConfigArtifact:
    return ConfigArtifact(path=SUDOERS_PATH, content=CONTENT, mode=SUDOERS_MODE)
