import unittest

from cryptstrap.core.exceptions import IdentifierResolutionError
from cryptstrap.core.filesystem import plan_volumes
from cryptstrap.core.identity import IdentityResolver, resolve_identifiers
from cryptstrap.utils.types import EncryptedVolume
from tests.fakes import FakeRunner

PARTITIONS = {"system": "/dev/sda1", "boot": "/dev/sdb1", "efi": "/dev/sdb2"}


class TestIdentityResolver(unittest.TestCase):
    def test_lookup_is_remembered(self):
        runner = FakeRunner()
        resolver = IdentityResolver(runner)
        first = resolver.uuid("/dev/sdb1")
        second = resolver.uuid("/dev/sdb1")
        self.assertEqual(first, second)
        self.assertEqual(1, len(runner.tool_calls("blkid")))

    def test_uuid_and_partuuid_are_distinct(self):
        runner = FakeRunner()
        resolver = IdentityResolver(runner)
        self.assertEqual("uuid-sdb1", resolver.uuid("/dev/sdb1"))
        self.assertEqual("partuuid-sdb1", resolver.partuuid("/dev/sdb1"))
        self.assertEqual(
            ["blkid", "--match-tag", "PARTUUID", "--output", "value", "/dev/sdb1"],
            runner.commands[-1])

    def test_missing_identifier(self):
        runner = FakeRunner()
        runner.respond(lambda cmd: (0, "\n") if cmd[0] == "blkid" else None)
        with self.assertRaises(IdentifierResolutionError):
            IdentityResolver(runner).uuid("/dev/sdb2")

    def test_blkid_failure(self):
        runner = FakeRunner()
        runner.fail_on("blkid", returncode=2)
        with self.assertRaises(IdentifierResolutionError):
            IdentityResolver(runner).partuuid("/dev/sdb1")


class TestResolveIdentifiers(unittest.TestCase):
    def test_all_identifiers(self):
        runner = FakeRunner()
        encrypted = EncryptedVolume("/dev/sda1", "cryptroot", "/root/crypto_keyfile.bin")
        volumes = plan_volumes(encrypted.mapped_device, PARTITIONS, "T440S")

        identifiers = resolve_identifiers(encrypted, volumes, IdentityResolver(runner))

        self.assertEqual("uuid-sda1", identifiers.luks_uuid)
        self.assertEqual("uuid-cryptroot", identifiers.root_uuid)
        self.assertEqual("uuid-sdb1", identifiers.boot_uuid)
        self.assertEqual("partuuid-sdb1", identifiers.boot_partuuid)
        self.assertEqual("uuid-sdb2", identifiers.esp_uuid)
