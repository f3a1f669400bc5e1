import os
import stat
import tempfile
import unittest

from cryptstrap.core.encryption import (
    KEY_FILE_SIZE, create_key_file, install_key_file, setup_encryption,
)
from cryptstrap.core.exceptions import ConfigWriteError, DestructiveOperationError
from cryptstrap.utils.command import CommandRunner, SimulationMode
from cryptstrap.utils.types import EncryptedVolume
from tests.fakes import FakeRunner


class TestKeyFile(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.key_file = os.path.join(self.tmp.name, "crypto_keyfile.bin")

    def test_created_unreadable(self):
        create_key_file(self.key_file, FakeRunner())
        st = os.stat(self.key_file)
        self.assertEqual(0, stat.S_IMODE(st.st_mode))
        self.assertEqual(KEY_FILE_SIZE, st.st_size)

    def test_stale_key_file_is_replaced(self):
        with open(self.key_file, "w") as fp:
            fp.write("old")
        os.chmod(self.key_file, 0o000)

        create_key_file(self.key_file, FakeRunner())

        st = os.stat(self.key_file)
        self.assertEqual(0, stat.S_IMODE(st.st_mode))
        self.assertEqual(KEY_FILE_SIZE, st.st_size)

    def test_unwritable_location(self):
        missing_dir = os.path.join(self.tmp.name, "missing", "crypto_keyfile.bin")
        with self.assertRaises(DestructiveOperationError):
            create_key_file(missing_dir, FakeRunner())

    def test_simulation_writes_nothing(self):
        create_key_file(self.key_file, CommandRunner(SimulationMode.SIMULATE, False))
        self.assertFalse(os.path.exists(self.key_file))

    def test_install_sets_owner_only_mode(self):
        runner = FakeRunner()
        create_key_file(self.key_file, runner)
        target = os.path.join(self.tmp.name, "target")
        os.mkdir(target)
        volume = EncryptedVolume(partition="/dev/sda1", mapped_name="cryptroot",
                                 key_file=self.key_file)

        installed = install_key_file(volume, target, runner)

        self.assertEqual(os.path.join(target, "crypto_keyfile.bin"), installed)
        self.assertFalse(os.path.exists(self.key_file))
        self.assertEqual(0o600, stat.S_IMODE(os.stat(installed).st_mode))

    def test_install_missing_key_file(self):
        volume = EncryptedVolume(partition="/dev/sda1", mapped_name="cryptroot",
                                 key_file=self.key_file)
        with self.assertRaises(ConfigWriteError):
            install_key_file(volume, self.tmp.name, FakeRunner())


class TestSetupEncryption(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.key_file = os.path.join(self.tmp.name, "crypto_keyfile.bin")

    def test_format_then_open(self):
        runner = FakeRunner()
        volume = setup_encryption("/dev/sda1", runner, key_file=self.key_file)

        self.assertEqual(EncryptedVolume("/dev/sda1", "cryptroot", self.key_file), volume)
        self.assertEqual("/dev/mapper/cryptroot", volume.mapped_device)
        self.assertEqual([
            ["cryptsetup", "--batch-mode", "luksFormat", "--key-size", "512",
             "--iter-time", "2000", "--use-random", "/dev/sda1", self.key_file],
            ["cryptsetup", "open", "--key-file", self.key_file, "/dev/sda1", "cryptroot"],
        ], runner.commands)

    def test_format_failure_is_not_retried(self):
        runner = FakeRunner()
        runner.fail_on("cryptsetup --batch-mode luksFormat")
        with self.assertRaises(DestructiveOperationError):
            setup_encryption("/dev/sda1", runner, key_file=self.key_file)
        self.assertEqual(1, len(runner.commands))

    def test_open_failure(self):
        runner = FakeRunner()
        runner.fail_on("cryptsetup open")
        with self.assertRaises(DestructiveOperationError):
            setup_encryption("/dev/sda1", runner, key_file=self.key_file)
