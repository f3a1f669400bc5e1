import os
import tempfile
import textwrap
import unittest

from cryptstrap.core.exceptions import ConfigurationError
from cryptstrap.utils.settings import (
    DEFAULT_PACKAGES, DEFAULT_TARGET, Policy, build_config, load_policy, policy_from_dict,
)
from cryptstrap.utils.types import WirelessNetwork


class TestBuildConfig(unittest.TestCase):
    def test_defaults(self):
        config = build_config("/dev/sda", "/dev/sdb", "example")
        self.assertEqual(DEFAULT_TARGET, config.target)
        self.assertEqual(Policy(), config.policy)
        self.assertFalse(config.simulate)
        self.assertEqual(DEFAULT_PACKAGES, config.policy.packages)

    def test_bad_hostname(self):
        for hostname in ("bad_name", "-leading", "x" * 64, ""):
            with self.subTest(hostname=hostname):
                with self.assertRaises(ConfigurationError):
                    build_config("/dev/sda", "/dev/sdb", hostname)

    def test_immutable(self):
        config = build_config("/dev/sda", "/dev/sdb", "example")
        with self.assertRaises(AttributeError):
            config.hostname = "other"


class TestPolicy(unittest.TestCase):
    def test_unknown_key(self):
        with self.assertRaises(ConfigurationError):
            policy_from_dict({"usernme": "alice"})

    def test_invalid_values(self):
        bad = [
            {"username": "Alice"},
            {"label_prefix": "lower"},
            {"label_prefix": "TOOLONGX"},
            {"allowed_tcp_ports": [0]},
            {"allowed_udp_ports": ["53"]},
            {"packages": []},
            {"packages": "base linux"},
            {"wireless_networks": [{"ssid": "home"}]},
            {"wireless_networks": [{"ssid": 'ho"me', "psk": "secret123"}]},
            {"timezone": 3},
            {"timezone": "../../etc/shadow"},
            {"timezone": "/Europe/Paris"},
            {"timezone": "UTC\n"},
            {"wired_interface": "eth0\nName=*"},
            {"wireless_interface": "../wlan0"},
            {"wireless_interface": ".."},
            {"wireless_interface": "wlp3s0-way-too-long"},
            {"username": "alice\n"},
        ]
        for data in bad:
            with self.subTest(data=data):
                with self.assertRaises(ConfigurationError):
                    policy_from_dict(data)

    def test_valid_names(self):
        policy = policy_from_dict({
            "timezone": "America/Argentina/Buenos_Aires",
            "wired_interface": "eth0",
            "wireless_interface": "wlan0.1",
        })
        self.assertEqual("America/Argentina/Buenos_Aires", policy.timezone)
        self.assertEqual("Etc/GMT+5", policy_from_dict({"timezone": "Etc/GMT+5"}).timezone)

    def test_networks_converted(self):
        policy = policy_from_dict({"wireless_networks": [{"ssid": "home", "psk": "secret123"}]})
        self.assertEqual((WirelessNetwork("home", "secret123"),), policy.wireless_networks)

    def test_lists_become_tuples(self):
        policy = policy_from_dict({"packages": ["base", "linux"], "allowed_tcp_ports": [22]})
        self.assertEqual(("base", "linux"), policy.packages)
        self.assertEqual((22,), policy.allowed_tcp_ports)


class TestLoadPolicy(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, content):
        path = os.path.join(self.tmp.name, "policy.yaml")
        with open(path, "w") as fp:
            fp.write(textwrap.dedent(content))
        return path

    def test_no_file(self):
        self.assertEqual(Policy(), load_policy(None))

    def test_yaml(self):
        path = self.write("""\
            username: alice
            timezone: Europe/Paris
            label_prefix: X1
            allowed_tcp_ports: [22]
            wireless_networks:
              - ssid: home
                psk: secret123
            """)
        policy = load_policy(path)
        self.assertEqual("alice", policy.username)
        self.assertEqual("Europe/Paris", policy.timezone)
        self.assertEqual("X1", policy.label_prefix)
        self.assertEqual((22,), policy.allowed_tcp_ports)
        self.assertEqual("home", policy.wireless_networks[0].ssid)

    def test_empty_file(self):
        self.assertEqual(Policy(), load_policy(self.write("")))

    def test_not_a_mapping(self):
        with self.assertRaises(ConfigurationError):
            load_policy(self.write("- a\n- b\n"))

    def test_invalid_yaml(self):
        with self.assertRaises(ConfigurationError):
            load_policy(self.write("username: [unclosed\n"))

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_policy(os.path.join(self.tmp.name, "missing.yaml"))
