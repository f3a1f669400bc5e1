import os
import tempfile
import unittest
from unittest import mock

from cryptstrap import cli
from cryptstrap.utils.command import CommandRunner, SimulationMode
from cryptstrap.utils.settings import build_config


class TestParseArguments(unittest.TestCase):
    def test_defaults(self):
        args = cli.parse_arguments(["/dev/sda", "/dev/sdb", "example"])
        self.assertEqual("/dev/sda", args.root_device)
        self.assertEqual("/dev/sdb", args.boot_device)
        self.assertEqual("example", args.hostname)
        self.assertEqual("/mnt", args.target)
        self.assertFalse(args.simulate)
        self.assertIsNone(args.config)

    def test_options(self):
        args = cli.parse_arguments(["-s", "-t", "/target", "-c", "policy.yaml", "--no-color",
                                    "/dev/sda", "/dev/sdb", "example"])
        self.assertTrue(args.simulate)
        self.assertTrue(args.no_color)
        self.assertEqual("/target", args.target)
        self.assertEqual("policy.yaml", args.config)


class TestMain(unittest.TestCase):
    @mock.patch("cryptstrap.cli.display_simulation_summary")
    def test_simulation_succeeds(self, summary):
        code = cli.main(["--simulate", "--no-color", "/dev/sda", "/dev/sdb", "example"])
        self.assertEqual(0, code)
        summary.assert_called_once()

    @mock.patch("builtins.print")
    def test_simulation_summary_names_erased_disks(self, print_):
        runner = CommandRunner(SimulationMode.SIMULATE, colored_output=False)
        runner.run(["sgdisk", "--zap-all", "/dev/sda"])
        cli.display_simulation_summary(build_config("/dev/sda", "/dev/sdb", "example"), runner)

        printed = "\n".join(str(c.args[0]) for c in print_.call_args_list if c.args)
        self.assertIn("ERASE /dev/sda and /dev/sdb", printed)
        self.assertIn("1  sgdisk --zap-all /dev/sda", printed)

    def test_bad_hostname(self):
        self.assertEqual(1, cli.main(["--simulate", "--no-color", "/dev/sda", "/dev/sdb", "bad_name"]))

    def test_bad_config_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "policy.yaml")
            with open(path, "w") as fp:
                fp.write("unknown_key: 1\n")
            code = cli.main(["--simulate", "--no-color", "-c", path, "/dev/sda", "/dev/sdb", "example"])
        self.assertEqual(1, code)

    def test_same_disk_twice_fails(self):
        self.assertEqual(1, cli.main(["--simulate", "--no-color", "/dev/sda", "/dev/sda", "example"]))

    @mock.patch("cryptstrap.cli.check_prerequisites", side_effect=RuntimeError("not root"))
    def test_prerequisites(self, check):
        self.assertEqual(1, cli.main(["--no-color", "/dev/sda", "/dev/sdb", "example"]))
        check.assert_called_once()

    @mock.patch("cryptstrap.cli.Pipeline")
    def test_interrupted(self, pipeline):
        pipeline.return_value.run.side_effect = KeyboardInterrupt
        self.assertEqual(130, cli.main(["--simulate", "--no-color", "/dev/sda", "/dev/sdb", "example"]))
