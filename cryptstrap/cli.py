"""
Command-line interface for cryptstrap.

This module handles argument parsing and runs the provisioning pipeline.
"""
import argparse
import logging
import sys
from typing import List, Optional

from cryptstrap.utils.logging import setup_logging
from cryptstrap.utils.command import CommandRunner, SimulationMode
from cryptstrap.utils.format import TermColors, colorize
from cryptstrap.utils.settings import DEFAULT_TARGET, InstallConfig, build_config, load_policy
from cryptstrap.utils.validation import check_prerequisites
from cryptstrap.core.exceptions import ConfigurationError
from cryptstrap.pipeline import Pipeline

logger = logging.getLogger('cryptstrap')


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Namespace containing parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="cryptstrap",
        description="Unattended Arch Linux installer with a LUKS-encrypted root disk "
                    "and a separate boot disk. DESTROYS ALL DATA on both disks."
    )

    parser.add_argument(
        "root_device",
        help="Disk receiving the encrypted root filesystem (e.g., /dev/sda)"
    )

    parser.add_argument(
        "boot_device",
        help="Disk receiving the boot and EFI system partitions (e.g., /dev/sdb)"
    )

    parser.add_argument(
        "hostname",
        help="Host name of the installed system"
    )

    parser.add_argument(
        "-t", "--target",
        default=DEFAULT_TARGET,
        help=f"Mount point for the target root (default: {DEFAULT_TARGET})"
    )

    parser.add_argument(
        "-c", "--config",
        help="YAML file overriding the installation policy (user, locale, interfaces, packages...)"
    )

    parser.add_argument(
        "-s", "--simulate",
        action="store_true",
        help="Simulate operations without making any changes to the system"
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--log-file",
        help="Also write a debug-level log to this file"
    )

    return parser.parse_args(argv)


def display_simulation_summary(config: InstallConfig, cmd_runner: CommandRunner) -> None:
    """
    Print what a real run with the same arguments would destroy and execute.

    Args:
        config: Run configuration
        cmd_runner: CommandRunner that recorded the simulated commands
    """
    if not cmd_runner.simulating:
        return

    colored = cmd_runner.colored_output
    print()
    print(colorize("Dry run finished, no disk was touched.", TermColors.SIM + TermColors.BOLD, colored))
    print(colorize(f"A real run would ERASE {config.root_device} and {config.boot_device} "
                   f"and install {config.hostname} under {config.target}.",
                   TermColors.WARNING, colored))
    print()
    print(cmd_runner.get_simulation_report())
    print()
    print(colorize("Drop --simulate to perform these commands.", TermColors.SIM, colored))
    print(colorize("SIMULATION COMPLETE - NO CHANGES WERE MADE", TermColors.SIM + TermColors.BOLD, colored))
    print(f"{colorize(stars, TermColors.SIM, colored)}\n")

    print(colorize("The following operations would have been performed:", TermColors.SUCCESS, colored))
    print(report)

    print(f"\n{colorize('To execute these operations for real, run without the --simulate flag.', TermColors.SIM, colored)}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = None
    try:
        args = parse_arguments(argv)

        setup_logging(args.debug, args.log_file)

        cmd_runner = CommandRunner(
            SimulationMode.SIMULATE if args.simulate else SimulationMode.DISABLED,
            not args.no_color
        )

        if args.simulate:
            logger.info("Running in simulation mode - NO CHANGES WILL BE MADE")

        try:
            policy = load_policy(args.config)
            config = build_config(
                args.root_device,
                args.boot_device,
                args.hostname,
                target=args.target,
                policy=policy,
                simulate=args.simulate,
            )
        except ConfigurationError as e:
            logger.error(str(e))
            return 1

        try:
            check_prerequisites(cmd_runner)
        except RuntimeError as e:
            logger.error(str(e))
            return 1

        logger.info(f"Root disk: {config.root_device}")
        logger.info(f"Boot disk: {config.boot_device}")
        logger.info(f"Host name: {config.hostname}")
        logger.info(f"Target:    {config.target}")

        result = Pipeline(config, cmd_runner).run()

        if not result.ok:
            failed = result.failed
            logger.error(f"Installation aborted at step '{failed.name}': {failed.error}")
            logger.error("The disks are left in their current state; check them before starting over")
            return 1

        if args.simulate:
            display_simulation_summary(config, cmd_runner)
        else:
            logger.info(colorize("Installation completed successfully",
                                 TermColors.SUCCESS, cmd_runner.colored_output))
            logger.info(f"The new system is mounted at {config.target}")

        return 0

    except KeyboardInterrupt:
        logger.error("Operation cancelled by user")
        return 130

    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args is not None and args.debug:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
