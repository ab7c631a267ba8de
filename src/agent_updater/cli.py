"""Command-line entry point for the agent updater."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

from agent_updater import __version__
from agent_updater.config import get_settings
from agent_updater.errors import UsageError
from agent_updater.logging import get_logger, setup_logging
from agent_updater.models import PackageType
from agent_updater.orchestrator import UpdateOrchestrator

PACKAGE_TYPES = [member.value for member in PackageType]

USAGE = f"agent-updater <{'|'.join(PACKAGE_TYPES)}>"

DESCRIPTION = """\
Download and install the latest agent release for this host.

package types:
  rpm     install with yum (Amazon Linux, RHEL, CentOS)
  deb     install with gdebi (Debian, Ubuntu)
  zypper  install with zypper (SUSE)
  auto    detect the package manager on this host
  help    show this message
"""


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="agent-updater",
        usage=USAGE,
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("package_type", choices=PACKAGE_TYPES, help=argparse.SUPPRESS)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_package_type(argv: Sequence[str]) -> PackageType:
    """Parse the single positional package type. Raises UsageError."""
    args = build_parser().parse_args(list(argv))
    return PackageType(args.package_type)


def main(argv: Sequence[str] | None = None) -> int:
    """Run one update and return the process exit code."""
    if argv is None:
        argv = sys.argv[1:]

    setup_logging()
    log = get_logger("agent_updater.cli")

    try:
        package_type = parse_package_type(argv)
    except UsageError as exc:
        build_parser().print_usage(sys.stderr)
        print(f"agent-updater: error: {exc}", file=sys.stderr)
        log.error("usage_error", error=str(exc), argv=list(argv))
        return exc.exit_code

    if package_type is PackageType.HELP:
        build_parser().print_help()
        return 0

    settings = get_settings()
    log.info("update_started", package_type=package_type.value, region_override=settings.aws_region)

    try:
        orchestrator = UpdateOrchestrator(package_type, settings)
        result = asyncio.run(orchestrator.run())
    except Exception:
        log.exception("update_crashed", package_type=package_type.value)
        return 1

    log.info("update_finished", **result.to_dict())
    return result.exit_code


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())
