"""
VMware vSphere Collector - Main Entry Point

Command-line interface for one-shot collection, metric discovery and the
MCP server.

Author: uldyssian-sh
License: MIT
"""

import asyncio
import argparse
import json
import sys
from typing import List, Optional

import structlog

from . import __version__
from .collector import VSphereCollector
from .config import load_config
from .exceptions import VSphereCollectorError
from .logging_config import setup_logging

logger = structlog.get_logger(__name__)


def run_collect(config_file: Optional[str], namespaces: List[str]) -> int:
    """Run a single collection cycle and print the metrics as JSON"""
    config = load_config(config_file)
    collector = VSphereCollector()
    try:
        metrics = collector.collect_metrics(namespaces, config)
    finally:
        collector.close()

    print(json.dumps([metric.to_dict() for metric in metrics], indent=2))
    return 0


def run_metric_types() -> int:
    """Print every metric namespace template"""
    descriptors = VSphereCollector().get_metric_types()
    print(json.dumps([descriptor.to_dict() for descriptor in descriptors], indent=2))
    return 0


async def run_server(config_file: Optional[str]) -> None:
    """Run MCP server"""
    from .server import VSphereCollectorMCPServer

    server = VSphereCollectorMCPServer(load_config(config_file))
    await server.start()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vsphere-collector",
        description="VMware vSphere Collector",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Collect free memory of every host, configuration from VSPHERE_* variables
  python -m vmware_vsphere_collector collect /intel/vmware/vsphere/host/*/mem/*/free

  # Collect with a config file
  python -m vmware_vsphere_collector --config config.yaml collect /intel/vmware/vsphere/host/*/vm/*/cpu/*/idle

  # List available metrics
  python -m vmware_vsphere_collector metric-types

  # Run MCP server
  python -m vmware_vsphere_collector --config config.yaml serve
        """
    )

    parser.add_argument(
        "--config", "-c",
        help="Configuration file path",
        default=None
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level"
    )

    parser.add_argument(
        "--log-dir",
        help="Directory for log files",
        default=None
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"VMware vSphere Collector {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    collect = subparsers.add_parser("collect", help="Collect metrics once and print them")
    collect.add_argument("namespaces", nargs="+", help="Metric namespaces")

    subparsers.add_parser("metric-types", help="List available metric namespaces")
    subparsers.add_parser("serve", help="Run the MCP server on stdio")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level, args.log_dir)

    try:
        if args.command == "collect":
            return run_collect(args.config, args.namespaces)
        if args.command == "metric-types":
            return run_metric_types()
        asyncio.run(run_server(args.config))
        return 0

    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 130
    except VSphereCollectorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
