#!/usr/bin/env python3
"""
Stale ECR image report

Lists every image in the ECR registry of a region and reports the ones that
were never pulled or were last pulled more than -days ago, with the total
size of each group. With -mode k8s, images referenced by pods in the current
cluster are kept out of the report. Nothing is deleted.
"""

import argparse
import sys
from typing import List, Optional

from ecr_reaper.config_manager import VALID_MODES, ConfigManager, ConfigValidationError
from ecr_reaper.ecr_client import EcrRegistryClient
from ecr_reaper.error_utils import ActionableError
from ecr_reaper.logging_utils import get_logger, log_exception, set_log_level, setup_logging
from ecr_reaper.scanner import StaleImageScanner, log_summary, write_report
from ecr_reaper.workload import KubernetesWorkloadClient

logger = get_logger(__name__)


def non_negative_int(value: str) -> int:
    """argparse type for -days"""
    try:
        days = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'")
    if days < 0:
        raise argparse.ArgumentTypeError(f"days must be non-negative, got: {days}")
    return days


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Report ECR images that were never pulled or not pulled within a number of days",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Images not pulled in the last year in us-east-1
  python main.py

  # 30 day threshold in another region
  python main.py -days 30 -region eu-west-1

  # Keep images that pods in the current cluster are running
  python main.py -mode k8s

  # Also write stale-images.txt and stale-images.json
  python main.py --output-file reports/stale-images

Configuration:
  Defaults come from config.yaml (or CONFIG_FILE). Environment variables
  AWS_REGION, STALE_DAYS, SCAN_MODE, K8S_NAMESPACE and LOG_LEVEL override it,
  and command-line flags override both.
        """
    )

    parser.add_argument(
        '-days', '--days',
        type=non_negative_int,
        help='Number of days to evaluate against lastPulledTime (default: 365)'
    )

    parser.add_argument(
        '-region', '--region',
        help='AWS region where the ECR is running (default: AWS_REGION if set, else us-east-1)'
    )

    parser.add_argument(
        '-mode', '--mode',
        choices=VALID_MODES,
        help="Mode of operation: 'ecr' for ECR cleanup, 'k8s' for Kubernetes pod checking (default: ecr)"
    )

    parser.add_argument(
        '--config',
        help='Path to config YAML file (defaults to CONFIG_FILE env var or config.yaml)'
    )

    parser.add_argument(
        '--namespace',
        help='Only cross-check pods in this namespace (k8s mode; default: all namespaces)'
    )

    parser.add_argument(
        '--output-file',
        help='Base path for the .txt and .json report of flagged images'
    )

    parser.add_argument(
        '--log-level',
        type=str.upper,
        help='Log level (DEBUG, INFO, WARNING, ERROR); the two summary lines are always printed'
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> ConfigManager:
    """Build the effective configuration: file, then environment, then flags"""
    config = ConfigManager(config_file=args.config, validate=False)
    config.apply_overrides({
        "scan.days": args.days,
        "aws.region": args.region,
        "scan.mode": args.mode,
        "kubernetes.namespace": args.namespace,
        "reports.output_file": args.output_file,
        "logging.level": args.log_level,
    })
    config.validate_config()
    return config


def run(config: ConfigManager) -> int:
    """Run one scan with the given configuration and log the totals"""
    days = config.get_days()
    logger.info(f"Scanning ECR in {config.get_region()} for images not pulled in {days} days "
                f"(mode: {config.get_mode()})")

    workload = None
    if config.is_workload_aware():
        workload = KubernetesWorkloadClient(namespace=config.get_namespace())

    registry = EcrRegistryClient(region=config.get_region())
    scanner = StaleImageScanner(registry, days=days, workload=workload)
    summary = scanner.run()

    log_summary(summary)

    output_file = config.get_output_file()
    if output_file:
        write_report(summary, output_file)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main function"""
    setup_logging()
    args = parse_arguments(argv)

    try:
        config = load_config(args)
    except (ConfigValidationError, ActionableError) as e:
        logger.error(str(e))
        return 1
    set_log_level(config.get_log_level())
    logger.debug(f"Effective configuration: {config.describe()}")

    try:
        return run(config)
    except ActionableError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Scan interrupted by user")
        return 1
    except Exception as e:
        log_exception(logger, "Scan failed", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
