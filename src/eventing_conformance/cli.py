"""Command line entry point: run the conformance matrix on the local cluster.

Usage:
    eventing-conformance
    eventing-conformance --channel InMemoryChannel --encoding structured
    eventing-conformance --channel-version messaging.conformance.dev/v1alpha1 \
        --subscription-version v1beta1 --output artifacts/conformance_matrix.json
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .channels import descriptor_for, native_descriptors
from .cluster import LocalCluster
from .framework.config import RunOptions
from .framework.envelope import Encoding
from .framework.matrix_runner import TestMatrixRunner
from .framework.report import format_matrix, summarize, write_results
from .framework.resources import SubscriptionVersion, parse_policy

DEFAULT_OUTPUT = Path("artifacts") / "conformance_matrix.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eventing-conformance",
        description="Channel x subscription-version delivery conformance matrix",
    )
    parser.add_argument("--channel", action="append", dest="channels", default=[],
                        help="Channel kind, optionally Kind@group/version (repeatable, default: all)")
    parser.add_argument("--subscription-version", action="append", dest="subscription_versions",
                        default=[], choices=[v.value for v in SubscriptionVersion],
                        help="Subscription contract revision (repeatable, default: all)")
    parser.add_argument("--channel-version", default="native",
                        help="API version the subscription references the channel at, or 'native'")
    parser.add_argument("--encoding", choices=[e.value for e in Encoding],
                        help="Event encoding (default: binary)")
    parser.add_argument("--poll-interval", type=float, help="Seconds between polls")
    parser.add_argument("--readiness-timeout", type=float, help="Seconds to wait for resources")
    parser.add_argument("--delivery-timeout", type=float, help="Seconds to wait for delivery")
    parser.add_argument("--delivery-attempts", type=int, help="Maximum subscriber log reads")
    parser.add_argument("--parallelism", type=int, help="Concurrent matrix cells")
    parser.add_argument("--deadline", type=float, help="Seconds for the whole run")
    parser.add_argument("--provisioning-delay", type=float, default=0.0,
                        help="Local cluster readiness delay per resource")
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT,
                        help="JSON results file")
    parser.add_argument("--log-level", default=os.environ.get("CONFORMANCE_LOG_LEVEL", "WARNING"),
                        help="Logging level (default: WARNING)")
    return parser


def options_from_args(args) -> RunOptions:
    versions = None
    if args.subscription_versions:
        versions = tuple(SubscriptionVersion.parse(v) for v in args.subscription_versions)
    return RunOptions.from_env(
        encoding=Encoding.parse(args.encoding) if args.encoding else None,
        subscription_versions=versions,
        poll_interval=args.poll_interval,
        readiness_timeout=args.readiness_timeout,
        delivery_timeout=args.delivery_timeout,
        delivery_max_attempts=args.delivery_attempts,
        parallelism=args.parallelism,
        run_deadline=args.deadline,
    )


async def run(args) -> int:
    channels = [descriptor_for(c) for c in args.channels] or native_descriptors()
    policy = parse_policy(args.channel_version)
    options = options_from_args(args)

    async with LocalCluster(provisioning_delay=args.provisioning_delay) as cluster:
        runner = TestMatrixRunner(cluster, cluster, cluster, cluster)
        results = await runner.run(channels, policy, options)

    matrix = write_results(results, args.output)
    print(format_matrix(matrix))
    counts = summarize(matrix)
    print(
        f"  {counts['pass']} passed, {counts['fail']} failed, "
        f"{counts['error']} errors, {counts['skip']} skipped"
    )
    print(f"  Results written to {args.output}")
    return 0 if counts["fail"] == 0 and counts["error"] == 0 else 1


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        sys.exit(asyncio.run(run(args)))
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
