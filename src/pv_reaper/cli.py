"""
CLI entry point for pv-reaper.

Parses options, wires kubectl and EC2 access together and runs cleanup()
under a deadline. Run after setting cluster context (e.g. set-clus staging)
or pass --kube-context.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Optional

import click

from .cleanup import cleanup
from .config import DEFAULT_TIMEOUT_SECONDS, POLL_INTERVAL_SECONDS
from .context import Context
from .ec2 import EbsVolumeAPI, create_ec2_client
from .errors import ClusterError, MissingDeadlineError, VolumesNotDeletedError
from .kubectl import PersistentVolumeAPI

logger = logging.getLogger(__name__)

# Exit status when PVs were removed but EBS volumes outlived the deadline.
EXIT_NOT_CONVERGED = 2

# Shown at the bottom of pv-reaper --help / pv-reaper -h
EPILOG = """
Examples:

  pv-reaper -h                          # Show help (same as --help)
  pv-reaper                             # Reap EBS-backed PVs, wait up to 5 minutes
  pv-reaper --timeout 900               # Wait up to 15 minutes for EBS deletion
  pv-reaper --kube-context staging      # Use kubeconfig context staging
  pv-reaper --region eu-west-1 -v       # EC2 region eu-west-1, debug logging

Exit status: 0 all volumes deleted, 1 fatal error, 2 volumes still present
at the deadline (safe to re-run).
"""


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0),
    default=DEFAULT_TIMEOUT_SECONDS,
    show_default=True,
    envvar="PV_REAPER_TIMEOUT",
    metavar="SECONDS",
    help="Give up waiting for EBS volumes after SECONDS",
)
@click.option(
    "--kube-context",
    "kube_context",
    envvar="PV_REAPER_KUBE_CONTEXT",
    metavar="NAME",
    help="Kubeconfig context to use (default: current context)",
)
@click.option(
    "--region",
    envvar="AWS_REGION",
    help="AWS region of the EBS volumes",
)
@click.option(
    "--profile",
    envvar="AWS_PROFILE",
    help="AWS named profile",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0),
    default=POLL_INTERVAL_SECONDS,
    hidden=True,
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Log every PV and volume processed",
)
def main(
    timeout: float,
    kube_context: Optional[str],
    region: Optional[str],
    profile: Optional[str],
    poll_interval: float,
    verbose: bool,
) -> None:
    """
    Delete EBS-backed Kubernetes PersistentVolumes and wait for their EBS volumes.

    Removes finalizers from every PV provisioned by the EBS CSI driver or the
    in-tree aws-ebs plugin, deletes the PV, then polls EC2 until the backing
    volumes are gone or the timeout expires. Ctrl-C stops waiting.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx = Context.with_timeout(timeout)
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: ctx.cancel())
    try:
        cleanup(
            ctx,
            PersistentVolumeAPI(context=kube_context),
            EbsVolumeAPI(create_ec2_client(region=region, profile=profile)),
            poll_interval=poll_interval,
        )
    except VolumesNotDeletedError as exc:
        click.echo(f"Error: {exc}", err=True)
        click.echo("Re-run pv-reaper or delete these volumes manually.", err=True)
        sys.exit(EXIT_NOT_CONVERGED)
    except (ClusterError, MissingDeadlineError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    click.echo("All EBS volumes backing Kubernetes Persistent Volumes are deleted.")


if __name__ == "__main__":
    main()
