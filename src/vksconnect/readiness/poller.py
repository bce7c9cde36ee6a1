"""Cluster readiness polling with operator consent."""

import time
from collections.abc import Callable, Iterable

from vksconnect.core.exceptions import AuthorizationError, BackendError, ReadinessAbortedError
from vksconnect.core.models import RUNNING_STATUS, Cluster
from vksconnect.interfaces.operator import OperatorInteraction
from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)


def cluster_status_from_list(clusters: Iterable[Cluster], cluster_name: str) -> str | None:
    """Get one cluster's status from a cluster listing.

    Args:
        clusters: Cluster listing
        cluster_name: Cluster to look up

    Returns:
        Status string, or None if the cluster is not listed
    """
    for cluster in clusters:
        if cluster.name == cluster_name:
            return cluster.status
    return None


class ReadinessPoller:
    """Blocks until a cluster reports ``running``, with the operator's consent.

    The wait is unbounded: provisioning takes a variable number of minutes and
    the operator supervises it, interrupting the process to give up.
    """

    def __init__(
        self,
        fetch_status: Callable[[str], str | None],
        operator: OperatorInteraction,
        interval: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize readiness poller.

        Args:
            fetch_status: Returns the current status of a cluster (None if unknown)
            operator: Operator interaction for consent and progress
            interval: Seconds between polls
            sleep: Sleep function (injectable for tests)
        """
        self.fetch_status = fetch_status
        self.operator = operator
        self.interval = interval
        self.sleep = sleep

    def _status(self, cluster_name: str) -> str | None:
        try:
            status = self.fetch_status(cluster_name)
        except AuthorizationError:
            raise
        except BackendError as e:
            # Provisioning clusters produce transient listing failures
            logger.warning("cluster_status_fetch_failed", cluster=cluster_name, error=str(e))
            return None

        status = (status or "").strip()
        return status or None

    def wait_until_running(self, cluster_name: str) -> int:
        """Wait until ``cluster_name`` reports exactly ``running``.

        Args:
            cluster_name: Cluster to wait for

        Returns:
            Number of poll cycles performed (0 if it was already running)

        Raises:
            ReadinessAbortedError: If the operator declines to wait
        """
        status = self._status(cluster_name)
        if status == RUNNING_STATUS:
            logger.info("cluster_running", cluster=cluster_name, cycles=0)
            self.operator.success(f"Cluster '{cluster_name}' is running and ready")
            return 0

        shown = status or "unknown"
        self.operator.warning(
            f"Cluster '{cluster_name}' is currently in '{shown}' state (not '{RUNNING_STATUS}')"
        )
        if not self.operator.confirm("Do you want to wait for the cluster to be ready?"):
            logger.info("cluster_wait_declined", cluster=cluster_name, status=shown)
            raise ReadinessAbortedError(
                f"Cluster '{cluster_name}' is '{shown}', not '{RUNNING_STATUS}'. "
                f"Cannot proceed with a cluster that is not running.",
                hint=f"vksconnect diagnose {cluster_name}",
            )

        self.operator.info(f"Waiting for cluster to be ready (polling every {self.interval:g}s)...")
        cycles = 0
        while status != RUNNING_STATUS:
            self.sleep(self.interval)
            cycles += 1
            previous, status = status, self._status(cluster_name)

            if status != previous:
                logger.info(
                    "cluster_status_changed",
                    cluster=cluster_name,
                    previous=previous,
                    status=status,
                    cycle=cycles,
                )
            self.operator.info(f"Current status: {status or 'unknown'}")

        logger.info("cluster_running", cluster=cluster_name, cycles=cycles)
        self.operator.success("Cluster is now running!")
        return cycles
