"""Read-only provisioning diagnostics for a VKS workload cluster.

Everything here is queried from the supervisor namespace that owns the
cluster. Nothing is modified.
"""

import base64
import binascii
from datetime import datetime, timezone
from typing import Any

from kubernetes.client.models import CoreV1Event

from vksconnect.clients.kubernetes_client import KubernetesClient
from vksconnect.core.exceptions import KubernetesError
from vksconnect.core.models import (
    BootstrapSecretInfo,
    ClusterDiagnostics,
    ConditionInfo,
    EventInfo,
    FindingSeverity,
    MachineInfo,
    VirtualMachineInfo,
    VSphereMachineInfo,
)
from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)

CLUSTER_NAME_LABEL = "cluster.x-k8s.io/cluster-name"

# (group, version, plural)
CLUSTERS = ("cluster.x-k8s.io", "v1beta1", "clusters")
MACHINES = ("cluster.x-k8s.io", "v1beta1", "machines")
MACHINE_DEPLOYMENTS = ("cluster.x-k8s.io", "v1beta1", "machinedeployments")
CONTROL_PLANES = ("controlplane.cluster.x-k8s.io", "v1beta1", "kubeadmcontrolplanes")
VSPHERE_MACHINES = ("vmware.infrastructure.cluster.x-k8s.io", "v1beta1", "vspheremachines")
VIRTUAL_MACHINES = ("vmoperator.vmware.com", "v1alpha2", "virtualmachines")

MAX_EVENTS = 20
POWERED_ON = "PoweredOn"
RUNNING_PHASE = "Running"


def _conditions(obj: dict[str, Any]) -> list[ConditionInfo]:
    return [
        ConditionInfo(
            type=c.get("type", ""),
            status=str(c.get("status", "")),
            reason=c.get("reason"),
            message=c.get("message"),
        )
        for c in obj.get("status", {}).get("conditions") or []
    ]


def _name(obj: dict[str, Any]) -> str:
    return obj.get("metadata", {}).get("name", "")


def _event_time(event: CoreV1Event) -> datetime | None:
    return event.last_timestamp or event.event_time or event.metadata.creation_timestamp


def vm_ip_addresses(vm: dict[str, Any]) -> list[str]:
    """Collect IP addresses reported on a VirtualMachine's status."""
    network = vm.get("status", {}).get("network") or {}
    addresses = []
    primary = network.get("primaryIP4") or network.get("primaryIP6")
    if primary:
        addresses.append(primary)
    for interface in network.get("interfaces") or []:
        for entry in (interface.get("ip") or {}).get("addresses") or []:
            address = entry.get("address", "").split("/")[0]
            if address and address not in addresses:
                addresses.append(address)
    return addresses


class DiagnosticsCollector:
    """Builds a ClusterDiagnostics report for one cluster.

    Each section is collected independently; a failing section becomes an
    error finding and the rest of the report is still produced.
    """

    def __init__(
        self,
        namespace: str,
        kubeconfig_path: str | None = None,
        context: str | None = None,
        client: KubernetesClient | None = None,
    ):
        """Initialize diagnostics collector.

        Args:
            namespace: Supervisor namespace that owns the cluster
            kubeconfig_path: Kubeconfig file (default location if None)
            context: Kubeconfig context (current context if None)
            client: Pre-built Kubernetes client
        """
        self.namespace = namespace
        self.client = client or KubernetesClient(kubeconfig_path=kubeconfig_path, context=context)

    def _list(self, resource: tuple[str, str, str], cluster_name: str) -> list[dict[str, Any]]:
        group, version, plural = resource
        return self.client.list_custom_objects(
            group,
            version,
            plural,
            self.namespace,
            label_selector=f"{CLUSTER_NAME_LABEL}={cluster_name}",
        )

    def collect(self, cluster_name: str, include_vms: bool = False) -> ClusterDiagnostics:
        """Collect diagnostics for a cluster.

        Args:
            cluster_name: Workload cluster name
            include_vms: Also inspect VirtualMachines and bootstrap secrets

        Returns:
            ClusterDiagnostics report with findings
        """
        report = ClusterDiagnostics(cluster_name=cluster_name, namespace=self.namespace)
        logger.info("diagnostics_started", cluster=cluster_name, namespace=self.namespace)

        sections = [
            ("cluster", self._collect_cluster),
            ("machines", self._collect_machines),
            ("control_planes", self._collect_control_planes),
            ("machine_deployments", self._collect_machine_deployments),
            ("vsphere_machines", self._collect_vsphere_machines),
        ]
        if include_vms:
            sections += [
                ("virtual_machines", self._collect_virtual_machines),
                ("bootstrap_secrets", self._collect_bootstrap_secrets),
            ]
        sections.append(("events", self._collect_events))

        for source, collect_section in sections:
            try:
                collect_section(report)
            except KubernetesError as e:
                logger.warning("diagnostics_section_failed", section=source, error=str(e))
                report.add_finding(FindingSeverity.ERROR, source, f"Could not collect: {e}")

        logger.info(
            "diagnostics_completed",
            cluster=cluster_name,
            findings=len(report.findings),
            has_errors=report.has_errors,
        )
        return report

    def _collect_cluster(self, report: ClusterDiagnostics) -> None:
        group, version, plural = CLUSTERS
        cluster = self.client.get_custom_object(
            group, version, plural, self.namespace, report.cluster_name
        )
        if cluster is None:
            report.add_finding(
                FindingSeverity.ERROR,
                "cluster",
                f"Cluster '{report.cluster_name}' not found in namespace '{self.namespace}'",
            )
            return

        report.phase = cluster.get("status", {}).get("phase")
        endpoint = cluster.get("spec", {}).get("controlPlaneEndpoint") or {}
        if endpoint.get("host"):
            report.control_plane_endpoint = f"{endpoint['host']}:{endpoint.get('port', 6443)}"

        report.failed_conditions = [c for c in _conditions(cluster) if c.status == "False"]
        for condition in report.failed_conditions:
            detail = condition.message or condition.reason or "no details"
            report.add_finding(
                FindingSeverity.ERROR, "cluster", f"Condition {condition.type} is False: {detail}"
            )

    def _collect_machines(self, report: ClusterDiagnostics) -> None:
        for machine in self._list(MACHINES, report.cluster_name):
            status = machine.get("status", {})
            info = MachineInfo(
                name=_name(machine),
                phase=status.get("phase"),
                node_ref=(status.get("nodeRef") or {}).get("name"),
                provider_id=machine.get("spec", {}).get("providerID") or status.get("providerID"),
                problem_conditions=[c for c in _conditions(machine) if c.status != "True"],
            )
            report.machines.append(info)

            if info.phase != RUNNING_PHASE:
                report.add_finding(
                    FindingSeverity.WARNING,
                    "machines",
                    f"Machine {info.name} is in phase '{info.phase or 'unknown'}'",
                )

        if not report.machines:
            report.add_finding(FindingSeverity.WARNING, "machines", "No machines found")

    def _collect_control_planes(self, report: ClusterDiagnostics) -> None:
        for kcp in self._list(CONTROL_PLANES, report.cluster_name):
            status = kcp.get("status", {})
            report.control_planes.append(
                {
                    "name": _name(kcp),
                    "version": kcp.get("spec", {}).get("version"),
                    "replicas": status.get("replicas", 0),
                    "ready_replicas": status.get("readyReplicas", 0),
                    "initialized": bool(status.get("initialized")),
                }
            )

    def _collect_machine_deployments(self, report: ClusterDiagnostics) -> None:
        for md in self._list(MACHINE_DEPLOYMENTS, report.cluster_name):
            status = md.get("status", {})
            report.machine_deployments.append(
                {
                    "name": _name(md),
                    "phase": status.get("phase"),
                    "replicas": status.get("replicas", 0),
                    "ready_replicas": status.get("readyReplicas", 0),
                }
            )

    def _collect_vsphere_machines(self, report: ClusterDiagnostics) -> None:
        for vsm in self._list(VSPHERE_MACHINES, report.cluster_name):
            spec = vsm.get("spec", {})
            report.vsphere_machines.append(
                VSphereMachineInfo(
                    name=_name(vsm),
                    addresses=[
                        a["address"]
                        for a in vsm.get("status", {}).get("addresses") or []
                        if a.get("address")
                    ],
                    image_name=spec.get("imageName"),
                    storage_class=spec.get("storageClass"),
                    class_name=spec.get("className"),
                )
            )

    def _collect_virtual_machines(self, report: ClusterDiagnostics) -> None:
        for vm in self._list(VIRTUAL_MACHINES, report.cluster_name):
            info = VirtualMachineInfo(
                name=_name(vm),
                power_state=vm.get("status", {}).get("powerState"),
                ip_addresses=vm_ip_addresses(vm),
            )
            report.virtual_machines.append(info)

            if info.power_state != POWERED_ON:
                report.add_finding(
                    FindingSeverity.ERROR,
                    "virtual_machines",
                    f"VM {info.name} power state is '{info.power_state or 'unknown'}'",
                )
            elif not info.ip_addresses:
                report.add_finding(
                    FindingSeverity.WARNING,
                    "virtual_machines",
                    f"VM {info.name} has no IP address yet",
                )

    def _collect_bootstrap_secrets(self, report: ClusterDiagnostics) -> None:
        machines = report.machines or [
            MachineInfo(name=_name(m)) for m in self._list(MACHINES, report.cluster_name)
        ]
        for machine in machines:
            secret = self.client.get_secret(machine.name, self.namespace)
            if secret is None:
                report.bootstrap_secrets.append(
                    BootstrapSecretInfo(machine=machine.name, exists=False)
                )
                report.add_finding(
                    FindingSeverity.ERROR,
                    "bootstrap_secrets",
                    f"Bootstrap secret not found for machine {machine.name}",
                )
                continue

            encoded = (secret.data or {}).get("value", "")
            try:
                data = (
                    base64.b64decode(encoded, validate=True).decode("utf-8", errors="replace")
                    if encoded
                    else ""
                )
            except (binascii.Error, ValueError) as e:
                data = ""
                report.add_finding(
                    FindingSeverity.ERROR,
                    "bootstrap_secrets",
                    f"Bootstrap secret for machine {machine.name} is not valid base64: {e}",
                )
            report.bootstrap_secrets.append(
                BootstrapSecretInfo(
                    machine=machine.name,
                    exists=True,
                    size_bytes=len(encoded),
                    has_kubeadm_join="kubeadm join" in data,
                    has_apiserver="apiserver" in data,
                    has_certificate_key="certificate-key" in data,
                )
            )

    def _collect_events(self, report: ClusterDiagnostics) -> None:
        cluster_name = report.cluster_name
        related = [
            e
            for e in self.client.list_events(self.namespace)
            if cluster_name in (e.involved_object.name or "") or cluster_name in (e.message or "")
        ]
        related.sort(key=lambda e: _event_time(e) or datetime.min.replace(tzinfo=timezone.utc))

        report.events = [
            EventInfo(
                type=e.type,
                reason=e.reason,
                object_name=e.involved_object.name,
                message=e.message,
                last_timestamp=_event_time(e),
            )
            for e in related[-MAX_EVENTS:]
        ]

        warnings = [e for e in report.events if e.type == "Warning"]
        if warnings:
            report.add_finding(
                FindingSeverity.WARNING,
                "events",
                f"{len(warnings)} warning event(s), latest: {warnings[-1].reason}: "
                f"{warnings[-1].message}",
            )
