"""Core data models for vksconnect."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

RUNNING_STATUS = "running"


class ContextState(str, Enum):
    """Activation state of a VCF context tracked by the session manager."""

    ABSENT = "absent"
    CREATED = "created"
    ACTIVE = "active"
    EXPIRED = "expired"


class AuthContext(BaseModel):
    """A named VCF context binding.

    A context is built in exactly one of two modes: against the VCF Automation
    endpoint (endpoint, tenant, CA bundle) or against a kubeconfig entry
    (kubeconfig path, kube context name). The two modes never mix.
    """

    model_config = ConfigDict(validate_assignment=True)

    name: str = Field(..., min_length=1, description="VCF context name")
    endpoint: str | None = Field(None, description="VCF Automation endpoint host")
    tenant: str | None = Field(None, description="Tenant/organization name")
    ca_bundle_path: str | None = Field(None, description="PEM trust bundle path")
    kubeconfig_path: str | None = Field(None, description="Kubeconfig file path")
    kube_context_name: str | None = Field(None, description="Context inside the kubeconfig")
    state: ContextState = ContextState.ABSENT

    @model_validator(mode="after")
    def validate_construction_mode(self) -> "AuthContext":
        """Reject contexts that mix or only half-populate the two modes.

        Returns:
            Self if validation passes

        Raises:
            ValueError: If the construction mode is ambiguous or incomplete
        """
        endpoint_fields = [self.endpoint, self.tenant, self.ca_bundle_path]
        kubeconfig_fields = [self.kubeconfig_path, self.kube_context_name]
        uses_endpoint = any(endpoint_fields)
        uses_kubeconfig = any(kubeconfig_fields)

        if uses_endpoint and uses_kubeconfig:
            raise ValueError(
                f"Context '{self.name}' cannot combine endpoint/tenant/CA settings "
                f"with kubeconfig settings."
            )
        if not uses_endpoint and not uses_kubeconfig:
            raise ValueError(
                f"Context '{self.name}' needs either an endpoint and tenant "
                f"or a kubeconfig path and kube context."
            )
        if uses_endpoint and not (self.endpoint and self.tenant):
            raise ValueError(f"Context '{self.name}' needs both endpoint and tenant.")
        if uses_kubeconfig and not all(kubeconfig_fields):
            raise ValueError(f"Context '{self.name}' needs both kubeconfig path and kube context.")

        return self

    @classmethod
    def for_endpoint(
        cls, name: str, endpoint: str, tenant: str, ca_bundle_path: str | None = None
    ) -> "AuthContext":
        """Build a management context bound to the VCF Automation endpoint."""
        return cls(name=name, endpoint=endpoint, tenant=tenant, ca_bundle_path=ca_bundle_path)

    @classmethod
    def for_kubeconfig(
        cls, name: str, kubeconfig_path: str, kube_context_name: str
    ) -> "AuthContext":
        """Build a cluster-scoped context bound to a kubeconfig entry."""
        return cls(name=name, kubeconfig_path=kubeconfig_path, kube_context_name=kube_context_name)

    @property
    def mode(self) -> str:
        """Construction mode: ``endpoint`` or ``kubeconfig``."""
        return "kubeconfig" if self.kubeconfig_path else "endpoint"


class ContextEntry(BaseModel):
    """A context as reported by ``vcf context list``."""

    name: str
    current: bool = False
    endpoint: str | None = None
    type: str | None = None


class Cluster(BaseModel):
    """A VKS workload cluster as reported by ``vcf cluster list``."""

    name: str
    namespace: str = ""
    status: str = ""
    control_plane_ready: str | None = None
    workers_ready: str | None = None
    version: str | None = None

    @property
    def is_running(self) -> bool:
        """Only the exact ``running`` status counts as ready."""
        return self.status == RUNNING_STATUS


class KubeContextEntry(BaseModel):
    """A context entry inside a kubeconfig file."""

    name: str
    cluster_ref: str | None = None


class ConnectResult(BaseModel):
    """Outcome of one connect invocation."""

    cluster_name: str | None = None
    vcf_context_name: str | None = None
    kube_context_name: str | None = None
    kubeconfig_path: str | None = None
    namespaces_labeled: bool = False
    setup_only: bool = False
    completed_at: datetime = Field(default_factory=datetime.utcnow)


class FindingSeverity(str, Enum):
    """Severity of a diagnostics finding."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Finding(BaseModel):
    """A single diagnostics observation."""

    severity: FindingSeverity
    source: str
    message: str


class ConditionInfo(BaseModel):
    """A Kubernetes-style status condition."""

    type: str
    status: str
    reason: str | None = None
    message: str | None = None


class MachineInfo(BaseModel):
    """Cluster API Machine summary."""

    name: str
    phase: str | None = None
    node_ref: str | None = None
    provider_id: str | None = None
    problem_conditions: list[ConditionInfo] = Field(default_factory=list)


class VSphereMachineInfo(BaseModel):
    """vSphereMachine summary."""

    name: str
    addresses: list[str] = Field(default_factory=list)
    image_name: str | None = None
    storage_class: str | None = None
    class_name: str | None = None


class VirtualMachineInfo(BaseModel):
    """VM Operator VirtualMachine summary."""

    name: str
    power_state: str | None = None
    ip_addresses: list[str] = Field(default_factory=list)


class BootstrapSecretInfo(BaseModel):
    """Presence and contents summary of a machine bootstrap secret."""

    machine: str
    exists: bool
    size_bytes: int = 0
    has_kubeadm_join: bool = False
    has_apiserver: bool = False
    has_certificate_key: bool = False


class EventInfo(BaseModel):
    """A namespace event related to the cluster."""

    type: str | None = None
    reason: str | None = None
    object_name: str | None = None
    message: str | None = None
    last_timestamp: datetime | None = None


class ClusterDiagnostics(BaseModel):
    """Read-only diagnostics report for one cluster."""

    cluster_name: str
    namespace: str
    phase: str | None = None
    control_plane_endpoint: str | None = None
    failed_conditions: list[ConditionInfo] = Field(default_factory=list)
    machines: list[MachineInfo] = Field(default_factory=list)
    control_planes: list[dict[str, Any]] = Field(default_factory=list)
    machine_deployments: list[dict[str, Any]] = Field(default_factory=list)
    vsphere_machines: list[VSphereMachineInfo] = Field(default_factory=list)
    virtual_machines: list[VirtualMachineInfo] = Field(default_factory=list)
    bootstrap_secrets: list[BootstrapSecretInfo] = Field(default_factory=list)
    events: list[EventInfo] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)
    collected_at: datetime = Field(default_factory=datetime.utcnow)

    def add_finding(self, severity: FindingSeverity, source: str, message: str) -> None:
        """Append a finding to the report."""
        self.findings.append(Finding(severity=severity, source=source, message=message))

    @property
    def has_errors(self) -> bool:
        """True when any finding has error severity."""
        return any(f.severity == FindingSeverity.ERROR for f in self.findings)
