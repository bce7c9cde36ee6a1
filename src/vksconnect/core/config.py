"""Configuration management for vksconnect."""

import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from vksconnect.core.exceptions import ConfigurationError

DEFAULT_ENDPOINT = "vcf-automation.corp.vmbeans.com"
DEFAULT_TENANT = "broadcom"
DEFAULT_CA_CERT_FILE = "vcfa-cert-chain.pem"
DEFAULT_NAMESPACE_LABEL = "pod-security.kubernetes.io/enforce=privileged"


class VcfConfig(BaseModel):
    """VCF Automation (identity backend) configuration."""

    endpoint: str = DEFAULT_ENDPOINT
    tenant: str = DEFAULT_TENANT
    ca_cert_file: str = DEFAULT_CA_CERT_FILE
    initial_context_name: str = "vcfa"
    kubecontext_prefix: str = "vcf-cli"
    cli_binary: str = "vcf"
    port: int = 443


class ClusterConfig(BaseModel):
    """Workload cluster connection configuration."""

    kubeconfig_path: str = "~/.kube/config"
    poll_interval_seconds: float = Field(default=10.0, gt=0)
    probe_timeout_seconds: float = Field(default=20.0, gt=0)
    namespace_label: str = DEFAULT_NAMESPACE_LABEL
    kubectl_binary: str = "kubectl"

    @property
    def resolved_kubeconfig_path(self) -> Path:
        """Kubeconfig path with ``~`` expanded."""
        return Path(self.kubeconfig_path).expanduser()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    format: str = "console"
    output: str = "stderr"


class ConnectConfig(BaseModel):
    """Main vksconnect configuration."""

    vcf: VcfConfig = Field(default_factory=VcfConfig)
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "ConnectConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            ConnectConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        try:
            return cls(**data)
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def load(
        cls, path: str | Path | None = None, environ: Mapping[str, str] | None = None
    ) -> "ConnectConfig":
        """Load configuration from an optional file, then apply environment overrides.

        Recognized overrides are ``ENDPOINT`` and ``TENANT``.

        Args:
            path: Optional YAML configuration file
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            ConnectConfig instance
        """
        config = cls.from_file(path) if path else cls()
        return config.with_environment(os.environ if environ is None else environ)

    def with_environment(self, environ: Mapping[str, str]) -> "ConnectConfig":
        """Return a copy with ENDPOINT/TENANT environment overrides applied."""
        updates = {}
        if environ.get("ENDPOINT"):
            updates["endpoint"] = environ["ENDPOINT"]
        if environ.get("TENANT"):
            updates["tenant"] = environ["TENANT"]

        if not updates:
            return self
        return self.model_copy(update={"vcf": self.vcf.model_copy(update=updates)})
