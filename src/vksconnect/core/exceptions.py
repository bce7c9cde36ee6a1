"""Custom exceptions for vksconnect."""


class VksConnectError(Exception):
    """Base exception for all vksconnect errors.

    Args:
        message: Human readable description of the failure
        hint: Suggested remediation (usually a manual command to try)
    """

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class ConfigurationError(VksConnectError):
    """Configuration-related errors."""


class InputError(VksConnectError):
    """Required operator input was missing or declined."""


class TokenRequiredError(InputError):
    """No API token was supplied when one was required."""


class NoContextError(VksConnectError):
    """No usable VCF context exists and none was created."""


class ContextCreationError(VksConnectError):
    """The identity backend refused to create a context."""


class BackendError(VksConnectError):
    """Identity backend (vcf CLI) operation failed."""


class VcfCliError(BackendError):
    """vcf command failed for a reason other than authorization."""


class AuthorizationError(BackendError):
    """vcf command failed because the session token is expired or invalid."""


class RetryExhaustedError(VksConnectError):
    """A wrapped backend call kept failing authorization after re-authentication."""


class ReadinessAbortedError(VksConnectError):
    """Operator declined to wait for a cluster that is not running."""


class KubeconfigError(VksConnectError):
    """Kubeconfig file could not be read or resolved."""


class KubectlError(VksConnectError):
    """kubectl operation failed."""


class ConnectivityError(VksConnectError):
    """Workload cluster API is unreachable with the configured context."""


class CertificateError(VksConnectError):
    """TLS trust bundle could not be retrieved or written."""


class KubernetesError(VksConnectError):
    """Kubernetes API operation failed."""


class TlsProbeError(CertificateError):
    """TLS handshake probe timed out or presented no certificates."""
