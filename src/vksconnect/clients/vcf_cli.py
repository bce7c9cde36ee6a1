"""vcf CLI wrapper for VCF Automation context and cluster operations."""

import os
import re
import subprocess
from collections.abc import Sequence

from vksconnect.core.exceptions import AuthorizationError, VcfCliError
from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)

TOKEN_ENV_VAR = "VCF_API_TOKEN"
CLUSTER_CONTEXT_TYPE = "cloud-consumption-interface"

_AUTH_FAILURE = re.compile(
    r"\b40[13]\b"
    r"|unauthori[sz]ed"
    r"|forbidden"
    r"|not authenticated"
    r"|login required"
    r"|authentication (?:failed|required)"
    r"|(?:token|session)[^\n]*(?:expired|invalid|revoked)"
    r"|(?:expired|invalid)[^\n]*(?:token|session|credentials)",
    re.IGNORECASE,
)


def is_authorization_failure(output: str) -> bool:
    """Check whether vcf output describes an expired or rejected session.

    Args:
        output: Combined stdout/stderr of a failed command

    Returns:
        True when the failure looks like an authorization problem
    """
    return bool(_AUTH_FAILURE.search(output or ""))


class VcfCliWrapper:
    """Wrapper for the vcf command-line tool."""

    def __init__(self, binary: str = "vcf"):
        """Initialize vcf wrapper.

        Args:
            binary: vcf executable name or path
        """
        self.binary = binary

        logger.debug("vcf_wrapper_initialized", binary=binary)

    def _run_command(
        self,
        args: list[str],
        check: bool = True,
        token: str | None = None,
        secrets: Sequence[str] = (),
    ) -> subprocess.CompletedProcess:
        """Run vcf command.

        When ``token`` is given it is exported as ``VCF_API_TOKEN`` and written
        once to stdin for the plugin prompt that asks for it.

        Args:
            args: Command arguments
            check: Raise exception on non-zero exit code
            token: API token to hand to the command
            secrets: Argument values to redact from logs

        Returns:
            CompletedProcess instance

        Raises:
            AuthorizationError: If the command failed on an expired/invalid session
            VcfCliError: If the command failed for any other reason
        """
        cmd = [self.binary] + args
        hidden = set(secrets) | ({token} if token else set())
        printable = " ".join("<hidden>" if part in hidden else part for part in cmd)

        env = None
        if token:
            env = {**os.environ, TOKEN_ENV_VAR: token}

        logger.debug("running_vcf_command", command=printable)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=check,
                env=env,
                input=f"{token}\n" if token else None,
            )

            logger.debug(
                "vcf_command_completed",
                returncode=result.returncode,
            )

            return result

        except subprocess.CalledProcessError as e:
            output = f"{e.stderr or ''}{e.stdout or ''}".strip()
            logger.error(
                "vcf_command_failed",
                command=printable,
                returncode=e.returncode,
                stderr=e.stderr,
            )
            if is_authorization_failure(output):
                raise AuthorizationError(
                    f"vcf session is not authorized: {output or 'no output'}",
                    hint="Generate a fresh API token in VCF Automation and retry.",
                ) from e
            raise VcfCliError(f"vcf command failed: {output or 'no output'}") from e
        except FileNotFoundError as e:
            logger.error("vcf_not_found", binary=self.binary)
            raise VcfCliError(
                "vcf command not found. Please install the VCF CLI.",
                hint="Install the VCF CLI and make sure 'vcf' is on your PATH.",
            ) from e

    def context_create_endpoint(
        self,
        name: str,
        endpoint: str,
        tenant: str,
        token: str,
        ca_certificate: str | None = None,
    ) -> str:
        """Create a management context against the VCF Automation endpoint.

        No ``--type`` flag is passed: vcf detects the type for an initial context.

        Returns:
            Command output
        """
        args = [
            "context",
            "create",
            name,
            "--endpoint",
            endpoint,
            "--api-token",
            token,
            "--tenant-name",
            tenant,
        ]
        if ca_certificate:
            args.extend(["--ca-certificate", ca_certificate])

        result = self._run_command(args, secrets=[token])
        logger.info("vcf_context_created", context=name, mode="endpoint")
        return result.stdout

    def context_create_kubeconfig(
        self, name: str, kubeconfig: str, kubecontext: str, token: str
    ) -> str:
        """Create a cluster context bound to a kubeconfig entry.

        Only kubeconfig flags are passed; endpoint, tenant and CA flags are
        never combined with them.

        Returns:
            Command output
        """
        args = [
            "context",
            "create",
            name,
            "--type",
            CLUSTER_CONTEXT_TYPE,
            "--api-token",
            token,
            "--kubeconfig",
            kubeconfig,
            "--kubecontext",
            kubecontext,
        ]

        result = self._run_command(args, token=token)
        logger.info("vcf_context_created", context=name, mode="kubeconfig")
        return result.stdout

    def context_list(self) -> str:
        """Get raw ``vcf context list`` output."""
        return self._run_command(["context", "list"]).stdout

    def context_current(self) -> str:
        """Get raw ``vcf context current`` output."""
        return self._run_command(["context", "current"]).stdout

    def context_use(self, name: str, token: str) -> str:
        """Activate a context."""
        result = self._run_command(["context", "use", name], token=token)
        logger.info("vcf_context_used", context=name)
        return result.stdout

    def context_refresh(self, name: str, token: str) -> str:
        """Refresh a context's credentials."""
        result = self._run_command(["context", "refresh", name], token=token)
        logger.info("vcf_context_refreshed", context=name)
        return result.stdout

    def cluster_list(self) -> str:
        """Get raw ``vcf cluster list`` output."""
        return self._run_command(["cluster", "list"]).stdout

    def register_jwt_authenticator(self, cluster_name: str) -> str:
        """Register the VCF Automation JWT authenticator on a cluster."""
        result = self._run_command(["cluster", "register-vcfa-jwt-authenticator", cluster_name])
        logger.info("jwt_authenticator_registered", cluster=cluster_name)
        return result.stdout

    def kubeconfig_get(self, cluster_name: str, export_file: str) -> str:
        """Export a cluster's kubeconfig into ``export_file``."""
        result = self._run_command(
            ["cluster", "kubeconfig", "get", cluster_name, "--export-file", export_file]
        )
        logger.info("kubeconfig_exported", cluster=cluster_name, path=export_file)
        return result.stdout
