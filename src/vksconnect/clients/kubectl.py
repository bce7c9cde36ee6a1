"""kubectl wrapper for workload cluster connectivity and namespace policy."""

import os
import subprocess

from vksconnect.clients.vcf_cli import TOKEN_ENV_VAR
from vksconnect.core.exceptions import KubectlError
from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)


class KubectlWrapper:
    """Wrapper for kubectl command-line tool."""

    def __init__(
        self,
        kubeconfig_path: str | None = None,
        context: str | None = None,
        binary: str = "kubectl",
    ):
        """Initialize kubectl wrapper.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
            binary: kubectl executable name or path
        """
        self.kubeconfig_path = kubeconfig_path
        self.context = context
        self.binary = binary

        logger.debug("kubectl_wrapper_initialized", context=context)

    def _run_command(
        self,
        args: list[str],
        check: bool = True,
        timeout: float | None = None,
        token: str | None = None,
        interactive: bool = False,
    ) -> subprocess.CompletedProcess:
        """Run kubectl command.

        Interactive runs inherit the terminal so the credential plugin can
        prompt the operator directly; their output is not captured.

        Args:
            args: Command arguments
            check: Raise exception on non-zero exit code
            timeout: Seconds before the command is abandoned (None for no limit)
            token: API token for the credential plugin (stdin and environment)
            interactive: Attach the command to the operator's terminal

        Returns:
            CompletedProcess instance

        Raises:
            KubectlError: If command fails or times out
        """
        cmd = [self.binary] + args

        if self.kubeconfig_path:
            cmd.extend(["--kubeconfig", self.kubeconfig_path])

        if self.context:
            cmd.extend(["--context", self.context])

        env = None
        if token:
            env = {**os.environ, TOKEN_ENV_VAR: token}

        logger.debug("running_kubectl_command", command=" ".join(cmd), timeout=timeout)

        try:
            if interactive:
                result = subprocess.run(cmd, check=check, env=env)
            else:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    check=check,
                    timeout=timeout,
                    env=env,
                    input=f"{token}\n" if token else None,
                )

            logger.debug(
                "kubectl_command_completed",
                returncode=result.returncode,
            )

            return result

        except subprocess.CalledProcessError as e:
            logger.error(
                "kubectl_command_failed",
                command=" ".join(cmd),
                returncode=e.returncode,
                stderr=e.stderr,
            )
            raise KubectlError(f"kubectl command failed: {e.stderr or e.stdout or 'no output'}") from e
        except subprocess.TimeoutExpired as e:
            logger.warning("kubectl_command_timed_out", command=" ".join(cmd), timeout=timeout)
            raise KubectlError(f"kubectl command timed out after {timeout:g}s") from e
        except FileNotFoundError as e:
            logger.error("kubectl_not_found", binary=self.binary)
            raise KubectlError(
                "kubectl command not found. Please install kubectl.",
                hint="Install kubectl and make sure it is on your PATH.",
            ) from e

    def get_namespaces(
        self,
        timeout: float | None = None,
        token: str | None = None,
        interactive: bool = False,
    ) -> str:
        """List namespaces, used as the cluster connectivity probe.

        Args:
            timeout: Seconds before giving up (ignored for interactive runs)
            token: API token for the credential plugin
            interactive: Let the credential plugin prompt on the terminal

        Returns:
            Command output ("" for interactive runs)

        Raises:
            KubectlError: If the cluster API cannot be reached
        """
        result = self._run_command(
            ["get", "namespaces"], timeout=timeout, token=token, interactive=interactive
        )
        logger.info("namespaces_listed", interactive=interactive)
        return result.stdout or ""

    def label_all_namespaces(self, label: str) -> str:
        """Apply ``label`` (``key=value``) to every namespace, overwriting.

        Raises:
            KubectlError: If labeling fails
        """
        result = self._run_command(["label", "--overwrite", "namespace", "--all", label])
        logger.info("namespaces_labeled", label=label)
        return result.stdout or ""
