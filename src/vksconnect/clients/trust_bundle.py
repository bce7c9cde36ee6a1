"""TLS trust bundle retrieval for the VCF Automation endpoint."""

import re
import subprocess
from pathlib import Path

from vksconnect.core.exceptions import CertificateError, TlsProbeError
from vksconnect.utils.logging import get_logger
from vksconnect.utils.retry import retry_on_exception

logger = get_logger(__name__)

_PEM_BLOCK = re.compile(
    r"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----",
    re.DOTALL,
)


def extract_pem_blocks(text: str) -> list[str]:
    """Extract every PEM certificate block from handshake output, in order."""
    return _PEM_BLOCK.findall(text or "")


class TrustBundleStore:
    """Creates the CA trust bundle file once and reuses it afterwards."""

    def __init__(self, endpoint: str, path: str | Path, port: int = 443, binary: str = "openssl"):
        """Initialize trust bundle store.

        Args:
            endpoint: Host to probe
            path: PEM file to create or reuse
            port: TLS port
            binary: openssl executable name or path
        """
        self.endpoint = endpoint
        self.path = Path(path).expanduser()
        self.port = port
        self.binary = binary

    @retry_on_exception(exceptions=(TlsProbeError,), max_attempts=3, min_wait=1, max_wait=5)
    def fetch_chain(self) -> list[str]:
        """Run a TLS handshake probe and return the presented certificate chain.

        Returns:
            PEM blocks, leaf first

        Raises:
            CertificateError: If openssl is missing
            TlsProbeError: If the probe times out or presents no certificates (retried)
        """
        cmd = [
            self.binary,
            "s_client",
            "-showcerts",
            "-servername",
            self.endpoint,
            "-connect",
            f"{self.endpoint}:{self.port}",
        ]
        logger.debug("probing_tls_endpoint", endpoint=self.endpoint, port=self.port)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                input="",
                timeout=30,
            )
        except FileNotFoundError as e:
            raise CertificateError(
                "openssl command not found. Please install OpenSSL.",
                hint="Install OpenSSL and make sure 'openssl' is on your PATH.",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise TlsProbeError(f"TLS probe of {self.endpoint}:{self.port} timed out") from e

        blocks = extract_pem_blocks(result.stdout)
        if not blocks:
            logger.warning(
                "tls_probe_returned_no_certificates",
                endpoint=self.endpoint,
                returncode=result.returncode,
            )
            raise TlsProbeError(
                f"No certificates presented by {self.endpoint}:{self.port}",
                hint=(
                    f"openssl s_client -showcerts -connect {self.endpoint}:{self.port} "
                    f"</dev/null | sed -n '/BEGIN CERT/,/END CERT/p' > {self.path}"
                ),
            )

        logger.info("tls_chain_retrieved", endpoint=self.endpoint, certificates=len(blocks))
        return blocks

    def ensure(self) -> bool:
        """Create the trust bundle if it does not exist yet.

        Returns:
            True if the file was created, False if an existing file was reused

        Raises:
            CertificateError: If the bundle cannot be retrieved or written
        """
        if self.path.exists() and self.path.stat().st_size > 0:
            logger.debug("trust_bundle_reused", path=str(self.path))
            return False

        blocks = self.fetch_chain()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("\n".join(blocks) + "\n")
        except OSError as e:
            raise CertificateError(f"Failed to write trust bundle {self.path}: {e}") from e

        logger.info("trust_bundle_created", path=str(self.path), certificates=len(blocks))
        return True
