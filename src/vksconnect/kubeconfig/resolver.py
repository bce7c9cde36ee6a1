"""Kubeconfig context resolution for a freshly exported cluster kubeconfig."""

import re
from pathlib import Path

import yaml
from kubernetes import config

from vksconnect.core.exceptions import KubeconfigError
from vksconnect.core.models import KubeContextEntry
from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)

_NAME_ITEM = re.compile(r"^\s*(?:-\s+)?name:\s*[\"']?([^\s\"']+)")
_TOP_LEVEL_KEY = re.compile(r"^([A-Za-z0-9_.-]+):")


class KubeContextResolver:
    """Maps a cluster name to the context the vcf CLI wrote for it.

    The export tool's naming convention (``vcf-cli-<cluster>-<ns>@<cluster>-<ns>``)
    is observed, not guaranteed, so resolution matches on substring: the
    first context, in file order, whose name contains the cluster name.
    """

    def __init__(self, prefix: str = "vcf-cli"):
        """Initialize resolver.

        Args:
            prefix: Prefix used for the default context name guess
        """
        self.prefix = prefix

    def default_guess(self, cluster_name: str) -> str:
        """Best guess at the context name when resolution fails."""
        return f"{self.prefix}-{cluster_name}@{cluster_name}"

    def list_entries(self, kubeconfig_path: str | Path) -> list[KubeContextEntry]:
        """List the contexts of a kubeconfig file in file order.

        Args:
            kubeconfig_path: Kubeconfig file

        Returns:
            Context entries

        Raises:
            KubeconfigError: If the file cannot be parsed as a kubeconfig
        """
        path = Path(kubeconfig_path).expanduser()
        try:
            contexts, _ = config.list_kube_config_contexts(config_file=str(path))
        except (config.ConfigException, yaml.YAMLError, OSError, TypeError, KeyError) as e:
            raise KubeconfigError(f"Failed to read contexts from {path}: {e}") from e

        return [
            KubeContextEntry(
                name=context["name"],
                cluster_ref=(context.get("context") or {}).get("cluster"),
            )
            for context in contexts or []
        ]

    def _from_structured(self, cluster_name: str, path: Path) -> str | None:
        try:
            entries = self.list_entries(path)
        except KubeconfigError as e:
            logger.debug("structured_context_lookup_failed", error=str(e))
            return None

        for entry in entries:
            if cluster_name in entry.name:
                return entry.name
        return None

    def _from_text(self, cluster_name: str, path: Path) -> str | None:
        try:
            text = path.read_text()
        except OSError as e:
            logger.debug("kubeconfig_text_unreadable", path=str(path), error=str(e))
            return None

        any_section_hit = None
        context_section_seen = False
        section = None

        for line in text.splitlines():
            if line.strip() == "---":
                section = None
                continue

            key = _TOP_LEVEL_KEY.match(line)
            if key:
                section = key.group(1)
                context_section_seen = context_section_seen or section == "contexts"
                continue

            item = _NAME_ITEM.match(line)
            if not item or cluster_name not in item.group(1):
                continue

            if section == "contexts":
                return item.group(1)
            if any_section_hit is None:
                any_section_hit = item.group(1)

        # Without a contexts section, any "- name:" entry is the best signal left
        return None if context_section_seen else any_section_hit

    def resolve(self, cluster_name: str, kubeconfig_path: str | Path) -> str | None:
        """Find the kubeconfig context that belongs to ``cluster_name``.

        Tries the parsed context list first and falls back to scanning the raw
        file text when parsing yields nothing.

        Args:
            cluster_name: Workload cluster name
            kubeconfig_path: Kubeconfig file the cluster was exported into

        Returns:
            Context name, or None if neither strategy finds one
        """
        path = Path(kubeconfig_path).expanduser()

        name = self._from_structured(cluster_name, path)
        if name:
            logger.info("kubecontext_resolved", cluster=cluster_name, context=name, strategy="parsed")
            return name

        name = self._from_text(cluster_name, path)
        if name:
            logger.info("kubecontext_resolved", cluster=cluster_name, context=name, strategy="text")
            return name

        logger.warning("kubecontext_not_resolved", cluster=cluster_name, path=str(path))
        return None
