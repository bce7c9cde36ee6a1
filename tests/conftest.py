"""Pytest configuration and shared fixtures."""

from collections.abc import Sequence
from pathlib import Path

import pytest

from vksconnect.core.config import ClusterConfig, ConnectConfig, VcfConfig
from vksconnect.core.exceptions import AuthorizationError, BackendError
from vksconnect.core.models import AuthContext, Cluster, ContextEntry
from vksconnect.interfaces.identity_backend import IdentityBackend
from vksconnect.interfaces.operator import OperatorInteraction

KUBECONFIG_TEMPLATE = """apiVersion: v1
kind: Config
clusters:
- cluster:
    server: https://10.0.0.10:6443
  name: {cluster}-dev-ns
contexts:
- context:
    cluster: {cluster}-dev-ns
    user: vcf-cli-{cluster}-dev-ns
  name: vcf-cli-{cluster}-dev-ns@{cluster}-dev-ns
current-context: vcf-cli-{cluster}-dev-ns@{cluster}-dev-ns
users:
- name: vcf-cli-{cluster}-dev-ns
  user:
    token: placeholder
"""


class ScriptedOperator(OperatorInteraction):
    """Operator that answers prompts from a script and records everything shown."""

    def __init__(
        self,
        secrets: Sequence[str] = (),
        texts: dict[str, str] | None = None,
        confirms: dict[str, bool] | None = None,
    ):
        self.secrets = list(secrets)
        self.texts = texts or {}
        self.confirms = confirms or {}
        self.secret_prompts = 0
        self.asked: list[str] = []
        self.messages: list[tuple[str, str]] = []
        self.tables: list[tuple[str, list[list[str]]]] = []

    def prompt_secret(self, message: str) -> str:
        self.secret_prompts += 1
        self.asked.append(message)
        return self.secrets.pop(0) if self.secrets else ""

    def prompt_text(self, message: str, default: str | None = None) -> str:
        self.asked.append(message)
        if message in self.texts:
            return self.texts[message]
        return default or ""

    def confirm(self, message: str, default: bool = False) -> bool:
        self.asked.append(message)
        return self.confirms.get(message, default)

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def show_table(
        self, title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]
    ) -> None:
        self.tables.append((title, [list(row) for row in rows]))

    def said(self, level: str) -> list[str]:
        return [message for lvl, message in self.messages if lvl == level]


class FakeIdentityBackend(IdentityBackend):
    """In-memory identity backend.

    ``valid_tokens`` decides which tokens authorize privileged calls;
    ``failures`` queues exceptions per method name, raised before the method
    does its normal work.
    """

    def __init__(
        self,
        contexts: Sequence[str] = (),
        clusters: Sequence[Cluster] = (),
        valid_tokens: Sequence[str] = ("token-1",),
        namespaces: Sequence[str] = ("dev-ns",),
    ):
        self.contexts = [ContextEntry(name=name) for name in contexts]
        self.clusters = {c.name: c for c in clusters}
        self.valid_tokens = set(valid_tokens)
        self.namespaces = list(namespaces)
        self.current: str | None = None
        self.status_script: dict[str, list[str]] = {}
        self.failures: dict[str, list[Exception]] = {}
        self.calls: list[tuple] = []
        self.tokens_seen: list[str] = []
        self.registered: list[str] = []
        self.created: list[AuthContext] = []

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        queued = self.failures.get(method)
        if queued:
            raise queued.pop(0)

    def _check_token(self, token: str) -> None:
        self.tokens_seen.append(token)
        if token not in self.valid_tokens:
            raise AuthorizationError("401 Unauthorized: token is expired")

    def call_count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def create_context(self, context: AuthContext, token: str) -> None:
        self._record("create_context", context.name)
        self._check_token(token)
        if any(c.name == context.name for c in self.contexts):
            raise BackendError(f"context {context.name} already exists")

        self.created.append(context)
        self.contexts.append(ContextEntry(name=context.name, endpoint=context.endpoint))
        if context.mode == "endpoint":
            for namespace in self.namespaces:
                self.contexts.append(ContextEntry(name=f"{context.name}:{namespace}"))

    def list_contexts(self) -> list[ContextEntry]:
        self._record("list_contexts")
        return [
            ContextEntry(name=c.name, current=c.name == self.current, endpoint=c.endpoint)
            for c in self.contexts
        ]

    def current_context(self) -> str | None:
        self._record("current_context")
        return self.current

    def use_context(self, name: str, token: str) -> None:
        self._record("use_context", name)
        self._check_token(token)
        if all(c.name != name for c in self.contexts):
            raise BackendError(f"context {name} not found")
        self.current = name

    def refresh_context(self, name: str, token: str) -> None:
        self._record("refresh_context", name)
        self._check_token(token)

    def list_clusters(self) -> list[Cluster]:
        self._record("list_clusters")
        for name, statuses in self.status_script.items():
            if name in self.clusters and statuses:
                status = statuses.pop(0) if len(statuses) > 1 else statuses[0]
                self.clusters[name] = self.clusters[name].model_copy(update={"status": status})
        return list(self.clusters.values())

    def register_authenticator(self, cluster_name: str) -> None:
        self._record("register_authenticator", cluster_name)
        self.registered.append(cluster_name)

    def export_kubeconfig(self, cluster_name: str, dest_path: str) -> None:
        self._record("export_kubeconfig", cluster_name, dest_path)
        Path(dest_path).write_text(KUBECONFIG_TEMPLATE.format(cluster=cluster_name))


@pytest.fixture
def operator() -> ScriptedOperator:
    """Scripted operator with no answers configured."""
    return ScriptedOperator()


@pytest.fixture
def backend() -> FakeIdentityBackend:
    """In-memory identity backend with no contexts or clusters."""
    return FakeIdentityBackend()


@pytest.fixture
def connect_config(tmp_path: Path) -> ConnectConfig:
    """Configuration that keeps every file inside tmp_path."""
    return ConnectConfig(
        vcf=VcfConfig(
            endpoint="vcfa.example.com",
            tenant="acme",
            ca_cert_file=str(tmp_path / "vcfa-cert-chain.pem"),
        ),
        cluster=ClusterConfig(
            kubeconfig_path=str(tmp_path / "kube" / "config"),
            poll_interval_seconds=10,
        ),
    )


@pytest.fixture
def sample_kubeconfig(tmp_path: Path) -> Path:
    """Kubeconfig file as exported for cluster 'demo'."""
    path = tmp_path / "config"
    path.write_text(KUBECONFIG_TEMPLATE.format(cluster="demo"))
    return path


@pytest.fixture
def make_operator() -> type[ScriptedOperator]:
    """Factory for scripted operators with custom answers."""
    return ScriptedOperator


@pytest.fixture
def make_backend() -> type[FakeIdentityBackend]:
    """Factory for in-memory identity backends."""
    return FakeIdentityBackend
