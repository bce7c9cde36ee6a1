"""VCF session lifecycle with expiry detection and re-authentication."""

from collections.abc import Callable
from typing import Any, TypeVar

from vksconnect.auth.token_cache import TokenCache
from vksconnect.core.exceptions import (
    AuthorizationError,
    BackendError,
    ContextCreationError,
    NoContextError,
    RetryExhaustedError,
)
from vksconnect.core.models import AuthContext, ContextEntry, ContextState
from vksconnect.interfaces.identity_backend import IdentityBackend
from vksconnect.utils.logging import get_logger
from vksconnect.utils.retry import reauthenticating_retry

logger = get_logger(__name__)

T = TypeVar("T")

CREATION_FAILURE_CAUSES = (
    "API token is invalid or expired",
    "tenant/organization name is wrong",
    "endpoint is unreachable",
)


class SessionManager:
    """Owns the VCF context state machine for one invocation.

    Contexts move ``absent -> created -> active`` and flip between ``active``
    and ``expired`` when a privileged call is rejected. Every privileged call
    goes through :meth:`call`, which re-authenticates once and re-issues the
    call; a second authorization failure is fatal.

    Expiry is only ever detected from a rejected call, never from a clock.
    """

    def __init__(
        self,
        backend: IdentityBackend,
        token_cache: TokenCache,
        max_attempts: int = 2,
    ):
        """Initialize session manager.

        Args:
            backend: Identity backend
            token_cache: Token cache for this invocation
            max_attempts: Total attempts per wrapped call (initial + retries)
        """
        self.backend = backend
        self.token_cache = token_cache
        self.max_attempts = max_attempts
        self._states: dict[str, ContextState] = {}
        self._current: str | None = None

        logger.debug("session_manager_initialized", max_attempts=max_attempts)

    @property
    def current(self) -> str | None:
        """Name of the context this session last activated."""
        return self._current

    def state(self, name: str) -> ContextState:
        """Get the tracked state of a context (``absent`` if never touched)."""
        return self._states.get(name, ContextState.ABSENT)

    def _set_state(self, name: str, state: ContextState) -> None:
        previous = self.state(name)
        self._states[name] = state
        if previous != state:
            logger.info(
                "context_state_changed",
                context=name,
                previous=previous.value,
                state=state.value,
            )

    def _mark_expired(self) -> None:
        if self._current:
            self._set_state(self._current, ContextState.EXPIRED)

    def list_contexts(self) -> list[ContextEntry]:
        """List contexts known to the backend."""
        return self.backend.list_contexts()

    def has_contexts(self) -> bool:
        """True when the backend knows at least one context."""
        return bool(self.list_contexts())

    def context_exists(self, name: str) -> bool:
        """True when the backend already has a context called ``name``."""
        return any(entry.name == name for entry in self.list_contexts())

    def current_context(self) -> str | None:
        """Get the backend's current context, or None if it cannot be determined."""
        try:
            return self.backend.current_context()
        except BackendError as e:
            logger.warning("current_context_unavailable", error=str(e))
            return None

    def create_context(self, context: AuthContext) -> list[str]:
        """Create a context and discover the namespace contexts it derives.

        Args:
            context: Context definition

        Returns:
            Derived namespace context names (endpoint mode only), in backend order

        Raises:
            ContextCreationError: If the backend refuses to create the context
        """
        token = self.token_cache.get()
        logger.info("creating_context", context=context.name, mode=context.mode)

        try:
            self.backend.create_context(context, token)
        except BackendError as e:
            if isinstance(e, AuthorizationError):
                self.token_cache.invalidate()
            logger.error("context_creation_failed", context=context.name, error=str(e))
            raise ContextCreationError(
                f"Failed to create VCF context '{context.name}': {e}. "
                f"Please verify: {'; '.join(CREATION_FAILURE_CAUSES)}.",
                hint=self._manual_create_command(context),
            ) from e

        self._set_state(context.name, ContextState.CREATED)

        if context.mode != "endpoint":
            return []

        try:
            entries = self.backend.list_contexts()
        except BackendError as e:
            logger.warning("derived_context_discovery_failed", context=context.name, error=str(e))
            return []

        derived = [entry.name for entry in entries if entry.name.startswith(f"{context.name}:")]
        logger.info("derived_contexts_discovered", context=context.name, count=len(derived))
        return derived

    @staticmethod
    def _manual_create_command(context: AuthContext) -> str:
        if context.mode == "kubeconfig":
            return (
                f"vcf context create {context.name} --type cloud-consumption-interface "
                f"--api-token <token> --kubeconfig {context.kubeconfig_path} "
                f"--kubecontext {context.kube_context_name}"
            )
        command = (
            f"vcf context create {context.name} --endpoint {context.endpoint} "
            f"--api-token <token> --tenant-name {context.tenant}"
        )
        if context.ca_bundle_path:
            command += f" --ca-certificate {context.ca_bundle_path}"
        return command

    def call(
        self,
        operation: str,
        fn: Callable[..., T],
        *args: Any,
        restore_session: bool = True,
        **kwargs: Any,
    ) -> T:
        """Run a privileged backend call with the expiry-detect-and-retry policy.

        ``fn`` is re-issued with the same arguments after re-authentication;
        it must fetch the token from the cache itself so the retry uses the
        new one.

        Args:
            operation: Operation name for logs and errors
            fn: Backend call
            *args: Positional arguments for ``fn``
            restore_session: Refresh and re-activate the current context
                during re-authentication (disabled for refresh/use themselves)
            **kwargs: Keyword arguments for ``fn``

        Returns:
            Whatever ``fn`` returns

        Raises:
            RetryExhaustedError: If every attempt was rejected as unauthorized
        """

        def on_retry(error: BaseException | None, attempt: int) -> None:
            logger.warning(
                "session_expired",
                operation=operation,
                attempt=attempt,
                error=str(error) if error else None,
            )
            self._mark_expired()
            self.reauthenticate(restore_session=restore_session)

        retrying = reauthenticating_retry(
            AuthorizationError, on_retry=on_retry, max_attempts=self.max_attempts
        )

        logger.debug("backend_call", operation=operation)
        try:
            return retrying(fn, *args, **kwargs)
        except AuthorizationError as e:
            self._mark_expired()
            logger.error(
                "backend_call_unauthorized",
                operation=operation,
                attempts=self.max_attempts,
            )
            raise RetryExhaustedError(
                f"{operation} failed after {self.max_attempts} attempts: "
                f"the session is still unauthorized.",
                hint="Check that the API token is valid and not expired, then run again.",
            ) from e

    def reauthenticate(self, name: str | None = None, restore_session: bool = True) -> None:
        """Replace the token and bring the session back to ``active``.

        Refresh and activation here are best effort; if they fail the retried
        call reports the problem.

        Args:
            name: Context to restore (defaults to the session's current context)
            restore_session: Refresh and re-activate the context with the new token

        Raises:
            NoContextError: If no context can be determined to restore
            TokenRequiredError: If the operator supplies no token
        """
        self.token_cache.invalidate()
        token = self.token_cache.get()

        if not restore_session:
            return

        target = name or self._current or self.current_context()
        if not target:
            raise NoContextError(
                "Could not determine the current VCF context to re-authenticate.",
                hint="Run 'vcf context use' manually first.",
            )

        logger.info("reauthenticating", context=target)
        try:
            self.backend.refresh_context(target, token)
        except BackendError as e:
            logger.warning("reauth_refresh_failed", context=target, error=str(e))

        try:
            self.backend.use_context(target, token)
        except BackendError as e:
            logger.warning("reauth_activate_failed", context=target, error=str(e))
            return

        self._set_state(target, ContextState.ACTIVE)
        self._current = target

    def activate(self, name: str) -> None:
        """Make ``name`` the current context.

        Raises:
            RetryExhaustedError: If activation stays unauthorized
            BackendError: If activation fails for another reason
        """
        self.call(
            "context.use",
            lambda: self.backend.use_context(name, self.token_cache.get()),
            restore_session=False,
        )
        self._set_state(name, ContextState.ACTIVE)
        self._current = name

    def refresh(self, name: str) -> None:
        """Refresh the credentials held by ``name``.

        Raises:
            RetryExhaustedError: If refresh stays unauthorized
            BackendError: If refresh fails for another reason
        """
        self.call(
            "context.refresh",
            lambda: self.backend.refresh_context(name, self.token_cache.get()),
            restore_session=False,
        )
        if self.state(name) == ContextState.EXPIRED:
            self._set_state(name, ContextState.ACTIVE)
        elif self.state(name) == ContextState.ABSENT:
            self._set_state(name, ContextState.CREATED)
