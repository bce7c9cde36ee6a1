"""In-memory API token cache scoped to one invocation."""

from collections.abc import Callable

from vksconnect.core.exceptions import TokenRequiredError
from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)


class TokenCache:
    """Holds at most one API token for the lifetime of the process.

    The token is supplied by the environment or by a single operator prompt
    and reused until the session manager invalidates it. There is no expiry
    clock: expiry is discovered when a backend call is rejected.
    """

    def __init__(self, prompt: Callable[[], str], initial: str | None = None):
        """Initialize token cache.

        Args:
            prompt: Asks the operator for a token (called at most once per fill)
            initial: Token taken from the environment, if any
        """
        self._prompt = prompt
        self._token = initial.strip() if initial else None
        self.prompt_count = 0

    @property
    def has_token(self) -> bool:
        """True when a non-empty token is cached."""
        return bool(self._token)

    def get(self) -> str:
        """Return the cached token, prompting once if the cache is empty.

        Returns:
            Non-empty API token

        Raises:
            TokenRequiredError: If the operator supplies an empty token
        """
        if self._token:
            return self._token

        self.prompt_count += 1
        token = (self._prompt() or "").strip()
        if not token:
            raise TokenRequiredError(
                "An API token is required to continue.",
                hint="Generate an API token in VCF Automation (User Settings > API Tokens).",
            )

        self._token = token
        logger.debug("token_cached", prompt_count=self.prompt_count)
        return token

    def invalidate(self) -> None:
        """Drop the cached token so the next get() prompts again."""
        if self._token:
            logger.info("token_invalidated")
        self._token = None
