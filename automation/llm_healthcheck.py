"""
LLM Healthcheck Module

Error types for model invocation, classification of provider exceptions
into those types, and a preflight readiness check used by the CLI before
any generation starts.
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING
import logging
import os
import time

if TYPE_CHECKING:
    from .llm_client import LLMConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Error Types
# =============================================================================

class LLMError(Exception):
    """Base class for LLM-related errors."""
    pass


class MissingCredentialsError(LLMError):
    """
    Raised when required API credentials are missing.

    This error should stop execution immediately with setup instructions.
    """

    def __init__(self, provider: str, env_var: str, message: Optional[str] = None):
        self.provider = provider
        self.env_var = env_var
        if message is None:
            message = (
                f"Missing API credentials for provider '{provider}'. "
                f"Please set the {env_var} environment variable or pass --api-key.\n"
                f"Example: export {env_var}=your-api-key"
            )
        super().__init__(message)


class ProviderMisconfiguredError(LLMError):
    """Raised when the LLM provider is misconfigured."""

    def __init__(self, provider: str, issue: str, suggestion: Optional[str] = None):
        self.provider = provider
        self.issue = issue
        self.suggestion = suggestion
        message = f"Provider '{provider}' is misconfigured: {issue}"
        if suggestion:
            message += f"\nSuggestion: {suggestion}"
        super().__init__(message)


class TransientLLMError(LLMError):
    """
    Raised for transient errors like timeouts or rate limits.

    The client retries these with exponential backoff up to max_retries.
    """

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message)


class FatalLLMError(LLMError):
    """Raised for errors that retrying cannot fix."""
    pass


class QuotaExhaustedError(FatalLLMError):
    """
    Raised when API quota is exhausted or billing is disabled.

    Unlike a transient rate limit, a quota=0 or billing-disabled 429 means
    the model cannot be called at all.
    """

    def __init__(self, provider: str, message: Optional[str] = None):
        self.provider = provider
        if message is None:
            message = (
                f"API quota exhausted or billing disabled for provider '{provider}'. "
                f"Please check your billing settings and quota limits."
            )
        super().__init__(message)


# =============================================================================
# Provider Configuration
# =============================================================================

PROVIDER_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "local": None,  # Local doesn't require API key but needs api_base
}

PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-latest",
    "local": "default",
}

QUOTA_INDICATORS = (
    "quota",
    "billing",
    "limit=0",
    "insufficient_quota",
    "exceeded your current quota",
    "resource has been exhausted",
)

TRANSIENT_INDICATORS = (
    "timeout",
    "timed out",
    "rate limit",
    "503",
    "502",
    "504",
    "connection",
    "temporarily unavailable",
    "temporary",
    "overloaded",
    "capacity",
)

CREDENTIAL_INDICATORS = ("unauthorized", "401", "invalid api key", "authentication")

CONFIG_INDICATORS = ("not found", "404", "invalid model", "permission denied")


def classify_llm_error(error: BaseException, provider: str = "unknown") -> LLMError:
    """
    Map an exception raised by a provider SDK onto the LLMError hierarchy.

    Quota exhaustion is checked before rate limiting so that a quota-type
    429 is reported as fatal rather than retried.

    Parameters
    ----------
    error : BaseException
        Exception raised while calling the provider
    provider : str
        Provider name, used in error messages

    Returns
    -------
    LLMError
        The error itself if it already is one, otherwise a new error of the
        matching class (the original is chained as ``__cause__``)
    """
    if isinstance(error, LLMError):
        return error

    error_str = str(error).lower()

    if any(term in error_str for term in QUOTA_INDICATORS):
        classified: LLMError = QuotaExhaustedError(
            provider=provider,
            message=f"API quota exhausted or billing disabled: {error}",
        )
    elif isinstance(error, TimeoutError) or any(term in error_str for term in TRANSIENT_INDICATORS) \
            or "429" in error_str:
        classified = TransientLLMError(f"Transient error from {provider}: {error}")
    elif any(term in error_str for term in CREDENTIAL_INDICATORS):
        classified = MissingCredentialsError(
            provider=provider,
            env_var=PROVIDER_ENV_VARS.get(provider.lower()) or "API_KEY",
            message=f"Authentication failed: {error}",
        )
    elif any(term in error_str for term in CONFIG_INDICATORS):
        classified = ProviderMisconfiguredError(
            provider=provider,
            issue=str(error),
            suggestion="Check that the model name is correct and available",
        )
    else:
        classified = FatalLLMError(f"{provider} call failed: {error}")

    classified.__cause__ = error
    return classified


# =============================================================================
# Healthcheck Functions
# =============================================================================

@dataclass
class HealthCheckResult:
    """Result of an LLM health check."""
    ready: bool
    provider: str
    model: str
    message: str
    ping_latency_ms: Optional[float] = None


def check_credentials(provider: str, api_key: Optional[str] = None) -> None:
    """
    Check if credentials are available for the given provider.

    Raises
    ------
    MissingCredentialsError
        If credentials are not available
    ProviderMisconfiguredError
        If provider is not supported
    """
    provider_lower = provider.lower()

    if provider_lower not in PROVIDER_ENV_VARS:
        raise ProviderMisconfiguredError(
            provider=provider,
            issue=f"Unknown provider '{provider}'",
            suggestion=f"Supported providers: {', '.join(PROVIDER_ENV_VARS.keys())}"
        )

    env_var = PROVIDER_ENV_VARS[provider_lower]
    if env_var is None or api_key or os.environ.get(env_var):
        return

    raise MissingCredentialsError(provider=provider, env_var=env_var)


def check_provider_config(provider: str, api_base: Optional[str] = None) -> None:
    """
    Check if provider configuration is valid.

    Raises
    ------
    ProviderMisconfiguredError
        If the local provider has no api_base
    """
    if provider.lower() == "local" and not api_base:
        raise ProviderMisconfiguredError(
            provider=provider,
            issue="Local provider requires api_base to be set",
            suggestion="Set HWSCENE_API_BASE to your local model server URL (e.g., http://localhost:8000/v1)"
        )


def check_llm_ready(config: "LLMConfig", ping: bool = False) -> HealthCheckResult:
    """
    Preflight check that a model can be called with the given configuration.

    Parameters
    ----------
    config : LLMConfig
        Client configuration to check
    ping : bool
        If True, also send a one-line prompt and time the round trip.
        Transient ping failures are logged and do not fail the check.

    Returns
    -------
    HealthCheckResult

    Raises
    ------
    MissingCredentialsError
        If credentials are missing
    ProviderMisconfiguredError
        If provider is misconfigured
    FatalLLMError
        If the ping fails fatally
    """
    check_credentials(config.provider, config.api_key)
    check_provider_config(config.provider, config.api_base)

    latency = None
    if ping:
        from .llm_client import LLMClient

        client = LLMClient(config=config)
        start_time = time.time()
        try:
            content = client.invoke("Reply with exactly: OK")
            if not content:
                raise FatalLLMError("LLM returned empty response during ping")
            latency = (time.time() - start_time) * 1000
        except TransientLLMError as e:
            logger.warning(f"Ping failed (transient): {e}")

    logger.info(f"LLM ready: {config.provider} / {config.model}")
    return HealthCheckResult(
        ready=True,
        provider=config.provider,
        model=config.model,
        message="LLM is ready",
        ping_latency_ms=latency,
    )


__all__ = [
    "LLMError",
    "MissingCredentialsError",
    "ProviderMisconfiguredError",
    "TransientLLMError",
    "FatalLLMError",
    "QuotaExhaustedError",
    "PROVIDER_ENV_VARS",
    "PROVIDER_DEFAULT_MODELS",
    "classify_llm_error",
    "HealthCheckResult",
    "check_credentials",
    "check_provider_config",
    "check_llm_ready",
]
