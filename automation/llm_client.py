"""
LLM Client

Client for interacting with LLM APIs (OpenAI, Anthropic, or a local
OpenAI-compatible server). Provides a unified interface for sending
prompts, optionally with an image, and receiving text responses.
"""

from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Tuple
from enum import Enum
import logging
import os
import time

from .llm_healthcheck import TransientLLMError, classify_llm_error

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    LOCAL = "local"  # For local models via OpenAI-compatible API


def _safe_int(value, default: int = 0) -> int:
    """Convert a token count to int, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def split_data_url(image: str) -> Tuple[str, str]:
    """
    Split an image reference into (media_type, base64_data).

    Accepts ``data:image/png;base64,...`` URLs and bare base64 strings
    (assumed JPEG).
    """
    if image.startswith("data:") and "," in image:
        header, data = image.split(",", 1)
        media_type = header[5:].split(";", 1)[0] or "image/jpeg"
        return media_type, data
    return "image/jpeg", image


def to_data_url(image: str) -> str:
    media_type, data = split_data_url(image)
    return f"data:{media_type};base64,{data}"


@dataclass
class LLMConfig:
    """
    Configuration for LLM client.

    Attributes
    ----------
    provider : str
        LLM provider: "openai", "anthropic", or "local"
    model : str
        Model name (e.g., "gpt-4o", "claude-3-5-sonnet-latest")
    vision_model : str, optional
        Model used when a request carries an image. Defaults to ``model``.
    api_key : str, optional
        API key (can also be set via environment variable)
    api_base : str, optional
        Custom API base URL (for local models or proxies)
    max_tokens : int
        Maximum tokens in response
    temperature : float
        Sampling temperature (0.0 = deterministic, 1.0 = creative)
    system_prompt : str, optional
        System prompt to prepend to all requests
    max_retries : int
        Maximum number of retries for transient errors (default: 3)
    retry_delay : float
        Initial delay between retries in seconds (default: 1.0)
    retry_max_delay : float
        Maximum delay between retries in seconds (default: 30.0)
    """
    provider: str = "openai"
    model: str = "gpt-4o"
    vision_model: Optional[str] = None
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    max_tokens: int = 4096
    temperature: float = 0.7
    system_prompt: Optional[str] = None
    max_retries: int = 3
    retry_delay: float = 1.0
    retry_max_delay: float = 30.0

    def __post_init__(self):
        # Try to get API key from environment if not provided
        if self.api_key is None:
            provider = self.provider.lower()
            if provider == "openai":
                self.api_key = os.environ.get("OPENAI_API_KEY")
            elif provider == "anthropic":
                self.api_key = os.environ.get("ANTHROPIC_API_KEY")

    @classmethod
    def from_env(cls, **overrides) -> "LLMConfig":
        """
        Build a config from HWSCENE_* environment variables.

        ``HWSCENE_PROVIDER``, ``HWSCENE_MODEL``, ``HWSCENE_VISION_MODEL`` and
        ``HWSCENE_API_BASE`` are read when set; keyword arguments that are
        not None take precedence.
        """
        values: Dict[str, Any] = {}
        env_map = {
            "provider": "HWSCENE_PROVIDER",
            "model": "HWSCENE_MODEL",
            "vision_model": "HWSCENE_VISION_MODEL",
            "api_base": "HWSCENE_API_BASE",
        }
        for field_name, env_var in env_map.items():
            value = os.environ.get(env_var)
            if value:
                values[field_name] = value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class Message:
    """A message in a conversation."""
    role: str  # "system", "user", "assistant"
    content: str
    image: Optional[str] = None  # data URL or bare base64


@dataclass
class LLMResponse:
    """Response from LLM API."""
    content: str
    model: str
    usage: Dict[str, int]
    finish_reason: str
    raw_response: Optional[Dict[str, Any]] = None


class LLMClient:
    """
    Client for interacting with LLM APIs.

    Parameters
    ----------
    config : LLMConfig, optional
        Client configuration. If not provided, uses defaults.
    provider : str, optional
        LLM provider (shortcut for config.provider)
    api_key : str, optional
        API key (shortcut for config.api_key)
    model : str, optional
        Model name (shortcut for config.model)

    Examples
    --------
    >>> from automation.llm_client import LLMClient
    >>>
    >>> client = LLMClient(provider="openai", api_key="sk-...")
    >>> text = client.invoke("Plan a 3D scene for a weather station enclosure")
    >>>
    >>> # With a sketch
    >>> text = client.invoke("Describe this sketch", image=sketch_b64)
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        if config is None:
            config = LLMConfig()

        # Override config with explicit parameters
        if provider is not None:
            config.provider = provider
        if api_key is not None:
            config.api_key = api_key
        if model is not None:
            config.model = model
        if api_base is not None:
            config.api_base = api_base
        if temperature is not None:
            config.temperature = temperature
        if max_tokens is not None:
            config.max_tokens = max_tokens

        self.config = config

    def invoke(
        self,
        prompt: str,
        image: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        """
        Send a prompt (and optional image) and return the response text.

        Parameters
        ----------
        prompt : str
            User prompt
        image : str, optional
            Image as a data URL or bare base64 string
        system_prompt : str, optional
            Override the configured system prompt

        Returns
        -------
        str
            Response text, empty if the model returned no content

        Raises
        ------
        LLMError
            If the call fails after retries
        """
        response = self.chat(prompt, system_prompt=system_prompt, image=image)
        return response.content or ""

    def chat(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        image: Optional[str] = None,
    ) -> LLMResponse:
        """
        Send a message and get a response.

        Parameters
        ----------
        message : str
            User message to send
        system_prompt : str, optional
            Override system prompt for this request
        temperature : float, optional
            Override temperature for this request
        max_tokens : int, optional
            Override max_tokens for this request
        image : str, optional
            Image attached to the user message

        Returns
        -------
        LLMResponse
            Response from the LLM
        """
        messages = []

        system = system_prompt or self.config.system_prompt
        if system:
            messages.append(Message(role="system", content=system))

        messages.append(Message(role="user", content=message, image=image))

        model = self.config.model
        if image and self.config.vision_model:
            model = self.config.vision_model

        return self._call_api(
            messages=messages,
            model=model,
            temperature=self.config.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.config.max_tokens,
        )

    def _call_api(
        self,
        messages: List[Message],
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Make the actual API call based on provider with retry logic."""
        provider = self.config.provider.lower()

        provider_methods = {
            "openai": self._call_openai,
            "anthropic": self._call_anthropic,
            "local": self._call_local,
        }

        if provider not in provider_methods:
            raise ValueError(f"Unsupported provider: {provider}")

        method = provider_methods[provider]

        # Retry logic with exponential backoff
        delay = self.config.retry_delay

        for attempt in range(self.config.max_retries + 1):
            try:
                return method(messages, model, temperature, max_tokens)
            except (ImportError, ValueError):
                raise
            except Exception as e:
                error = classify_llm_error(e, provider)

                if not isinstance(error, TransientLLMError) or attempt >= self.config.max_retries:
                    raise error from e

                logger.warning(
                    f"Transient {provider} error (attempt {attempt + 1}/{self.config.max_retries + 1}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                time.sleep(delay)
                delay = min(delay * 2, self.config.retry_max_delay)

        raise RuntimeError("Unexpected retry loop exit")

    @staticmethod
    def _openai_messages(messages: List[Message]) -> List[Dict[str, Any]]:
        api_messages = []
        for m in messages:
            if m.image:
                content: Any = [
                    {"type": "text", "text": m.content},
                    {"type": "image_url", "image_url": {"url": to_data_url(m.image), "detail": "high"}},
                ]
            else:
                content = m.content
            api_messages.append({"role": m.role, "content": content})
        return api_messages

    def _openai_response(self, response) -> LLMResponse:
        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage={
                "prompt_tokens": _safe_int(getattr(usage, "prompt_tokens", 0)),
                "completion_tokens": _safe_int(getattr(usage, "completion_tokens", 0)),
                "total_tokens": _safe_int(getattr(usage, "total_tokens", 0)),
            },
            finish_reason=response.choices[0].finish_reason,
            raw_response=response.model_dump() if hasattr(response, "model_dump") else None,
        )

    def _call_openai(
        self,
        messages: List[Message],
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Call OpenAI API."""
        try:
            import openai
        except ImportError:
            raise ImportError("openai package not installed. Run: pip install hardware-scene-agents[llm]")

        if self.config.api_key is None:
            raise ValueError("OpenAI API key not provided. Set OPENAI_API_KEY or pass api_key.")

        client = openai.OpenAI(
            api_key=self.config.api_key,
            base_url=self.config.api_base,
        )

        response = client.chat.completions.create(
            model=model,
            messages=self._openai_messages(messages),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return self._openai_response(response)

    def _call_anthropic(
        self,
        messages: List[Message],
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Call Anthropic API."""
        try:
            import anthropic
        except ImportError:
            raise ImportError("anthropic package not installed. Run: pip install hardware-scene-agents[llm]")

        if self.config.api_key is None:
            raise ValueError("Anthropic API key not provided. Set ANTHROPIC_API_KEY or pass api_key.")

        client = anthropic.Anthropic(api_key=self.config.api_key)

        # Anthropic takes the system prompt separately and images as content blocks
        system_content = None
        api_messages = []

        for m in messages:
            if m.role == "system":
                system_content = m.content
            elif m.image:
                media_type, data = split_data_url(m.image)
                api_messages.append({
                    "role": m.role,
                    "content": [
                        {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": data}},
                        {"type": "text", "text": m.content},
                    ],
                })
            else:
                api_messages.append({"role": m.role, "content": m.content})

        kwargs = {
            "model": model,
            "messages": api_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        if system_content:
            kwargs["system"] = system_content

        response = client.messages.create(**kwargs)

        text = "".join(getattr(block, "text", "") for block in response.content)
        return LLMResponse(
            content=text,
            model=response.model,
            usage={
                "prompt_tokens": _safe_int(response.usage.input_tokens),
                "completion_tokens": _safe_int(response.usage.output_tokens),
                "total_tokens": _safe_int(response.usage.input_tokens) + _safe_int(response.usage.output_tokens),
            },
            finish_reason=response.stop_reason,
            raw_response=response.model_dump(),
        )

    def _call_local(
        self,
        messages: List[Message],
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Call local model API (OpenAI-compatible)."""
        try:
            import openai
        except ImportError:
            raise ImportError("openai package not installed. Run: pip install hardware-scene-agents[llm]")

        if self.config.api_base is None:
            raise ValueError("api_base must be set for local provider")

        client = openai.OpenAI(
            api_key=self.config.api_key or "not-needed",
            base_url=self.config.api_base,
        )

        response = client.chat.completions.create(
            model=model,
            messages=self._openai_messages(messages),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return self._openai_response(response)


__all__ = [
    "LLMProvider",
    "LLMConfig",
    "Message",
    "LLMResponse",
    "LLMClient",
    "split_data_url",
    "to_data_url",
]
