"""Chat-completion client for the supported language-model providers.

OpenAI, DeepSeek and Gemini all expose an OpenAI-compatible chat completions
API, so a single `openai.OpenAI` client covers them with different base URLs.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from openai import APITimeoutError, OpenAI, OpenAIError

from mytodos.config import Settings
from mytodos.core.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    base_url: Optional[str]
    api_key_setting: str
    model_setting: str


PROVIDERS: Dict[str, ProviderSpec] = {
    "openai": ProviderSpec("openai", None, "OPENAI_API_KEY", "OPENAI_MODEL"),
    "deepseek": ProviderSpec(
        "deepseek", "https://api.deepseek.com", "DEEPSEEK_API_KEY", "DEEPSEEK_MODEL"
    ),
    "gemini": ProviderSpec(
        "gemini",
        "https://generativelanguage.googleapis.com/v1beta/openai/",
        "GEMINI_API_KEY",
        "GEMINI_MODEL",
    ),
}


class ChatModelClient:
    """
    Sends a system/user prompt pair to one provider and returns the text.

    A timed-out call is retried up to `max_retries` times with exponential
    backoff; every other provider failure is raised immediately as
    `UpstreamError`.
    """

    def __init__(
        self,
        provider: str,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self._sleep = sleep
        self._client: Optional[OpenAI] = None

    @classmethod
    def from_settings(cls, config: Settings, provider: Optional[str] = None) -> "ChatModelClient":
        spec = PROVIDERS[provider or config.AI_PROVIDER]
        return cls(
            provider=spec.name,
            api_key=getattr(config, spec.api_key_setting),
            model=getattr(config, spec.model_setting),
            base_url=spec.base_url,
            timeout=config.AI_TIMEOUT,
            max_retries=config.AI_MAX_RETRIES,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            # Retries are handled by complete(), not by the SDK
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> str:
        """
        Run one chat completion.

        Returns:
            Generated text

        Raises:
            UpstreamError: If the provider is unconfigured, unreachable,
                times out on every attempt or returns an empty answer
        """
        if not self.configured:
            raise UpstreamError(self.provider, "API key not configured")

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._get_client().chat.completions.create(
                    model=self.model,
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
                break
            except APITimeoutError as e:
                if attempt > self.max_retries:
                    raise UpstreamError(self.provider, f"request timed out: {e}") from e
                wait_time = 2 ** attempt
                logger.warning(
                    f"{self.provider} timeout, retry {attempt}/{self.max_retries} "
                    f"after {wait_time}s"
                )
                self._sleep(wait_time)
            except OpenAIError as e:
                raise UpstreamError(self.provider, str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise UpstreamError(self.provider, "empty response")
        return content
