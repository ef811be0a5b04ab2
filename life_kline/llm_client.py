"""
OpenAI-compatible LLM access for the narrative layer.

Every provider (deepseek / doubao / openai / gemini) is reached through the
``openai`` SDK pointed at the provider's OpenAI-compatible base URL.
"""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional, TypeVar

import openai
from dotenv import load_dotenv
from openai import OpenAI

load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")

logger = logging.getLogger(__name__)

PERF_LOG = os.getenv("PERF_LOG") == "1"

# provider -> (base_url, default model)
PROVIDER_DEFAULTS = {
    "deepseek": ("https://api.deepseek.com", "deepseek-chat"),
    "doubao": ("https://ark.cn-beijing.volces.com/api/v3", "doubao-pro-32k"),
    "openai": ("https://api.openai.com/v1", "gpt-4o-mini"),
    "gemini": ("https://generativelanguage.googleapis.com/v1beta/openai", "gemini-1.5-flash"),
}
DEFAULT_PROVIDER = "deepseek"

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TIMEOUT = 120.0

MAX_RETRIES = 2
RETRY_BACKOFF_SECONDS = 1.0

# Model-specific temperature settings
MODEL_TEMPERATURES = {
    "deepseek-chat": 0.7,
    "deepseek-reasoner": 0.6,
    "gpt-4o": 0.7,
    "gpt-4o-mini": 0.7,
    "gpt-3.5-turbo": 0.8,
    "gemini-1.5-pro": 0.7,
    "gemini-1.5-flash": 0.8,
    "doubao-pro-32k": 0.7,
}

T = TypeVar("T")


class NarrativeError(Exception):
    """LLM call failed (network, bad response, missing configuration)."""


class NarrativeAuthError(NarrativeError):
    """API key rejected (401/403)."""


class NarrativeRateLimitError(NarrativeError):
    """Provider rate limit hit (429)."""


@dataclass(frozen=True)
class NarrativeConfig:
    provider: str
    api_key: Optional[str]
    base_url: str
    model: str
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, provider: Optional[str] = None, api_key: Optional[str] = None,
                 base_url: Optional[str] = None, model: Optional[str] = None) -> "NarrativeConfig":
        """Explicit arguments win over AI_* environment variables, which win over provider defaults."""
        provider = (provider or os.getenv("AI_PROVIDER") or DEFAULT_PROVIDER).strip().lower()
        if provider not in PROVIDER_DEFAULTS:
            raise NarrativeError(f"不支持的API提供商: {provider}")
        default_url, default_model = PROVIDER_DEFAULTS[provider]
        return cls(
            provider=provider,
            api_key=api_key or os.getenv("AI_API_KEY"),
            base_url=base_url or os.getenv("AI_BASE_URL") or default_url,
            model=model or os.getenv("AI_MODEL") or default_model,
        )

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key) and self.api_key != "replace_me"


@lru_cache(maxsize=8)
def get_llm_client(api_key: str, base_url: str, timeout: float = DEFAULT_TIMEOUT) -> OpenAI:
    """Return a cached OpenAI client for a given key/base URL pair."""
    # retries are handled by with_retry
    return OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)


def get_optimal_temperature(model: str) -> float:
    """Get the optimal temperature for a given model."""
    return MODEL_TEMPERATURES.get(model, 0.7)


def _log_perf(message: str) -> None:
    if PERF_LOG:
        logger.info(message)


def request_completion(prompt: str, system_message: str, config: NarrativeConfig) -> str:
    """
    Run one chat completion and return the reply text.

    Raises:
        NarrativeAuthError: key missing, invalid or lacking scope (401/403)
        NarrativeRateLimitError: 429
        NarrativeError: network failure, any other API error
    """
    if not config.has_api_key:
        raise NarrativeAuthError("未配置AI API密钥，请设置 AI_API_KEY")

    client = get_llm_client(config.api_key, config.base_url, config.timeout)
    start_time = time.monotonic()
    try:
        response = client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": system_message},
                {"role": "user", "content": prompt},
            ],
            temperature=get_optimal_temperature(config.model),
            max_tokens=config.max_tokens,
        )
    except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
        raise NarrativeAuthError("API密钥无效或已过期，请检查API Key设置") from e
    except openai.RateLimitError as e:
        raise NarrativeRateLimitError("API调用频率过高，请稍后再试") from e
    except openai.APIConnectionError as e:
        _log_perf(f"[PERF] error model={config.model} total_ms={int((time.monotonic() - start_time) * 1000)} err={e}")
        raise NarrativeError("网络连接失败，请检查网络设置或API地址是否正确") from e
    except openai.APIStatusError as e:
        raise NarrativeError(f"API请求失败: {e.message} (状态码: {e.status_code})") from e

    _log_perf(f"[PERF] completion provider={config.provider} model={config.model} "
              f"total_ms={int((time.monotonic() - start_time) * 1000)}")

    if not response.choices or not response.choices[0].message.content:
        raise NarrativeError("分析失败，请稍后重试")
    return response.choices[0].message.content


def with_retry(func: Callable[[], T], max_retries: int = MAX_RETRIES,
               backoff: float = RETRY_BACKOFF_SECONDS, sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Call ``func`` up to ``max_retries + 1`` times, sleeping ``backoff * attempt``
    seconds between attempts. Auth errors are raised immediately.
    """
    last_error = None
    for attempt in range(max_retries + 1):
        try:
            return func()
        except NarrativeAuthError:
            raise
        except NarrativeError as e:
            last_error = e
            if attempt < max_retries:
                delay = backoff * (attempt + 1)
                logger.warning("Narrative call failed (%s); retry %d/%d in %.1fs", e, attempt + 1, max_retries, delay)
                sleep(delay)
    raise last_error
