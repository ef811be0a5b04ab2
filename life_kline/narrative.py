"""
Narrative topics - one function per LLM-backed tab of the report.

Each topic takes a ``NarrativeSnapshot`` (never the live report), so nothing
the model returns can flow back into the chart computation.
"""
from __future__ import annotations

import logging
from typing import Optional

from . import prompts
from .llm_client import NarrativeConfig, NarrativeError, request_completion, with_retry
from .logic import NarrativeSnapshot
from .text_utils import parse_analysis_response, parse_fashion_response

logger = logging.getLogger(__name__)

TOPICS = ("analysis", "gods", "kline", "career", "fashion")

UNSAFE_INPUT_MESSAGE = "🔮 天机不可泄露，请勿试探。请提出与命理相关的正当问题。"


class UnsafeInputError(NarrativeError):
    """User-supplied text tripped the prompt-injection guard."""


def _config(config: Optional[NarrativeConfig]) -> NarrativeConfig:
    return config or NarrativeConfig.from_env()


def _complete(prompt: str, system_message: str, config: NarrativeConfig) -> str:
    return with_retry(lambda: request_completion(prompt, system_message, config))


def get_ai_analysis(
    snapshot: NarrativeSnapshot,
    config: Optional[NarrativeConfig] = None,
    birth_location: Optional[str] = None,
    life_events: Optional[str] = None,
) -> dict:
    """整体分析，去掉喜用神 JSON 后返回正文、建议与注意事项"""
    for text in (birth_location, life_events):
        if not prompts.is_safe_input(text):
            raise UnsafeInputError(UNSAFE_INPUT_MESSAGE)

    prompt = prompts.build_analysis_prompt(snapshot, False, birth_location, life_events)
    reply = _complete(prompt, prompts.SYSTEM_MESSAGE, _config(config))
    return parse_analysis_response(reply, remove_gods_json=True).to_dict()


def get_gods_recommendation(snapshot: NarrativeSnapshot, config: Optional[NarrativeConfig] = None) -> dict:
    prompt = prompts.build_analysis_prompt(snapshot, include_gods=True)
    reply = _complete(prompt, prompts.SYSTEM_MESSAGE, _config(config))
    result = parse_analysis_response(reply)
    if result.gods is None:
        raise NarrativeError("未能解析到喜用神信息")
    return result.gods.to_dict()


def get_kline_review(snapshot: NarrativeSnapshot, config: Optional[NarrativeConfig] = None) -> dict:
    reply = _complete(prompts.build_kline_prompt(snapshot), prompts.KLINE_SYSTEM_MESSAGE, _config(config))
    return {"analysis": reply.strip()}


def get_career_recommendation(snapshot: NarrativeSnapshot, config: Optional[NarrativeConfig] = None) -> dict:
    reply = _complete(prompts.build_career_prompt(snapshot), prompts.CAREER_SYSTEM_MESSAGE, _config(config))
    return {"analysis": reply.strip()}


def get_fashion_recommendation(snapshot: NarrativeSnapshot, config: Optional[NarrativeConfig] = None) -> dict:
    reply = _complete(prompts.build_fashion_prompt(snapshot), prompts.FASHION_SYSTEM_MESSAGE, _config(config))
    return parse_fashion_response(reply)


def run_topic(topic: str, snapshot: NarrativeSnapshot, config: Optional[NarrativeConfig] = None, **kwargs) -> dict:
    """Dispatch one of ``TOPICS``; extra keyword arguments go to the analysis topic only."""
    logger.info("Narrative topic %s for %s", topic, snapshot.bazi_string)
    if topic == "analysis":
        return get_ai_analysis(snapshot, config, **kwargs)
    if topic == "gods":
        return get_gods_recommendation(snapshot, config)
    if topic == "kline":
        return get_kline_review(snapshot, config)
    if topic == "career":
        return get_career_recommendation(snapshot, config)
    if topic == "fashion":
        return get_fashion_recommendation(snapshot, config)
    raise ValueError(f"Unknown topic: {topic}")
