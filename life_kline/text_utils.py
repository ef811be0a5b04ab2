"""
Parsing helpers for LLM replies.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

_GODS_FENCED_RE = re.compile(r'```json\s*\{[\s\S]*?"favorableGods"[\s\S]*?\}\s*```', re.IGNORECASE)
_GODS_BARE_RE = re.compile(r'\{[\s\S]*?"favorableGods"[\s\S]*?\}')
_GODS_GREEDY_RE = re.compile(r'\{[\s\S]*"favorableGods"[\s\S]*\}')
_JSON_OBJECT_RE = re.compile(r'\{[\s\S]*\}')
_SUGGESTION_RE = re.compile(r'建议[：:]\s*([^\n]+)')
_WARNING_RE = re.compile(r'注意[：:]\s*([^\n]+)')

DEFAULT_FASHION_STYLE = "新中式智能休闲风"


@dataclass(frozen=True)
class GodsRecommendation:
    """喜用神 / 忌神 (仅展示，不参与计算)"""

    favorable_gods: List[str] = field(default_factory=list, hash=False)
    unfavorable_gods: List[str] = field(default_factory=list, hash=False)
    advice: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "favorable_gods": list(self.favorable_gods),
            "unfavorable_gods": list(self.unfavorable_gods),
            "advice": self.advice,
        }


@dataclass
class AnalysisResult:
    analysis: str
    suggestions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    gods: Optional[GodsRecommendation] = None

    def to_dict(self) -> dict:
        return {
            "analysis": self.analysis,
            "suggestions": self.suggestions,
            "warnings": self.warnings,
            "gods": self.gods.to_dict() if self.gods else None,
        }


def strip_gods_json(text: str) -> str:
    """Remove the favorableGods JSON block (fenced or bare) from display text."""
    text = _GODS_FENCED_RE.sub("", text)
    text = _GODS_BARE_RE.sub("", text)
    return text.strip()


def extract_gods(text: str) -> Optional[GodsRecommendation]:
    match = _GODS_GREEDY_RE.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("解析喜用神信息失败: %s", e)
        return None
    favorable = parsed.get("favorableGods")
    if not isinstance(favorable, list):
        return None
    unfavorable = parsed.get("unfavorableGods")
    return GodsRecommendation(
        favorable_gods=[str(g) for g in favorable],
        unfavorable_gods=[str(g) for g in unfavorable] if isinstance(unfavorable, list) else [],
        advice=parsed.get("advice"),
    )


def extract_labeled_lines(text: str, pattern: re.Pattern) -> List[str]:
    return [m.strip() for m in pattern.findall(text or "") if m.strip()]


def parse_analysis_response(reply: str, remove_gods_json: bool = False) -> AnalysisResult:
    """
    Split a reply into display text, ``建议:`` suggestions and ``注意:`` warnings.

    With ``remove_gods_json`` the gods block is stripped from the display text
    and not parsed; otherwise it is parsed into ``gods``.
    """
    analysis = (reply or "").strip()
    gods = None
    if remove_gods_json:
        analysis = strip_gods_json(analysis)
    else:
        gods = extract_gods(reply)

    return AnalysisResult(
        analysis=analysis,
        suggestions=extract_labeled_lines(analysis, _SUGGESTION_RE),
        warnings=extract_labeled_lines(analysis, _WARNING_RE),
        gods=gods,
    )


def parse_fashion_response(reply: str) -> dict:
    """Parse the fashion JSON; missing or broken fields fall back to defaults."""
    result = {"style": DEFAULT_FASHION_STYLE, "colors": [], "items": [], "locations": []}
    match = _JSON_OBJECT_RE.search(reply or "")
    if not match:
        return result
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("解析穿搭推荐失败: %s", e)
        return result
    if not isinstance(parsed, dict):
        return result

    result["style"] = parsed.get("style") or DEFAULT_FASHION_STYLE
    for key in ("colors", "items", "locations"):
        if isinstance(parsed.get(key), list):
            result[key] = parsed[key]
    return result
