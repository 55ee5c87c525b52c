# counselor_api/services/safety_services.py
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Pattern, Tuple

from counselor_api.core.config import settings
from counselor_api.models.counsel_models import CrisisResource

logger = logging.getLogger(__name__)

CRISIS_CATEGORY = "crisis"
GRIEF_CATEGORY = "grief"

_PUNCTUATION = re.compile(r"[^\w\s']")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lower-cases, turns punctuation into spaces and collapses runs of whitespace."""
    text = _PUNCTUATION.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


@dataclass(frozen=True)
class KeywordCategory:
    name: str
    keywords: Tuple[str, ...] = ()
    patterns: Tuple[Pattern, ...] = ()

    @classmethod
    def from_dict(cls, name: str, data: dict) -> "KeywordCategory":
        keywords = tuple(k.lower() for k in data.get("keywords", []) if k and k.strip())
        patterns = tuple(re.compile(p, re.IGNORECASE) for p in data.get("patterns", []))
        return cls(name=name, keywords=keywords, patterns=patterns)


@dataclass(frozen=True)
class SafetyKeywordConfig:
    """
    Reviewed keyword lists and support resources, loaded from a versioned JSON file.

    Editing the file (or pointing SAFETY_KEYWORDS_PATH at another one) changes what the
    safety gate matches without a code change.
    """

    version: str
    crisis: KeywordCategory
    grief: KeywordCategory
    crisis_resources: Tuple[CrisisResource, ...] = ()
    grief_resources: Tuple[CrisisResource, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "SafetyKeywordConfig":
        if not data.get("crisis", {}).get("keywords"):
            raise ValueError("Safety keyword config must contain at least one crisis keyword.")
        return cls(
            version=str(data.get("version", "unversioned")),
            crisis=KeywordCategory.from_dict(CRISIS_CATEGORY, data["crisis"]),
            grief=KeywordCategory.from_dict(GRIEF_CATEGORY, data.get("grief", {})),
            crisis_resources=tuple(CrisisResource(**r) for r in data.get("crisis_resources", [])),
            grief_resources=tuple(CrisisResource(**r) for r in data.get("grief_resources", [])),
        )

    @classmethod
    def load(cls, path: str) -> "SafetyKeywordConfig":
        with open(path, "r", encoding="utf-8") as file:
            config = cls.from_dict(json.load(file))
        logger.info(
            f"Loaded safety keyword config version {config.version}: "
            f"{len(config.crisis.keywords)} crisis keywords, {len(config.grief.keywords)} grief keywords"
        )
        return config


class KeywordMatcher:
    """Case-insensitive phrase matching for one keyword category."""

    def __init__(self, category: KeywordCategory):
        self.category = category
        self._normalized_keywords = tuple((k, normalize_text(k)) for k in category.keywords)

    def matches(self, text: str) -> List[str]:
        """Returns every keyword or pattern that matched, in configuration order."""
        lowered = text.lower()
        normalized = normalize_text(text)
        matched = []
        for keyword, normalized_keyword in self._normalized_keywords:
            if keyword in lowered or (normalized_keyword and normalized_keyword in normalized):
                matched.append(keyword)
        for pattern in self.category.patterns:
            if pattern.search(lowered) or pattern.search(normalized):
                matched.append(pattern.pattern)
        return matched

    def is_match(self, text: str) -> bool:
        return bool(self.matches(text))


@dataclass(frozen=True)
class SafetyEvaluation:
    is_crisis: bool
    is_grief: bool = False
    matched_terms: Tuple[str, ...] = field(default=())
    failed_closed: bool = False


class SafetyGate:
    """
    Runs before anything is persisted. A crisis match short-circuits the counselling turn;
    the grief signal only adds resources to an otherwise normal turn.
    """

    def __init__(self, config: SafetyKeywordConfig):
        self.config = config
        self.crisis_matcher = KeywordMatcher(config.crisis)
        self.grief_matcher = KeywordMatcher(config.grief)

    def evaluate(self, text: str) -> SafetyEvaluation:
        try:
            crisis_terms = self.crisis_matcher.matches(text)
        except Exception as e:
            # Never skip the gate: an evaluation error is treated as a crisis.
            logger.error(
                f"SAFETY_GATE_ERROR: crisis evaluation failed ({type(e).__name__}), failing closed",
                extra={"event": "SAFETY_GATE_ERROR", "keyword_version": self.config.version},
            )
            return SafetyEvaluation(is_crisis=True, failed_closed=True)

        if crisis_terms:
            logger.warning(
                f"SAFETY_GATE_CRISIS: {len(crisis_terms)} crisis term(s) matched "
                f"(message length {len(text)}, keyword version {self.config.version})",
                extra={"event": "SAFETY_GATE_CRISIS", "keyword_version": self.config.version},
            )
            return SafetyEvaluation(is_crisis=True, matched_terms=tuple(crisis_terms))

        return SafetyEvaluation(is_crisis=False, is_grief=self.detect_grief(text))

    def detect_grief(self, text: str) -> bool:
        try:
            is_grief = self.grief_matcher.is_match(text)
        except Exception as e:
            logger.error(f"Grief evaluation failed ({type(e).__name__}); continuing without grief signal")
            return False
        if is_grief:
            logger.info(
                f"GRIEF_SIGNAL: grief language detected (keyword version {self.config.version})",
                extra={"event": "GRIEF_SIGNAL", "keyword_version": self.config.version},
            )
        return is_grief

    @property
    def crisis_resources(self) -> List[CrisisResource]:
        return list(self.config.crisis_resources)

    @property
    def grief_resources(self) -> List[CrisisResource]:
        return list(self.config.grief_resources)

    def crisis_response(self) -> str:
        return (
            "I'm concerned about what you're sharing. Your safety and well-being are very important.\n\n"
            "Please reach out to these professional resources who can provide immediate help:\n\n"
            f"{_format_resources(self.config.crisis_resources)}\n\n"
            "If you're in immediate danger, please call 911 or go to your nearest emergency room.\n\n"
            "I'm here to provide spiritual guidance, but these trained professionals can offer "
            "the immediate support you need right now."
        )


def _format_resources(resources: Iterable[CrisisResource]) -> str:
    return "\n\n".join(f"• {r.name}: {r.contact}\n  {r.description}" for r in resources)


_default_gate: Optional[SafetyGate] = None


def get_safety_gate() -> SafetyGate:
    """Process-wide gate built from SAFETY_KEYWORDS_PATH on first use."""
    global _default_gate
    if _default_gate is None:
        _default_gate = SafetyGate(SafetyKeywordConfig.load(settings.SAFETY_KEYWORDS_PATH))
    return _default_gate
