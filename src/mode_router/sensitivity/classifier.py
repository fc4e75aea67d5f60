"""Sensitivity classifier for provider routing.

Scores text by how many PII detector families match and by sensitive
keywords, then resolves a four-tier level. Every pattern uses bounded
quantifiers so long inputs stay linear.
"""

from __future__ import annotations

import logging
import re
from typing import ClassVar

from ..errors import SensitivityAnalysisError
from ..models import SensitivityAssessment, SensitivityLevel

logger = logging.getLogger(__name__)

NO_INDICATORS_REASON = "no sensitivity indicators found"


class SensitivityClassifier:
    """Classifies text sensitivity for privacy-aware routing."""

    PII_PATTERNS: ClassVar[dict[str, re.Pattern[str]]] = {
        "credit_card": re.compile(r"\b\d{4}[ -]?\d{4}[ -]?\d{4}[ -]?\d{4}\b"),
        "email": re.compile(r"[A-Za-z0-9._%+-]{1,64}@[A-Za-z0-9-]{1,63}(?:\.[A-Za-z0-9-]{1,63}){0,8}\.[A-Za-z]{2,24}\b"),
        "national_id": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
        "phone": re.compile(r"(?<![\d+])\+?\d{11,13}\b"),
        "bank_account": re.compile(r"\b[A-Z]{2}\d{2}(?: ?\d{4}){4} ?\d{2}\b"),
    }

    KEYWORD_TIERS: ClassVar[dict[SensitivityLevel, tuple[str, ...]]] = {
        SensitivityLevel.HIGHLY_CONFIDENTIAL: (
            "streng vertraulich",
            "strictly confidential",
            "top secret",
            "geheim",
        ),
        SensitivityLevel.CONFIDENTIAL: (
            "vertraulich",
            "confidential",
            "passwort",
            "password",
            "bankdaten",
            "kreditkarte",
            "social security",
            "personalausweis",
        ),
        SensitivityLevel.INTERNAL: (
            "intern",
            "internal",
            "steuer",
            "steuererklärung",
            "steuernummer",
        ),
    }

    # Keywords match whole words, allowing German inflection endings.
    KEYWORD_SUFFIX: ClassVar[str] = r"(?:e|em|en|er|es|n|s)?"

    CONTEXT_INDICATORS: ClassVar[dict[str, tuple[str, ...]]] = {
        "business": ("kunde", "vertrag", "rechnung", "customer", "contract", "invoice"),
        "personal": ("persönlich", "privat", "familie", "personal", "private", "family"),
        "legal": ("rechtlich", "anwalt", "gericht", "legal", "lawyer", "court"),
    }

    # (pii threshold, level, confidence), checked top-down
    LEVEL_RULES: ClassVar[tuple[tuple[float, SensitivityLevel, float], ...]] = (
        (0.8, SensitivityLevel.HIGHLY_CONFIDENTIAL, 0.9),
        (0.5, SensitivityLevel.CONFIDENTIAL, 0.8),
        (0.2, SensitivityLevel.INTERNAL, 0.7),
    )

    def __init__(
        self,
        custom_patterns: dict[str, str] | None = None,
        custom_keywords: dict[SensitivityLevel, list[str]] | None = None,
    ):
        """Initialize the classifier.

        Args:
            custom_patterns: Additional PII detectors {name: pattern_str}. They
                count towards the PII score like the built-in detectors.
            custom_keywords: Additional keywords per sensitivity tier
        """
        self._custom_patterns = dict(custom_patterns or {})
        self._pii_patterns: dict[str, re.Pattern[str]] | None = None

        tiers = {level: list(words) for level, words in self.KEYWORD_TIERS.items()}
        for level, words in (custom_keywords or {}).items():
            tiers.setdefault(SensitivityLevel(level), []).extend(w.lower() for w in words)
        self._keyword_tiers = {
            level: [(word, re.compile(rf"\b{re.escape(word)}{self.KEYWORD_SUFFIX}\b")) for word in words]
            for level, words in tiers.items()
        }

    def _compiled_patterns(self) -> dict[str, re.Pattern[str]]:
        if self._pii_patterns is None:
            patterns = dict(self.PII_PATTERNS)
            for name, pattern_str in self._custom_patterns.items():
                try:
                    patterns[name] = re.compile(pattern_str)
                except re.error as exc:
                    raise SensitivityAnalysisError(f"invalid PII pattern {name!r}: {exc}") from exc
            self._pii_patterns = patterns
        return self._pii_patterns

    def pii_matches(self, text: str) -> list[str]:
        patterns = self._compiled_patterns()
        matched = []
        for name, pattern in patterns.items():
            if name == "email" and "@" not in text:
                continue
            if pattern.search(text):
                matched.append(name)
        return matched

    def pii_score(self, text: str) -> float:
        total = len(self._compiled_patterns())
        return min(len(self.pii_matches(text)) / total, 1.0)

    def keyword_matches(self, text: str) -> dict[SensitivityLevel, list[str]]:
        lowered = text.lower()
        return {
            level: [word for word, pattern in words if pattern.search(lowered)]
            for level, words in self._keyword_tiers.items()
        }

    def context_indicators(self, text: str) -> list[str]:
        lowered = text.lower()
        return [
            context
            for context, words in self.CONTEXT_INDICATORS.items()
            if any(word in lowered for word in words)
        ]

    def assess(self, text: str) -> SensitivityAssessment:
        """Classify the sensitivity of ``text``.

        A failure inside the pattern engine never lets content through as
        public: it is reported as highly confidential.
        """
        try:
            return self._assess(text)
        except (SensitivityAnalysisError, re.error) as exc:
            logger.warning("Sensitivity analysis failed, assuming highly confidential: %s", exc)
            return SensitivityAssessment(
                level=SensitivityLevel.HIGHLY_CONFIDENTIAL,
                confidence=0.9,
                reasons=(f"sensitivity analysis failed ({exc}); assuming highly confidential",),
            )

    def _assess(self, text: str) -> SensitivityAssessment:
        pii = self.pii_matches(text)
        score = min(len(pii) / len(self._compiled_patterns()), 1.0)
        keywords = self.keyword_matches(text)

        level = SensitivityLevel.PUBLIC
        confidence = 0.9
        for threshold, candidate, candidate_confidence in self.LEVEL_RULES:
            if score > threshold or keywords.get(candidate):
                level = candidate
                confidence = candidate_confidence
                break

        reasons: list[str] = []
        if level is SensitivityLevel.PUBLIC:
            reasons.append(NO_INDICATORS_REASON)
        else:
            reasons.append(f"{level.value} content detected (pii score {score:.2f})")
        if pii:
            reasons.append(f"pii patterns matched: {', '.join(pii)}")
        matched_words = [word for words in keywords.values() for word in words]
        for word in matched_words:
            reasons.append(f"sensitive keyword: {word!r}")
        for context in self.context_indicators(text):
            reasons.append(f"{context} context")

        return SensitivityAssessment(
            level=level,
            confidence=confidence,
            reasons=tuple(reasons),
            pii_matches=tuple(pii),
            keywords=tuple(matched_words),
        )
