"""Rule-based classification, validation and the five-stage classification pipeline."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from poiseed.etl.rules import (
    CATEGORY_RULES,
    DEFAULT_CATEGORY,
    EXCLUDED_GLOBAL_TYPES,
    GENERIC_BAD_NAMES,
    GENERIC_PLACE_TYPES,
    GENERIC_RETAIL_TYPES,
    LIQUOR_TYPE,
    RULES_BY_CATEGORY,
    CategoryRule,
)
from poiseed.models import ClassifiedPlace, PipelineStats, RawPlace

logger = logging.getLogger(__name__)

RULE_CONFIDENCE = 0.8
RULE_REASONING = "Rule-based classification"

_HAS_NUMBER = re.compile(r"\b\d{1,6}\b")
_HAS_STREET_WORD = re.compile(
    r"(street|st\.?|ave\.?|avenue|blvd\.?|boulevard|rd\.?|road|dr\.?|drive|ln\.?|lane|"
    r"ct\.?|court|pl\.?|place|pkwy\.?|parkway|suite|ste\.?|apt\.?)"
)


def has_only_generic_types(types: Iterable[str]) -> bool:
    return all(t in GENERIC_PLACE_TYPES for t in types or [])


def excluded_global_types(types: Iterable[str]) -> List[str]:
    return [t for t in types or [] if t in EXCLUDED_GLOBAL_TYPES]


def is_generic_name(name: Optional[str]) -> bool:
    normalized = (name or "").strip().lower()
    return bool(normalized) and normalized in GENERIC_BAD_NAMES


def is_address_like(name: Optional[str]) -> bool:
    normalized = (name or "").lower()
    return bool(_HAS_NUMBER.search(normalized) and _HAS_STREET_WORD.search(normalized))


def is_globally_ineligible(place: RawPlace) -> bool:
    if excluded_global_types(place.types):
        return True
    return has_only_generic_types(place.types) and (is_generic_name(place.name) or is_address_like(place.name))


def explain_global_ineligible(place: RawPlace) -> str:
    offending = excluded_global_types(place.types)
    if offending:
        return f"contains excluded global types: {', '.join(offending)}"
    generic_name = is_generic_name(place.name)
    address_like = is_address_like(place.name)
    if has_only_generic_types(place.types) and (generic_name or address_like):
        reasons = ["only generic Google types"]
        if generic_name:
            reasons.append("generic name")
        if address_like:
            reasons.append("address-like name")
        return ", ".join(reasons)
    return "globally ineligible"


def _rule_exclusions(rule: CategoryRule, types: Sequence[str], name: str) -> Tuple[List[str], List[str]]:
    bad_types = [t for t in rule.exclude_types if t in types]
    bad_keywords = [k for k in rule.exclude_keywords if k in name]
    return bad_types, bad_keywords


def _liquor_boost(types: Sequence[str]) -> bool:
    return LIQUOR_TYPE in types and not any(t in GENERIC_RETAIL_TYPES for t in types)


def score_category(place: RawPlace, rule: CategoryRule) -> Optional[int]:
    """Return the rule confidence for ``place``, or None when the rule excludes it."""
    name = (place.name or "").lower()
    types = place.types or []
    bad_types, bad_keywords = _rule_exclusions(rule, types, name)
    if bad_types or bad_keywords:
        return None
    confidence = 2 * sum(1 for t in rule.types if t in types)
    confidence += sum(1 for k in rule.keywords if k in name)
    if rule.category == "bar" and _liquor_boost(types):
        confidence += 1
    return confidence


def best_category(place: RawPlace) -> Tuple[str, int]:
    """Pick the highest-priority matching category, ties broken by confidence."""
    best, best_priority, best_confidence = DEFAULT_CATEGORY, 0, 0
    for rule in CATEGORY_RULES:
        confidence = score_category(place, rule)
        if not confidence:
            continue
        if rule.priority > best_priority or (rule.priority == best_priority and confidence > best_confidence):
            best, best_priority, best_confidence = rule.category, rule.priority, confidence
    return best, best_confidence


def _misc_disallowed(place: RawPlace) -> bool:
    return has_only_generic_types(place.types) or is_generic_name(place.name) or is_address_like(place.name)


def validate_place(place: RawPlace, category: str) -> bool:
    rule = RULES_BY_CATEGORY.get(category)
    if rule is None:
        return False
    if is_globally_ineligible(place):
        return False
    name = (place.name or "").lower()
    types = place.types or []
    bad_types, bad_keywords = _rule_exclusions(rule, types, name)
    if bad_types or bad_keywords:
        return False
    if category == "bar" and _liquor_boost(types):
        return True
    if category == DEFAULT_CATEGORY:
        return not _misc_disallowed(place)
    return any(t in types for t in rule.types) or any(k in name for k in rule.keywords)


def explain_validation_failure(place: RawPlace, category: str) -> str:
    rule = RULES_BY_CATEGORY.get(category)
    if rule is None:
        return f"unknown category: {category}"
    if is_globally_ineligible(place):
        return explain_global_ineligible(place)
    name = (place.name or "").lower()
    types = place.types or []
    bad_types, bad_keywords = _rule_exclusions(rule, types, name)
    if bad_types:
        return f"has excluded types for {category}: {', '.join(bad_types)}"
    if bad_keywords:
        return f"has excluded keywords for {category}: {', '.join(bad_keywords)}"
    if category == DEFAULT_CATEGORY:
        if _misc_disallowed(place):
            return "misc disallowed for generic/address-like entries without specific signals"
        return "failed validation"
    if not any(t in types for t in rule.types) and not any(k in name for k in rule.keywords):
        return f"no matching type/keyword for {category}"
    return "failed validation"


def ai_key(place: RawPlace) -> str:
    return place.place_id or place.name


@dataclass
class PipelineResult:
    places: List[ClassifiedPlace] = field(default_factory=list)
    stats: PipelineStats = field(default_factory=PipelineStats)


class ClassificationPipeline:
    """Turn raw gateway places into validated, categorized records.

    Stages run in a fixed order: global pre-filter, rule-based assignment, validation,
    category allow-list, and optional AI re-classification. The AI stage only ever replaces
    a rule-based category with one that passes validation and the allow-list.
    """

    def __init__(self, classifier=None) -> None:
        self.classifier = classifier

    def process(
        self,
        raw_places: Sequence[RawPlace],
        categories: Optional[Sequence[str]] = None,
        use_ai: bool = False,
    ) -> PipelineResult:
        allowed = list(categories or [])
        stats = PipelineStats(total_raw=len(raw_places))

        pre_filtered = []
        for place in raw_places:
            if is_globally_ineligible(place):
                logger.debug("PRE-FILTER: excluded %r - %s", place.name, explain_global_ineligible(place))
                continue
            pre_filtered.append(place)
        stats.after_pre_filter = len(pre_filtered)

        classified: List[Tuple[RawPlace, str]] = []
        for place in pre_filtered:
            category, score = best_category(place)
            logger.debug("CLASSIFY: %r -> %s (rule score %d)", place.name, category, score)
            classified.append((place, category))
        stats.after_classification = len(classified)

        validated = []
        for place, category in classified:
            if not validate_place(place, category):
                logger.debug("VALIDATE: excluded %r [%s] - %s", place.name, category, explain_validation_failure(place, category))
                continue
            validated.append((place, category))
        stats.after_validation = len(validated)

        if allowed:
            filtered = []
            for place, category in validated:
                if category not in allowed:
                    logger.debug("CATEGORY: excluded %r - category=%s not in %s", place.name, category, allowed)
                    continue
                filtered.append((place, category))
        else:
            filtered = validated
        stats.after_category_filter = len(filtered)

        results = [self._rule_result(place, category) for place, category in filtered]
        if use_ai and results:
            if self.classifier is None:
                logger.warning("AI classification requested but no classifier is configured; using rules only.")
            else:
                stats.ai_reclassified = self._apply_ai(results, allowed)
        stats.after_ai = len(results)

        return PipelineResult(places=results, stats=stats)

    @staticmethod
    def _rule_result(place: RawPlace, category: str) -> ClassifiedPlace:
        return ClassifiedPlace(
            name=place.name,
            description=place.vicinity or "",
            latitude=place.latitude,
            longitude=place.longitude,
            category=category,
            confidence=RULE_CONFIDENCE,
            reasoning=RULE_REASONING,
            method="rule",
            types=list(place.types or []),
            place_id=place.place_id,
            rating=place.rating,
            price_level=place.price_level,
            source=place,
        )

    def _apply_ai(self, results: List[ClassifiedPlace], allowed: List[str]) -> int:
        opinions = self.classifier.classify_many([r.source for r in results])
        changed = 0
        for result in results:
            opinion = opinions.get(ai_key(result.source))
            if opinion is None or not opinion.is_valid:
                continue
            if not validate_place(result.source, opinion.category):
                logger.debug(
                    "AI-CLASSIFY: %r suggested %s but failed validation, keeping %s",
                    result.name, opinion.category, result.category,
                )
                continue
            if allowed and opinion.category not in allowed:
                logger.debug(
                    "AI-CLASSIFY: %r suggested %s outside allowed categories, keeping %s",
                    result.name, opinion.category, result.category,
                )
                continue
            logger.debug("AI-CLASSIFY: %r -> %s (confidence %.0f%%)", result.name, opinion.category, opinion.confidence * 100)
            result.category = opinion.category
            result.confidence = opinion.confidence
            result.reasoning = opinion.reasoning
            result.method = "ai"
            changed += 1
        return changed
