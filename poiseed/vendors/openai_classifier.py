"""OpenAI-backed place classifier used to refine rule-based categories."""

from __future__ import annotations

import json
import logging
import random
import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from poiseed.etl.classify import ai_key
from poiseed.etl.rules import POI_CATEGORIES
from poiseed.models import AiClassification, RawPlace

logger = logging.getLogger(__name__)

GROUP_SIZE = 10
GROUP_PAUSE_SECONDS = 0.5
CALL_DELAY_RANGE = (0.05, 0.15)

SYSTEM_PROMPT = (
    "You are a place classification assistant. Always respond with valid JSON only, "
    "never use markdown formatting or code blocks."
)

CATEGORY_DEFINITIONS = """\
- park: Outdoor recreational spaces (parks, gardens, playgrounds)
- restaurant: Food, drinks, dining (restaurants, diners, food trucks)
- attraction: Tourist sites, museums, landmarks, public squares, religious sites
- cafe: Coffee shops, casual dining, bakeries
- bar: Bars, pubs, nightlife, breweries
- shopping: Retail stores, malls, supermarkets, pharmacies
- library: Educational/community spaces (libraries, schools, universities)
- beach: Waterfront recreation (beaches, piers, marinas)
- gym: Fitness centers, sports facilities, spas
- venue: Venues, events, concerts, stadiums, halls, convention centers
- entertainment: Entertainment, shows, movies, theaters, amusement parks
- health: Doctors, hospitals, clinics, dentists, veterinary care
- misc: Everything that doesn't fit elsewhere"""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class ClassifierError(RuntimeError):
    """Raised when the model reply cannot be used as a classification."""


def build_prompt(place: RawPlace) -> str:
    return f"""
Analyze this place and classify it into the most appropriate category.

Place Details:
- Name: "{place.name}"
- Description/Address: "{place.vicinity or 'N/A'}"
- Google Types: {', '.join(place.types or [])}
- Rating: {place.rating if place.rating is not None else 'N/A'}

Available Categories: {', '.join(POI_CATEGORIES)}

Category Definitions:
{CATEGORY_DEFINITIONS}

Consider:
1. What is the PRIMARY purpose/function of this place?
2. What would a person most likely visit this place for?
3. If a place has multiple functions, choose based on its MAIN purpose

CRITICAL: Respond with ONLY a valid JSON object. Do NOT use markdown or code fences.

Required JSON format:
{{
  "category": "most_appropriate_category",
  "confidence": 0.95,
  "reasoning": "Brief explanation of why this category was chosen",
  "isValid": true,
  "alternativeCategory": "second_best_option_or_null"
}}

Rules:
- The category MUST be one from the available categories list
- Set isValid to false if this doesn't seem like a legitimate business/place
"""


def parse_classification(content: Optional[str]) -> AiClassification:
    """Parse a model reply, raising :class:`ClassifierError` for anything unusable."""
    text = _CODE_FENCE.sub("", (content or "").strip()).strip()
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ClassifierError(f"invalid JSON: {text[:100]}") from exc
    if not isinstance(data, dict):
        raise ClassifierError("response is not a JSON object")

    category = data.get("category")
    if category not in POI_CATEGORIES:
        raise ClassifierError(f"invalid category: {category}")

    try:
        confidence = float(data.get("confidence", 0))
    except (TypeError, ValueError):
        confidence = 0.0
    alternative = data.get("alternativeCategory")

    return AiClassification(
        category=category,
        confidence=min(max(confidence, 0.0), 1.0),
        reasoning=str(data.get("reasoning") or ""),
        is_valid=data.get("isValid") is True,
        alternative_category=alternative if alternative in POI_CATEGORIES else None,
    )


class OpenAIClassifier:
    """Ask a chat model for a category; every failure degrades to ``None``."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        client: Optional[Any] = None,
        group_size: int = GROUP_SIZE,
        group_pause: float = GROUP_PAUSE_SECONDS,
    ) -> None:
        self.model = model
        self.group_size = max(1, group_size)
        self.group_pause = group_pause
        self.client = client if client is not None else OpenAI(api_key=api_key)

    def classify(self, place: RawPlace) -> Optional[AiClassification]:
        started = time.monotonic()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(place)},
                ],
                temperature=0.1,
                max_tokens=200,
            )
            result = parse_classification(response.choices[0].message.content)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "AI classification failed for %s: %s (%dms)", place.name, exc, (time.monotonic() - started) * 1000
            )
            return None

        logger.debug("AI-DONE: %r -> %s (%dms)", place.name, result.category, (time.monotonic() - started) * 1000)
        return result

    def _delayed_classify(self, place: RawPlace) -> Optional[AiClassification]:
        time.sleep(random.uniform(*CALL_DELAY_RANGE))
        return self.classify(place)

    def classify_many(self, places: Sequence[RawPlace]) -> Dict[str, AiClassification]:
        """Classify in fixed-size concurrent groups with a pause between groups."""
        results: Dict[str, AiClassification] = {}
        if not places:
            return results

        logger.info("Using AI to classify %d places...", len(places))
        with ThreadPoolExecutor(max_workers=self.group_size) as executor:
            for start in range(0, len(places), self.group_size):
                group: List[RawPlace] = list(places[start : start + self.group_size])
                for place, result in zip(group, executor.map(self._delayed_classify, group)):
                    if result is not None:
                        results[ai_key(place)] = result
                if start + self.group_size < len(places):
                    time.sleep(self.group_pause)

        logger.info("AI classified %d of %d places", len(results), len(places))
        return results
