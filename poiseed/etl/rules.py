"""Static POI taxonomy and the rule table used for rule-based classification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

POI_CATEGORIES: Tuple[str, ...] = (
    "park",
    "restaurant",
    "attraction",
    "cafe",
    "bar",
    "shopping",
    "library",
    "beach",
    "gym",
    "venue",
    "entertainment",
    "health",
    "misc",
)

DEFAULT_CATEGORY = "misc"

# Google types that say nothing about what a place is for.
GENERIC_PLACE_TYPES = frozenset(
    {
        "establishment",
        "point_of_interest",
        "locality",
        "political",
        "sublocality",
        "neighborhood",
        "administrative_area_level_1",
        "administrative_area_level_2",
        "country",
        "route",
        "street_address",
        "premise",
        "colloquial_area",
    }
)

# Administrative/political boundaries are never POIs.
EXCLUDED_GLOBAL_TYPES = frozenset(
    {
        "locality",
        "political",
        "country",
        "administrative_area_level_1",
        "administrative_area_level_2",
        "administrative_area_level_3",
        "sublocality",
        "neighborhood",
        "colloquial_area",
    }
)

GENERIC_BAD_NAMES = frozenset({"website", "home", "my location", "new york"})

LIQUOR_TYPE = "liquor_store"
GENERIC_RETAIL_TYPES = frozenset({"drugstore", "convenience_store", "store"})


@dataclass(frozen=True)
class CategoryRule:
    category: str
    priority: int
    types: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    exclude_types: Tuple[str, ...] = ()
    exclude_keywords: Tuple[str, ...] = ()


_PHARMACY_TYPES = ("drugstore", "convenience_store", "pharmacy", "health")
_PHARMACY_CHAINS = ("cvs", "duane reade", "walgreens", "rite aid")

CATEGORY_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule(
        category="park",
        priority=10,
        types=("park", "campground", "rv_park"),
        keywords=(
            "park", "garden", "green", "playground", "recreation", "square", "plaza",
            "promenade", "waterfront", "pier", "trail", "commons", "field",
        ),
        exclude_keywords=("restaurant", "bar", "cafe", "hotel", "store", "shop", "market", "pharmacy", "bank"),
    ),
    CategoryRule(
        category="shopping",
        priority=9,
        types=(
            "shopping_mall", "department_store", "clothing_store", "shoe_store", "jewelry_store",
            "electronics_store", "furniture_store", "home_goods_store", "book_store", "bicycle_store",
            "store", "supermarket", "grocery_or_supermarket", "convenience_store", "drugstore",
            "pharmacy", "florist", "hardware_store", "laundry", "pet_store",
        ),
        keywords=("store", "shop", "market", "boutique", "outlet", "retail"),
    ),
    CategoryRule(
        category="entertainment",
        priority=8,
        types=("movie_theater", "amusement_park"),
        keywords=("cinema", "theater", "theatre", "movie", "amusement", "arcade", "entertainment"),
        exclude_types=("store",),
        exclude_keywords=("store", "shop"),
    ),
    CategoryRule(
        category="venue",
        priority=7,
        types=("stadium", "bowling_alley", "casino"),
        keywords=(
            "stadium", "arena", "venue", "hall", "center", "auditorium", "amphitheater",
            "bowling", "casino", "convention",
        ),
        exclude_types=("store", "clothing_store", "electronics_store", "book_store", "shoe_store"),
        exclude_keywords=("store", "shop", "market", "boutique", "retail"),
    ),
    CategoryRule(
        category="attraction",
        priority=6,
        types=(
            "tourist_attraction", "museum", "zoo", "aquarium", "art_gallery", "church",
            "hindu_temple", "mosque", "synagogue", "city_hall", "courthouse", "embassy",
        ),
        keywords=(
            "museum", "gallery", "monument", "memorial", "historic", "cathedral", "church",
            "temple", "bridge", "tower", "statue",
        ),
    ),
    CategoryRule(
        category="cafe",
        priority=5,
        types=("cafe", "bakery"),
        keywords=("cafe", "coffee", "bakery", "patisserie", "espresso"),
    ),
    CategoryRule(
        category="bar",
        priority=4,
        types=("bar", "night_club"),
        keywords=("bar", "pub", "tavern", "lounge", "brewery", "taproom", "cocktail", "nightclub"),
        exclude_types=_PHARMACY_TYPES,
        exclude_keywords=_PHARMACY_CHAINS,
    ),
    CategoryRule(
        category="restaurant",
        priority=3,
        types=("restaurant", "meal_takeaway", "meal_delivery", "food"),
        keywords=("restaurant", "bistro", "eatery", "kitchen", "grill", "diner", "pizzeria", "steakhouse"),
        exclude_types=_PHARMACY_TYPES,
        exclude_keywords=_PHARMACY_CHAINS,
    ),
    CategoryRule(
        category="beach",
        priority=2,
        types=("natural_feature",),
        keywords=("beach", "shore", "waterfront", "marina", "harbor", "pier", "wharf", "dock"),
    ),
    CategoryRule(
        category="library",
        priority=2,
        types=("library", "school", "university"),
        keywords=("library", "school", "university", "college", "academy", "institute"),
    ),
    CategoryRule(
        category="gym",
        priority=2,
        types=("gym", "spa"),
        keywords=("gym", "fitness", "yoga", "pilates", "crossfit", "spa", "wellness"),
    ),
    CategoryRule(
        category="health",
        priority=2,
        types=(
            "doctor", "hospital", "dentist", "pharmacy", "physiotherapist", "health",
            "dentistry", "medical_lab", "veterinary_care",
        ),
        keywords=(
            "doctor", "dr.", " md", "hospital", "medical", "clinic", "health", "dentist",
            "dental", "physician", "surgery", "care center",
        ),
    ),
    CategoryRule(category="misc", priority=1),
)

RULES_BY_CATEGORY: Dict[str, CategoryRule] = {rule.category: rule for rule in CATEGORY_RULES}
