"""Display fields computed from an embedded dish row."""
from typing import Any, Dict, List, Optional

CATEGORY_RELATION_KEYS = ("categories", "dish_categories")


def total_cooking_time(steps: Optional[List[Dict[str, Any]]]) -> int:
    if not isinstance(steps, list):
        return 0
    return sum(int(step.get("duration_minutes") or 0) for step in steps if isinstance(step, dict))


def likes_count(ratings: Optional[List[Dict[str, Any]]]) -> int:
    """Ratings with value 1 count as likes"""
    if not isinstance(ratings, list):
        return 0
    return sum(1 for r in ratings if isinstance(r, dict) and r.get("rating") in (1, "1"))


def flatten_categories(relations: Optional[List[Any]]) -> List[Dict[str, Any]]:
    """Accept join rows ({"categories": {...}}) or plain category rows; drop anything without a name"""
    if not isinstance(relations, list):
        return []
    flat = []
    for relation in relations:
        if not isinstance(relation, dict):
            continue
        nested = next(
            (relation[key] for key in CATEGORY_RELATION_KEYS
             if isinstance(relation.get(key), dict) and relation[key].get("name")),
            None,
        )
        if nested is not None:
            flat.append(nested)
        elif relation.get("name"):
            flat.append(relation)
    return flat


def with_derived_fields(dish: Dict[str, Any], empty_time_as_none: bool = False) -> Dict[str, Any]:
    total = total_cooking_time(dish.get("steps"))
    return {
        **dish,
        "categories": flatten_categories(dish.get("categories")),
        "total_cooking_time": (total or None) if empty_time_as_none else total,
        "likes_count": likes_count(dish.get("ratings")),
    }
