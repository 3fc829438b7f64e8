# services/recipes/recipe_scaling.py
"""Servings adjustment and measure conversion for recipe ingredients"""

import re
from typing import Optional

_NUMBER_PATTERN = re.compile(r"\d+(\.\d+)?")

MEASURE_SYSTEMS = ("metric", "us")


def _units(ingredient: dict) -> tuple[str, str, str]:
    unit = ingredient.get("unit") or ""
    metric = (ingredient.get("measures") or {}).get("metric") or {}
    return unit, metric.get("unitLong") or unit, metric.get("unitShort") or unit


def _scaled_entry(
    ingredient: dict,
    scaled_amount: float,
    scaled_text: str,
    multiplier: float = 1,
    measure_system: Optional[str] = None,
) -> dict:
    unit, unit_long, unit_short = _units(ingredient)
    entry = {
        "original": ingredient.get("original", ""),
        "scaled": scaled_text,
        "originalAmount": ingredient.get("amount", 0),
        "scaledAmount": scaled_amount,
        "unit": unit,
        "unitLong": unit_long,
        "unitShort": unit_short,
    }
    if measure_system:
        metric = (ingredient.get("measures") or {}).get("metric") or {}
        metric_amount = metric.get("amount", ingredient.get("amount") or 0) * multiplier
        entry["measure"] = convert_units(metric_amount, "metric", measure_system, ingredient)
    return entry


def scale_ingredients(
    recipe: dict,
    target_servings: float,
    original_servings: Optional[float] = None,
    measure_system: Optional[str] = None,
) -> list[dict]:
    """
    Scale every ingredient amount by ``target_servings / original_servings``.

    Numbers inside the ingredient's display text are replaced with the scaled
    amount formatted to two decimals. When either serving count is not
    positive the amounts are returned unchanged. With ``measure_system`` each
    entry also carries the scaled amount in that system's units.
    """
    ingredients = recipe.get("extendedIngredients") or []
    if not ingredients:
        return []

    original = original_servings or recipe.get("servings") or 1
    if original <= 0 or target_servings <= 0:
        return [
            _scaled_entry(ing, ing.get("amount", 0), ing.get("original", ""), 1, measure_system)
            for ing in ingredients
        ]

    multiplier = target_servings / original
    scaled = []
    for ing in ingredients:
        scaled_amount = (ing.get("amount") or 0) * multiplier
        scaled_text = _NUMBER_PATTERN.sub(f"{scaled_amount:.2f}", ing.get("original", ""))
        scaled.append(
            _scaled_entry(ing, scaled_amount, scaled_text, multiplier, measure_system)
        )
    return scaled


def convert_units(
    amount: float, from_system: str, to_system: str, ingredient: Optional[dict] = None
) -> dict:
    """
    Convert an amount between the "metric" and "us" measures of an ingredient.

    The conversion factor is the ratio between the ingredient's own measures in
    the two systems; without a target measure the amount is returned as is.
    """
    measures = (ingredient or {}).get("measures") or {}
    source = measures.get(from_system) or {}

    if from_system == to_system or not measures:
        return {
            "amount": amount,
            "unit": source.get("unitShort", ""),
            "unitLong": source.get("unitLong", ""),
        }

    target = measures.get(to_system)
    if target:
        factor = target.get("amount", 0) / (source.get("amount") or 1)
        return {
            "amount": amount * factor,
            "unit": target.get("unitShort", ""),
            "unitLong": target.get("unitLong", ""),
        }

    return {
        "amount": amount,
        "unit": source.get("unitShort", ""),
        "unitLong": source.get("unitLong", ""),
    }
