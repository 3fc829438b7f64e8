# services/recipes/ai_prompts.py
"""
Prompt construction for the recipe AI endpoints.

Every builder is a pure function of its inputs and returns a GenerationRequest.
Missing recipe fields are rendered as "Unknown" / "Not available" so a sparse
recipe record never prevents a prompt from being built.
"""

import re
from typing import Optional

from shared.llm_client import GenerationRequest

SHORT_TASK_TOKENS = 200
ANALYSIS_TOKENS = 1500
MODIFICATION_TOKENS = 1000

UNKNOWN = "Unknown"
NOT_AVAILABLE = "Not available"

_TAG_PATTERN = re.compile(r"<[^>]+>")
_SPACE_PATTERN = re.compile(r"[ \t]+")

SEARCH_SYSTEM_PROMPT = """You convert natural language recipe requests into structured search parameters for a recipe search API.

Respond with ONLY a JSON object of this shape:
{
  "searchTerm": "main dish or ingredient keywords",
  "diet": "vegetarian | vegan | gluten free | ketogenic | paleo | pescetarian (omit if none)",
  "cuisine": "italian | mexican | thai | ... (omit if none)",
  "type": "main course | dessert | breakfast | soup | salad | ... (omit if none)",
  "intolerances": "comma separated list such as dairy,gluten (omit if none)",
  "maxReadyTime": 30
}

Only include keys the request actually implies. searchTerm is always required."""

RECOMMENDATION_SYSTEM_PROMPT = """You are a culinary assistant that turns a user's wishes into recipe search parameters.

Respond with ONLY a JSON object of this shape:
{
  "searchTerm": "keywords to search for",
  "diet": "optional diet",
  "cuisine": "optional cuisine",
  "type": "optional dish type",
  "intolerances": "optional comma separated intolerances",
  "maxReadyTime": 45,
  "number": 10
}

Keep the user's explicit preferences. number is how many recipes to fetch (1-100)."""

ANALYSIS_SYSTEM_PROMPT = """You are a registered dietitian and professional chef reviewing a recipe.

Respond with ONLY a JSON object of this exact shape:
{
  "healthScore": {"score": 0-100, "explanation": "one or two sentences"},
  "nutritionAnalysis": {"summary": "short overview", "strengths": ["..."], "concerns": ["..."]},
  "allergens": [{"allergen": "gluten", "severity": "low | medium | high", "sources": ["ingredient"]}],
  "ingredientSubstitutions": [{"original": "...", "substitute": "...", "reason": "...", "dietaryBenefit": "..."}],
  "cookingDifficulty": {"level": "beginner | intermediate | advanced", "explanation": "...", "tips": ["..."]},
  "timeValidation": {"estimatedTime": minutes, "discrepancy": "explain if the stated time looks wrong, otherwise null"}
}

Base every statement on the ingredients and instructions provided."""

DIETARY_SYSTEM_PROMPT = """You are a chef who adapts recipes to dietary requirements.

Respond with ONLY a JSON object of this exact shape:
{
  "explanation": "what changes and why",
  "modifiedIngredients": [{"original": "ingredient as listed", "substitute": "replacement", "reason": "why"}],
  "modifiedInstructions": "the full adjusted method as plain text"
}

Only list ingredients that actually change."""

SIMPLIFY_SYSTEM_PROMPT = """You are a chef who makes recipes easier for home cooks.

Respond with ONLY a JSON object of this exact shape:
{
  "simplifiedIngredients": [{"original": "ingredient as listed", "simplified": "easier alternative or same", "reason": "why"}],
  "simplifiedInstructions": "fewer, clearer steps as plain text",
  "tips": ["practical shortcut"]
}

Keep the dish recognisable. Prefer common supermarket ingredients and fewer pans."""


def strip_html(text: Optional[str]) -> str:
    if not text:
        return ""
    cleaned = _TAG_PATTERN.sub(" ", text)
    return _SPACE_PATTERN.sub(" ", cleaned).strip()


def ingredient_lines(recipe: dict) -> list[str]:
    """Ingredient text as listed on the recipe (``extendedIngredients[].original``)"""
    lines = []
    for ingredient in recipe.get("extendedIngredients") or []:
        if not isinstance(ingredient, dict):
            continue
        text = ingredient.get("original") or ingredient.get("name")
        if text:
            lines.append(str(text))
    return lines


def instruction_steps(recipe: dict) -> list[str]:
    """Recipe method as a list of steps, preferring the structured instructions"""
    steps = []
    for block in recipe.get("analyzedInstructions") or []:
        if not isinstance(block, dict):
            continue
        for step in block.get("steps") or []:
            if isinstance(step, dict) and step.get("step"):
                steps.append(str(step["step"]).strip())

    if steps:
        return steps

    plain = strip_html(recipe.get("instructions"))
    return [plain] if plain else []


def _field(value, placeholder: str = UNKNOWN) -> str:
    if value is None or value == "":
        return placeholder
    return str(value)


def _yes_no(value) -> str:
    if value is None:
        return UNKNOWN
    return "yes" if value else "no"


def describe_recipe(recipe: dict) -> str:
    """Render the recipe fields the models need as a plain text block"""
    ingredients = ingredient_lines(recipe)
    steps = instruction_steps(recipe)

    ingredient_text = "\n".join(f"- {line}" for line in ingredients) or NOT_AVAILABLE
    step_text = (
        "\n".join(f"{number}. {step}" for number, step in enumerate(steps, start=1))
        or NOT_AVAILABLE
    )

    return f"""RECIPE: {_field(recipe.get("title"))}
Servings: {_field(recipe.get("servings"))}
Ready in: {_field(recipe.get("readyInMinutes"))} minutes
Health score: {_field(recipe.get("healthScore"))}
Vegetarian: {_yes_no(recipe.get("vegetarian"))}
Vegan: {_yes_no(recipe.get("vegan"))}
Gluten free: {_yes_no(recipe.get("glutenFree"))}
Dairy free: {_yes_no(recipe.get("dairyFree"))}
Cuisines: {", ".join(recipe.get("cuisines") or []) or NOT_AVAILABLE}
Dish types: {", ".join(recipe.get("dishTypes") or []) or NOT_AVAILABLE}

INGREDIENTS:
{ingredient_text}

INSTRUCTIONS:
{step_text}"""


def build_search_translation_request(query: str) -> GenerationRequest:
    return GenerationRequest(
        system=SEARCH_SYSTEM_PROMPT,
        user=f'Recipe request: "{query}"',
        temperature=0.3,
        max_tokens=SHORT_TASK_TOKENS,
    )


def build_recommendation_request(
    query: Optional[str],
    diet: Optional[str] = None,
    cuisine: Optional[str] = None,
    intolerances: Optional[str] = None,
    max_ready_time: Optional[int] = None,
) -> GenerationRequest:
    """Recommendation parameters from a free-text wish plus explicit preferences"""
    preferences = [
        f"Request: {_field(query, NOT_AVAILABLE)}",
        f"Diet: {_field(diet, NOT_AVAILABLE)}",
        f"Cuisine: {_field(cuisine, NOT_AVAILABLE)}",
        f"Intolerances: {_field(intolerances, NOT_AVAILABLE)}",
        f"Maximum ready time: {_field(max_ready_time, NOT_AVAILABLE)}",
    ]

    return GenerationRequest(
        system=RECOMMENDATION_SYSTEM_PROMPT,
        user="USER PREFERENCES:\n" + "\n".join(preferences),
        temperature=0.5,
        max_tokens=SHORT_TASK_TOKENS,
    )


def build_analysis_request(recipe: dict) -> GenerationRequest:
    return GenerationRequest(
        system=ANALYSIS_SYSTEM_PROMPT,
        user=f"Analyze this recipe.\n\n{describe_recipe(recipe)}",
        temperature=0.4,
        max_tokens=ANALYSIS_TOKENS,
    )


def build_modification_request(
    recipe: dict, modification_type: str, diet: Optional[str] = None
) -> GenerationRequest:
    """
    Dietary adaptation or simplification of a recipe.

    ``modification_type`` is "dietary" or "simplify"; ``diet`` is only used for
    dietary requests.
    """
    if modification_type == "dietary":
        system = DIETARY_SYSTEM_PROMPT
        task = f"Adapt this recipe so it is {_field(diet)}."
    else:
        system = SIMPLIFY_SYSTEM_PROMPT
        task = "Simplify this recipe."

    return GenerationRequest(
        system=system,
        user=f"{task}\n\n{describe_recipe(recipe)}",
        temperature=0.6,
        max_tokens=MODIFICATION_TOKENS,
    )
