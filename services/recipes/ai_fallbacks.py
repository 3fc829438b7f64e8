# services/recipes/ai_fallbacks.py
"""
Rule-based substitutes for the AI endpoints.

Used when every configured provider fails. Results only depend on the input
and the static tables below, so identical input always yields identical
output, in the same shape the models are asked to produce.
"""

from typing import Optional

from ai_prompts import ingredient_lines, instruction_steps

DEFAULT_HEALTH_SCORE = 50
DEFAULT_RECOMMENDATION_COUNT = 10

GLUTEN_KEYWORDS = ("flour", "wheat", "bread", "pasta", "noodle", "barley", "rye", "couscous", "soy sauce", "breadcrumb")
DAIRY_KEYWORDS = ("milk", "cheese", "butter", "cream", "yogurt", "yoghurt", "parmesan", "mozzarella", "ghee")

# (keyword found in the ingredient, substitute, reason)
DIETARY_SUBSTITUTIONS: dict[str, list[tuple[str, str, str]]] = {
    "vegan": [
        ("butter", "plant-based butter or olive oil", "Removes dairy fat"),
        ("milk", "unsweetened oat or soy milk", "Plant-based alternative to dairy milk"),
        ("cream", "coconut cream", "Keeps richness without dairy"),
        ("cheese", "nutritional yeast or vegan cheese", "Adds savoury flavour without dairy"),
        ("yogurt", "coconut or soy yogurt", "Plant-based cultured alternative"),
        ("egg", "flax egg (1 tbsp ground flax + 3 tbsp water)", "Binds without eggs"),
        ("honey", "maple syrup", "Plant-based sweetener"),
        ("chicken", "extra-firm tofu or chickpeas", "Plant protein in place of poultry"),
        ("beef", "lentils or mushrooms", "Hearty plant-based texture"),
        ("pork", "smoked tofu or jackfruit", "Plant-based alternative to pork"),
        ("fish", "marinated tofu", "Plant protein in place of fish"),
        ("stock", "vegetable stock", "Animal-free base"),
        ("broth", "vegetable broth", "Animal-free base"),
    ],
    "vegetarian": [
        ("chicken", "extra-firm tofu or halloumi", "Meat-free protein"),
        ("beef", "lentils or mushrooms", "Hearty meat-free texture"),
        ("pork", "smoked tofu", "Meat-free alternative"),
        ("bacon", "smoked tempeh", "Keeps the smoky flavour"),
        ("fish", "halloumi or tofu", "Meat-free protein"),
        ("shrimp", "king oyster mushrooms", "Similar bite without seafood"),
        ("gelatin", "agar agar", "Plant-based setting agent"),
        ("stock", "vegetable stock", "Meat-free base"),
        ("broth", "vegetable broth", "Meat-free base"),
    ],
    "keto": [
        ("sugar", "erythritol or stevia", "Removes sugar carbohydrates"),
        ("flour", "almond flour", "Low-carb flour"),
        ("rice", "cauliflower rice", "Low-carb grain replacement"),
        ("pasta", "zucchini noodles", "Low-carb noodle replacement"),
        ("potato", "cauliflower", "Lower-carb starch replacement"),
        ("bread", "lettuce wraps or keto bread", "Removes bread carbohydrates"),
        ("honey", "sugar-free syrup", "Removes sugar carbohydrates"),
        ("milk", "unsweetened almond milk or heavy cream", "Lower-carb dairy option"),
    ],
    "paleo": [
        ("flour", "almond or cassava flour", "Grain-free flour"),
        ("sugar", "maple syrup or honey", "Unrefined sweetener"),
        ("rice", "cauliflower rice", "Grain-free alternative"),
        ("pasta", "spiralized vegetables", "Grain-free alternative"),
        ("butter", "ghee or coconut oil", "Paleo-friendly fat"),
        ("milk", "almond or coconut milk", "Dairy-free alternative"),
        ("cheese", "nutritional yeast", "Dairy-free savoury flavour"),
        ("soy sauce", "coconut aminos", "Soy-free seasoning"),
        ("beans", "extra vegetables", "Legume-free alternative"),
    ],
    "gluten-free": [
        ("flour", "gluten-free flour blend", "Removes wheat gluten"),
        ("bread", "gluten-free bread", "Removes wheat gluten"),
        ("breadcrumb", "gluten-free breadcrumbs or crushed nuts", "Removes wheat gluten"),
        ("pasta", "rice or corn pasta", "Gluten-free alternative"),
        ("noodle", "rice noodles", "Gluten-free alternative"),
        ("soy sauce", "tamari", "Gluten-free soy sauce"),
        ("couscous", "quinoa", "Gluten-free grain"),
        ("barley", "brown rice", "Gluten-free grain"),
        ("beer", "gluten-free beer", "Removes barley gluten"),
    ],
    "dairy-free": [
        ("butter", "olive oil or dairy-free butter", "Removes dairy"),
        ("milk", "oat or almond milk", "Dairy-free alternative"),
        ("cream", "coconut cream", "Dairy-free richness"),
        ("cheese", "dairy-free cheese or nutritional yeast", "Dairy-free alternative"),
        ("yogurt", "coconut yogurt", "Dairy-free cultured alternative"),
        ("ghee", "coconut oil", "Dairy-free fat"),
    ],
}

DIET_ALIASES = {
    "ketogenic": "keto",
    "glutenfree": "gluten-free",
    "gluten free": "gluten-free",
    "dairyfree": "dairy-free",
    "dairy free": "dairy-free",
}

SIMPLIFY_TIPS = [
    "Read the whole recipe and prepare every ingredient before you start cooking",
    "Use pre-chopped vegetables or frozen alternatives to save time",
    "Clean as you go to keep the workspace manageable",
]


def normalize_diet(diet: Optional[str]) -> str:
    key = (diet or "").strip().lower().replace("_", "-")
    return DIET_ALIASES.get(key, DIET_ALIASES.get(key.replace("-", " "), key))


def _matching(lines: list[str], keywords: tuple[str, ...]) -> list[str]:
    return [line for line in lines if any(keyword in line.lower() for keyword in keywords)]


def _difficulty_level(ready_in_minutes: Optional[int]) -> str:
    minutes = ready_in_minutes or 0
    if minutes > 60:
        return "advanced"
    if minutes > 30:
        return "intermediate"
    return "beginner"


def search_fallback(query: str) -> dict:
    return {"searchTerm": query}


def recommendation_fallback(query: str) -> dict:
    return {"searchTerm": query, "number": DEFAULT_RECOMMENDATION_COUNT}


def analysis_fallback(recipe: dict) -> dict:
    """Recipe analysis built from the recipe's own flags and timing"""
    ingredients = ingredient_lines(recipe)
    ready_in = recipe.get("readyInMinutes")
    score = recipe.get("healthScore")
    if score is None:
        score = DEFAULT_HEALTH_SCORE

    allergens = []
    if not recipe.get("glutenFree"):
        allergens.append(
            {
                "allergen": "gluten",
                "severity": "medium",
                "sources": _matching(ingredients, GLUTEN_KEYWORDS),
            }
        )
    if not recipe.get("dairyFree"):
        allergens.append(
            {
                "allergen": "dairy",
                "severity": "medium",
                "sources": _matching(ingredients, DAIRY_KEYWORDS),
            }
        )

    strengths = []
    if recipe.get("vegan"):
        strengths.append("Fully plant-based")
    elif recipe.get("vegetarian"):
        strengths.append("Vegetarian")
    if recipe.get("glutenFree"):
        strengths.append("Gluten free")
    if recipe.get("dairyFree"):
        strengths.append("Dairy free")
    if recipe.get("veryHealthy"):
        strengths.append("Rated as very healthy")

    concerns = []
    if score < 40:
        concerns.append("Low overall health score")
    if recipe.get("sustainable") is False:
        concerns.append("Not marked as sustainable")

    level = _difficulty_level(ready_in)
    tips = ["Prepare all ingredients before you start cooking"]
    if level == "advanced":
        tips.append("Split the work into stages; some components can be made ahead")

    return {
        "healthScore": {
            "score": score,
            "explanation": "Based on the recipe's published health score",
        },
        "nutritionAnalysis": {
            "summary": "Detailed analysis is unavailable; this summary uses the recipe's dietary information",
            "strengths": strengths,
            "concerns": concerns,
        },
        "allergens": allergens,
        "ingredientSubstitutions": [],
        "cookingDifficulty": {
            "level": level,
            "explanation": f"Estimated from a total time of {ready_in or 'unknown'} minutes",
            "tips": tips,
        },
        "timeValidation": {"estimatedTime": ready_in, "discrepancy": None},
    }


def dietary_fallback(recipe: dict, diet: Optional[str]) -> dict:
    """Swap ingredients using the static table for ``diet``"""
    diet_key = normalize_diet(diet)
    rules = DIETARY_SUBSTITUTIONS.get(diet_key, [])

    modified = []
    for line in ingredient_lines(recipe):
        lowered = line.lower()
        for keyword, substitute, reason in rules:
            if keyword in lowered:
                modified.append({"original": line, "substitute": substitute, "reason": reason})
                break

    if not rules:
        explanation = f"No substitution rules are available for {diet or 'this diet'}."
    elif modified:
        explanation = (
            f"Standard {diet_key} substitutions were applied to {len(modified)} ingredient(s)."
        )
    else:
        explanation = f"This recipe appears to be {diet_key} friendly already."

    return {
        "explanation": explanation,
        "modifiedIngredients": modified,
        "modifiedInstructions": "\n".join(instruction_steps(recipe)),
    }


def simplify_fallback(recipe: dict) -> dict:
    ingredients = ingredient_lines(recipe)
    steps = instruction_steps(recipe)

    tips = list(SIMPLIFY_TIPS)
    if (recipe.get("readyInMinutes") or 0) > 60:
        tips.append("Make components ahead of time and assemble when ready to serve")
    if len(ingredients) > 10:
        tips.append("Group ingredients by step so each stage uses one bowl")

    return {
        "simplifiedIngredients": [
            {"original": line, "simplified": line, "reason": "No change needed"}
            for line in ingredients
        ],
        "simplifiedInstructions": "\n".join(
            f"{number}. {step}" for number, step in enumerate(steps, start=1)
        ),
        "tips": tips,
    }
