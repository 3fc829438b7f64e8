# services/recipes/spoonacular_client.py
"""
Spoonacular recipe API integration using direct HTTP calls
"""

import logging
from typing import Any, Optional

import httpx
from fastapi import Depends

from shared.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 10

BOOLEAN_SEARCH_OPTIONS = (
    "fillIngredients",
    "addRecipeInformation",
    "addRecipeInstructions",
    "addRecipeNutrition",
    "instructionsRequired",
    "ignorePantry",
)

STRING_SEARCH_OPTIONS = (
    "cuisine",
    "excludeCuisine",
    "diet",
    "intolerances",
    "equipment",
    "includeIngredients",
    "excludeIngredients",
    "type",
    "sort",
    "author",
    "tags",
    "titleMatch",
)

_NUTRIENT_BOUNDS = (
    "Calories", "Protein", "Carbs", "Fat", "Alcohol", "Caffeine", "Copper", "Calcium",
    "Choline", "Cholesterol", "Fluoride", "SaturatedFat", "VitaminA", "VitaminC",
    "VitaminD", "VitaminE", "VitaminK", "VitaminB1", "VitaminB2", "VitaminB5",
    "VitaminB3", "VitaminB6", "VitaminB12", "Fiber", "Folate", "FolicAcid", "Iodine",
    "Iron", "Magnesium", "Manganese", "Phosphorus", "Potassium", "Selenium", "Sodium",
    "Sugar", "Zinc",
)

NUMBER_SEARCH_OPTIONS = (
    ("maxReadyTime", "minServings", "maxServings")
    + tuple(f"{bound}{nutrient}" for nutrient in _NUTRIENT_BOUNDS for bound in ("min", "max"))
    + ("recipeBoxId",)
)


class SpoonacularError(Exception):
    """Error returned by (or while reaching) the recipe API"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_quota_error(self) -> bool:
        message = str(self).lower()
        return self.status_code == 402 or "points limit" in message or "daily limit" in message

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


def parse_search_options(query_params) -> dict[str, Any]:
    """
    Extract the optional recipe search filters from query parameters.

    Booleans are only forwarded when "true", numbers only when they parse as
    integers, and unknown keys are ignored.
    """
    options: dict[str, Any] = {}

    for key in BOOLEAN_SEARCH_OPTIONS:
        if query_params.get(key) == "true":
            options[key] = True

    for key in STRING_SEARCH_OPTIONS:
        value = query_params.get(key)
        if value:
            options[key] = value

    sort_direction = query_params.get("sortDirection")
    if sort_direction in ("asc", "desc"):
        options["sortDirection"] = sort_direction

    for key in NUMBER_SEARCH_OPTIONS:
        value = query_params.get(key)
        if value:
            try:
                options[key] = int(value)
            except ValueError:
                continue

    return options


class SpoonacularClient:
    """Recipe API client using direct HTTP calls"""

    def __init__(self, api_key: str, client: httpx.AsyncClient, base_url: str):
        self.api_key = api_key
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        query = {key: value for key, value in (params or {}).items() if value is not None}
        query["apiKey"] = self.api_key

        try:
            response = await self.client.get(f"{self.base_url}{path}", params=query)
        except httpx.TimeoutException:
            raise SpoonacularError(f"Timeout calling recipe API {path}", status_code=504)
        except httpx.HTTPError as e:
            raise SpoonacularError(f"Connection error to recipe API: {e}", status_code=502)

        if response.status_code != 200:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            logger.warning(f"SPOONACULAR: {path} returned {response.status_code}: {message[:200]}")
            raise SpoonacularError(
                f"Recipe API error {response.status_code}: {message}",
                status_code=response.status_code,
            )

        return response.json()

    async def search_recipes(
        self, search_term: str, page: int = 0, options: Optional[dict] = None
    ) -> dict:
        params = {
            "query": search_term,
            "number": SEARCH_PAGE_SIZE,
            "offset": max(page, 0) * SEARCH_PAGE_SIZE,
        }
        for key, value in (options or {}).items():
            params[key] = str(value).lower() if isinstance(value, bool) else value
        return await self._get("/recipes/complexSearch", params)

    async def autocomplete(self, query: str, number: int = 10) -> list:
        return await self._get("/recipes/autocomplete", {"query": query, "number": number})

    async def get_information(
        self,
        recipe_id: int,
        include_nutrition: bool = False,
        add_wine_pairing: bool = False,
        add_taste_data: bool = False,
    ) -> dict:
        return await self._get(
            f"/recipes/{recipe_id}/information",
            {
                "includeNutrition": str(include_nutrition).lower(),
                "addWinePairing": str(add_wine_pairing).lower(),
                "addTasteData": str(add_taste_data).lower(),
            },
        )

    async def get_similar(self, recipe_id: int, number: int = 10) -> list:
        return await self._get(f"/recipes/{recipe_id}/similar", {"number": number})

    async def get_summary(self, recipe_id: int) -> dict:
        return await self._get(f"/recipes/{recipe_id}/summary")

    async def get_information_bulk(self, recipe_ids: list[int]) -> list:
        return await self._get(
            "/recipes/informationBulk", {"ids": ",".join(str(rid) for rid in recipe_ids)}
        )

    async def get_dish_pairing_for_wine(self, wine: str) -> dict:
        return await self._get("/food/wine/dishes", {"wine": wine})

    async def get_wine_pairing(self, food: str, max_price: Optional[float] = None) -> dict:
        return await self._get("/food/wine/pairing", {"food": food, "maxPrice": max_price})


async def get_spoonacular(settings: Settings = Depends(get_settings)):
    """Dependency yielding a recipe API client bound to a per-request HTTP client"""
    if not settings.spoonacular_api_key:
        raise SpoonacularError("SPOONACULAR_API_KEY is not configured", status_code=500)

    async with httpx.AsyncClient(timeout=settings.spoonacular_timeout_seconds) as client:
        yield SpoonacularClient(settings.spoonacular_api_key, client, settings.spoonacular_base_url)
