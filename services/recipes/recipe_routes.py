# services/recipes/recipe_routes.py
import hashlib
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response
from models import RecipeIdRequest, row_to_api
from recipe_scaling import MEASURE_SYSTEMS, scale_ingredients
from spoonacular_client import (
    SpoonacularClient,
    SpoonacularError,
    get_spoonacular,
    parse_search_options,
)
from validators import bad_request, require_recipe_id

from shared.auth_middleware import TokenData, get_current_user
from shared.database import Database, get_db
from shared.json_utils import safe_json_dumps, safe_json_parse
from shared.redis_client import RedisCache, get_search_cache
from shared.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()

QUOTA_PLACEHOLDER_MESSAGE = (
    "Your favourites are saved, but recipe details are temporarily unavailable "
    "due to API daily limit."
)


def search_cache_key(search_term: str, page: int, options: dict) -> str:
    """Stable key for a search, independent of query parameter order"""
    raw = json.dumps({"q": search_term, "page": page, "options": options}, sort_keys=True)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@router.get("/recipes/search")
async def search_recipes(
    request: Request,
    searchTerm: str = Query(""),
    page: int = Query(0, ge=0),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
    cache: Optional[RedisCache] = Depends(get_search_cache),
    settings: Settings = Depends(get_settings),
):
    """Recipe search with optional filters, cached per parameter set"""
    options = parse_search_options(request.query_params)
    key = search_cache_key(searchTerm, page, options)

    if cache:
        try:
            cached = await cache.get(key)
        except Exception as e:
            logger.warning(f"SEARCH_CACHE: Read failed, searching uncached: {e}")
            cached = None
        if cached:
            results = safe_json_parse(cached, expected_type=dict)
            if results is not None:
                logger.info(f"SEARCH_CACHE: Hit for '{searchTerm}' page {page}")
                return results

    results = await spoonacular.search_recipes(searchTerm, page, options or None)

    if cache:
        try:
            await cache.set(key, safe_json_dumps(results), ttl=settings.search_cache_ttl_seconds)
        except Exception as e:
            logger.warning(f"SEARCH_CACHE: Write failed: {e}")

    return results


@router.get("/recipes/autocomplete")
async def autocomplete_recipes(
    query: Optional[str] = Query(None),
    number: str = Query("10"),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    if not query or len(query.strip()) < 2:
        raise bad_request("Query must be at least 2 characters")

    try:
        count = int(number)
    except ValueError:
        count = 0
    if count < 1 or count > 25:
        raise bad_request("Number must be between 1 and 25")

    return await spoonacular.autocomplete(query.strip(), count)


@router.get("/recipes/favourite")
async def get_favourites(
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    """
    The user's favourite recipes with full details.

    When the recipe API quota is exhausted the saved ids are still returned,
    as placeholders flagged with ``_apiUnavailable``.
    """
    rows = await db.fetch_all(
        "SELECT recipe_id FROM favourite_recipes WHERE user_id = $1 ORDER BY created_at DESC",
        current_user.user_id,
    )
    recipe_ids = [row["recipe_id"] for row in rows]
    if not recipe_ids:
        return {"results": []}

    try:
        recipes = await spoonacular.get_information_bulk(recipe_ids)
    except SpoonacularError as e:
        if not e.is_quota_error:
            raise
        logger.warning(
            f"SPOONACULAR: Quota reached, returning {len(recipe_ids)} favourite placeholders"
        )
        return {
            "results": [
                {
                    "id": recipe_id,
                    "title": f"Recipe #{recipe_id} (Details unavailable - API limit reached)",
                    "image": None,
                    "_apiUnavailable": True,
                }
                for recipe_id in recipe_ids
            ],
            "_message": QUOTA_PLACEHOLDER_MESSAGE,
        }

    return {"results": recipes}


@router.post("/recipes/favourite", status_code=201)
async def add_favourite(
    request: RecipeIdRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    recipe_id = require_recipe_id(request.recipeId)

    existing = await db.fetch_one(
        "SELECT id FROM favourite_recipes WHERE user_id = $1 AND recipe_id = $2",
        current_user.user_id,
        recipe_id,
    )
    if existing:
        raise HTTPException(status_code=409, detail="Recipe is already in favorites")

    row = await db.fetch_one(
        """
        INSERT INTO favourite_recipes (recipe_id, user_id)
        VALUES ($1, $2)
        RETURNING id, recipe_id, user_id
        """,
        recipe_id,
        current_user.user_id,
    )
    logger.info(f"FAVOURITES: User {current_user.user_id} saved recipe {recipe_id}")
    return row_to_api(row)


@router.delete("/recipes/favourite", status_code=204)
async def remove_favourite(
    request: RecipeIdRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    recipe_id = require_recipe_id(request.recipeId)

    await db.execute(
        "DELETE FROM favourite_recipes WHERE user_id = $1 AND recipe_id = $2",
        current_user.user_id,
        recipe_id,
    )
    return Response(status_code=204)


@router.get("/recipes/{recipe_id}/information")
async def get_recipe_information(
    recipe_id: int = Path(..., gt=0),
    includeNutrition: bool = Query(False),
    addWinePairing: bool = Query(False),
    addTasteData: bool = Query(False),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    return await spoonacular.get_information(
        recipe_id,
        include_nutrition=includeNutrition,
        add_wine_pairing=addWinePairing,
        add_taste_data=addTasteData,
    )


@router.get("/recipes/{recipe_id}/similar")
async def get_similar_recipes(
    recipe_id: int = Path(..., gt=0),
    number: str = Query("10"),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    try:
        count = int(number)
    except ValueError:
        count = 0
    if count < 1 or count > 100:
        raise bad_request("Number must be between 1 and 100")

    return await spoonacular.get_similar(recipe_id, count)


@router.get("/recipes/{recipe_id}/summary")
async def get_recipe_summary(
    recipe_id: int = Path(..., gt=0),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    return await spoonacular.get_summary(recipe_id)


@router.get("/recipes/{recipe_id}/scale")
async def scale_recipe(
    recipe_id: int = Path(..., gt=0),
    servings: float = Query(...),
    unitSystem: Optional[str] = Query(None),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    """Ingredient amounts for a different number of servings"""
    if servings <= 0:
        raise bad_request("Servings must be a positive number")
    if unitSystem is not None and unitSystem not in MEASURE_SYSTEMS:
        raise bad_request("unitSystem must be 'metric' or 'us'")

    recipe = await spoonacular.get_information(recipe_id)
    original_servings = recipe.get("servings") or 1

    return {
        "recipeId": recipe_id,
        "originalServings": original_servings,
        "targetServings": servings,
        "ingredients": scale_ingredients(
            recipe, servings, original_servings, measure_system=unitSystem
        ),
    }


@router.get("/food/wine/dishes")
async def get_wine_dishes(
    wine: Optional[str] = Query(None),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    if not wine or not wine.strip():
        raise bad_request("Wine type is required")
    return await spoonacular.get_dish_pairing_for_wine(wine.strip())


@router.get("/food/wine/pairing")
async def get_wine_pairing(
    food: Optional[str] = Query(None),
    maxPrice: Optional[str] = Query(None),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    if not food or not food.strip():
        raise bad_request("Food is required")
    if len(food) >= 100:
        raise bad_request("Food must be less than 100 characters")

    max_price = None
    if maxPrice:
        try:
            max_price = float(maxPrice)
        except ValueError:
            raise bad_request("maxPrice must be a non-negative number")
        if max_price < 0:
            raise bad_request("maxPrice must be a non-negative number")

    return await spoonacular.get_wine_pairing(food.strip(), max_price)
