# services/recipes/ai_routes.py
import logging
from typing import Callable, Optional

import httpx
from ai_fallbacks import (
    analysis_fallback,
    dietary_fallback,
    recommendation_fallback,
    search_fallback,
    simplify_fallback,
)
from ai_prompts import (
    build_analysis_request,
    build_modification_request,
    build_recommendation_request,
    build_search_translation_request,
)
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from models import (
    DietaryModification,
    ModificationRequest,
    ModificationType,
    RecipeAnalysis,
    RecommendationParams,
    RecommendationRequest,
    SearchParams,
    Simplification,
)
from pydantic import BaseModel, ValidationError
from spoonacular_client import SpoonacularClient, get_spoonacular

from shared.json_utils import extract_json_object
from shared.llm_client import ChainResult, ProviderChain
from shared.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()

AI_SOURCE_HEADER = "X-AI-Source"
SOURCE_MODEL = "model"
SOURCE_FALLBACK = "fallback"


async def get_ai_chain(settings: Settings = Depends(get_settings)):
    """Dependency yielding the provider chain bound to a per-request HTTP client"""
    async with httpx.AsyncClient(timeout=settings.llm_timeout_seconds) as client:
        yield ProviderChain.from_specs(settings.provider_specs(), client)


def schema_extractor(
    model: type[BaseModel], exclude_none: bool = False
) -> Callable[[Optional[str]], Optional[dict]]:
    """
    Build an extractor that only accepts output matching ``model``.

    Output that parses as JSON but does not fit the endpoint's shape counts as a
    parse failure, so the chain moves on to the next provider.
    """

    def extract(text: Optional[str]) -> Optional[dict]:
        data = extract_json_object(text)
        if data is None:
            return None
        try:
            return model.model_validate(data).model_dump(exclude_none=exclude_none)
        except ValidationError as e:
            logger.warning(
                f"RECIPE_AI: Provider output does not match {model.__name__}: "
                f"{e.error_count()} error(s)"
            )
            return None

    return extract


def _finish(
    response: Response,
    outcome: Optional[ChainResult],
    fallback: Callable[[], dict],
    model: type[BaseModel],
    exclude_none: bool = False,
) -> dict:
    """Return the provider result, or the normalized fallback when the chain came up empty"""
    if outcome is not None and outcome.succeeded:
        response.headers[AI_SOURCE_HEADER] = SOURCE_MODEL
        return outcome.result

    response.headers[AI_SOURCE_HEADER] = SOURCE_FALLBACK
    return model.model_validate(fallback()).model_dump(exclude_none=exclude_none)


def _require_text(value: Optional[str], name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    return text


@router.get("/ai/search")
async def translate_search(
    response: Response,
    query: Optional[str] = Query(None),
    chain: ProviderChain = Depends(get_ai_chain),
):
    """Turn a natural language request into recipe search parameters"""
    query = _require_text(query, "Query")
    chain.ensure_configured()

    logger.info(f"RECIPE_AI: Translating search query '{query[:80]}'")
    outcome = await chain.run(
        build_search_translation_request(query),
        extract=schema_extractor(SearchParams, exclude_none=True),
    )
    return _finish(
        response, outcome, lambda: search_fallback(query), SearchParams, exclude_none=True
    )


@router.post("/ai/recommendations")
async def recommend(
    request: RecommendationRequest,
    response: Response,
    chain: ProviderChain = Depends(get_ai_chain),
):
    """
    Recommendation search parameters from a free-text wish.

    Unlike the other AI endpoints this one degrades to the rule-based result
    when no provider is configured at all.
    """
    query = _require_text(request.query, "Query")

    outcome = None
    if chain.configured:
        outcome = await chain.run(
            build_recommendation_request(
                query,
                diet=request.diet,
                cuisine=request.cuisine,
                intolerances=request.intolerances,
                max_ready_time=request.maxReadyTime,
            ),
            extract=schema_extractor(RecommendationParams, exclude_none=True),
        )
    else:
        logger.warning("RECIPE_AI: No provider configured, using rule-based recommendations")

    return _finish(
        response,
        outcome,
        lambda: recommendation_fallback(query),
        RecommendationParams,
        exclude_none=True,
    )


@router.get("/recipes/{recipe_id}/analyze")
async def analyze_recipe(
    response: Response,
    recipe_id: int = Path(..., gt=0),
    chain: ProviderChain = Depends(get_ai_chain),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    chain.ensure_configured()

    recipe = await spoonacular.get_information(recipe_id, include_nutrition=True)
    logger.info(f"RECIPE_AI: Analyzing recipe {recipe_id} ({recipe.get('title', 'untitled')})")

    outcome = await chain.run(
        build_analysis_request(recipe), extract=schema_extractor(RecipeAnalysis)
    )
    return _finish(response, outcome, lambda: analysis_fallback(recipe), RecipeAnalysis)


@router.post("/recipes/{recipe_id}/modify")
async def modify_recipe(
    request: ModificationRequest,
    response: Response,
    recipe_id: int = Path(..., gt=0),
    chain: ProviderChain = Depends(get_ai_chain),
    spoonacular: SpoonacularClient = Depends(get_spoonacular),
):
    """Dietary adaptation or simplification of a recipe"""
    try:
        modification_type = ModificationType(request.modificationType)
    except ValueError:
        raise HTTPException(
            status_code=400, detail="modificationType must be 'dietary' or 'simplify'"
        )

    diet = None
    if modification_type == ModificationType.DIETARY:
        diet = _require_text(request.dietType, "dietType")

    chain.ensure_configured()

    recipe = await spoonacular.get_information(recipe_id)
    logger.info(
        f"RECIPE_AI: {modification_type.value} modification of recipe {recipe_id}"
        + (f" for {diet}" if diet else "")
    )

    ai_request = build_modification_request(recipe, modification_type.value, diet)

    if modification_type == ModificationType.DIETARY:
        outcome = await chain.run(ai_request, extract=schema_extractor(DietaryModification))
        return _finish(
            response, outcome, lambda: dietary_fallback(recipe, diet), DietaryModification
        )

    outcome = await chain.run(ai_request, extract=schema_extractor(Simplification))
    return _finish(response, outcome, lambda: simplify_fallback(recipe), Simplification)
