# services/recipes/meal_plan_routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from models import MealPlanDeleteRequest, MealPlanItemRequest, MealType, row_to_api
from validators import bad_request, parse_week_start, require_recipe_id

from shared.auth_middleware import TokenData, get_current_user
from shared.database import Database, get_db
from shared.uuid_utils import generate_id

logger = logging.getLogger(__name__)

router = APIRouter()

ITEM_COLUMNS = (
    'id, meal_plan_id, recipe_id, recipe_title, recipe_image, day_of_week, meal_type, servings, "order", created_at'
)


@router.get("/meal-plan")
async def get_meal_plan(
    weekStart: Optional[str] = Query(None),
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    week_start = parse_week_start(weekStart)

    plan = await db.fetch_one(
        """
        SELECT id, user_id, week_start, created_at, updated_at
        FROM meal_plans WHERE user_id = $1 AND week_start = $2
        """,
        current_user.user_id,
        week_start,
    )
    if not plan:
        raise HTTPException(status_code=404, detail="Meal plan not found")

    meals = await db.fetch_all(
        f"""
        SELECT {ITEM_COLUMNS} FROM meal_plan_items
        WHERE meal_plan_id = $1
        ORDER BY day_of_week ASC, meal_type ASC, "order" ASC
        """,
        plan["id"],
    )

    result = row_to_api(plan)
    result["meals"] = [row_to_api(meal) for meal in meals]
    return result


@router.post("/meal-plan", status_code=201)
async def add_meal(
    request: MealPlanItemRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """
    Add a recipe to a day of the week's plan.

    The plan for ``weekStart`` is created on first use; new meals go to the
    end of their day and meal type.
    """
    if (
        not request.weekStart
        or request.recipeId is None
        or not (request.recipeTitle or "").strip()
        or request.dayOfWeek is None
        or not request.mealType
    ):
        raise bad_request(
            "Week start, recipe ID, recipe title, day of week, and meal type are required"
        )

    recipe_id = require_recipe_id(request.recipeId)

    if request.dayOfWeek < 0 or request.dayOfWeek > 6:
        raise bad_request("Day of week must be between 0 and 6")

    try:
        meal_type = MealType(request.mealType)
    except ValueError:
        raise bad_request(
            f"Meal type must be one of: {', '.join(meal.value for meal in MealType)}"
        )

    servings = 1 if request.servings is None else request.servings
    if servings <= 0:
        raise bad_request("Servings must be a positive number")

    week_start = parse_week_start(request.weekStart)

    async with db.transaction() as conn:
        plan = await conn.fetchrow(
            """
            INSERT INTO meal_plans (id, user_id, week_start)
            VALUES ($1, $2, $3)
            ON CONFLICT (user_id, week_start) DO UPDATE SET updated_at = CURRENT_TIMESTAMP
            RETURNING id
            """,
            generate_id(),
            current_user.user_id,
            week_start,
        )

        max_order = await conn.fetchval(
            """
            SELECT MAX("order") FROM meal_plan_items
            WHERE meal_plan_id = $1 AND day_of_week = $2 AND meal_type = $3
            """,
            plan["id"],
            request.dayOfWeek,
            meal_type.value,
        )

        item = await conn.fetchrow(
            f"""
            INSERT INTO meal_plan_items (
                id, meal_plan_id, recipe_id, recipe_title, recipe_image,
                day_of_week, meal_type, servings, "order"
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING {ITEM_COLUMNS}
            """,
            generate_id(),
            plan["id"],
            recipe_id,
            request.recipeTitle.strip(),
            request.recipeImage,
            request.dayOfWeek,
            meal_type.value,
            servings,
            (max_order or 0) + 1,
        )

    logger.info(
        f"MEAL_PLAN: User {current_user.user_id} planned recipe {recipe_id} "
        f"for {week_start} day {request.dayOfWeek} ({meal_type.value})"
    )
    return row_to_api(dict(item))


@router.delete("/meal-plan", status_code=204)
async def remove_meal(
    request: MealPlanDeleteRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    if not request.itemId:
        raise bad_request("Item ID is required")

    item = await db.fetch_one(
        """
        SELECT i.id FROM meal_plan_items i
        JOIN meal_plans p ON p.id = i.meal_plan_id
        WHERE i.id = $1 AND p.user_id = $2
        """,
        request.itemId,
        current_user.user_id,
    )
    if not item:
        raise HTTPException(status_code=404, detail="Meal plan item not found")

    await db.execute("DELETE FROM meal_plan_items WHERE id = $1", request.itemId)
    return Response(status_code=204)
