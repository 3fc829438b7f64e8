# services/recipes/shopping_list_routes.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from models import IdRequest, ShoppingListCreateRequest, ShoppingListUpdateRequest, row_to_api
from validators import bad_request

from shared.auth_middleware import TokenData, get_current_user
from shared.database import Database, get_db
from shared.json_utils import parse_jsonb_field, safe_json_dumps
from shared.uuid_utils import generate_id

logger = logging.getLogger(__name__)

router = APIRouter()

LIST_COLUMNS = "id, user_id, name, recipe_ids, items, is_completed, created_at, updated_at"
MAX_NAME_LENGTH = 200


def _format_list(row: dict) -> dict:
    shopping_list = row_to_api(row)
    shopping_list["items"] = parse_jsonb_field(row.get("items"), [], "items")
    shopping_list["recipeIds"] = list(row.get("recipe_ids") or [])
    return shopping_list


def _require_list_id(list_id) -> str:
    if list_id is None or list_id == "":
        raise bad_request("Shopping list ID is required")
    return str(list_id)


@router.get("/shopping-list")
async def list_shopping_lists(
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    rows = await db.fetch_all(
        f"SELECT {LIST_COLUMNS} FROM shopping_lists WHERE user_id = $1 ORDER BY created_at DESC",
        current_user.user_id,
    )
    return [_format_list(row) for row in rows]


@router.post("/shopping-list", status_code=201)
async def create_shopping_list(
    request: ShoppingListCreateRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    name = (request.name or "").strip()
    if not name or request.recipeIds is None or request.items is None:
        raise bad_request("Name, recipe IDs array, and items are required")
    if len(name) > MAX_NAME_LENGTH:
        raise bad_request("Name must be less than 200 characters")

    items = [item.model_dump() for item in request.items]
    row = await db.fetch_one(
        f"""
        INSERT INTO shopping_lists (id, user_id, name, recipe_ids, items)
        VALUES ($1, $2, $3, $4, $5::jsonb)
        RETURNING {LIST_COLUMNS}
        """,
        generate_id(),
        current_user.user_id,
        name,
        request.recipeIds,
        safe_json_dumps(items, "[]"),
    )
    logger.info(
        f"SHOPPING_LIST: User {current_user.user_id} created list with {len(items)} items"
    )
    return _format_list(row)


@router.put("/shopping-list")
async def update_shopping_list(
    request: ShoppingListUpdateRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Partial update of name, items or completion state"""
    list_id = _require_list_id(request.id)

    existing = await db.fetch_one(
        "SELECT id FROM shopping_lists WHERE id = $1 AND user_id = $2",
        list_id,
        current_user.user_id,
    )
    if not existing:
        raise HTTPException(status_code=404, detail="Shopping list not found")

    fields = request.model_fields_set
    updates = {}

    if "name" in fields and request.name is not None:
        if not isinstance(request.name, str) or not request.name.strip():
            raise bad_request("Name must be a non-empty string")
        if len(request.name.strip()) > MAX_NAME_LENGTH:
            raise bad_request("Name must be less than 200 characters")
        updates["name"] = request.name.strip()

    if "items" in fields and request.items is not None:
        if not isinstance(request.items, list):
            raise bad_request("Items must be an array")
        updates["items"] = safe_json_dumps(request.items, "[]")

    if "isCompleted" in fields and request.isCompleted is not None:
        if not isinstance(request.isCompleted, bool):
            raise bad_request("isCompleted must be a boolean")
        updates["is_completed"] = request.isCompleted

    assignments = []
    for index, column in enumerate(updates, start=2):
        cast = "::jsonb" if column == "items" else ""
        assignments.append(f"{column} = ${index}{cast}")
    assignments.append("updated_at = CURRENT_TIMESTAMP")

    row = await db.fetch_one(
        f"""
        UPDATE shopping_lists SET {", ".join(assignments)}
        WHERE id = $1
        RETURNING {LIST_COLUMNS}
        """,
        list_id,
        *updates.values(),
    )
    return _format_list(row)


@router.delete("/shopping-list", status_code=204)
async def delete_shopping_list(
    request: IdRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    list_id = _require_list_id(request.id)

    existing = await db.fetch_one(
        "SELECT id FROM shopping_lists WHERE id = $1 AND user_id = $2",
        list_id,
        current_user.user_id,
    )
    if not existing:
        raise HTTPException(status_code=404, detail="Shopping list not found")

    await db.execute("DELETE FROM shopping_lists WHERE id = $1", list_id)
    return Response(status_code=204)
