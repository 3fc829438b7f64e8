# services/recipes/collection_routes.py
import logging

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Response
from models import (
    CollectionCreateRequest,
    CollectionItemRequest,
    CollectionUpdateRequest,
    RecipeIdRequest,
    row_to_api,
)
from validators import bad_request, require_recipe_id

from shared.auth_middleware import TokenData, get_current_user
from shared.database import Database, affected_rows, get_db
from shared.uuid_utils import generate_id

logger = logging.getLogger(__name__)

router = APIRouter()

COLLECTION_COLUMNS = "id, user_id, name, description, color, created_at, updated_at"
ITEM_COLUMNS = 'id, collection_id, recipe_id, recipe_title, recipe_image, "order", created_at'


def _clean_collection_id(collection_id: str) -> str:
    collection_id = collection_id.strip()
    if not collection_id:
        raise bad_request("Invalid collection ID")
    return collection_id


async def _get_owned_collection(db: Database, collection_id: str, user_id: str) -> dict:
    collection = await db.fetch_one(
        f"SELECT {COLLECTION_COLUMNS} FROM recipe_collections WHERE id = $1 AND user_id = $2",
        collection_id,
        user_id,
    )
    if not collection:
        raise HTTPException(status_code=404, detail="Collection not found")
    return collection


async def _list_items(db: Database, collection_id: str) -> list[dict]:
    rows = await db.fetch_all(
        f'SELECT {ITEM_COLUMNS} FROM collection_items WHERE collection_id = $1 ORDER BY "order" ASC',
        collection_id,
    )
    return [row_to_api(row) for row in rows]


@router.get("/collections")
async def list_collections(
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    rows = await db.fetch_all(
        """
        SELECT c.id, c.user_id, c.name, c.description, c.color, c.created_at, c.updated_at,
               COUNT(i.id)::int AS item_count
        FROM recipe_collections c
        LEFT JOIN collection_items i ON i.collection_id = c.id
        WHERE c.user_id = $1
        GROUP BY c.id
        ORDER BY c.created_at DESC
        """,
        current_user.user_id,
    )
    return [row_to_api(row) for row in rows]


@router.post("/collections", status_code=201)
async def create_collection(
    request: CollectionCreateRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    name = (request.name or "").strip()
    if not name:
        raise bad_request("Collection name is required")
    if len(name) > 100:
        raise bad_request("Collection name must be less than 100 characters")

    description = (request.description or "").strip() or None
    if description and len(description) > 500:
        raise bad_request("Collection description must be less than 500 characters")

    row = await db.fetch_one(
        f"""
        INSERT INTO recipe_collections (id, user_id, name, description, color)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING {COLLECTION_COLUMNS}
        """,
        generate_id(),
        current_user.user_id,
        name,
        description,
        request.color or None,
    )
    logger.info(f"COLLECTIONS: User {current_user.user_id} created collection {row['id']}")
    return row_to_api(row)


@router.get("/collections/{collection_id}")
async def get_collection(
    collection_id: str,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Collection detail with its items in display order"""
    collection_id = _clean_collection_id(collection_id)
    collection = await _get_owned_collection(db, collection_id, current_user.user_id)

    items = await _list_items(db, collection_id)
    result = row_to_api(collection)
    result["items"] = items
    result["itemCount"] = len(items)
    return result


@router.put("/collections/{collection_id}")
async def update_collection(
    collection_id: str,
    request: CollectionUpdateRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    updates = {}
    fields = request.model_fields_set

    if request.name and request.name.strip():
        name = request.name.strip()
        if len(name) > 100:
            raise bad_request("Collection name must be less than 100 characters")
        updates["name"] = name
    if "description" in fields:
        description = request.description.strip() if request.description else None
        if description and len(description) > 500:
            raise bad_request("Collection description must be less than 500 characters")
        updates["description"] = description
    if "color" in fields:
        updates["color"] = request.color

    assignments = [f"{column} = ${index}" for index, column in enumerate(updates, start=3)]
    assignments.append("updated_at = CURRENT_TIMESTAMP")

    row = await db.fetch_one(
        f"""
        UPDATE recipe_collections SET {", ".join(assignments)}
        WHERE id = $1 AND user_id = $2
        RETURNING {COLLECTION_COLUMNS}
        """,
        collection_id,
        current_user.user_id,
        *updates.values(),
    )
    if not row:
        raise HTTPException(status_code=404, detail="Collection not found")
    return row_to_api(row)


@router.delete("/collections/{collection_id}", status_code=204)
async def delete_collection(
    collection_id: str,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    status = await db.execute(
        "DELETE FROM recipe_collections WHERE id = $1 AND user_id = $2",
        collection_id,
        current_user.user_id,
    )
    if affected_rows(status) == 0:
        raise HTTPException(status_code=404, detail="Collection not found")
    return Response(status_code=204)


@router.get("/collections/{collection_id}/items")
async def list_collection_items(
    collection_id: str,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    collection_id = _clean_collection_id(collection_id)
    await _get_owned_collection(db, collection_id, current_user.user_id)
    return await _list_items(db, collection_id)


@router.post("/collections/{collection_id}/items", status_code=201)
async def add_collection_item(
    collection_id: str,
    request: CollectionItemRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    collection_id = _clean_collection_id(collection_id)
    await _get_owned_collection(db, collection_id, current_user.user_id)

    if not request.recipeId or not (request.recipeTitle or "").strip():
        raise bad_request("Recipe ID and title are required")
    recipe_id = require_recipe_id(request.recipeId)

    if request.order is not None and request.order < 0:
        raise bad_request("Order must be a non-negative number")

    order = request.order
    if order is None:
        current = await db.fetch_one(
            'SELECT MAX("order") AS max_order FROM collection_items WHERE collection_id = $1',
            collection_id,
        )
        order = ((current or {}).get("max_order") or 0) + 1

    try:
        row = await db.fetch_one(
            f"""
            INSERT INTO collection_items (id, collection_id, recipe_id, recipe_title, recipe_image, "order")
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {ITEM_COLUMNS}
            """,
            generate_id(),
            collection_id,
            recipe_id,
            request.recipeTitle.strip(),
            request.recipeImage,
            order,
        )
    except asyncpg.UniqueViolationError:
        raise HTTPException(status_code=409, detail="Recipe is already in this collection")

    await db.execute(
        "UPDATE recipe_collections SET updated_at = CURRENT_TIMESTAMP WHERE id = $1",
        collection_id,
    )
    return row_to_api(row)


@router.delete("/collections/{collection_id}/items", status_code=204)
async def remove_collection_item(
    collection_id: str,
    request: RecipeIdRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    collection_id = _clean_collection_id(collection_id)
    await _get_owned_collection(db, collection_id, current_user.user_id)
    recipe_id = require_recipe_id(request.recipeId)

    status = await db.execute(
        "DELETE FROM collection_items WHERE collection_id = $1 AND recipe_id = $2",
        collection_id,
        recipe_id,
    )
    if affected_rows(status) == 0:
        raise HTTPException(status_code=404, detail="Item not found in collection")
    return Response(status_code=204)
