# services/recipes/note_routes.py
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from models import RecipeIdRequest, RecipeNoteRequest, row_to_api
from validators import bad_request, require_recipe_id

from shared.auth_middleware import TokenData, get_current_user
from shared.database import Database, affected_rows, get_db
from shared.uuid_utils import generate_id

logger = logging.getLogger(__name__)

router = APIRouter()

NOTE_COLUMNS = "id, user_id, recipe_id, title, content, rating, tags, created_at, updated_at"
MAX_CONTENT_LENGTH = 10000
MAX_TITLE_LENGTH = 200
MAX_TAGS = 20


def _validate_rating(rating: Any) -> Optional[int]:
    if rating is None:
        return None
    if isinstance(rating, bool) or not isinstance(rating, (int, float, str)):
        raise bad_request("Rating must be an integer between 1 and 5")
    try:
        value = float(rating)
    except ValueError:
        raise bad_request("Rating must be an integer between 1 and 5")
    if not value.is_integer() or value < 1 or value > 5:
        raise bad_request("Rating must be an integer between 1 and 5")
    return int(value)


def _validate_tags(tags: Any) -> list[str]:
    if tags is None:
        return []
    if not isinstance(tags, list) or len(tags) > MAX_TAGS:
        raise bad_request(f"Tags must be an array with maximum {MAX_TAGS} items")
    return [str(tag) for tag in tags]


@router.get("/recipes/notes")
async def get_note(
    recipeId: Optional[str] = Query(None),
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    recipe_id = require_recipe_id(recipeId)

    note = await db.fetch_one(
        f"SELECT {NOTE_COLUMNS} FROM recipe_notes WHERE user_id = $1 AND recipe_id = $2",
        current_user.user_id,
        recipe_id,
    )
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    return row_to_api(note)


@router.post("/recipes/notes")
async def save_note(
    request: RecipeNoteRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Create or replace the user's note for a recipe"""
    recipe_id = require_recipe_id(request.recipeId)

    content = (request.content or "").strip()
    if not content:
        raise bad_request("Note content is required")
    if len(content) > MAX_CONTENT_LENGTH:
        raise bad_request("Note content must be less than 10,000 characters")

    title = request.title.strip() if request.title else None
    if title and len(title) > MAX_TITLE_LENGTH:
        raise bad_request("Note title must be less than 200 characters")

    rating = _validate_rating(request.rating)
    tags = _validate_tags(request.tags)

    # Omitted title/rating keep their stored values; tags are always replaced
    note = await db.fetch_one(
        f"""
        INSERT INTO recipe_notes (id, user_id, recipe_id, title, content, rating, tags)
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        ON CONFLICT (user_id, recipe_id) DO UPDATE SET
            title = COALESCE(EXCLUDED.title, recipe_notes.title),
            content = EXCLUDED.content,
            rating = COALESCE(EXCLUDED.rating, recipe_notes.rating),
            tags = EXCLUDED.tags,
            updated_at = CURRENT_TIMESTAMP
        RETURNING {NOTE_COLUMNS}
        """,
        generate_id(),
        current_user.user_id,
        recipe_id,
        title,
        content,
        rating,
        tags,
    )
    logger.info(f"NOTES: User {current_user.user_id} saved note for recipe {recipe_id}")
    return row_to_api(note)


@router.delete("/recipes/notes", status_code=204)
async def delete_note(
    request: RecipeIdRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    recipe_id = require_recipe_id(request.recipeId)

    status = await db.execute(
        "DELETE FROM recipe_notes WHERE user_id = $1 AND recipe_id = $2",
        current_user.user_id,
        recipe_id,
    )
    if affected_rows(status) == 0:
        raise HTTPException(status_code=404, detail="Note not found")
    return Response(status_code=204)
