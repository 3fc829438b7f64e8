# services/recipes/image_routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from models import IdRequest, ImageType, RecipeImageRequest, UploadRequest, row_to_api
from validators import bad_request, is_http_url, require_recipe_id

from shared.auth_middleware import TokenData, get_current_user
from shared.database import Database, get_db
from shared.storage_service import (
    MAX_IMAGE_BYTES,
    StorageService,
    estimated_size_bytes,
    get_storage_service,
    split_data_url,
)
from shared.uuid_utils import generate_id

logger = logging.getLogger(__name__)

router = APIRouter()

IMAGE_COLUMNS = (
    'id, user_id, recipe_id, image_url, image_type, "order", caption, created_at, updated_at'
)
MAX_FOLDER_LENGTH = 200


@router.post("/upload")
async def upload_image(
    request: UploadRequest,
    current_user: TokenData = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
):
    """Upload a base64 encoded image to the image CDN"""
    if not request.imageData:
        raise bad_request("Image data is required")
    if not isinstance(request.imageData, str):
        raise bad_request("Image data must be a string")

    size_bytes = estimated_size_bytes(split_data_url(request.imageData))
    if size_bytes > MAX_IMAGE_BYTES:
        raise bad_request(
            f"Image size exceeds maximum of 10MB. Current size: {size_bytes / 1024 / 1024:.2f}MB"
        )

    folder = request.folder
    if folder and (not isinstance(folder, str) or len(folder) > MAX_FOLDER_LENGTH):
        raise bad_request("Folder name must be a string less than 200 characters")

    return await storage.upload_image(
        request.imageData, folder or f"recipe-app/{current_user.user_id}"
    )


@router.get("/recipes/images")
async def list_recipe_images(
    recipeId: Optional[str] = Query(None),
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    recipe_id = require_recipe_id(recipeId)

    rows = await db.fetch_all(
        f"""
        SELECT {IMAGE_COLUMNS} FROM recipe_images
        WHERE user_id = $1 AND recipe_id = $2
        ORDER BY image_type ASC, "order" ASC
        """,
        current_user.user_id,
        recipe_id,
    )
    return [row_to_api(row) for row in rows]


@router.post("/recipes/images", status_code=201)
async def add_recipe_image(
    request: RecipeImageRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    if not request.recipeId or not request.imageUrl or not request.imageType:
        raise bad_request("Recipe ID, image URL, and image type are required")

    recipe_id = require_recipe_id(request.recipeId)

    if not is_http_url(request.imageUrl):
        raise bad_request("Invalid image URL format")

    try:
        image_type = ImageType(request.imageType)
    except ValueError:
        raise bad_request(
            f"Invalid image type. Must be one of: {', '.join(kind.value for kind in ImageType)}"
        )

    if request.order is not None and request.order < 0:
        raise bad_request("Order must be a non-negative number")

    order = request.order
    if order is None:
        current = await db.fetch_one(
            """
            SELECT MAX("order") AS max_order FROM recipe_images
            WHERE user_id = $1 AND recipe_id = $2 AND image_type = $3
            """,
            current_user.user_id,
            recipe_id,
            image_type.value,
        )
        order = ((current or {}).get("max_order") or 0) + 1

    row = await db.fetch_one(
        f"""
        INSERT INTO recipe_images (id, user_id, recipe_id, image_url, image_type, "order", caption)
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING {IMAGE_COLUMNS}
        """,
        generate_id(),
        current_user.user_id,
        recipe_id,
        request.imageUrl,
        image_type.value,
        order,
        request.caption.strip() if request.caption else None,
    )
    return row_to_api(row)


@router.delete("/recipes/images", status_code=204)
async def delete_recipe_image(
    request: IdRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    if request.id is None or request.id == "":
        raise bad_request("Image ID is required")
    image_id = str(request.id)

    existing = await db.fetch_one(
        "SELECT id FROM recipe_images WHERE id = $1 AND user_id = $2",
        image_id,
        current_user.user_id,
    )
    if not existing:
        raise HTTPException(status_code=404, detail="Image not found")

    await db.execute("DELETE FROM recipe_images WHERE id = $1", image_id)
    return Response(status_code=204)
