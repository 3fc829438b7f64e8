"""Image storage service for uploads to Cloudinary"""

import asyncio
import base64
import binascii
import logging

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import Depends, HTTPException

from shared.settings import Settings, get_settings

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB


def split_data_url(image_data: str) -> str:
    """Strip a ``data:image/...;base64,`` prefix if present"""
    return image_data.split(",", 1)[1] if "," in image_data else image_data


def estimated_size_bytes(base64_data: str) -> float:
    return len(base64_data) * 3 / 4


class StorageService:
    """Service for uploading images to Cloudinary"""

    def __init__(self, settings: Settings):
        if not settings.cloudinary_configured:
            raise ValueError("Missing Cloudinary configuration. Check environment variables.")

        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )

    async def upload_image(self, image_data: str, folder: str) -> dict:
        """
        Upload a base64 image (plain or data URL) into ``folder``.

        Returns:
            dict: imageUrl, publicId, width, height
        """
        base64_data = split_data_url(image_data)

        try:
            base64.b64decode(base64_data, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="Image data is not valid base64")

        # The SDK is blocking; keep the event loop free while it uploads
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                f"data:image/jpeg;base64,{base64_data}",
                folder=folder,
            )
        except CloudinaryError as e:
            logger.error(f"CLOUDINARY: Upload to folder {folder} failed: {e}")
            raise HTTPException(status_code=502, detail="Image upload failed")

        logger.info(f"CLOUDINARY: Uploaded {result.get('public_id')} to folder {folder}")

        return {
            "imageUrl": result.get("secure_url"),
            "publicId": result.get("public_id"),
            "width": result.get("width"),
            "height": result.get("height"),
        }


def get_storage_service(settings: Settings = Depends(get_settings)) -> StorageService:
    """Dependency returning a configured storage service"""
    try:
        return StorageService(settings)
    except ValueError as e:
        logger.error(f"CLOUDINARY: {e}")
        raise HTTPException(status_code=500, detail="Image storage is not configured")
