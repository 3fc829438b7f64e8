# services/recipes/main.py
import logging
import os
import sys
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

from ai_routes import router as ai_router
from collection_routes import router as collection_router
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from image_routes import router as image_router
from meal_plan_routes import router as meal_plan_router
from note_routes import router as note_router
from recipe_routes import router as recipe_router
from shopping_list_routes import router as shopping_list_router
from spoonacular_client import SpoonacularError

from shared.database import close_db, init_db
from shared.llm_client import ProviderConfigurationError
from shared.middleware import add_middleware_to_app, error_response
from shared.redis_client import close_redis, init_redis
from shared.settings import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    try:
        await init_db(settings)
    except Exception as e:
        logger.error(f"Database unavailable at startup, personal data routes will fail: {e}")

    try:
        await init_redis(settings)
    except Exception as e:
        logger.warning(f"Redis unavailable at startup, recipe search runs uncached: {e}")
        await close_redis()

    providers = [spec.name for spec in settings.provider_specs()]
    logger.info(f"AI providers configured: {', '.join(providers) or 'none'}")
    logger.info("Recipes service started successfully")
    yield

    logger.info("Shutting down recipes service...")
    await close_db()
    await close_redis()


# Create FastAPI app
app = FastAPI(
    title="recipehub Recipes Service",
    description="Recipe search, personal recipe organisation and AI-assisted recipe analysis",
    version="1.0.0",
    lifespan=lifespan,
)

# Add centralized middleware first (executed last)
add_middleware_to_app(
    app=app,
    service_name="recipes",
    max_request_size=10 * 1024 * 1024,
    # Base64 image payloads are 4/3 the size of the decoded image
    endpoint_limits={"/api/upload": 16 * 1024 * 1024},
    log_requests=True,
)

# CORS middleware (executed first)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(SpoonacularError)
async def spoonacular_exception_handler(request: Request, exc: SpoonacularError):
    if exc.is_quota_error:
        logger.warning(f"SPOONACULAR: Quota exhausted on {request.url.path}")
        return error_response(402, "Recipe API daily limit reached", str(exc), path=request.url.path)
    if exc.is_not_found:
        return error_response(404, "Recipe not found", str(exc), path=request.url.path)

    logger.error(f"SPOONACULAR: {request.method} {request.url.path} failed: {exc}")
    return error_response(500, "Internal server error", str(exc), path=request.url.path)


@app.exception_handler(ProviderConfigurationError)
async def provider_configuration_exception_handler(
    request: Request, exc: ProviderConfigurationError
):
    logger.error(f"RECIPE_AI: {request.url.path} called without any AI provider configured")
    return error_response(500, "AI service is not configured", str(exc))


# Include routers
app.include_router(recipe_router, prefix="/api", tags=["recipes"])
app.include_router(ai_router, prefix="/api", tags=["ai"])
app.include_router(collection_router, prefix="/api", tags=["collections"])
app.include_router(note_router, prefix="/api", tags=["notes"])
app.include_router(meal_plan_router, prefix="/api", tags=["meal-plan"])
app.include_router(shopping_list_router, prefix="/api", tags=["shopping-list"])
app.include_router(image_router, prefix="/api", tags=["images"])


@app.get("/api", response_class=HTMLResponse)
async def api_root():
    return """
    <!DOCTYPE html>
    <html>
    <head><title>recipehub API</title></head>
    <body>
        <h1>recipehub API is running</h1>
        <ul>
            <li>GET /api/recipes/search</li>
            <li>GET /api/recipes/autocomplete</li>
            <li>GET, POST, DELETE /api/recipes/favourite</li>
            <li>GET /api/recipes/{id}/information</li>
            <li>GET /api/recipes/{id}/similar</li>
            <li>GET /api/recipes/{id}/summary</li>
            <li>GET /api/recipes/{id}/scale</li>
            <li>GET /api/recipes/{id}/analyze</li>
            <li>POST /api/recipes/{id}/modify</li>
            <li>GET /api/ai/search</li>
            <li>POST /api/ai/recommendations</li>
            <li>GET, POST, PUT, DELETE /api/collections</li>
            <li>GET, POST, DELETE /api/recipes/notes</li>
            <li>GET, POST, DELETE /api/recipes/images</li>
            <li>GET, POST, DELETE /api/meal-plan</li>
            <li>GET, POST, PUT, DELETE /api/shopping-list</li>
            <li>POST /api/upload</li>
            <li>GET /api/food/wine/dishes</li>
            <li>GET /api/food/wine/pairing</li>
        </ul>
    </body>
    </html>
    """


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "recipes"}


if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
