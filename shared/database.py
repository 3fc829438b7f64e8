# shared/database.py
import logging
import ssl
from contextlib import asynccontextmanager
from typing import Any, Optional

import asyncpg

from shared.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Connection pool
_pool: Optional[asyncpg.Pool] = None


class Database:
    """Database wrapper for asyncpg with connection pooling"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def fetch_one(self, query: str, *args) -> Optional[dict[str, Any]]:
        """Fetch a single row"""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def fetch_all(self, query: str, *args) -> list[dict[str, Any]]:
        """Fetch multiple rows"""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def execute(self, query: str, *args) -> str:
        """Execute a query without returning results"""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def execute_schema(self, query: str, *args) -> str:
        """Execute a schema/DDL query with extended timeout"""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args, timeout=300)

    @asynccontextmanager
    async def transaction(self):
        """Context manager for database transactions"""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn


def affected_rows(status: str) -> int:
    """Row count from an asyncpg command status such as 'DELETE 3'"""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


async def init_db(settings: Settings = None):
    """Initialize database connection pool"""
    global _pool
    settings = settings or get_settings()

    try:
        logger.info("Starting database initialization...")

        ssl_context = None
        if settings.environment in ["production", "staging"]:
            ssl_context = ssl.create_default_context()
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE

        logger.info(
            f"Creating database connection pool for {settings.service_name} service "
            f"(min: {settings.db_pool_min_size}, max: {settings.db_pool_max_size})..."
        )
        _pool = await asyncpg.create_pool(
            settings.dsn,
            ssl=ssl_context,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            max_queries=50000,
            max_cached_statement_lifetime=300,
            command_timeout=30,
            max_inactive_connection_lifetime=300,
        )
        logger.info("Database connection pool created successfully")

        if not settings.skip_schema_init:
            logger.info("Starting schema creation/update...")
            await create_tables()
            logger.info("Schema creation/update completed")
        else:
            logger.info("Skipping schema initialization (SKIP_SCHEMA_INIT=true)")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        if _pool:
            await _pool.close()
            _pool = None
        raise


async def close_db():
    """Close database connection pool"""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None


async def get_db() -> Database:
    """Dependency to get database instance"""
    if not _pool:
        await init_db()
    return Database(_pool)


async def create_tables():
    """Create database tables if they don't exist"""
    db = await get_db()
    logger.info("Starting database schema creation/update...")

    await db.execute("SELECT 1")
    logger.info("Database connection verified")

    # Favourites
    await db.execute_schema(
        """
        CREATE TABLE IF NOT EXISTS favourite_recipes (
            id SERIAL PRIMARY KEY,
            recipe_id INTEGER NOT NULL,
            user_id TEXT NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, recipe_id)
        );

        CREATE INDEX IF NOT EXISTS idx_favourite_recipes_user ON favourite_recipes(user_id);
    """
    )

    # Collections and their items
    await db.execute_schema(
        """
        CREATE TABLE IF NOT EXISTS recipe_collections (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name VARCHAR(100) NOT NULL,
            description VARCHAR(500),
            color VARCHAR(50),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_recipe_collections_user ON recipe_collections(user_id);

        CREATE TABLE IF NOT EXISTS collection_items (
            id TEXT PRIMARY KEY,
            collection_id TEXT NOT NULL REFERENCES recipe_collections(id) ON DELETE CASCADE,
            recipe_id INTEGER NOT NULL,
            recipe_title TEXT NOT NULL,
            recipe_image TEXT,
            "order" INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(collection_id, recipe_id)
        );

        CREATE INDEX IF NOT EXISTS idx_collection_items_collection ON collection_items(collection_id);
    """
    )

    # Notes
    await db.execute_schema(
        """
        CREATE TABLE IF NOT EXISTS recipe_notes (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            recipe_id INTEGER NOT NULL,
            title VARCHAR(200),
            content TEXT NOT NULL,
            rating INTEGER,
            tags TEXT[] DEFAULT '{}',
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, recipe_id)
        );

        CREATE INDEX IF NOT EXISTS idx_recipe_notes_user ON recipe_notes(user_id);
        CREATE INDEX IF NOT EXISTS idx_recipe_notes_recipe ON recipe_notes(recipe_id);
    """
    )

    # Meal plans
    await db.execute_schema(
        """
        CREATE TABLE IF NOT EXISTS meal_plans (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            week_start DATE NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, week_start)
        );

        CREATE INDEX IF NOT EXISTS idx_meal_plans_user ON meal_plans(user_id);

        CREATE TABLE IF NOT EXISTS meal_plan_items (
            id TEXT PRIMARY KEY,
            meal_plan_id TEXT NOT NULL REFERENCES meal_plans(id) ON DELETE CASCADE,
            recipe_id INTEGER NOT NULL,
            recipe_title TEXT NOT NULL,
            recipe_image TEXT,
            day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
            meal_type VARCHAR(50) NOT NULL,
            servings INTEGER NOT NULL DEFAULT 1,
            "order" INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_meal_plan_items_plan ON meal_plan_items(meal_plan_id);
    """
    )

    # Shopping lists
    await db.execute_schema(
        """
        CREATE TABLE IF NOT EXISTS shopping_lists (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name VARCHAR(200) NOT NULL,
            recipe_ids INTEGER[] DEFAULT '{}',
            items JSONB NOT NULL DEFAULT '[]',
            is_completed BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_shopping_lists_user ON shopping_lists(user_id);
    """
    )

    # User recipe images
    await db.execute_schema(
        """
        CREATE TABLE IF NOT EXISTS recipe_images (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            recipe_id INTEGER NOT NULL,
            image_url TEXT NOT NULL,
            image_type VARCHAR(20) NOT NULL,
            "order" INTEGER NOT NULL DEFAULT 0,
            caption TEXT,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_recipe_images_user_recipe ON recipe_images(user_id, recipe_id);
    """
    )

    logger.info("Database schema creation/update completed")
