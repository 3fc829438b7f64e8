# services/recipes/models.py
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def row_to_api(row: Optional[dict]) -> Optional[dict]:
    """Convert a database row to the camelCase JSON shape returned by the API"""
    if row is None:
        return None
    converted = {}
    for key, value in row.items():
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        converted[_camel(key)] = value
    return converted


# Favourites / notes / images


class RecipeIdRequest(BaseModel):
    recipeId: Optional[int] = None


class RecipeNoteRequest(BaseModel):
    recipeId: Optional[int] = None
    title: Optional[str] = None
    content: Optional[str] = None
    rating: Optional[Any] = None
    tags: Optional[Any] = None


class ImageType(str, Enum):
    MAIN = "main"
    STEP = "step"
    INGREDIENT = "ingredient"
    OTHER = "other"


class RecipeImageRequest(BaseModel):
    recipeId: Optional[int] = None
    imageUrl: Optional[str] = None
    imageType: Optional[str] = None
    order: Optional[int] = None
    caption: Optional[str] = None


class IdRequest(BaseModel):
    id: Optional[str | int] = None


class UploadRequest(BaseModel):
    imageData: Optional[Any] = None
    folder: Optional[Any] = None


# Collections


class CollectionCreateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class CollectionUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class CollectionItemRequest(BaseModel):
    recipeId: Optional[int] = None
    recipeTitle: Optional[str] = None
    recipeImage: Optional[str] = None
    order: Optional[int] = None


# Meal plans


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class MealPlanItemRequest(BaseModel):
    weekStart: Optional[str] = None
    recipeId: Optional[int] = None
    recipeTitle: Optional[str] = None
    recipeImage: Optional[str] = None
    dayOfWeek: Optional[int] = None
    mealType: Optional[str] = None
    servings: Optional[int] = None


class MealPlanDeleteRequest(BaseModel):
    itemId: Optional[str] = None


# Shopping lists


class ShoppingListItem(BaseModel):
    name: str
    quantity: str
    unit: Optional[str] = None
    category: str
    recipeIds: list[int] = Field(default_factory=list)
    checked: bool = False


class ShoppingListCreateRequest(BaseModel):
    name: Optional[str] = None
    recipeIds: Optional[list[int]] = None
    items: Optional[list[ShoppingListItem]] = None


class ShoppingListUpdateRequest(BaseModel):
    id: Optional[str | int] = None
    name: Optional[Any] = None
    items: Optional[Any] = None
    isCompleted: Optional[Any] = None


# AI requests


class RecommendationRequest(BaseModel):
    query: Optional[str] = None
    diet: Optional[str] = None
    cuisine: Optional[str] = None
    intolerances: Optional[str] = None
    maxReadyTime: Optional[int] = None


class ModificationType(str, Enum):
    DIETARY = "dietary"
    SIMPLIFY = "simplify"


class ModificationRequest(BaseModel):
    modificationType: Optional[str] = None
    dietType: Optional[str] = None


# AI results. Provider output and fallback output both pass through these
# models, so every endpoint returns the same keys on either path.


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SearchParams(_Lenient):
    searchTerm: str = Field(..., min_length=1)
    diet: Optional[str] = None
    cuisine: Optional[str] = None
    type: Optional[str] = None
    intolerances: Optional[str] = None
    maxReadyTime: Optional[int] = None

    @field_validator("diet", "cuisine", "type", "intolerances", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, list):
            value = ",".join(str(item) for item in value)
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("maxReadyTime", mode="before")
    @classmethod
    def positive_or_none(cls, value):
        if value in (None, "", 0):
            return None
        return value


class RecommendationParams(SearchParams):
    number: int = Field(10, ge=1, le=100)


class HealthScore(_Lenient):
    score: int = Field(..., ge=0, le=100)
    explanation: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, value):
        if isinstance(value, float):
            return round(value)
        return value


class NutritionAnalysis(_Lenient):
    summary: str = ""
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)


class Allergen(_Lenient):
    allergen: str
    severity: str = "medium"
    sources: list[str] = Field(default_factory=list)


class IngredientSubstitution(_Lenient):
    original: str
    substitute: str
    reason: str = ""
    dietaryBenefit: str = ""


class CookingDifficulty(_Lenient):
    level: str
    explanation: str = ""
    tips: list[str] = Field(default_factory=list)


class TimeValidation(_Lenient):
    estimatedTime: Optional[int] = None
    discrepancy: Optional[str] = None

    @field_validator("estimatedTime", mode="before")
    @classmethod
    def whole_minutes(cls, value):
        if isinstance(value, float):
            return round(value)
        return value

    @field_validator("discrepancy", mode="before")
    @classmethod
    def stringify(cls, value):
        if value is None or value is False:
            return None
        return str(value)


class RecipeAnalysis(_Lenient):
    healthScore: HealthScore
    nutritionAnalysis: NutritionAnalysis = Field(default_factory=NutritionAnalysis)
    allergens: list[Allergen] = Field(default_factory=list)
    ingredientSubstitutions: list[IngredientSubstitution] = Field(default_factory=list)
    cookingDifficulty: CookingDifficulty
    timeValidation: TimeValidation = Field(default_factory=TimeValidation)


def _join_steps(cls, value):
    # Models sometimes answer with a list of steps instead of one string
    if isinstance(value, list):
        return "\n".join(str(step) for step in value)
    return value


class ModifiedIngredient(_Lenient):
    original: str
    substitute: str
    reason: str = ""


class DietaryModification(_Lenient):
    explanation: str = ""
    modifiedIngredients: list[ModifiedIngredient] = Field(default_factory=list)
    modifiedInstructions: str = ""

    join_steps = field_validator("modifiedInstructions", mode="before")(_join_steps)


class SimplifiedIngredient(_Lenient):
    original: str
    simplified: str
    reason: str = ""


class Simplification(_Lenient):
    simplifiedIngredients: list[SimplifiedIngredient] = Field(default_factory=list)
    simplifiedInstructions: str = ""
    tips: list[str] = Field(default_factory=list)

    join_steps = field_validator("simplifiedInstructions", mode="before")(_join_steps)
