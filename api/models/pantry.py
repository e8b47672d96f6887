"""
Pantry and recipe models
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime


class FoodItemCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field("other", max_length=50)
    quantity: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=20)  # kg, g, l, ml, un
    batch: Optional[str] = Field(None, max_length=50)
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None


class FoodItemResponse(BaseModel):
    id: str
    name: str
    category: str
    quantity: float
    unit: str
    batch: Optional[str] = None
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None
    created_at: datetime
    # Derived
    days_until_expiry: Optional[int] = None
    status: str  # fresh | expiring | expired


class FoodItemListResponse(BaseModel):
    items: List[FoodItemResponse]
    total: int


class DeleteExpiredResponse(BaseModel):
    deleted: int


class RecipeCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    servings: int = Field(1, gt=0)
    prep_time_minutes: int = Field(..., ge=0)
    ingredients: List[str] = Field(..., min_length=1)
    tags: List[str] = []
    instructions: Optional[str] = None


class RecipeResponse(BaseModel):
    id: str
    title: str
    servings: int
    prep_time_minutes: int
    ingredients: List[str]
    tags: List[str]
    instructions: Optional[str] = None
    created_at: datetime


class RecipeMatchResponse(BaseModel):
    recipe: RecipeResponse
    match_percentage: int = Field(..., ge=0, le=100)
    available_ingredients: List[str]
    missing_ingredients: List[str]
    can_make: bool
