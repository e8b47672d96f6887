"""
Recipes router: recipe catalog and pantry ingredient matching
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
import logging

from models.pantry import RecipeCreateRequest, RecipeResponse, RecipeMatchResponse
from dependencies.auth import UserContext, get_current_user
from services.pantry import PantryStore, Recipe, get_pantry_store

logger = logging.getLogger(__name__)
router = APIRouter()


def to_recipe_response(recipe: Recipe) -> RecipeResponse:
    return RecipeResponse(
        id=recipe.id,
        title=recipe.title,
        servings=recipe.servings,
        prep_time_minutes=recipe.prep_time_minutes,
        ingredients=recipe.ingredients,
        tags=recipe.tags,
        instructions=recipe.instructions,
        created_at=recipe.created_at,
    )


@router.get("/", response_model=List[RecipeResponse])
async def list_recipes(
    tag: Optional[str] = None,
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    return [to_recipe_response(recipe) for recipe in store.list_recipes(user.user_id, tag)]


@router.post("/", response_model=RecipeResponse, status_code=status.HTTP_201_CREATED)
async def add_recipe(
    request: RecipeCreateRequest,
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    recipe = store.add_recipe(
        user.user_id,
        title=request.title,
        servings=request.servings,
        prep_time_minutes=request.prep_time_minutes,
        ingredients=request.ingredients,
        tags=request.tags,
        instructions=request.instructions,
    )
    return to_recipe_response(recipe)


# Declared before /{recipe_id} so "match" is not taken as an id
@router.get("/match", response_model=List[RecipeMatchResponse])
async def match_recipes(
    min_match: Optional[int] = Query(None, ge=0, le=100),
    only_can_make: bool = False,
    include_staples: bool = False,
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    """
    Rank recipes by how many of their ingredients are in the pantry

    Expired pantry items are ignored. A recipe can be made when its match
    reaches min_match (80% when not given).
    """
    matches = store.match_recipes(
        user.user_id,
        min_match=min_match,
        only_can_make=only_can_make,
        include_staples=include_staples,
    )
    return [
        RecipeMatchResponse(
            recipe=to_recipe_response(match.recipe),
            match_percentage=match.match_percentage,
            available_ingredients=match.available_ingredients,
            missing_ingredients=match.missing_ingredients,
            can_make=match.can_make,
        )
        for match in matches
    ]


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(
    recipe_id: str,
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    return to_recipe_response(store.get_recipe(user.user_id, recipe_id))
