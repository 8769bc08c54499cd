"""
api_server.py  —  Kitchen AI REST API Server

Exposes the AI services over HTTP for the web frontend. Persistence, accounts
and CRUD live in the main backend; this server only turns requests into
prompts and returns the structured results.

Architecture
────────────
  • FastAPI handles routing, request validation (Pydantic), and CORS.
  • One ContentPipeline is built lazily per process (get_pipeline) and shared
    by every endpoint, so all requests draw from the same pacing budget.
  • Pipeline errors map onto HTTP: rate limit exhausted → 503, every other
    AI failure → 502.

Run (development — auto-reload on file changes)
───────────────────────────────────────────────
  uvicorn kitchen_ai.api_server:app --reload --port 8000

Endpoints
─────────
  GET  /health                      — liveness check
  POST /recipes/recommendations     — 3 recipe ideas from a list of ingredients
  POST /recipes/generate            — one detailed recipe
  POST /recipes/nutrition           — nutrition estimate for ingredients
  POST /meal_plan                   — day-by-day meal plan
  POST /mood                        — sentiment of a cooking journal entry
  POST /cuisine/details             — cultural background of a cuisine
  POST /cuisine/pairings            — pairings (regional baseline + AI)
  POST /cuisine/etiquette           — serving etiquette (regional baseline + AI)
  POST /cuisine/substitutions       — ingredient swaps (static rules + AI) with authenticity score
  POST /kitchen/maintenance_tips    — care tips for one piece of equipment
  POST /kitchen/inventory_analysis  — pantry inventory insights
  POST /kitchen/storage             — storage advice for pantry items
"""

import logging
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from . import cultural_cuisine, kitchen_inventory, recipes
from .errors import AIServiceError, TransientRateLimitError
from .pipeline import ContentPipeline, build_pipeline

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# App + CORS
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Kitchen AI API",
    description="Recipe, nutrition, cuisine and kitchen-equipment AI services.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],        # ← restrict to the frontend origin in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_pipeline() -> ContentPipeline:
    return build_pipeline()


# ──────────────────────────────────────────────────────────────────────────────
# Pydantic request models
# ──────────────────────────────────────────────────────────────────────────────

class RecommendationsRequest(BaseModel):
    ingredients:         list[str] = Field(..., min_length=1, description="Available ingredients")
    dietary_preferences: list[str] = Field(default_factory=list)


class GenerateRecipeRequest(BaseModel):
    ingredients:          list[str] = Field(..., min_length=1)
    preferences:          list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)


class NutritionRequest(BaseModel):
    ingredients: list[str] = Field(..., min_length=1)
    portions:    int = Field(default=1, ge=1, le=50)


class MealPlanRequest(BaseModel):
    preferences:          list[str] = Field(..., min_length=1)
    days:                 int = Field(default=7, ge=1, le=31)
    dietary_restrictions: list[str] = Field(default_factory=list)
    calorie_target:       int | None = Field(default=None, ge=500, le=10000)


class MoodRequest(BaseModel):
    entry: str = Field(..., min_length=1, description="Free-text cooking journal entry")


class CuisineRef(BaseModel):
    name:   str = Field(..., min_length=1, description="Cuisine name, e.g. 'Thai'")
    region: str = Field(default="", description="Region key, e.g. 'southeast_asia'")


class CuisineRecipeRequest(BaseModel):
    cuisine: CuisineRef
    recipe:  dict = Field(..., description="Recipe fields: name, authentic_ingredients, cultural_notes, ...")


class SubstitutionsRequest(BaseModel):
    recipe:       dict = Field(..., description="Recipe fields: name, authentic_ingredients, ...")
    pantry_items: list[str] = Field(default_factory=list)
    region:       str = ""


class EquipmentRequest(BaseModel):
    name:      str = Field(..., min_length=1)
    category:  str = ""
    condition: str = Field(default="", description="excellent | good | fair | needs-maintenance | replace")


class ItemsRequest(BaseModel):
    items: list[dict] = Field(..., min_length=1)


# ──────────────────────────────────────────────────────────────────────────────
# Internal helpers
# ──────────────────────────────────────────────────────────────────────────────

def _to_http_error(e: AIServiceError, what: str) -> HTTPException:
    if isinstance(e, TransientRateLimitError):
        return HTTPException(
            status_code=503,
            detail=f"AI service is rate limited, failed to generate {what}. Try again shortly.",
        )
    return HTTPException(status_code=502, detail=f"Failed to generate {what}: {e}")


# ──────────────────────────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────────────────────────

@app.get("/health", tags=["Meta"])
def health() -> dict:
    """Liveness check — returns server status and current timestamp."""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}


@app.post("/recipes/recommendations", response_model=list[recipes.RecipeSuggestion], tags=["Recipes"])
async def recipe_recommendations(
    body: RecommendationsRequest,
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    log.info("recipe_recommendations  ingredients=%d", len(body.ingredients))
    try:
        return await recipes.get_recipe_recommendations(pipeline, body.ingredients, body.dietary_preferences)
    except AIServiceError as e:
        log.error("LLM error during recipe recommendations: %s", e)
        raise _to_http_error(e, "recipe recommendations")


@app.post("/recipes/generate", response_model=recipes.GeneratedRecipe, tags=["Recipes"])
async def generate_recipe(body: GenerateRecipeRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    try:
        return await recipes.generate_recipe(
            pipeline, body.ingredients, body.preferences, body.dietary_restrictions,
        )
    except AIServiceError as e:
        log.error("LLM error during recipe generation: %s", e)
        raise _to_http_error(e, "recipe")


@app.post("/recipes/nutrition", response_model=recipes.NutritionAnalysis, tags=["Recipes"])
async def nutrition(body: NutritionRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    try:
        return await recipes.analyze_nutritional_value(pipeline, body.ingredients, body.portions)
    except AIServiceError as e:
        log.error("LLM error during nutrition analysis: %s", e)
        raise _to_http_error(e, "nutrition analysis")


@app.post("/meal_plan", response_model=list[recipes.MealPlanDay], tags=["Recipes"])
async def meal_plan(body: MealPlanRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    log.info("meal_plan  days=%d  calorie_target=%s", body.days, body.calorie_target)
    try:
        return await recipes.generate_meal_plan(
            pipeline, body.preferences, body.days, body.dietary_restrictions, body.calorie_target,
        )
    except AIServiceError as e:
        log.error("LLM error during meal planning: %s", e)
        raise _to_http_error(e, "meal plan")


@app.post("/mood", response_model=recipes.MoodAnalysis, tags=["Recipes"])
async def mood(body: MoodRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    try:
        return await recipes.analyze_mood_sentiment(pipeline, body.entry)
    except AIServiceError as e:
        log.error("LLM error during mood analysis: %s", e)
        raise _to_http_error(e, "mood analysis")


@app.post("/cuisine/details", response_model=cultural_cuisine.CulturalDetails, tags=["Cuisine"])
async def cuisine_details(body: CuisineRef, pipeline: ContentPipeline = Depends(get_pipeline)):
    try:
        return await cultural_cuisine.generate_cultural_details(pipeline, body.model_dump())
    except AIServiceError as e:
        log.error("LLM error during cultural details: %s", e)
        raise _to_http_error(e, "cultural details")


@app.post("/cuisine/pairings", response_model=cultural_cuisine.Pairings, tags=["Cuisine"])
async def cuisine_pairings(body: CuisineRecipeRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    """Never fails on AI errors: the regional baseline is returned instead."""
    return await cultural_cuisine.get_pairings(pipeline, body.recipe, body.cuisine.model_dump())


@app.post("/cuisine/etiquette", response_model=cultural_cuisine.Etiquette, tags=["Cuisine"])
async def cuisine_etiquette(body: CuisineRecipeRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    """Never fails on AI errors: the regional baseline is returned instead."""
    return await cultural_cuisine.get_etiquette(pipeline, body.recipe, body.cuisine.model_dump())


@app.post("/cuisine/substitutions", response_model=cultural_cuisine.SubstitutionResult, tags=["Cuisine"])
async def cuisine_substitutions(body: SubstitutionsRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    """Never fails on AI errors: an empty result scored 0 is returned instead."""
    return await cultural_cuisine.get_substitutions(pipeline, body.recipe, body.pantry_items, body.region)


@app.post("/kitchen/maintenance_tips", response_model=list[str], tags=["Kitchen"])
async def maintenance_tips(body: EquipmentRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    return await kitchen_inventory.get_maintenance_tips(pipeline, body.model_dump())


@app.post("/kitchen/inventory_analysis", response_model=kitchen_inventory.InventoryAnalysis, tags=["Kitchen"])
async def inventory_analysis(body: ItemsRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    log.info("inventory_analysis  items=%d", len(body.items))
    try:
        return await kitchen_inventory.analyze_inventory(pipeline, body.items)
    except AIServiceError as e:
        log.error("LLM error during inventory analysis: %s", e)
        raise _to_http_error(e, "inventory analysis")


@app.post("/kitchen/storage", response_model=kitchen_inventory.StorageAdvice, tags=["Kitchen"])
async def storage(body: ItemsRequest, pipeline: ContentPipeline = Depends(get_pipeline)):
    try:
        return await kitchen_inventory.get_storage_recommendations(pipeline, body.items)
    except AIServiceError as e:
        log.error("LLM error during storage recommendations: %s", e)
        raise _to_http_error(e, "storage recommendations")
