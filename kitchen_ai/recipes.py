"""
recipes.py  —  Recipe, nutrition, meal-plan and mood services

Responsibility boundary:
  Python (this file): prompt construction, output shapes with defaults,
                      list/object normalisation of the model's reply.
  LLM (Gemini):       recipe design, nutrition estimates, meal planning,
                      sentiment reading.

Every function takes the shared ContentPipeline as its first argument and
raises the pipeline's errors unchanged; there is no static fallback for
generated recipes.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, Field

from .pipeline import ContentPipeline
from .shapes import coerce_shape

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Output shapes (every field has a default)
# ──────────────────────────────────────────────────────────────────────────────

class RecipeSuggestion(BaseModel):
    title:             str = "Untitled recipe"
    ingredients:       list[str] = Field(default_factory=list)
    instructions:      list[str] = Field(default_factory=list)
    nutritional_value: str = ""


class RecipeIngredient(BaseModel):
    item:   str = ""
    amount: str = ""
    notes:  str = ""


class NutritionInfo(BaseModel):
    calories: float = 0.0
    protein:  str = ""
    carbs:    str = ""
    fat:      str = ""


class GeneratedRecipe(BaseModel):
    title:          str = "Untitled recipe"
    servings:       int = 1
    prep_time:      str = ""
    cook_time:      str = ""
    ingredients:    list[RecipeIngredient] = Field(default_factory=list)
    instructions:   list[str] = Field(default_factory=list)
    nutrition_info: NutritionInfo = Field(default_factory=NutritionInfo)
    tips:           list[str] = Field(default_factory=list)


class NutritionAnalysis(BaseModel):
    calories:        float = 0.0
    protein:         float = 0.0
    carbs:           float = 0.0
    fat:             float = 0.0
    recommendations: list[str] = Field(default_factory=list)


class Meal(BaseModel):
    title:            str = ""
    description:      str = ""
    nutritional_info: str = ""
    preparation_time: str = ""


class Snack(BaseModel):
    title:            str = ""
    description:      str = ""
    nutritional_info: str = ""


class DayMeals(BaseModel):
    breakfast: Meal = Field(default_factory=Meal)
    lunch:     Meal = Field(default_factory=Meal)
    dinner:    Meal = Field(default_factory=Meal)
    snacks:    list[Snack] = Field(default_factory=list)


class MealPlanDay(BaseModel):
    day:               int = 0
    meals:             DayMeals = Field(default_factory=DayMeals)
    total_calories:    float = 0.0
    nutrition_summary: str = ""


class MoodAnalysis(BaseModel):
    sentiment: str = "neutral"
    emotions:  list[str] = Field(default_factory=list)


_SENTIMENTS = {"positive", "negative", "neutral"}


def _as_list(parsed: Any, key: str) -> list:
    """
    Accepts the three shapes the model uses for "a list of X":
    a bare array, an object wrapping the array under `key`, or a single object.
    """
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        wrapped = parsed.get(key)
        if isinstance(wrapped, list):
            return wrapped
        return [parsed]
    return []


# ──────────────────────────────────────────────────────────────────────────────
# Prompt builders
# ──────────────────────────────────────────────────────────────────────────────

def build_recommendations_prompt(ingredients: list[str], dietary_preferences: list[str] | None) -> str:
    preferences_line = (
        f"Consider these dietary preferences: {', '.join(dietary_preferences)}\n"
        if dietary_preferences else ""
    )
    return (
        "You are a professional chef creating recipes. Please create 3 recipes using "
        f"some or all of these ingredients: {', '.join(ingredients)}\n"
        f"{preferences_line}\n"
        "IMPORTANT: Your response must be a valid JSON array containing EXACTLY 3 recipes. "
        "Each recipe must follow this format exactly:\n"
        "{\n"
        '  "title": "Recipe Name",\n'
        '  "ingredients": ["ingredient 1", "ingredient 2"],\n'
        '  "instructions": ["step 1", "step 2"],\n'
        '  "nutritional_value": "Calories: X, Protein: Xg, Carbs: Xg, Fat: Xg"\n'
        "}"
    )


def build_recipe_prompt(
    ingredients: list[str],
    preferences: list[str],
    dietary_restrictions: list[str],
) -> str:
    return f"""Create a recipe using these ingredients and constraints:
Ingredients: {json.dumps(ingredients)}
Preferences: {json.dumps(preferences)}
Dietary Restrictions: {json.dumps(dietary_restrictions)}

Return EXACTLY this JSON structure with no additional text:
{{
  "title": "string",
  "servings": number,
  "prep_time": "string",
  "cook_time": "string",
  "ingredients": [
    {{"item": "string", "amount": "string", "notes": "string"}}
  ],
  "instructions": ["string"],
  "nutrition_info": {{
    "calories": number,
    "protein": "string",
    "carbs": "string",
    "fat": "string"
  }},
  "tips": ["string"]
}}"""


def build_nutrition_prompt(ingredients: list[str], portions: int) -> str:
    return f"""Analyze the nutritional value of these ingredients for {portions} portion(s): {', '.join(ingredients)}

Return the analysis in this JSON format:
{{
  "calories": number,
  "protein": number (in grams),
  "carbs": number (in grams),
  "fat": number (in grams),
  "recommendations": ["recommendation 1", "recommendation 2"]
}}"""


def build_meal_plan_prompt(
    preferences: list[str],
    days: int,
    dietary_restrictions: list[str] | None,
    calorie_target: int | None,
) -> str:
    lines = [
        f"Create a detailed {days}-day meal plan with these specifications:",
        f"Preferences: {', '.join(preferences)}",
    ]
    if dietary_restrictions:
        lines.append(f"Dietary Restrictions: {', '.join(dietary_restrictions)}")
    if calorie_target:
        lines.append(f"Daily Calorie Target: {calorie_target} calories")
    lines.append("""
Return the meal plan as a JSON array where each day object has this structure:
{
  "day": number,
  "meals": {
    "breakfast": {
      "title": string,
      "description": string,
      "nutritional_info": string (format: "X kcal, Xg protein, Xg carbs, Xg fat"),
      "preparation_time": string
    },
    "lunch": { same as breakfast },
    "dinner": { same as breakfast },
    "snacks": [{"title": string, "description": string, "nutritional_info": string}]
  },
  "total_calories": number,
  "nutrition_summary": string
}""")
    return "\n".join(lines)


def build_mood_prompt(entry: str) -> str:
    return (
        f'Analyze the mood and sentiment in this cooking experience entry: "{entry}".\n'
        "Return a JSON object with 'sentiment' (positive/negative/neutral) and "
        "'emotions' (array of specific emotions detected) fields."
    )


# ──────────────────────────────────────────────────────────────────────────────
# Services
# ──────────────────────────────────────────────────────────────────────────────

async def get_recipe_recommendations(
    pipeline: ContentPipeline,
    ingredients: list[str],
    dietary_preferences: list[str] | None = None,
) -> list[RecipeSuggestion]:
    log.info("Requesting recipe recommendations for %d ingredient(s).", len(ingredients))
    parsed = await pipeline.generate_json(build_recommendations_prompt(ingredients, dietary_preferences))
    return [
        coerce_shape(RecipeSuggestion, item)
        for item in _as_list(parsed, "recipes")
        if isinstance(item, dict)
    ]


async def generate_recipe(
    pipeline: ContentPipeline,
    ingredients: list[str],
    preferences: list[str] | None = None,
    dietary_restrictions: list[str] | None = None,
) -> GeneratedRecipe:
    prompt = build_recipe_prompt(ingredients, preferences or [], dietary_restrictions or [])
    return await pipeline.generate_shape(prompt, GeneratedRecipe)


async def analyze_nutritional_value(
    pipeline: ContentPipeline,
    ingredients: list[str],
    portions: int = 1,
) -> NutritionAnalysis:
    return await pipeline.generate_shape(build_nutrition_prompt(ingredients, portions), NutritionAnalysis)


async def generate_meal_plan(
    pipeline: ContentPipeline,
    preferences: list[str],
    days: int = 7,
    dietary_restrictions: list[str] | None = None,
    calorie_target: int | None = None,
) -> list[MealPlanDay]:
    """
    Day-by-day meal plan. Days the model forgot to number are numbered by
    position so the UI can always sort them.
    """
    prompt = build_meal_plan_prompt(preferences, days, dietary_restrictions, calorie_target)
    parsed = await pipeline.generate_json(prompt)

    plan = []
    for position, item in enumerate(_as_list(parsed, "days"), 1):
        if not isinstance(item, dict):
            continue
        day = coerce_shape(MealPlanDay, item)
        if day.day <= 0:
            day.day = position
        plan.append(day)
    return plan


async def analyze_mood_sentiment(pipeline: ContentPipeline, entry: str) -> MoodAnalysis:
    mood = await pipeline.generate_shape(build_mood_prompt(entry), MoodAnalysis)
    sentiment = mood.sentiment.strip().lower()
    mood.sentiment = sentiment if sentiment in _SENTIMENTS else "neutral"
    return mood
