"""
cultural_cuisine.py  —  Cultural cuisine facts, pairings, etiquette and substitutions

Pairings and etiquette always have an answer: the static regional tables below
are the baseline, AI suggestions are merged on top (de-duplicated, baseline
order first), and any pipeline failure falls back to the baseline alone.
Cultural details have no baseline; a reply without a description is rejected.
Substitutions lay SUBSTITUTION_RULES over the model's suggestions per ingredient.
"""

import json
import logging

from pydantic import BaseModel, Field

from .errors import AIServiceError, MalformedResponseError
from .pipeline import ContentPipeline
from .shapes import coerce_shape

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Output shapes
# ──────────────────────────────────────────────────────────────────────────────

class CulturalContext(BaseModel):
    history:    str = ""
    traditions: str = ""
    festivals:  str = ""
    influences: str = ""


class ServingEtiquette(BaseModel):
    table_settings: str = ""
    dining_customs: str = ""
    serving_order:  str = ""
    taboos:         str = ""
    general:        str = ""


class CulturalDetails(BaseModel):
    description:        str = ""
    key_ingredients:    str = ""
    cooking_techniques: str = ""
    cultural_context:   CulturalContext = Field(default_factory=CulturalContext)
    serving_etiquette:  ServingEtiquette = Field(default_factory=ServingEtiquette)


class Pairings(BaseModel):
    main_dishes: list[str] = Field(default_factory=list)
    side_dishes: list[str] = Field(default_factory=list)
    desserts:    list[str] = Field(default_factory=list)
    beverages:   list[str] = Field(default_factory=list)


class Etiquette(BaseModel):
    presentation:  list[str] = Field(default_factory=list)
    customs:       list[str] = Field(default_factory=list)
    taboos:        list[str] = Field(default_factory=list)
    serving_order: list[str] = Field(default_factory=list)


class Substitution(BaseModel):
    original:      str = ""
    substitute:    str = ""
    notes:         str = ""
    flavor_impact: str = ""


class SubstitutionResult(BaseModel):
    substitutions:         list[Substitution] = Field(default_factory=list)
    authenticity_score:    int = 0
    authenticity_feedback: list[str] = Field(default_factory=list)


# ──────────────────────────────────────────────────────────────────────────────
# Static regional baselines
# ──────────────────────────────────────────────────────────────────────────────

TRADITIONAL_PAIRINGS: dict[str, dict[str, list[str]]] = {
    "east_asia": {
        "main_dishes": ["Steamed Fish", "Stir-fried Vegetables", "Clay Pot Rice"],
        "side_dishes": ["Pickled Vegetables", "Cold Salad", "Steamed Eggs"],
        "desserts":    ["Red Bean Soup", "Mango Pudding", "Egg Tarts"],
        "beverages":   ["Jasmine Tea", "Oolong Tea", "Rice Wine"],
    },
    "southeast_asia": {
        "main_dishes": ["Green Curry", "Pad Thai", "Beef Rendang"],
        "side_dishes": ["Som Tam", "Sticky Rice", "Roti Canai"],
        "desserts":    ["Mango Sticky Rice", "Thai Tea Ice Cream", "Kuih"],
        "beverages":   ["Thai Iced Tea", "Coconut Water", "Sugarcane Juice"],
    },
    "south_asia": {
        "main_dishes": ["Butter Chicken", "Biryani", "Dal Makhani"],
        "side_dishes": ["Naan", "Raita", "Chutney"],
        "desserts":    ["Gulab Jamun", "Kheer", "Jalebi"],
        "beverages":   ["Lassi", "Masala Chai", "Rooh Afza"],
    },
    "middle_east": {
        "main_dishes": ["Lamb Shawarma", "Falafel", "Kebabs"],
        "side_dishes": ["Hummus", "Tabbouleh", "Baba Ganoush"],
        "desserts":    ["Baklava", "Kunafa", "Turkish Delight"],
        "beverages":   ["Mint Tea", "Turkish Coffee", "Ayran"],
    },
    "mediterranean": {
        "main_dishes": ["Paella", "Moussaka", "Risotto"],
        "side_dishes": ["Greek Salad", "Bruschetta", "Dolmas"],
        "desserts":    ["Tiramisu", "Baklava", "Panna Cotta"],
        "beverages":   ["Wine", "Limoncello", "Ouzo"],
    },
    "latin_america": {
        "main_dishes": ["Tacos", "Mole Poblano", "Feijoada"],
        "side_dishes": ["Guacamole", "Elote", "Black Beans"],
        "desserts":    ["Tres Leches Cake", "Churros", "Flan"],
        "beverages":   ["Horchata", "Margarita", "Agua Fresca"],
    },
    "caribbean": {
        "main_dishes": ["Jerk Chicken", "Curry Goat", "Ackee and Saltfish"],
        "side_dishes": ["Rice and Peas", "Festival", "Plantains"],
        "desserts":    ["Rum Cake", "Sweet Potato Pudding", "Coconut Drops"],
        "beverages":   ["Rum Punch", "Sorrel Drink", "Ginger Beer"],
    },
    "west_africa": {
        "main_dishes": ["Jollof Rice", "Egusi Soup", "Peanut Stew"],
        "side_dishes": ["Fufu", "Fried Plantains", "Moin Moin"],
        "desserts":    ["Chin Chin", "Puff Puff", "Coconut Candy"],
        "beverages":   ["Palm Wine", "Bissap", "Ginger Drink"],
    },
    "east_africa": {
        "main_dishes": ["Injera with Wat", "Nyama Choma", "Pilau Rice"],
        "side_dishes": ["Chapati", "Sukuma Wiki", "Ugali"],
        "desserts":    ["Mandazi", "Kashata", "Maandazi"],
        "beverages":   ["Ethiopian Coffee", "Tangawizi", "Urwaga"],
    },
    "north_africa": {
        "main_dishes": ["Couscous", "Tagine", "Shakshuka"],
        "side_dishes": ["Harissa", "Zaalouk", "Batbout"],
        "desserts":    ["Makroud", "Msemen", "Basbousa"],
        "beverages":   ["Mint Tea", "Almond Milk", "Hibiscus Tea"],
    },
}

REGIONAL_ETIQUETTE: dict[str, dict[str, list[str]]] = {
    "east_asia": {
        "presentation": [
            "Serve rice in individual bowls",
            "Place shared dishes in the center",
            "Arrange food to highlight colors and textures",
        ],
        "customs": [
            "Hold rice bowl close to mouth",
            "Pour tea for others before yourself",
            "Tap fingers as thanks when someone pours tea for you",
        ],
        "taboos": [
            "Don't stick chopsticks vertically in rice",
            "Don't pass food directly from chopsticks to chopsticks",
            "Don't flip fish over on the plate",
        ],
        "serving_order": ["Soup first", "Rice and main dishes together", "Fruit or light dessert last"],
    },
    "south_asia": {
        "presentation": [
            "Serve on thali plates with small compartments",
            "Place bread and rice separately",
            "Arrange accompaniments in small bowls",
        ],
        "customs": [
            "Traditionally eat with right hand fingers",
            "Tear bread with fingers, not cutlery",
            "Share food and offer to others first",
        ],
        "taboos": [
            "Don't use left hand for eating or passing food",
            "Don't start eating before elders or guests",
        ],
        "serving_order": [
            "Serve bread and rice with main dishes",
            "Yogurt or raita to balance spice",
            "Sweet dish or paan to conclude the meal",
        ],
    },
    "middle_east": {
        "presentation": [
            "Large central platters for sharing",
            "Multiple small mezze dishes",
            "Arrange bread in cloth-lined baskets",
        ],
        "customs": [
            "Break bread with hands, never cut with knife",
            "Serve elders and guests first",
            "Use right hand for eating",
        ],
        "taboos": [
            "Don't refuse offered food (take at least a small portion)",
            "Don't rush through meals",
        ],
        "serving_order": ["Mezze (small appetizers) first", "Main dishes with bread", "Coffee to conclude"],
    },
    "mediterranean": {
        "presentation": [
            "Simple, rustic presentation",
            "Olive oil drizzled as finishing touch",
            "Fresh herbs as garnish",
        ],
        "customs": [
            "Bread accompanies the entire meal",
            "Share multiple dishes family-style",
            "Leisurely pace with conversation",
        ],
        "taboos": [
            "Don't rush the meal",
            "Don't add cheese to seafood pasta in Italy",
        ],
        "serving_order": [
            "Antipasti/appetizers",
            "Pasta or rice dish",
            "Main protein dish",
            "Dessert and coffee",
        ],
    },
    "latin_america": {
        "presentation": [
            "Colorful arrangements",
            "Serve with traditional salsas on the side",
            "Family-style large platters",
        ],
        "customs": [
            "Wait for eldest to begin eating",
            "Use tortillas or bread to scoop food",
            "Express appreciation for the food",
        ],
        "taboos": [
            "Don't eat tacos with fork and knife",
            "Don't leave the table until everyone is finished",
        ],
        "serving_order": ["Soup or light appetizer", "Main course with sides", "Dessert", "Coffee or digestif"],
    },
}

# Keyed by lowercased ingredient name. A rule wins over the model's suggestion.
SUBSTITUTION_RULES: dict[str, dict] = {
    "kaffir lime leaves": {
        "substitutes":   ["lime zest", "bay leaves with lime zest"],
        "notes":         "Use lime zest for citrus notes, bay leaf adds aromatic element",
        "flavor_impact": "moderate",
    },
    "fish sauce": {
        "substitutes":   ["soy sauce with salt", "worcestershire sauce"],
        "notes":         "Add a pinch of salt and a drop of vinegar to better mimic umami flavor",
        "flavor_impact": "significant",
    },
    "gochujang": {
        "substitutes":   ["sriracha with miso paste", "red pepper flakes with honey"],
        "notes":         "Mix 2 parts sriracha with 1 part miso for similar fermented spicy flavor",
        "flavor_impact": "moderate",
    },
    "lemongrass": {
        "substitutes":   ["lemon zest with ginger", "lemon verbena"],
        "notes":         "Combine 1 tablespoon lemon zest with 1/4 teaspoon ginger powder",
        "flavor_impact": "moderate",
    },
    "tahini": {
        "substitutes":   ["smooth peanut butter", "sunflower seed butter"],
        "notes":         "Thin with sesame oil if available for closer flavor profile",
        "flavor_impact": "minimal",
    },
    "ghee": {
        "substitutes":   ["clarified butter", "butter", "coconut oil"],
        "notes":         "Unsalted butter is your best alternative, coconut oil changes flavor profile",
        "flavor_impact": "minimal",
    },
    "sumac": {
        "substitutes":   ["lemon zest", "amchoor powder", "tamarind"],
        "notes":         "Add a touch of salt to lemon zest for similar tanginess",
        "flavor_impact": "moderate",
    },
    "oyster sauce": {
        "substitutes":   ["hoisin sauce", "soy sauce with sugar"],
        "notes":         "Mix 1 tablespoon soy sauce with 1/2 teaspoon sugar and 1/2 teaspoon Worcestershire sauce",
        "flavor_impact": "moderate",
    },
    "galangal": {
        "substitutes":   ["ginger", "ginger with lemon zest"],
        "notes":         "True galangal has a sharper, citrusy flavor than ginger",
        "flavor_impact": "moderate",
    },
    "tamarind paste": {
        "substitutes":   ["lime juice with brown sugar", "pomegranate molasses", "vinegar with dates"],
        "notes":         "Mix 1 part lime juice with 1 part brown sugar for similar sweet-sour profile",
        "flavor_impact": "moderate",
    },
    "shiso leaves": {
        "substitutes":   ["mint with basil", "thai basil"],
        "notes":         "Equal parts mint and basil can approximate the complex flavor",
        "flavor_impact": "moderate",
    },
    "miso paste": {
        "substitutes":   ["tahini with soy sauce", "vegetable bouillon"],
        "notes":         "Lacks fermented quality but provides umami base",
        "flavor_impact": "significant",
    },
    "za'atar": {
        "substitutes":   ["thyme with sesame seeds and sumac", "thyme with lemon zest"],
        "notes":         "Mix 1 tbsp thyme, 1 tsp sesame seeds, pinch of salt and lemon zest",
        "flavor_impact": "moderate",
    },
    "plantains": {
        "substitutes":   ["green bananas", "potatoes for savory dishes"],
        "notes":         "Texture will differ; use less cooking time",
        "flavor_impact": "significant",
    },
    "paneer": {
        "substitutes":   ["firm tofu", "halloumi", "queso fresco"],
        "notes":         "Drain tofu well and press before using",
        "flavor_impact": "moderate",
    },
}

NO_SUBSTITUTE        = "No direct substitute available"
SUBSTITUTE_CAUTION   = "Use with caution as flavor profile may differ"
SUBSTITUTION_PENALTY = 20


def normalize_region(region: str | None) -> str:
    """'South Asia' / 'south-asia' / 'SOUTH_ASIA' → 'south_asia'."""
    if not region:
        return ""
    return "_".join(region.strip().lower().replace("-", " ").split())


def get_traditional_pairings(region: str | None) -> Pairings:
    return Pairings(**TRADITIONAL_PAIRINGS.get(normalize_region(region), {}))


def get_regional_etiquette(region: str | None) -> Etiquette:
    return Etiquette(**REGIONAL_ETIQUETTE.get(normalize_region(region), {}))


def merge_unique(*groups: list[str]) -> list[str]:
    """Concatenates lists, dropping repeats (case-insensitive) while keeping first-seen order."""
    seen: set[str] = set()
    merged: list[str] = []
    for group in groups:
        for value in group:
            key = value.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(value.strip())
    return merged


# ──────────────────────────────────────────────────────────────────────────────
# Prompt builders
# ──────────────────────────────────────────────────────────────────────────────

def build_cultural_details_prompt(cuisine_name: str) -> str:
    return f"""Generate detailed cultural information about {cuisine_name} cuisine.

Include:
1. A comprehensive description
2. Key ingredients commonly used
3. Traditional cooking techniques
4. Cultural context and history
5. Serving etiquette and customs

Return the information in this exact JSON format:
{{
  "description": "Detailed description",
  "key_ingredients": "Ingredient 1\\nIngredient 2\\nIngredient 3",
  "cooking_techniques": "Technique 1\\nTechnique 2\\nTechnique 3",
  "cultural_context": {{
    "history": "Brief historical background",
    "traditions": "Key culinary traditions",
    "festivals": "Celebrations and related food festivals",
    "influences": "Cultural and historical influences"
  }},
  "serving_etiquette": {{
    "table_settings": "Table arrangement guidelines as bullet points",
    "dining_customs": "Dining rules as bullet points",
    "serving_order": "Course sequence as bullet points",
    "taboos": "Things to avoid as bullet points",
    "general": "Overall dining etiquette summary"
  }}
}}"""


def build_pairings_prompt(recipe: dict, cuisine_name: str) -> str:
    recipe_summary = json.dumps({
        "name":        recipe.get("name", ""),
        "ingredients": recipe.get("authentic_ingredients", recipe.get("ingredients", [])),
    }, ensure_ascii=False)
    return f"""Suggest specific food pairings for this {cuisine_name} recipe:
Recipe: {recipe_summary}

Return JSON with these categories:
{{
  "main_dishes": string[] (dishes that complement this recipe),
  "side_dishes": string[] (appropriate side dishes),
  "desserts": string[] (dessert pairings),
  "beverages": string[] (drink pairings)
}}"""


def build_etiquette_prompt(recipe: dict, cuisine_name: str) -> str:
    recipe_summary = json.dumps({
        "name":                recipe.get("name", ""),
        "cultural_notes":      recipe.get("cultural_notes", ""),
        "serving_suggestions": recipe.get("serving_suggestions", ""),
    }, ensure_ascii=False)
    return f"""Provide specific serving etiquette for this {cuisine_name} dish:
Recipe: {recipe_summary}

Return JSON with these categories:
{{
  "presentation": string[] (visual presentation guidelines),
  "customs": string[] (dining customs to observe),
  "taboos": string[] (practices to avoid),
  "serving_order": string[] (proper serving sequence)
}}"""


def recipe_ingredients(recipe: dict) -> list[str]:
    """authentic_ingredients may be a list of names or a {name: amount} mapping."""
    ingredients = recipe.get("authentic_ingredients", recipe.get("ingredients")) or []
    if isinstance(ingredients, dict):
        ingredients = list(ingredients)
    return [str(name) for name in ingredients if str(name).strip()]


def build_substitutions_prompt(ingredients: list[str], pantry_items: list[str], region: str) -> str:
    return f"""For these ingredients, provide substitution options:
Ingredients: {json.dumps(ingredients, ensure_ascii=False)}
Available pantry items: {json.dumps(pantry_items, ensure_ascii=False)}
Region: {region}

Return EXACTLY this JSON array with no additional text or explanation:
[
  {{
    "original": "ingredient name",
    "substitute": "best substitute",
    "notes": "usage notes",
    "flavor_impact": "minimal/moderate/significant"
  }}
]"""


def authenticity_score(substitutions: list[Substitution]) -> int:
    """100 minus 20 per significant flavour change, never below 0."""
    significant = sum(1 for s in substitutions if s.flavor_impact == "significant")
    return max(0, 100 - SUBSTITUTION_PENALTY * significant)


# ──────────────────────────────────────────────────────────────────────────────
# Services
# ──────────────────────────────────────────────────────────────────────────────

async def generate_cultural_details(pipeline: ContentPipeline, cuisine: dict) -> CulturalDetails:
    """
    Cultural background for a cuisine. Raises MalformedResponseError when the
    reply parses but carries no description, since nothing useful can be shown.
    """
    name = cuisine.get("name", "")
    log.info("Generating cultural details for cuisine=%r", name)

    parsed = await pipeline.generate_json(build_cultural_details_prompt(name))
    details = coerce_shape(CulturalDetails, parsed)
    if not details.description.strip():
        log.error("Cultural details reply has no description: %r", parsed)
        raise MalformedResponseError("Invalid response from AI service: missing description", raw_text=parsed)
    return details


async def get_pairings(pipeline: ContentPipeline, recipe: dict, cuisine: dict) -> Pairings:
    baseline = get_traditional_pairings(cuisine.get("region"))
    log.info("Fetching pairings for recipe=%r cuisine=%r", recipe.get("name"), cuisine.get("name"))

    try:
        ai = await pipeline.generate_shape(build_pairings_prompt(recipe, cuisine.get("name", "")), Pairings)
    except AIServiceError as e:
        log.error("Error generating pairings, using traditional pairings: %s", e)
        return baseline

    return Pairings(
        main_dishes=merge_unique(baseline.main_dishes, ai.main_dishes),
        side_dishes=merge_unique(baseline.side_dishes, ai.side_dishes),
        desserts=merge_unique(baseline.desserts, ai.desserts),
        beverages=merge_unique(baseline.beverages, ai.beverages),
    )


async def get_etiquette(pipeline: ContentPipeline, recipe: dict, cuisine: dict) -> Etiquette:
    baseline = get_regional_etiquette(cuisine.get("region"))
    log.info("Fetching etiquette for recipe=%r cuisine=%r", recipe.get("name"), cuisine.get("name"))

    try:
        ai = await pipeline.generate_shape(build_etiquette_prompt(recipe, cuisine.get("name", "")), Etiquette)
    except AIServiceError as e:
        log.error("Error generating etiquette, using regional etiquette: %s", e)
        return baseline

    return Etiquette(
        presentation=merge_unique(baseline.presentation, ai.presentation),
        customs=merge_unique(baseline.customs, ai.customs),
        taboos=merge_unique(baseline.taboos, ai.taboos),
        serving_order=merge_unique(baseline.serving_order, ai.serving_order),
    )


async def get_substitutions(
    pipeline: ContentPipeline,
    recipe: dict,
    pantry_items: list[str] | None = None,
    region: str = "",
) -> SubstitutionResult:
    """
    One substitution per recipe ingredient. A static rule beats the model's
    suggestion field by field; with neither, the ingredient is marked as having
    no direct substitute and a significant flavour impact. Any pipeline failure
    returns an empty result scored 0.
    """
    ingredients = recipe_ingredients(recipe)
    log.info("Fetching substitutions for recipe=%r (%d ingredient(s))", recipe.get("name"), len(ingredients))

    try:
        parsed = await pipeline.generate_json(
            build_substitutions_prompt(ingredients, pantry_items or [], region),
        )
    except AIServiceError as e:
        log.error("Error generating substitutions: %s", e)
        return SubstitutionResult(authenticity_feedback=["Error generating substitutions"])

    if not isinstance(parsed, list):
        parsed = [parsed]
    suggestions: dict[str, Substitution] = {}
    for item in parsed:
        if not isinstance(item, dict):
            continue
        suggestion = coerce_shape(Substitution, item)
        suggestions.setdefault(suggestion.original.strip().lower(), suggestion)

    substitutions = []
    for ingredient in ingredients:
        key = ingredient.strip().lower()
        rule = SUBSTITUTION_RULES.get(key, {})
        ai = suggestions.get(key, Substitution())
        substitutions.append(Substitution(
            original=ingredient,
            substitute=(rule.get("substitutes") or [""])[0] or ai.substitute or NO_SUBSTITUTE,
            notes=rule.get("notes") or ai.notes or SUBSTITUTE_CAUTION,
            flavor_impact=rule.get("flavor_impact") or ai.flavor_impact.strip().lower() or "significant",
        ))

    return SubstitutionResult(
        substitutions=substitutions,
        authenticity_score=authenticity_score(substitutions),
        authenticity_feedback=["Substitutions may affect the authentic taste of the dish"],
    )
