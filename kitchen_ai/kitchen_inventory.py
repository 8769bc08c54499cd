"""
kitchen_inventory.py  —  Equipment care and pantry inventory services

Maintenance tips must never come back empty: when the model fails or returns
nothing usable, a condition-aware tip set for the equipment kind (knife,
cookware, appliance, general) is served instead. Inventory analysis and storage
advice have no static counterpart and propagate pipeline errors.
"""

import json
import logging

from pydantic import BaseModel, Field

from .errors import AIServiceError
from .pipeline import ContentPipeline

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Output shapes
# ──────────────────────────────────────────────────────────────────────────────

class InventoryAnalysis(BaseModel):
    staple_items:    list[str] = Field(default_factory=list)
    low_stock:       list[str] = Field(default_factory=list)
    expiring_items:  list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    shopping_list:   list[str] = Field(default_factory=list)
    inventory_score: float = 0.0


class StorageRecommendation(BaseModel):
    item:     str = ""
    storage:  str = ""
    duration: str = ""
    tips:     list[str] = Field(default_factory=list)


class StorageAdvice(BaseModel):
    recommendations:          list[StorageRecommendation] = Field(default_factory=list)
    general_tips:             list[str] = Field(default_factory=list)
    organization_suggestions: list[str] = Field(default_factory=list)


# ──────────────────────────────────────────────────────────────────────────────
# Condition context and fallback tips
# ──────────────────────────────────────────────────────────────────────────────

CONDITION_CONTEXT = {
    "excellent": "Equipment is in excellent condition. Provide preventive maintenance tips to keep it that way.",
    "good": "Equipment is in good condition. Provide maintenance tips to prevent deterioration and maintain performance.",
    "fair": "Equipment is in fair condition with some wear. Provide tips to prevent further deterioration "
            "and restore performance where possible.",
    "needs-maintenance": "Equipment needs maintenance. Provide specific repair and restoration tips to improve its condition.",
    "replace": "Equipment is in poor condition and may need replacement. Provide tips for safe usage until "
               "replacement and signs to watch for immediate replacement.",
}
_UNKNOWN_CONDITION = (
    "Equipment condition is unknown. Provide general maintenance tips covering inspection, "
    "cleaning, and preventive care."
)

# Per kind: "base" tips, one extra tip for the healthy conditions, and full
# replacement sets for the two poor conditions.
FALLBACK_TIPS: dict[str, dict] = {
    "knife": {
        "base": [
            "Keep your {name} sharp with regular honing",
            "Hand wash immediately after use and dry thoroughly",
            "Store in a knife block or magnetic strip to protect the blade",
            "Never put in dishwasher as it can damage the blade",
        ],
        "extra": {
            "excellent": "Maintain the excellent condition with weekly honing",
            "good": "Check blade alignment and handle tightness monthly",
            "fair": "Consider professional sharpening to restore performance",
        },
        "needs-maintenance": [
            "Professional sharpening needed to restore cutting performance",
            "Check for loose handle or damaged blade",
            "Clean thoroughly and oil if carbon steel",
            "Store properly to prevent further damage",
        ],
        "replace": [
            "Use with extreme caution - blade may be damaged",
            "Consider immediate replacement for safety",
            "Do not use if handle is loose or blade is chipped",
            "Keep away from children until replaced",
        ],
    },
    "cookware": {
        "base": [
            "Clean while still warm but not hot to prevent warping",
            "Avoid using metal utensils on non-stick surfaces",
            "Store with pan protectors to prevent scratching",
            "Check handles and rivets regularly for looseness",
        ],
        "extra": {
            "excellent": "Season regularly if cast iron to maintain excellent condition",
            "good": "Inspect non-stick coating for any wear spots",
            "fair": "Re-season if cast iron, or consider replacing if non-stick coating is worn",
        },
        "needs-maintenance": [
            "Re-season cast iron cookware or replace if non-stick coating is damaged",
            "Tighten loose handles or rivets if possible",
            "Clean thoroughly to remove any buildup",
            "Check for warping by placing on flat surface",
        ],
        "replace": [
            "Use with caution - may have loose handles or damaged coating",
            "Consider immediate replacement for safety and performance",
            "Do not use if handle is very loose or coating is flaking",
            "Avoid high heat until replaced",
        ],
    },
    "appliance": {
        "base": [
            "Clean regularly according to manufacturer instructions",
            "Check power cord and plug for damage monthly",
            "Keep vents and air passages clear of debris",
            "Store in a dry location when not in use",
        ],
        "extra": {
            "excellent": "Schedule annual professional maintenance to keep in excellent condition",
            "good": "Monitor performance and clean filters regularly",
            "fair": "Consider professional servicing to restore optimal performance",
        },
        "needs-maintenance": [
            "Schedule professional maintenance or repair immediately",
            "Check all electrical connections and cords",
            "Clean thoroughly including internal components if accessible",
            "Replace worn parts like filters or gaskets",
        ],
        "replace": [
            "Use with extreme caution - may have electrical or mechanical issues",
            "Consider immediate replacement for safety",
            "Do not use if making unusual noises or sparking",
            "Unplug when not in use until replaced",
        ],
    },
    "general": {
        "base": [
            "Clean your {name} thoroughly after each use",
            "Store in a clean, dry place to prevent deterioration",
            "Follow manufacturer's care instructions when available",
            "Inspect for wear and damage regularly",
        ],
        "extra": {
            "excellent": "Continue current maintenance routine to preserve excellent condition",
            "good": "Increase inspection frequency to maintain good condition",
            "fair": "Address any visible wear or damage promptly",
        },
        "needs-maintenance": [
            "Perform thorough cleaning and inspection",
            "Address any visible damage or wear immediately",
            "Consider professional repair if applicable",
            "Replace worn components if possible",
        ],
        "replace": [
            "Use with caution - equipment may be unsafe or ineffective",
            "Plan for immediate replacement",
            "Monitor closely for any safety issues",
            "Consider temporary alternatives until replacement",
        ],
    },
}


def equipment_kind(equipment: dict) -> str:
    name = (equipment.get("name") or "").lower()
    category = (equipment.get("category") or "").lower()
    if "knife" in name or "cutlery" in category:
        return "knife"
    if "pan" in name or "pot" in name or "cookware" in category:
        return "cookware"
    if "appliance" in category:
        return "appliance"
    return "general"


def fallback_maintenance_tips(equipment: dict) -> list[str]:
    name = equipment.get("name") or "equipment"
    condition = (equipment.get("condition") or "unknown").lower()
    table = FALLBACK_TIPS[equipment_kind(equipment)]

    if condition in ("needs-maintenance", "replace"):
        tips = table[condition]
    else:
        tips = list(table["base"])
        if condition in table["extra"]:
            tips.append(table["extra"][condition])
    return [tip.format(name=name) for tip in tips]


# ──────────────────────────────────────────────────────────────────────────────
# Prompt builders
# ──────────────────────────────────────────────────────────────────────────────

def build_maintenance_prompt(equipment: dict) -> str:
    condition = equipment.get("condition") or "Unknown"
    context = CONDITION_CONTEXT.get(condition.lower(), _UNKNOWN_CONDITION)
    return f"""You are a kitchen equipment maintenance expert. Provide 4-5 specific maintenance tips for this equipment:

Equipment: {equipment.get('name', '')}
Category: {equipment.get('category') or 'General'}
Current Condition: {condition}

CONDITION FOCUS: {context}

Return ONLY a JSON array of strings. Each string should be a specific, actionable maintenance tip.
Example: ["Clean after each use", "Check for wear monthly", "Store in dry place"]

Focus on practical, equipment-specific advice tailored to the current condition. No explanations, just the JSON array."""


def build_inventory_prompt(items: list[dict]) -> str:
    return f"""Analyze this kitchen inventory and provide insights:
Items: {json.dumps(items, ensure_ascii=False)}

Return EXACTLY this JSON structure with no additional text:
{{
  "staple_items": ["string"],
  "low_stock": ["string"],
  "expiring_items": ["string"],
  "recommendations": ["string"],
  "shopping_list": ["string"],
  "inventory_score": number
}}"""


def build_storage_prompt(items: list[dict]) -> str:
    return f"""Provide storage recommendations for these items:
Items: {json.dumps(items, ensure_ascii=False)}

Return EXACTLY this JSON structure with no additional text:
{{
  "recommendations": [
    {{"item": "string", "storage": "string", "duration": "string", "tips": ["string"]}}
  ],
  "general_tips": ["string"],
  "organization_suggestions": ["string"]
}}"""


# ──────────────────────────────────────────────────────────────────────────────
# Services
# ──────────────────────────────────────────────────────────────────────────────

async def get_maintenance_tips(pipeline: ContentPipeline, equipment: dict) -> list[str]:
    log.info(
        "Getting maintenance tips for %r (condition=%s)",
        equipment.get("name"), equipment.get("condition"),
    )
    try:
        parsed = await pipeline.generate_json(build_maintenance_prompt(equipment))
    except AIServiceError as e:
        log.error("Failed to get maintenance tips, using fallback: %s", e)
        return fallback_maintenance_tips(equipment)

    tips = []
    if isinstance(parsed, list):
        tips = [tip.strip() for tip in parsed if isinstance(tip, str) and tip.strip()]
    if not tips:
        log.warning("AI maintenance tips unusable (%r), using fallback.", parsed)
        return fallback_maintenance_tips(equipment)
    return tips


async def analyze_inventory(pipeline: ContentPipeline, items: list[dict]) -> InventoryAnalysis:
    return await pipeline.generate_shape(build_inventory_prompt(items), InventoryAnalysis)


async def get_storage_recommendations(pipeline: ContentPipeline, items: list[dict]) -> StorageAdvice:
    return await pipeline.generate_shape(build_storage_prompt(items), StorageAdvice)
