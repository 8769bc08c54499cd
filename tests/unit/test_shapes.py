"""
tests/unit/test_shapes.py

coerce_shape keeps every valid field and defaults the rest.
"""

from pydantic import BaseModel, Field

from kitchen_ai.shapes import coerce_shape


class Step(BaseModel):
    text:    str = ""
    minutes: int = 0


class Card(BaseModel):
    title:    str = "Untitled"
    servings: int = 1
    tags:     list[str] = Field(default_factory=list)
    steps:    list[Step] = Field(default_factory=list)
    lead:     Step = Field(default_factory=Step)


class TestCoerceShape:
    def test_valid_payload(self):
        card = coerce_shape(Card, {"title": "Soup", "servings": 4, "tags": ["warm"]})
        assert (card.title, card.servings, card.tags) == ("Soup", 4, ["warm"])

    def test_missing_fields_take_defaults(self):
        card = coerce_shape(Card, {})
        assert card.title == "Untitled"
        assert card.servings == 1
        assert card.tags == []

    def test_mistyped_field_defaults_without_losing_others(self):
        card = coerce_shape(Card, {"title": "Soup", "servings": "a few", "tags": "warm"})
        assert card.title == "Soup"
        assert card.servings == 1
        assert card.tags == []

    def test_numeric_strings_are_coerced(self):
        assert coerce_shape(Card, {"servings": "6"}).servings == 6

    def test_null_values_take_defaults(self):
        assert coerce_shape(Card, {"title": None}).title == "Untitled"

    def test_non_dict_payload_gives_defaults(self):
        assert coerce_shape(Card, ["not", "an", "object"]) == coerce_shape(Card, {})

    def test_unknown_keys_ignored(self):
        card = coerce_shape(Card, {"title": "Soup", "mood": "cozy"})
        assert "mood" not in card.model_dump()

    def test_nested_shapes_are_coerced_item_by_item(self):
        card = coerce_shape(Card, {
            "steps": [{"text": "chop", "minutes": "5"}, "stir well", {"text": "simmer", "minutes": "long"}],
            "lead": {"text": "prep"},
        })
        assert [(s.text, s.minutes) for s in card.steps] == [("chop", 5), ("simmer", 0)]
        assert card.lead.text == "prep"

    def test_nested_shape_not_an_object_defaults(self):
        assert coerce_shape(Card, {"lead": "prep"}).lead == Step()

    def test_default_lists_are_not_shared(self):
        first = coerce_shape(Card, {})
        first.tags.append("x")
        assert coerce_shape(Card, {}).tags == []
