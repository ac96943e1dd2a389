"""Enums for model fields."""

from enum import Enum


class ProductType(str, Enum):
    """Product classification of a category, independent of its position in the tree."""

    SEEDS = "seeds"
    FERTILIZERS = "fertilizers"
    PESTICIDES = "pesticides"
    INOCULANTS = "inoculants"
    ADJUVANTS = "adjuvants"
    MICRONUTRIENTS = "micronutrients"
    OTHERS = "others"

    @property
    def label(self) -> str:
        """Human readable label for filter and form dropdowns."""
        return self.value.capitalize()

    @classmethod
    def options(cls) -> list[dict[str, str]]:
        """All types as value/label pairs, in declaration order."""
        return [{"value": member.value, "label": member.label} for member in cls]
