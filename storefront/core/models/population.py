"""Persona models for Storefront.

A Persona is an immutable consumer profile: archetype, behavioural trait
scalars in [0, 1], a budget range and the times of day it shops.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


TimeOfDay = Literal["morning", "lunch", "afternoon", "evening"]


class Archetype(str, Enum):
    STUDENT = "Student"
    PROFESSIONAL = "Professional"
    RETIREE = "Retiree"
    PARENT = "Parent"
    TOURIST = "Tourist"
    FREELANCER = "Freelancer"
    HEALTH_CONSCIOUS = "HealthConscious"


class Persona(BaseModel):
    """A synthetic consumer.

    Trait scalars are all in [0, 1]. ``quality_threshold`` is the share of
    attention the persona pays to quality over price.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Unique, stable persona id")
    name: str
    archetype: Archetype
    base_price_sensitivity: float = Field(ge=0.0, le=1.0)
    brand_loyalty: float = Field(ge=0.0, le=1.0)
    social_influence_weight: float = Field(ge=0.0, le=1.0)
    quality_threshold: float = Field(ge=0.0, le=1.0)
    risk_tolerance: float = Field(ge=0.0, le=1.0)
    mood_variance: float = Field(ge=0.0, le=1.0)
    weekday_preference: float = Field(ge=0.0, le=1.0)
    budget_range: tuple[float, float] = Field(
        description="(min, max) spend per visit in currency units"
    )
    preferred_times: tuple[TimeOfDay, ...] = Field(min_length=1)
    values_speed: bool = False
    values_quality: bool = False
    backstory: str = ""

    @model_validator(mode="after")
    def _check_budget(self) -> "Persona":
        low, high = self.budget_range
        if low < 0 or high < 0:
            raise ValueError(f"budget_range must be non-negative, got {self.budget_range}")
        if low > high:
            raise ValueError(f"budget_range min > max: {self.budget_range}")
        return self
