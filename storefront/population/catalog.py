"""Persona catalog: the built-in population and YAML catalog I/O.

A catalog file is a YAML document with a top-level ``personas`` list; each
entry holds the Persona fields. Example:

    personas:
      - id: 1
        name: Maya Chen
        archetype: Student
        base_price_sensitivity: 0.85
        ...
        budget_range: [5, 15]
        preferred_times: [morning, afternoon]
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..core.models import Persona


logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when a catalog file cannot be read or fails validation."""


# =============================================================================
# Built-in population
# =============================================================================

_BUILTIN_PERSONAS: list[dict] = [
    {
        "id": 1,
        "name": "Maya Chen",
        "archetype": "Student",
        "base_price_sensitivity": 0.85,
        "brand_loyalty": 0.30,
        "social_influence_weight": 0.75,
        "quality_threshold": 0.40,
        "risk_tolerance": 0.70,
        "mood_variance": 0.60,
        "weekday_preference": 0.80,
        "budget_range": (5.0, 15.0),
        "preferred_times": ("morning", "afternoon"),
        "values_speed": True,
        "values_quality": False,
        "backstory": "Second-year engineering student living on a part-time barista wage.",
    },
    {
        "id": 2,
        "name": "Jordan Blake",
        "archetype": "Student",
        "base_price_sensitivity": 0.75,
        "brand_loyalty": 0.40,
        "social_influence_weight": 0.85,
        "quality_threshold": 0.35,
        "risk_tolerance": 0.80,
        "mood_variance": 0.70,
        "weekday_preference": 0.60,
        "budget_range": (4.0, 12.0),
        "preferred_times": ("lunch", "evening"),
        "values_speed": False,
        "values_quality": False,
        "backstory": "Art student who goes wherever the group chat goes.",
    },
    {
        "id": 3,
        "name": "Priya Natarajan",
        "archetype": "Student",
        "base_price_sensitivity": 0.70,
        "brand_loyalty": 0.55,
        "social_influence_weight": 0.50,
        "quality_threshold": 0.60,
        "risk_tolerance": 0.45,
        "mood_variance": 0.40,
        "weekday_preference": 0.90,
        "budget_range": (6.0, 14.0),
        "preferred_times": ("morning", "lunch"),
        "values_speed": True,
        "values_quality": True,
        "backstory": "Graduate researcher with a tight stipend and a long lab day.",
    },
    {
        "id": 4,
        "name": "Marcus Reid",
        "archetype": "Professional",
        "base_price_sensitivity": 0.30,
        "brand_loyalty": 0.65,
        "social_influence_weight": 0.35,
        "quality_threshold": 0.75,
        "risk_tolerance": 0.40,
        "mood_variance": 0.35,
        "weekday_preference": 0.95,
        "budget_range": (15.0, 40.0),
        "preferred_times": ("morning", "lunch"),
        "values_speed": True,
        "values_quality": True,
        "backstory": "Corporate lawyer who wants it fast and done right.",
    },
    {
        "id": 5,
        "name": "Elena Varga",
        "archetype": "Professional",
        "base_price_sensitivity": 0.40,
        "brand_loyalty": 0.50,
        "social_influence_weight": 0.40,
        "quality_threshold": 0.70,
        "risk_tolerance": 0.50,
        "mood_variance": 0.45,
        "weekday_preference": 0.85,
        "budget_range": (12.0, 35.0),
        "preferred_times": ("morning", "afternoon"),
        "values_speed": True,
        "values_quality": False,
        "backstory": "Product manager who grabs something between meetings.",
    },
    {
        "id": 6,
        "name": "David Okafor",
        "archetype": "Professional",
        "base_price_sensitivity": 0.25,
        "brand_loyalty": 0.75,
        "social_influence_weight": 0.25,
        "quality_threshold": 0.80,
        "risk_tolerance": 0.30,
        "mood_variance": 0.30,
        "weekday_preference": 0.90,
        "budget_range": (20.0, 50.0),
        "preferred_times": ("lunch", "evening"),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Surgeon who treats a good lunch as the one calm hour of the day.",
    },
    {
        "id": 7,
        "name": "Harold Jenkins",
        "archetype": "Retiree",
        "base_price_sensitivity": 0.65,
        "brand_loyalty": 0.90,
        "social_influence_weight": 0.20,
        "quality_threshold": 0.65,
        "risk_tolerance": 0.15,
        "mood_variance": 0.25,
        "weekday_preference": 0.50,
        "budget_range": (8.0, 20.0),
        "preferred_times": ("morning", "afternoon"),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Retired schoolteacher who has come here every Tuesday for years.",
    },
    {
        "id": 8,
        "name": "Rosa Delgado",
        "archetype": "Retiree",
        "base_price_sensitivity": 0.70,
        "brand_loyalty": 0.80,
        "social_influence_weight": 0.35,
        "quality_threshold": 0.55,
        "risk_tolerance": 0.20,
        "mood_variance": 0.35,
        "weekday_preference": 0.55,
        "budget_range": (6.0, 18.0),
        "preferred_times": ("morning", "lunch"),
        "values_speed": False,
        "values_quality": False,
        "backstory": "Widowed grandmother on a fixed pension who notices every price change.",
    },
    {
        "id": 9,
        "name": "Walter Brooks",
        "archetype": "Retiree",
        "base_price_sensitivity": 0.50,
        "brand_loyalty": 0.85,
        "social_influence_weight": 0.15,
        "quality_threshold": 0.75,
        "risk_tolerance": 0.25,
        "mood_variance": 0.20,
        "weekday_preference": 0.45,
        "budget_range": (10.0, 25.0),
        "preferred_times": ("afternoon",),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Retired engineer with firm opinions about how things should be made.",
    },
    {
        "id": 10,
        "name": "Sarah Mitchell",
        "archetype": "Parent",
        "base_price_sensitivity": 0.60,
        "brand_loyalty": 0.60,
        "social_influence_weight": 0.55,
        "quality_threshold": 0.60,
        "risk_tolerance": 0.30,
        "mood_variance": 0.65,
        "weekday_preference": 0.70,
        "budget_range": (10.0, 30.0),
        "preferred_times": ("morning", "afternoon"),
        "values_speed": True,
        "values_quality": False,
        "backstory": "Mother of three juggling school runs and a part-time job.",
    },
    {
        "id": 11,
        "name": "Tom Alvarez",
        "archetype": "Parent",
        "base_price_sensitivity": 0.55,
        "brand_loyalty": 0.55,
        "social_influence_weight": 0.45,
        "quality_threshold": 0.65,
        "risk_tolerance": 0.35,
        "mood_variance": 0.55,
        "weekday_preference": 0.40,
        "budget_range": (12.0, 35.0),
        "preferred_times": ("lunch", "evening"),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Weekend dad who likes treating the kids to something good.",
    },
    {
        "id": 12,
        "name": "Aisha Rahman",
        "archetype": "Parent",
        "base_price_sensitivity": 0.65,
        "brand_loyalty": 0.45,
        "social_influence_weight": 0.60,
        "quality_threshold": 0.50,
        "risk_tolerance": 0.40,
        "mood_variance": 0.50,
        "weekday_preference": 0.75,
        "budget_range": (8.0, 25.0),
        "preferred_times": ("morning", "lunch"),
        "values_speed": True,
        "values_quality": False,
        "backstory": "New parent running on four hours of sleep.",
    },
    {
        "id": 13,
        "name": "Lukas Berger",
        "archetype": "Tourist",
        "base_price_sensitivity": 0.35,
        "brand_loyalty": 0.10,
        "social_influence_weight": 0.70,
        "quality_threshold": 0.60,
        "risk_tolerance": 0.85,
        "mood_variance": 0.40,
        "weekday_preference": 0.40,
        "budget_range": (15.0, 45.0),
        "preferred_times": ("lunch", "afternoon", "evening"),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Backpacker in town for a week, following online reviews.",
    },
    {
        "id": 14,
        "name": "Yuki Tanaka",
        "archetype": "Tourist",
        "base_price_sensitivity": 0.45,
        "brand_loyalty": 0.15,
        "social_influence_weight": 0.80,
        "quality_threshold": 0.70,
        "risk_tolerance": 0.75,
        "mood_variance": 0.35,
        "weekday_preference": 0.35,
        "budget_range": (12.0, 40.0),
        "preferred_times": ("morning", "afternoon"),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Visiting on a food tour and photographing everything.",
    },
    {
        "id": 15,
        "name": "Sam Rivera",
        "archetype": "Freelancer",
        "base_price_sensitivity": 0.60,
        "brand_loyalty": 0.50,
        "social_influence_weight": 0.45,
        "quality_threshold": 0.55,
        "risk_tolerance": 0.60,
        "mood_variance": 0.70,
        "weekday_preference": 0.60,
        "budget_range": (8.0, 25.0),
        "preferred_times": ("morning", "afternoon"),
        "values_speed": False,
        "values_quality": False,
        "backstory": "Freelance designer who works from cafés and watches cash flow closely.",
    },
    {
        "id": 16,
        "name": "Nadia Petrova",
        "archetype": "Freelancer",
        "base_price_sensitivity": 0.50,
        "brand_loyalty": 0.60,
        "social_influence_weight": 0.40,
        "quality_threshold": 0.65,
        "risk_tolerance": 0.55,
        "mood_variance": 0.60,
        "weekday_preference": 0.50,
        "budget_range": (10.0, 30.0),
        "preferred_times": ("lunch", "afternoon"),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Copywriter with irregular invoices and a favourite corner table.",
    },
    {
        "id": 17,
        "name": "Chris Donovan",
        "archetype": "Freelancer",
        "base_price_sensitivity": 0.55,
        "brand_loyalty": 0.35,
        "social_influence_weight": 0.55,
        "quality_threshold": 0.45,
        "risk_tolerance": 0.70,
        "mood_variance": 0.75,
        "weekday_preference": 0.65,
        "budget_range": (7.0, 22.0),
        "preferred_times": ("morning", "evening"),
        "values_speed": True,
        "values_quality": False,
        "backstory": "Gig-economy developer whose mood tracks this month's contracts.",
    },
    {
        "id": 18,
        "name": "Olivia Hart",
        "archetype": "HealthConscious",
        "base_price_sensitivity": 0.35,
        "brand_loyalty": 0.70,
        "social_influence_weight": 0.50,
        "quality_threshold": 0.90,
        "risk_tolerance": 0.35,
        "mood_variance": 0.30,
        "weekday_preference": 0.70,
        "budget_range": (12.0, 35.0),
        "preferred_times": ("morning", "lunch"),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Yoga instructor who reads every ingredient label.",
    },
    {
        "id": 19,
        "name": "Ben Kowalski",
        "archetype": "HealthConscious",
        "base_price_sensitivity": 0.40,
        "brand_loyalty": 0.65,
        "social_influence_weight": 0.40,
        "quality_threshold": 0.85,
        "risk_tolerance": 0.40,
        "mood_variance": 0.35,
        "weekday_preference": 0.60,
        "budget_range": (10.0, 30.0),
        "preferred_times": ("morning", "evening"),
        "values_speed": True,
        "values_quality": True,
        "backstory": "Marathon runner fitting meals around training blocks.",
    },
    {
        "id": 20,
        "name": "Grace Liu",
        "archetype": "HealthConscious",
        "base_price_sensitivity": 0.45,
        "brand_loyalty": 0.55,
        "social_influence_weight": 0.65,
        "quality_threshold": 0.80,
        "risk_tolerance": 0.45,
        "mood_variance": 0.40,
        "weekday_preference": 0.75,
        "budget_range": (10.0, 28.0),
        "preferred_times": ("lunch", "afternoon"),
        "values_speed": False,
        "values_quality": True,
        "backstory": "Nutritionist who recommends places to her clients.",
    },
]


def builtin_catalog() -> list[Persona]:
    """Return the built-in 20-persona population."""
    return [Persona.model_validate(p) for p in _BUILTIN_PERSONAS]


# =============================================================================
# Catalog I/O
# =============================================================================


def _validate_catalog(entries: list, source: str) -> list[Persona]:
    personas: list[Persona] = []
    seen: set[int] = set()
    for i, entry in enumerate(entries):
        try:
            persona = Persona.model_validate(entry)
        except ValidationError as e:
            raise CatalogError(f"{source}: persona #{i} is invalid: {e}") from e
        if persona.id in seen:
            raise CatalogError(f"{source}: duplicate persona id {persona.id}")
        seen.add(persona.id)
        personas.append(persona)
    return personas


def load_catalog(path: Path | str | None = None) -> list[Persona]:
    """Load a persona catalog from YAML, or the built-in one when path is empty.

    Raises:
        CatalogError: If the file is missing, unparsable or invalid.
    """
    if not path:
        return builtin_catalog()

    path = Path(path)
    if not path.exists():
        raise CatalogError(f"Catalog file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise CatalogError(f"Failed to read catalog {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("personas"), list):
        raise CatalogError(f"{path}: expected a top-level 'personas' list")

    personas = _validate_catalog(data["personas"], str(path))
    logger.info(f"[CATALOG] Loaded {len(personas)} personas from {path}")
    return personas


def save_catalog(personas: list[Persona], path: Path | str) -> None:
    """Write a catalog to YAML (round-trips through load_catalog)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "personas": [
            {
                **p.model_dump(mode="json"),
                "budget_range": list(p.budget_range),
                "preferred_times": list(p.preferred_times),
            }
            for p in personas
        ]
    }
    with open(path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)


def get_persona(personas: list[Persona], persona_id: int) -> Persona | None:
    for persona in personas:
        if persona.id == persona_id:
            return persona
    return None
