"""Tests for effective price sensitivity."""

import pytest

from storefront.core.models import (
    EmotionalContext,
    FinancialContext,
    PersonaContext,
    SituationalContext,
    TemporalContext,
)
from storefront.simulation.sensitivity import effective_sensitivity


def _context(
    tight=False,
    payday=False,
    expense=False,
    mood_index=2,
    rushing=False,
    friday_afternoon=False,
) -> PersonaContext:
    moods = ("terrible", "bad", "neutral", "good", "great")
    return PersonaContext(
        financial=FinancialContext(
            budget_remaining=12.0,
            is_payday=payday,
            had_recent_expense=expense,
            budget_tightness="tight" if tight else "comfortable",
        ),
        temporal=TemporalContext(
            day_of_week="Friday" if friday_afternoon else "Tuesday",
            time_of_day="afternoon" if friday_afternoon else "morning",
            is_rushing=rushing,
            is_weekend=False,
            is_monday_morning=False,
            is_friday_afternoon=friday_afternoon,
        ),
        emotional=EmotionalContext(
            current_mood=moods[mood_index],
            mood_reason="routine",
            mood_index=mood_index,
            is_bad_mood=mood_index <= 1,
            is_good_mood=mood_index >= 3,
        ),
        situational=SituationalContext(
            with_friends=False,
            has_alternative=False,
            quality_expectation=6,
            is_first_visit=False,
        ),
        turn_number=1,
    )


class TestEffectiveSensitivity:
    def test_neutral_day_keeps_base(self, make_persona):
        persona = make_persona(base_price_sensitivity=0.5)
        assert effective_sensitivity(persona, _context(), 80) == pytest.approx(0.5)

    def test_money_pressure_raises(self, make_persona):
        persona = make_persona(base_price_sensitivity=0.5)
        ctx = _context(tight=True, expense=True)
        assert effective_sensitivity(persona, ctx, 80) == pytest.approx(0.65)

    def test_payday_and_good_mood_lower(self, make_persona):
        persona = make_persona(base_price_sensitivity=0.5)
        ctx = _context(payday=True, mood_index=3)
        assert effective_sensitivity(persona, ctx, 80) == pytest.approx(0.35)

    def test_rushing_only_matters_for_speed_seekers(self, make_persona):
        ctx = _context(rushing=True)
        fast = make_persona(base_price_sensitivity=0.5, values_speed=True)
        slow = make_persona(base_price_sensitivity=0.5, values_speed=False)
        assert effective_sensitivity(fast, ctx, 80) == pytest.approx(0.35)
        assert effective_sensitivity(slow, ctx, 80) == pytest.approx(0.5)

    def test_friday_afternoon_relaxes(self, make_persona):
        persona = make_persona(base_price_sensitivity=0.5)
        ctx = _context(friday_afternoon=True)
        assert effective_sensitivity(persona, ctx, 80) == pytest.approx(0.45)

    def test_low_trust_stacks(self, make_persona):
        persona = make_persona(base_price_sensitivity=0.3)
        assert effective_sensitivity(persona, _context(), 50) == pytest.approx(0.45)
        assert effective_sensitivity(persona, _context(), 20) == pytest.approx(0.70)

    def test_clamped_to_unit_interval(self, make_persona):
        high = make_persona(base_price_sensitivity=0.95)
        ctx = _context(tight=True, expense=True, mood_index=0)
        assert effective_sensitivity(high, ctx, 10) == 1.0

        low = make_persona(base_price_sensitivity=0.05, values_speed=True)
        ctx = _context(payday=True, mood_index=4, rushing=True, friday_afternoon=True)
        assert effective_sensitivity(low, ctx, 90) == 0.0
