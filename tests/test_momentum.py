"""Tests for market momentum, social pressure and mood labels."""

import pytest

from storefront.core.models import Decision, Momentum, PersonaResult
from storefront.simulation.momentum import (
    apply_social_pressure,
    compute_momentum,
    market_mood_label,
)


class TestComputeMomentum:
    def test_empty_is_neutral(self):
        momentum = compute_momentum([])
        assert momentum == Momentum()

    def test_seven_of_ten_leaving_is_a_crisis(self):
        decisions = ["Skip"] * 4 + ["Switch"] * 3 + ["Buy"] * 3
        momentum = compute_momentum(decisions)
        assert momentum.leaving == pytest.approx(0.7)
        assert momentum.staying == pytest.approx(0.3)
        assert momentum.switching == pytest.approx(0.3)
        assert momentum.mood == "mass_exit"
        assert market_mood_label(momentum) == "Brand Crisis"

    def test_mass_adoption(self):
        momentum = compute_momentum([Decision.BUY] * 8 + [Decision.SKIP] * 2)
        assert momentum.mood == "mass_adoption"
        assert market_mood_label(momentum) == "Viral Hype"

    def test_even_split_is_neutral(self):
        momentum = compute_momentum(["Buy", "Skip"])
        assert momentum.mood == "neutral"

    def test_accepts_persona_results(self):
        results = [
            PersonaResult(
                persona_id=i, persona_name="x", archetype="Student", decision=d
            )
            for i, d in enumerate([Decision.BUY, Decision.SWITCH])
        ]
        momentum = compute_momentum(results)
        assert momentum.staying == 0.5
        assert momentum.switching == 0.5


class TestSocialPressure:
    def test_no_momentum_no_change(self, make_persona):
        assert apply_social_pressure(make_persona(), 0.4, None) == 0.4

    def test_exodus_raises_sensitivity(self, make_persona):
        persona = make_persona(social_influence_weight=1.0)
        momentum = Momentum(leaving=0.7, staying=0.3)
        assert apply_social_pressure(persona, 0.4, momentum) == pytest.approx(0.6)

    def test_adoption_lowers_sensitivity(self, make_persona):
        persona = make_persona(social_influence_weight=1.0)
        momentum = Momentum(leaving=0.0, staying=1.0)
        assert apply_social_pressure(persona, 0.4, momentum) == pytest.approx(0.28)

    def test_weight_scales_pressure(self, make_persona):
        persona = make_persona(social_influence_weight=0.0)
        momentum = Momentum(leaving=0.9, staying=0.1)
        assert apply_social_pressure(persona, 0.4, momentum) == 0.4

    def test_result_clamped(self, make_persona):
        persona = make_persona(social_influence_weight=1.0)
        assert apply_social_pressure(persona, 0.95, Momentum(leaving=1.0)) == 1.0
        assert apply_social_pressure(persona, 0.05, Momentum(staying=1.0)) == 0.0


class TestMarketMoodLabel:
    @pytest.mark.parametrize(
        "leaving,staying,label",
        [
            (0.75, 0.25, "Brand Crisis"),
            (0.5, 0.5, "Mass Exodus"),
            (0.3, 0.7, "Resentful"),
            (0.1, 0.9, "Viral Hype"),
            (0.35, 0.65, "Resentful"),
            (0.2, 0.6, "FOMO Wave"),
            (0.25, 0.55, "Optimistic"),
            (0.2, 0.5, "Balanced"),
        ],
    )
    def test_labels(self, leaving, staying, label):
        assert market_mood_label(Momentum(leaving=leaving, staying=staying)) == label
