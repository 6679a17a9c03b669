"""
Unit tests for the collection analyzer.
"""

import json
import math
import time

import pytest

from src.engine import analyze


class TestAnalyze:
    """Test analyzing whole collections."""

    def test_defaults(self, sample_source):
        """Test a collection evaluated with default parameters."""
        result = analyze(sample_source)
        assert result.errors == []
        assert [s.name for s in result.spells] == [
            'Fire Bolt', 'Magic Missile', 'Fireball', 'Eldritch Blast'
        ]
        means = {s.name: s.mean for s in result.spells}
        assert means == {
            'Fire Bolt': 11.0,          # level 5: 2d10
            'Magic Missile': 10.5,      # cast at 1: three darts
            'Fireball': 28.0,           # cast at 3: 8d6
            'Eldritch Blast': 5.5,      # one beam, cha 0
        }

    def test_two_d_six(self):
        """Test mean and spread of a plain roll."""
        spell = analyze("Damage: 2d6").spells[0]
        assert spell.mean == 7.0
        assert spell.stddev == pytest.approx(math.sqrt(35 / 6))
        assert spell.plausible_max == 12
        assert spell.level is None
        assert spell.cast_level is None

    def test_slot_upcasting(self, sample_source):
        """Test casting leveled spells at a higher slot."""
        result = analyze(sample_source, {'slot': 5})
        fireball = result.spell('Fireball')
        assert fireball.cast_level == 5
        assert fireball.mean == 35.0
        assert not fireball.below_minimum
        assert result.spell('Magic Missile').mean == 24.5

    def test_cast_below_minimum(self):
        """Test a leveled spell cast at too low a slot."""
        result = analyze("Fireball [3]: (5 + slot)d6", {'slot': 2})
        assert result.errors == []
        spell = result.spells[0]
        assert spell.below_minimum
        assert spell.cast_level == 2
        assert spell.mean == 24.5

    def test_cast_level_omitted_at_own_level(self):
        """Test that casting at the declared level reports no cast level."""
        spell = analyze("Fireball [3]: (5 + slot)d6", {'slot': 3}).spells[0]
        assert spell.cast_level is None
        assert not spell.below_minimum

    def test_repeat_zero(self):
        """Test a spell that can never deal damage."""
        spell = analyze("Nothing: repeat(0, 8d6)").spells[0]
        assert (spell.mean, spell.stddev, spell.plausible_max) == (0.0, 0.0, 0)

    def test_advantage_shifts_mean(self):
        """Test adv and dis against a plain d20."""
        result = analyze("Plain: 1d20\nAdv: adv(1d20)\nDis: dis(1d20)\n")
        plain, adv, dis = (result.spell(n).mean for n in ('Plain', 'Adv', 'Dis'))
        assert dis < plain < adv
        assert adv == pytest.approx(13.825)

    def test_shared_parameter(self):
        """Test one parameter feeding two spells."""
        result = analyze("A: 1d6 + bonus\nB: 2 * bonus\n", {'bonus': 3})
        assert [p.id for g in result.parameter_groups for p in g.parameters] == ['bonus']
        assert result.spell('A').mean == 6.5
        assert result.spell('B').mean == 6.0

    def test_declared_default_used(self):
        """Test that an unassigned parameter falls back to its default."""
        assert analyze("A: x{0..10, default=4}").spells[0].mean == 4.0

    @pytest.mark.parametrize('source, mean', [
        ("A: 1d4 + penalty{default=-2}", 0.5),
        ("A: 1d6 + penalty{default=-2}", 1.5),
        ("A: bonus{default=30}", 30.0),
    ])
    def test_declared_default_outside_generic_range(self, source, mean):
        """Test that a declared default is used as written."""
        result = analyze(source)
        assert result.errors == []
        assert result.spells[0].mean == mean

    def test_unknown_assignment_ignored(self, sample_source):
        """Test values for ids the collection never uses."""
        assert analyze(sample_source, {'nonsense': 7}).to_dict() == analyze(sample_source).to_dict()

    def test_params_not_mutated(self, sample_source):
        """Test that the caller's mapping is left alone."""
        params = {'level': 11}
        analyze(sample_source, params)
        assert params == {'level': 11}


class TestIsolation:
    """Test determinism and per-spell isolation."""

    def test_deterministic(self, sample_source):
        """Test identical inputs give identical results."""
        params = {'slot': 4, 'cha': 3, 'level': 11}
        assert analyze(sample_source, params).to_dict() == analyze(sample_source, params).to_dict()

    def test_unrelated_parameter_change(self, sample_source):
        """Test that changing cha only affects the spell that uses it."""
        before = analyze(sample_source, {'cha': 0})
        after = analyze(sample_source, {'cha': 3})
        for name in ('Fire Bolt', 'Magic Missile', 'Fireball'):
            assert before.spell(name).to_dict() == after.spell(name).to_dict()
        assert after.spell('Eldritch Blast').mean == 8.5

    def test_syntax_error_isolated(self):
        """Test one bad block next to a good one."""
        result = analyze("Good: 1d6\nBad: 1d6 +\n")
        assert [s.name for s in result.spells] == ['Good']
        assert result.errors == ["Bad (line 2): unexpected end of formula"]

    def test_evaluation_error_isolated(self):
        """Test a spell that fails only at evaluation time."""
        result = analyze("Bad: 1d6 / 0\nGood: 1d6\n")
        assert [s.name for s in result.spells] == ['Good']
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Bad (line 1): division by zero")

    def test_errors_ordered_by_line(self):
        """Test that syntax and evaluation errors interleave by line."""
        result = analyze("Bad Eval: 1d6 / 0\nGood: 1d6\nBroken: 1d6 +\n")
        assert len(result.errors) == 2
        assert result.errors[0].startswith("Bad Eval (line 1)")
        assert result.errors[1].startswith("Broken (line 3)")

    def test_non_integral_parameter(self, sample_source):
        """Test a fractional value for a parameter one spell uses."""
        result = analyze(sample_source, {'cha': 1.5})
        assert len(result.spells) == 3
        assert result.errors[0].startswith("Eldritch Blast (line 5)")
        assert 'whole number' in result.errors[0]

    def test_non_integral_slot(self, sample_source):
        """Test a fractional slot level for leveled spells."""
        result = analyze(sample_source, {'slot': 2.5})
        assert [s.name for s in result.spells] == ['Fire Bolt', 'Eldritch Blast']
        assert len(result.errors) == 2

    def test_never_raises(self):
        """Test input that is not text at all."""
        result = analyze(None)
        assert result.spells == []
        assert result.errors[0].startswith('unexpected error')

    def test_huge_pool_reported_quickly(self):
        """Test that an oversized dice pool is an error line, not a stall."""
        started = time.monotonic()
        result = analyze("Huge: 1000d20\nSmall: 1d6\n")
        assert time.monotonic() - started < 5.0
        assert [s.name for s in result.spells] == ['Small']
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Huge (line 1): '1000d20' is too large")


class TestSerialization:
    """Test the JSON-ready form."""

    def test_to_dict(self, sample_source):
        """Test that the whole analysis serializes to JSON."""
        data = analyze(sample_source, {'slot': 2}).to_dict()
        json.dumps(data)

        fireball = data['spells'][2]
        assert fireball['name'] == 'Fireball'
        assert fireball['below_minimum'] is True
        assert fireball['formula'] == '(5 + slot)d6'
        assert (fireball['min'], fireball['max']) == (7, 42)
        assert sum(p for _, p in fireball['histogram']) == pytest.approx(1.0)
        assert [g['name'] for g in data['parameters']] == [
            'Caster', 'Casting', 'Other', 'Ability modifiers'
        ]
        assert data['errors'] == []
