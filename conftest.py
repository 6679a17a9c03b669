"""
Shared pytest fixtures for Arcane Odds.

Lives at the project root so `src` is importable when running pytest from a
plain checkout.
"""

import pytest


SAMPLE_COLLECTION = """\
# Sample collection used across the test suites
Fire Bolt: (1 + (level >= 5) + (level >= 11) + (level >= 17))d10
Magic Missile [1]: repeat(2 + slot, 1d4 + 1)
Fireball [3]: (5 + slot)d6
Eldritch Blast: repeat(beams{1..4, default=1, label="Beams"}, 1d10 + cha)
"""


@pytest.fixture
def sample_source():
    """A small, valid spell collection."""
    return SAMPLE_COLLECTION


@pytest.fixture
def state_file(tmp_path):
    """Path for a throwaway host state file."""
    return str(tmp_path / 'state.json')
