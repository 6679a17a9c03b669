"""
Bundled example spell collections.

Gives new users something to analyze straight away. The host shows these
next to the user's own saved collections and highlights the ones not yet
opened.

Usage:
    from src.catalog import get_example
    source = get_example('wizard_essentials')['source']
"""

from typing import Any, Dict, List


# === Example Definitions ===

EXAMPLES: Dict[str, Dict[str, Any]] = {
    'wizard_essentials': {
        'name': 'Wizard Essentials',
        'description': 'Classic evocation cantrips and leveled spells with upcasting',
        'source': """\
# Cantrips gain dice at character levels 5, 11 and 17
Fire Bolt: (1 + (level >= 5) + (level >= 11) + (level >= 17))d10
Ray of Frost: (1 + (level >= 5) + (level >= 11) + (level >= 17))d8

# Leveled spells gain dice when cast with a higher slot
Magic Missile [1]: repeat(2 + slot, 1d4 + 1)
Burning Hands [1]: (2 + slot)d6
Scorching Ray [2]: repeat(1 + slot, 2d6)
Fireball [3]: (5 + slot)d6
Lightning Bolt [3]: (5 + slot)d6
Cone of Cold [5]: (3 + slot)d8
""",
    },

    'warlock_blasts': {
        'name': 'Warlock Blasts',
        'description': 'Beam-based cantrips with a per-beam Charisma bonus',
        'source': """\
Eldritch Blast:
    repeat(1 + (level >= 5) + (level >= 11) + (level >= 17),
           1d10 + cha{label="Agonizing Blast bonus", default=4})
Hexed Eldritch Blast:
    repeat(1 + (level >= 5) + (level >= 11) + (level >= 17), 1d10 + cha + 1d6)
Hellish Rebuke [1]: (1 + slot)d10
Armor of Agathys [1]: 5 * slot
""",
    },

    'advantage': {
        'name': 'Advantage and Disadvantage',
        'description': 'How keeping the higher or lower roll shifts the odds',
        'source': """\
Attack roll: 1d20
With advantage: adv(1d20)
With disadvantage: dis(1d20)
Elven Accuracy: max(1d20, 1d20, 1d20)
Great Weapon Swing: adv(2d6) + mod
Green-Flame Blade: 1d8 + mod + (level >= 5) * (1d8 + mod)
""",
    },

    'area_effects': {
        'name': 'Area Effects',
        'description': 'Damage summed over several targets, and half damage on a save',
        'source': """\
# One roll applies to every target caught in the blast
Fireball, all targets [3]: targets * (5 + slot)d6
# Separate rolls per target
Shatter, rolled per target [2]: repeat(targets{1..6, default=3}, (1 + slot)d8)
Fireball, saved [3]: (5 + slot)d6 / 2
""",
    },
}


def get_example(key: str) -> Dict[str, Any]:
    """
    Get an example collection by key.

    Args:
        key: Example key (e.g., 'wizard_essentials')

    Returns:
        Dict with 'key', 'name', 'description' and 'source'

    Raises:
        ValueError: If the example does not exist
    """
    if key not in EXAMPLES:
        available = ', '.join(EXAMPLES.keys())
        raise ValueError(
            f"Example '{key}' not found. "
            f"Available examples: {available}"
        )
    return dict(EXAMPLES[key], key=key)


def list_examples() -> List[Dict[str, str]]:
    """
    List all bundled examples without their source text.

    Example:
        for example in list_examples():
            print(f"{example['key']}: {example['name']} - {example['description']}")
    """
    return [
        {
            'key': key,
            'name': config['name'],
            'description': config['description']
        }
        for key, config in EXAMPLES.items()
    ]


__all__ = [
    'EXAMPLES',
    'get_example',
    'list_examples',
]
