"""
Parameter discovery for spell collections.

Walks every parsed formula and produces the named numeric inputs the
collection depends on, each with the widget shape the host should show.

Descriptor fields are resolved per parameter id in this order:
1. the first explicit inline declaration in the collection, e.g. beams{1..4}
   (later conflicting declarations are ignored)
2. the catalog of well-known parameters below
3. generic defaults
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .expressions import Parameter, ParameterDeclaration, walk
from .parser import SpellDefinition

logger = logging.getLogger(__name__)

SLOT_PARAMETER = 'slot'

ABILITY_NAMES = {
    'str': 'Strength',
    'dex': 'Dexterity',
    'con': 'Constitution',
    'int': 'Intelligence',
    'wis': 'Wisdom',
    'cha': 'Charisma',
}

KNOWN_PARAMETERS: Dict[str, Dict[str, Any]] = {
    'level': {
        'label': 'Character level', 'group': 'Caster', 'kind': 'stepper',
        'minimum': 1, 'maximum': 20, 'step': 1, 'default': 5,
    },
    'mod': {
        'label': 'Spellcasting modifier', 'group': 'Caster', 'kind': 'stepper',
        'minimum': -5, 'maximum': 10, 'step': 1, 'default': 3,
    },
    'prof': {
        'label': 'Proficiency bonus', 'group': 'Caster', 'kind': 'stepper',
        'minimum': 2, 'maximum': 6, 'step': 1, 'default': 2,
    },
    SLOT_PARAMETER: {
        'label': 'Cast at slot level', 'group': 'Casting', 'kind': 'stepper',
        'minimum': 1, 'maximum': 9, 'step': 1, 'default': 1,
    },
    'targets': {
        'label': 'Targets affected', 'group': 'Situation', 'kind': 'slider',
        'minimum': 1, 'maximum': 10, 'step': 1, 'default': 1,
    },
}
KNOWN_PARAMETERS.update({
    key: {
        'label': f'{name} modifier', 'group': 'Ability modifiers', 'kind': 'stepper',
        'minimum': -5, 'maximum': 10, 'step': 1, 'default': 0,
    }
    for key, name in ABILITY_NAMES.items()
})

GENERIC_PARAMETER: Dict[str, Any] = {
    'group': 'Other', 'kind': None,
    'minimum': 0, 'maximum': 20, 'step': 1, 'default': 0,
}

# Ranges wider than this get a slider rather than a stepper
SLIDER_SPAN = 20


@dataclass(frozen=True)
class ParameterDescriptor:
    """A named numeric input and the widget the host should use for it."""
    id: str
    label: str
    group: str
    kind: str      # 'stepper' or 'slider'
    minimum: int
    maximum: int
    step: int
    default: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'label': self.label,
            'group': self.group,
            'kind': self.kind,
            'min': self.minimum,
            'max': self.maximum,
            'step': self.step,
            'default': self.default,
        }


@dataclass
class ParameterGroup:
    """Descriptors shown together, in first-seen order."""
    name: str
    parameters: List[ParameterDescriptor] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'parameters': [p.to_dict() for p in self.parameters],
        }


def label_for(parameter_id: str) -> str:
    """Readable label for an undeclared id: 'fire_bonus' -> 'Fire bonus'."""
    words = parameter_id.replace('_', ' ').strip()
    return words[:1].upper() + words[1:] if words else parameter_id


def build_descriptor(parameter_id: str, declaration: Optional[ParameterDeclaration] = None) -> ParameterDescriptor:
    """Merge declaration, catalog entry and generic defaults for one id."""
    fields: Dict[str, Any] = dict(GENERIC_PARAMETER, label=label_for(parameter_id))
    fields.update(KNOWN_PARAMETERS.get(parameter_id, {}))
    declared = set()
    if declaration is not None:
        for name in ('label', 'group', 'kind', 'minimum', 'maximum', 'step', 'default'):
            value = getattr(declaration, name)
            if value is not None:
                fields[name] = value
                declared.add(name)

    # A declaration may move only one bound; keep the range and default consistent
    if 'maximum' in declared and 'minimum' not in declared:
        fields['minimum'] = min(fields['minimum'], fields['maximum'])
    fields['maximum'] = max(fields['maximum'], fields['minimum'])

    # A declared default is kept as written; only inherited bounds move to admit it
    if 'default' in declared:
        if 'minimum' not in declared:
            fields['minimum'] = min(fields['minimum'], fields['default'])
        if 'maximum' not in declared:
            fields['maximum'] = max(fields['maximum'], fields['default'])
    fields['default'] = min(max(fields['default'], fields['minimum']), fields['maximum'])

    if fields['kind'] is None:
        fields['kind'] = 'slider' if fields['maximum'] - fields['minimum'] > SLIDER_SPAN else 'stepper'

    return ParameterDescriptor(id=parameter_id, **fields)


def discover_parameters(spells: Iterable[SpellDefinition]) -> List[ParameterGroup]:
    """
    Collect the parameters referenced by a collection.

    Groups appear in first-seen order and parameters within a group in
    first-seen order. Each id appears exactly once. The slot parameter is
    included as soon as any spell declares a casting level, since it drives
    the cast-at-level input.

    Args:
        spells: Parsed spells in source order

    Returns:
        Ordered list of parameter groups
    """
    order: List[str] = []
    declarations: Dict[str, ParameterDeclaration] = {}

    for spell in spells:
        if spell.level is not None and SLOT_PARAMETER not in order:
            order.append(SLOT_PARAMETER)
        for node in walk(spell.expression):
            if not isinstance(node, Parameter):
                continue
            if node.name not in order:
                order.append(node.name)
            if node.declaration is None:
                continue
            if node.name not in declarations:
                declarations[node.name] = node.declaration
            elif declarations[node.name] != node.declaration:
                logger.debug(
                    f"Ignoring declaration {node.declaration} of '{node.name}' in {spell.name}; "
                    f"first declaration {declarations[node.name]} wins"
                )

    groups: Dict[str, ParameterGroup] = {}
    for parameter_id in order:
        descriptor = build_descriptor(parameter_id, declarations.get(parameter_id))
        groups.setdefault(descriptor.group, ParameterGroup(descriptor.group)).parameters.append(descriptor)

    return list(groups.values())


def index_descriptors(groups: Iterable[ParameterGroup]) -> Dict[str, ParameterDescriptor]:
    """Flatten groups into an id -> descriptor mapping."""
    return {p.id: p for group in groups for p in group.parameters}


__all__ = [
    'ParameterDescriptor', 'ParameterGroup', 'KNOWN_PARAMETERS', 'SLOT_PARAMETER',
    'build_descriptor', 'discover_parameters', 'index_descriptors', 'label_for',
]
