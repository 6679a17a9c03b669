"""
Host-owned application state.

Everything the user builds up between analysis passes lives here, held by
the host and passed into the engine by value: the current draft, parameter
values, saved collections, pinned spells and which bundled examples have
been opened. Pinning changes display order only; it never reaches analyze().
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List

import jsonschema

from src.core.result import ErrorCode, Result
from src.engine import CollectionAnalysis, SpellAnalysis

logger = logging.getLogger(__name__)


STATE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "source": {"type": "string"},
        "params": {"type": "object", "additionalProperties": {"type": "number"}},
        "saved": {"type": "object", "additionalProperties": {"type": "string"}},
        "pinned": {"type": "array", "items": {"type": "string"}},
        "seen_examples": {"type": "array", "items": {"type": "string"}}
    },
    "additionalProperties": False
}


@dataclass
class HostState:
    """
    State a host keeps for one user.

    Attributes:
        source: Current draft collection text
        params: Parameter id -> chosen value
        saved: Saved collection name -> source text
        pinned: Spell names shown first, in the order they were pinned
        seen_examples: Bundled example keys the user has opened
    """
    source: str = ''
    params: Dict[str, float] = field(default_factory=dict)
    saved: Dict[str, str] = field(default_factory=dict)
    pinned: List[str] = field(default_factory=list)
    seen_examples: List[str] = field(default_factory=list)

    # ---- parameters ----

    def set_param(self, parameter_id: str, value: float) -> None:
        self.params[parameter_id] = value

    def reset_params(self) -> None:
        self.params.clear()

    def params_snapshot(self) -> Dict[str, float]:
        """Copy of the parameter values, safe to hand to another thread."""
        return dict(self.params)

    # ---- saved collections ----

    def save_collection(self, name: str) -> Result:
        name = name.strip()
        if not name:
            return Result.fail("Collection name cannot be empty", ErrorCode.INVALID_REQUEST)
        self.saved[name] = self.source
        return Result.ok(name)

    def load_collection(self, name: str) -> Result:
        if name not in self.saved:
            return Result.fail(f"No saved collection named '{name}'", ErrorCode.NOT_FOUND)
        self.source = self.saved[name]
        return Result.ok(self.source)

    def delete_collection(self, name: str) -> Result:
        if self.saved.pop(name, None) is None:
            return Result.fail(f"No saved collection named '{name}'", ErrorCode.NOT_FOUND)
        return Result.ok(name)

    # ---- pinning and display ----

    def pin(self, spell_name: str) -> None:
        if spell_name not in self.pinned:
            self.pinned.append(spell_name)

    def unpin(self, spell_name: str) -> None:
        if spell_name in self.pinned:
            self.pinned.remove(spell_name)

    def display_order(self, analysis: CollectionAnalysis) -> List[SpellAnalysis]:
        """Pinned spells first (in pin order), then the rest in source order."""
        by_name = {spell.name: spell for spell in analysis.spells}
        pinned = [by_name[name] for name in self.pinned if name in by_name]
        rest = [spell for spell in analysis.spells if spell.name not in self.pinned]
        return pinned + rest

    # ---- bundled examples ----

    def mark_seen(self, example_key: str) -> None:
        if example_key not in self.seen_examples:
            self.seen_examples.append(example_key)

    def unseen_examples(self, example_keys: Iterable[str]) -> List[str]:
        return [key for key in example_keys if key not in self.seen_examples]

    # ---- serialization ----

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'params': dict(self.params),
            'saved': dict(self.saved),
            'pinned': list(self.pinned),
            'seen_examples': list(self.seen_examples),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'HostState':
        """
        Build state from its dictionary form.

        Raises:
            jsonschema.ValidationError: If data does not match STATE_SCHEMA
        """
        jsonschema.validate(data, STATE_SCHEMA)
        return HostState(
            source=data.get('source', ''),
            params=dict(data.get('params', {})),
            saved=dict(data.get('saved', {})),
            pinned=list(data.get('pinned', [])),
            seen_examples=list(data.get('seen_examples', [])),
        )


class StateStore:
    """
    Persists HostState as a JSON file.

    Example:
        store = StateStore('arcane_odds_state.json')
        state = store.load().data
        state.pin('Fireball')
        store.save(state)
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Result:
        """Load state; a missing file yields a fresh HostState."""
        if not self.path.exists():
            logger.debug(f"No state file at {self.path}, starting fresh")
            return Result.ok(HostState())
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return Result.ok(HostState.from_dict(data))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read state from {self.path}: {e}")
            return Result.fail(f"Could not read state: {e}", ErrorCode.STORAGE_ERROR)
        except jsonschema.ValidationError as e:
            logger.error(f"Invalid state file {self.path}: {e.message}")
            return Result.fail(f"Invalid state file: {e.message}", ErrorCode.STORAGE_ERROR)

    def save(self, state: HostState) -> Result:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.path.with_name(self.path.name + '.tmp')
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(state.to_dict(), f, indent=2)
            temp_path.replace(self.path)
            return Result.ok(str(self.path))
        except OSError as e:
            logger.error(f"Could not write state to {self.path}: {e}")
            return Result.fail(f"Could not write state: {e}", ErrorCode.STORAGE_ERROR)


__all__ = ['HostState', 'StateStore', 'STATE_SCHEMA']
