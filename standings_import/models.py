"""
Data models for the standings import pipeline.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union


CROP_MIN_PCT = 0
CROP_MAX_PCT = 40


class PreprocessMode(str, Enum):
    """Binarization heuristic used before OCR."""

    AUTO = 'auto'
    HIGH_CONTRAST = 'high-contrast'
    COLORED_TEXT = 'colored-text'

    @classmethod
    def from_value(cls, value: Union[str, 'PreprocessMode']) -> 'PreprocessMode':
        """Parse a mode name such as 'auto' or 'high-contrast'."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace('_', '-'))
        except ValueError:
            valid = [m.value for m in cls]
            raise ValueError(f"Unknown preprocess mode: {value}. Must be one of {valid}")


class MatchResult(str, Enum):
    """Outcome of a single match, stored as W/L/D."""

    WIN = 'W'
    LOSS = 'L'
    DRAW = 'D'

    @property
    def label(self) -> str:
        return {'W': 'Win', 'L': 'Loss', 'D': 'Draw'}[self.value]

    @classmethod
    def from_value(cls, value: Union[str, 'MatchResult']) -> 'MatchResult':
        """Accept 'W'/'L'/'D' or 'Win'/'Loss'/'Draw' (any case)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for result in cls:
            if text in (result.value.lower(), result.label.lower()):
                return result
        raise ValueError(f"Unknown match result: {value}")


class Ink(str, Enum):
    AMBER = 'Amber'
    AMETHYST = 'Amethyst'
    EMERALD = 'Emerald'
    RUBY = 'Ruby'
    SAPPHIRE = 'Sapphire'
    STEEL = 'Steel'


UNKNOWN_INKS = 'unknown'


@dataclass(frozen=True)
class CropSettings:
    """Crop percentages applied to each edge of the rescaled image."""

    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0

    def __post_init__(self):
        for name in ('top', 'right', 'bottom', 'left'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValueError(f"Crop {name} must be a number, got {value!r}")
            if not (CROP_MIN_PCT <= value <= CROP_MAX_PCT):
                raise ValueError(f"Crop {name}={value} not in range {CROP_MIN_PCT}-{CROP_MAX_PCT}")
        if self.left + self.right >= 100:
            raise ValueError("Crop left + right must be below 100")
        if self.top + self.bottom >= 100:
            raise ValueError("Crop top + bottom must be below 100")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CropSettings':
        data = data or {}
        unknown = set(data) - {'top', 'right', 'bottom', 'left'}
        if unknown:
            raise ValueError(f"Unknown crop keys: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, float]:
        return {'top': self.top, 'right': self.right, 'bottom': self.bottom, 'left': self.left}


@dataclass
class ParsedRow:
    """One standings-table entry recovered from OCR text."""

    rank: int
    player: str
    points: Optional[int] = None
    record: Optional[str] = None

    def is_valid(self) -> bool:
        return self.rank > 0 and bool(self.player)


@dataclass
class MatchRecord:
    """One atomic, storable match outcome."""

    result: MatchResult
    round: str = ''
    opponent: str = ''
    opponent_inks: Union[List[Ink], str] = UNKNOWN_INKS
    notes: Optional[str] = None
    id: Optional[str] = None
    deck_id: Optional[str] = None
    date_iso: Optional[str] = None
    event_name: Optional[str] = None
    opponent_deck_name: Optional[str] = None
    went_first: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    # camelCase keys used in the persisted JSON
    _KEYS = {
        'id': 'id',
        'deck_id': 'deckId',
        'date_iso': 'dateISO',
        'event_name': 'eventName',
        'round': 'round',
        'opponent': 'opponent',
        'opponent_deck_name': 'opponentDeckName',
        'opponent_inks': 'opponentInks',
        'went_first': 'wentFirst',
        'result': 'result',
        'notes': 'notes',
    }

    def stamped(self, **changes: Any) -> 'MatchRecord':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-ready dict, omitting unset optional fields."""
        data: Dict[str, Any] = dict(self.extra)
        for attr, key in self._KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if attr == 'result':
                value = value.value
            elif attr == 'opponent_inks' and not isinstance(value, str):
                value = [ink.value for ink in value]
            data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatchRecord':
        """
        Build a record from its persisted form.

        Raises:
            ValueError: If the result or an ink value is not recognized
        """
        if not isinstance(data, dict):
            raise ValueError(f"Match record must be an object, got {type(data).__name__}")
        if 'result' not in data:
            raise ValueError("Match record is missing 'result'")

        kwargs: Dict[str, Any] = {}
        for attr, key in cls._KEYS.items():
            if key in data:
                kwargs[attr] = data[key]

        kwargs['result'] = MatchResult.from_value(kwargs['result'])

        inks = kwargs.get('opponent_inks', UNKNOWN_INKS)
        if inks is None or inks == UNKNOWN_INKS:
            kwargs['opponent_inks'] = UNKNOWN_INKS
        else:
            kwargs['opponent_inks'] = [Ink(value) for value in inks]

        if 'round' in kwargs:
            # older entries stored the round as a number
            kwargs['round'] = str(kwargs['round'])

        kwargs['extra'] = {k: v for k, v in data.items() if k not in cls._KEYS.values()}
        return cls(**kwargs)
