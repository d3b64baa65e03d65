"""
ASL pattern table loading.

The 26 static letter templates live in a versioned YAML asset so they can
be tuned or replaced without touching code. The table is validated on
load and cached once per path.
"""

import logging
import string
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional, Tuple

import yaml

from ..core.errors import PatternTableError
from ..core.types import FINGERS, Signature

logger = logging.getLogger(__name__)

# Canonical scan order; ties between letters resolve to the earliest one
CANONICAL_LETTERS: Tuple[str, ...] = tuple(string.ascii_uppercase)

DEFAULT_PATTERNS_PATH = Path(__file__).resolve().parent.parent / "data" / "asl_patterns.yaml"


@dataclass(frozen=True)
class ASLPattern:
    """Expected finger signature and guidance for one letter."""
    letter: str
    signature: Signature
    weight: float
    description: str = ""
    tips: Tuple[str, ...] = ()
    motion: bool = False

    def expects(self, finger: str) -> bool:
        return self.signature[FINGERS.index(finger)]

    @property
    def extended_fingers(self) -> Tuple[str, ...]:
        return tuple(f for f, s in zip(FINGERS, self.signature) if s)


class PatternTable(Mapping):
    """Read-only letter -> ASLPattern mapping in canonical A->Z order."""

    def __init__(self, patterns: Dict[str, ASLPattern], version: int = 1, source: str = ""):
        missing = [c for c in CANONICAL_LETTERS if c not in patterns]
        if missing:
            raise PatternTableError(f"Pattern table missing letters: {', '.join(missing)}")
        extra = sorted(set(patterns) - set(CANONICAL_LETTERS))
        if extra:
            raise PatternTableError(f"Pattern table has unknown letters: {', '.join(extra)}")
        self._patterns = {c: patterns[c] for c in CANONICAL_LETTERS}
        self.version = version
        self.source = source

    def __getitem__(self, letter: str) -> ASLPattern:
        return self._patterns[letter.upper()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def same_signature(self, letter: str) -> Tuple[str, ...]:
        """All letters sharing ``letter``'s expected signature, A->Z."""
        signature = self[letter].signature
        return tuple(c for c, p in self._patterns.items() if p.signature == signature)

    def clusters(self) -> Dict[Signature, Tuple[str, ...]]:
        """Letters grouped by signature; groups of one are included."""
        groups: Dict[Signature, list] = {}
        for letter, pattern in self._patterns.items():
            groups.setdefault(pattern.signature, []).append(letter)
        return {sig: tuple(letters) for sig, letters in groups.items()}


def _parse_pattern(letter: str, entry) -> ASLPattern:
    if not isinstance(entry, dict):
        raise PatternTableError(f"{letter}: entry must be a mapping")

    fingers = entry.get("fingers")
    if not isinstance(fingers, dict):
        raise PatternTableError(f"{letter}: 'fingers' must map finger names to booleans")
    unknown = set(fingers) - set(FINGERS)
    if unknown:
        raise PatternTableError(f"{letter}: unknown fingers {sorted(unknown)}")
    try:
        signature = tuple(fingers[f] for f in FINGERS)
    except KeyError as e:
        raise PatternTableError(f"{letter}: missing finger {e.args[0]}") from None
    if not all(isinstance(s, bool) for s in signature):
        raise PatternTableError(f"{letter}: finger flags must be booleans")

    weight = entry.get("weight")
    if not isinstance(weight, (int, float)) or isinstance(weight, bool) or not 0.0 < weight <= 1.0:
        raise PatternTableError(f"{letter}: weight must be a number in (0, 1], got {weight!r}")

    tips = entry.get("tips") or []
    if not isinstance(tips, list):
        raise PatternTableError(f"{letter}: 'tips' must be a list")

    return ASLPattern(
        letter=letter,
        signature=signature,
        weight=float(weight),
        description=str(entry.get("description", "")),
        tips=tuple(str(t) for t in tips),
        motion=bool(entry.get("motion", False)),
    )


def parse_patterns(data: Mapping, source: str = "") -> PatternTable:
    """Build a PatternTable from an already-parsed YAML document."""
    if not isinstance(data, Mapping) or not isinstance(data.get("letters"), Mapping):
        raise PatternTableError(f"Pattern document {source or '<memory>'} has no 'letters' section")
    patterns = {}
    for key, entry in data["letters"].items():
        letter = str(key).upper()
        patterns[letter] = _parse_pattern(letter, entry)
    return PatternTable(patterns, version=int(data.get("version", 1)), source=source)


def load_patterns(path: Optional[str] = None) -> PatternTable:
    """Load and validate a pattern table from YAML.

    Args:
        path: YAML file; the bundled table when omitted

    Raises:
        PatternTableError: file missing, unparsable, or incomplete
    """
    path = Path(path) if path else DEFAULT_PATTERNS_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise PatternTableError(f"Pattern file not found: {path}") from None
    except yaml.YAMLError as e:
        raise PatternTableError(f"Pattern file {path} is not valid YAML: {e}") from e

    table = parse_patterns(data, source=str(path))
    logger.info("Loaded %d ASL patterns (v%d) from %s", len(table), table.version, path)
    return table


@lru_cache(maxsize=8)
def get_patterns(path: Optional[str] = None) -> PatternTable:
    """Cached load_patterns(); the table is loaded once per path."""
    return load_patterns(path)
