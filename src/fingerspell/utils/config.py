"""
Process-wide configuration.

One ``Config`` instance holds the YAML settings layered over ``DEFAULTS``.
Values are read with dotted keys (``config.get("lesson.cooldown_seconds")``)
or a whole section at a time (``config.stability``). Bad values produce
warnings at load time; the component ``from_dict`` constructors decide
what to do with them.
"""

import os
import copy
import yaml
import logging

from ..core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join("config", "config.yaml")

DEFAULTS = {
    "extractor": {
        "extension_ratio": 1.1,
        "thumb_ratio": 1.2,
    },
    "classifier": {
        "acceptance_threshold": 0.65,
        "patterns_path": None,
        "debug": False,
    },
    "stability": {
        "policy": "finger_state",
        "max_confidence_delta": 0.15,
        "motion_scale": 10.0,
        "motion_cutoff": 0.6,
        "required_stable_frames": 3,
    },
    "lesson": {
        "cooldown_seconds": 1.0,
    },
    "engine": {
        "min_frame_interval": 0.1,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# (section, key) -> (type, lower bound, upper bound); None leaves a side open
_NUMERIC_FIELDS = {
    ("extractor", "extension_ratio"): (float, 0.0, None),
    ("extractor", "thumb_ratio"): (float, 0.0, None),
    ("classifier", "acceptance_threshold"): (float, 0.0, 1.0),
    ("stability", "max_confidence_delta"): (float, 0.0, 1.0),
    ("stability", "motion_scale"): (float, 0.0, None),
    ("stability", "motion_cutoff"): (float, 0.0, 1.0),
    ("stability", "required_stable_frames"): (int, 1, None),
    ("lesson", "cooldown_seconds"): (float, 0.0, None),
    ("engine", "min_frame_interval"): (float, 0.0, None),
}

_CHOICE_FIELDS = {
    ("stability", "policy"): ("finger_state", "landmark_motion"),
    ("logging", "level"): ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
}


def _layered(defaults: dict, overrides: dict) -> dict:
    """Return ``defaults`` with ``overrides`` applied, section by section."""
    result = copy.deepcopy(defaults)
    for name, value in overrides.items():
        current = result.get(name)
        if isinstance(current, dict) and isinstance(value, dict):
            result[name] = _layered(current, value)
        else:
            result[name] = value
    return result


def section_of(config: dict, name: str) -> dict:
    """The ``name`` section of a full config mapping; ``{}`` unless it is a mapping."""
    value = config.get(name) if isinstance(config, dict) else None
    return value if isinstance(value, dict) else {}


def setting(section: dict, key: str, default, kind=float):
    """Read ``key`` from one section as ``kind``.

    A missing key or an explicit null gives ``default``. A value that
    does not convert raises ConfigError.
    """
    value = section.get(key) if isinstance(section, dict) else None
    if value is None:
        return default
    if isinstance(value, bool) and kind is not bool:
        raise ConfigError(f"{key}: expected {kind.__name__}, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key}: expected {kind.__name__}, got {value!r}") from e


def _is_number(value, kind) -> bool:
    if isinstance(value, bool):
        return False
    if kind is int:
        return isinstance(value, int)
    return isinstance(value, (int, float))


class Config:
    """Settings singleton. ``Config.reset()`` drops it between tests."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._data = _layered(DEFAULTS, {})
            cls._instance = instance
        return cls._instance

    def load(self, config_path=None):
        """Read a YAML file over the defaults. A missing file is not an error."""
        path = config_path or DEFAULT_CONFIG_PATH
        if not os.path.exists(path):
            logger.warning("No config at %s, running on defaults", path)
            return self.load_dict({})

        with open(path, "r") as f:
            raw = yaml.safe_load(f)
        logger.info("Config read from %s", path)

        if raw is not None and not isinstance(raw, dict):
            logger.warning("Ignoring %s: top level must be a mapping, got %s",
                           path, type(raw).__name__)
            raw = None
        return self.load_dict(raw)

    def load_dict(self, data: dict):
        self._data = _layered(DEFAULTS, data or {})
        self._validate()
        return self

    def _validate(self) -> list:
        """Check types, ranges and choices; log and return the problems."""
        problems = []

        for name in DEFAULTS:
            if not isinstance(self._data.get(name), dict):
                problems.append(f"section '{name}' must be a mapping, "
                                f"got {type(self._data.get(name)).__name__}")

        for (section, key), (kind, low, high) in _NUMERIC_FIELDS.items():
            value = self.get(f"{section}.{key}")
            if value is None:
                continue
            if not _is_number(value, kind):
                problems.append(f"{section}.{key}: expected {kind.__name__}, "
                                f"got {type(value).__name__} ({value!r})")
            elif (low is not None and value < low) or (high is not None and value > high):
                problems.append(f"{section}.{key}: {value!r} outside "
                                f"[{low}, {'inf' if high is None else high}]")

        for (section, key), choices in _CHOICE_FIELDS.items():
            value = self.get(f"{section}.{key}")
            if value is not None and value not in choices:
                problems.append(f"{section}.{key}: {value!r} not one of {', '.join(choices)}")

        for problem in problems:
            logger.warning("Config: %s", problem)
        return problems

    def get(self, key_path: str, default=None):
        """Look up ``section.key``; ``default`` when any part is missing."""
        node = self._data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_section(self, section: str) -> dict:
        value = self._data.get(section)
        return value if isinstance(value, dict) else {}

    def as_dict(self) -> dict:
        """Copy of the merged settings, safe to hand to ``from_dict``."""
        return _layered(self._data, {})

    def __getattr__(self, name):
        # config.stability, config.logging, ...
        if name in DEFAULTS:
            return self.get_section(name)
        raise AttributeError(name)

    @classmethod
    def reset(cls):
        cls._instance = None
