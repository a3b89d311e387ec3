from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class ConfigError(ValueError):
    """Invalid trial or session configuration. Raised before anything is drawn."""


class Relation(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    LEFT = "left"
    RIGHT = "right"
    NOT_CONNECTED = "notConnected"

    @classmethod
    def from_legacy_code(cls, code: int) -> "Relation":
        """
        Старый вариант плагина хранил правильный ответ числом.
        Переводим его в метку здесь, дальше по коду живут только метки.
        """
        try:
            return LEGACY_RELATION_CODES[code]
        except KeyError:
            raise ConfigError(f"Unknown legacy relation code: {code!r}") from None

    @classmethod
    def parse(cls, value: Any) -> "Relation":
        if isinstance(value, Relation):
            return value
        # bool is an int subclass, never a relation code
        if isinstance(value, bool):
            raise ConfigError(f"Not a relation: {value!r}")
        if isinstance(value, int):
            return cls.from_legacy_code(value)
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls.from_legacy_code(int(text))
            relation = _RELATION_ALIASES.get(text.lower())
            if relation is not None:
                return relation
        raise ConfigError(f"Not a relation: {value!r}")


class KeyToken(str, Enum):
    UP = "arrowup"
    LEFT = "arrowleft"
    RIGHT = "arrowright"
    DOWN = "arrowdown"
    SPACE = " "

    @classmethod
    def parse(cls, value: Any) -> "KeyToken":
        if isinstance(value, KeyToken):
            return value
        if isinstance(value, str):
            # " " must survive, so only lower-case here
            token = _KEY_ALIASES.get(value.lower())
            if token is not None:
                return token
        raise ConfigError(f"Not a response key: {value!r}")


LEGACY_RELATION_CODES: Dict[int, Relation] = {
    1: Relation.LEFT,
    2: Relation.ABOVE,
    3: Relation.RIGHT,
    4: Relation.BELOW,
    5: Relation.NOT_CONNECTED,
}

_RELATION_ALIASES: Dict[str, Relation] = {
    "above": Relation.ABOVE,
    "on-top": Relation.ABOVE,
    "on_top": Relation.ABOVE,
    "below": Relation.BELOW,
    "left": Relation.LEFT,
    "right": Relation.RIGHT,
    "notconnected": Relation.NOT_CONNECTED,
    "not_connected": Relation.NOT_CONNECTED,
    "not connected": Relation.NOT_CONNECTED,
    "none": Relation.NOT_CONNECTED,
}

_KEY_ALIASES: Dict[str, KeyToken] = {
    "arrowup": KeyToken.UP,
    "up": KeyToken.UP,
    "arrowleft": KeyToken.LEFT,
    "left": KeyToken.LEFT,
    "arrowright": KeyToken.RIGHT,
    "right": KeyToken.RIGHT,
    "arrowdown": KeyToken.DOWN,
    "down": KeyToken.DOWN,
    " ": KeyToken.SPACE,
    "space": KeyToken.SPACE,
}

# Одна клавиша -> одно отношение, и наоборот
KEY_TO_RELATION: Dict[KeyToken, Relation] = {
    KeyToken.UP: Relation.ABOVE,
    KeyToken.LEFT: Relation.LEFT,
    KeyToken.RIGHT: Relation.RIGHT,
    KeyToken.DOWN: Relation.BELOW,
    KeyToken.SPACE: Relation.NOT_CONNECTED,
}
RELATION_TO_KEY: Dict[Relation, KeyToken] = {rel: key for key, rel in KEY_TO_RELATION.items()}

if set(KEY_TO_RELATION) != set(KeyToken) or set(RELATION_TO_KEY) != set(Relation):
    raise RuntimeError("Key to relation mapping must cover every key and every relation")

DEFAULT_KEYS: Tuple[KeyToken, ...] = (
    KeyToken.UP,
    KeyToken.LEFT,
    KeyToken.RIGHT,
    KeyToken.DOWN,
    KeyToken.SPACE,
)

DEFAULT_BUTTON_LABELS: Dict[Relation, str] = {
    Relation.ABOVE: "On-top",
    Relation.LEFT: "Left",
    Relation.RIGHT: "Right",
    Relation.BELOW: "Below",
    Relation.NOT_CONNECTED: "Did not connect",
}


def _check_duration(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer number of ms, got {value!r}")
    if value < 0:
        raise ConfigError(f"{name} must be non-negative, got {value}")
    return value


@dataclass(frozen=True)
class TrialConfig:
    """
    Всё, что нужно одному probe-trial-у.

    Проверяется сразу при создании: плохой конфиг не должен дойти до экрана.
    """
    stimulus_ref: str
    correct_relation: Relation
    valid_keys: Tuple[KeyToken, ...] = DEFAULT_KEYS
    feedback_duration_ms: int = 1000
    trial_timeout_ms: int = 6000
    feedback_enabled: bool = True

    # отклики быстрее этого порога игнорируются (minimum_valid_rt)
    min_valid_rt_ms: int = 0

    # экран "inference": силуэт без кнопок, клавиши не принимаются
    preview_ref: Optional[str] = None
    preview_ms: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.stimulus_ref, str) or not self.stimulus_ref.strip():
            raise ConfigError("stimulus_ref must be a non-empty string")

        # frozen dataclass: нормализованные значения пишем через object.__setattr__
        object.__setattr__(self, "correct_relation", Relation.parse(self.correct_relation))

        if isinstance(self.valid_keys, str):
            raise ConfigError("valid_keys must be a sequence of keys, not a single string")
        keys = tuple(KeyToken.parse(k) for k in self.valid_keys)
        if len(keys) != len(KeyToken):
            raise ConfigError(f"valid_keys must hold exactly {len(KeyToken)} keys, got {len(keys)}")
        if len(set(keys)) != len(keys):
            raise ConfigError(f"valid_keys contains duplicates: {[k.value for k in keys]}")
        if {KEY_TO_RELATION[k] for k in keys} != set(Relation):
            raise ConfigError("valid_keys must map onto every relation")
        object.__setattr__(self, "valid_keys", keys)

        _check_duration("feedback_duration_ms", self.feedback_duration_ms)
        _check_duration("trial_timeout_ms", self.trial_timeout_ms)
        _check_duration("min_valid_rt_ms", self.min_valid_rt_ms)
        _check_duration("preview_ms", self.preview_ms)

        if not isinstance(self.feedback_enabled, bool):
            raise ConfigError(f"feedback_enabled must be a bool, got {self.feedback_enabled!r}")
        if self.preview_ref is not None and not str(self.preview_ref).strip():
            raise ConfigError("preview_ref must be a non-empty string when given")

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], **defaults: Any) -> "TrialConfig":
        """
        Строка таймлайна -> TrialConfig.

        Понимает и имена параметров jsPsych-плагина (stimulus, choices,
        correct_response, feedback_duration, trial_duration), и наши имена полей.
        """
        values: Dict[str, Any] = dict(defaults)
        for src, dst in _RAW_FIELD_NAMES.items():
            if src in raw and raw[src] is not None:
                values[dst] = raw[src]
        if "valid_keys" in values and not isinstance(values["valid_keys"], str):
            values["valid_keys"] = tuple(values["valid_keys"])
        if "stimulus_ref" not in values:
            raise ConfigError("Trial row has no stimulus")
        if "correct_relation" not in values:
            raise ConfigError("Trial row has no correct relation")
        return cls(**values)


_RAW_FIELD_NAMES: Dict[str, str] = {
    "stimulus": "stimulus_ref",
    "stimulus_ref": "stimulus_ref",
    "probe": "stimulus_ref",
    "choices": "valid_keys",
    "valid_keys": "valid_keys",
    "correct_response": "correct_relation",
    "correct_relation": "correct_relation",
    "feedback_duration": "feedback_duration_ms",
    "feedback_duration_ms": "feedback_duration_ms",
    "trial_duration": "trial_timeout_ms",
    "trial_timeout_ms": "trial_timeout_ms",
    "feedback": "feedback_enabled",
    "feedback_enabled": "feedback_enabled",
    "minimum_valid_rt": "min_valid_rt_ms",
    "min_valid_rt_ms": "min_valid_rt_ms",
    "inference": "preview_ref",
    "preview_ref": "preview_ref",
    "preview_ms": "preview_ms",
}


@dataclass(frozen=True)
class TrialResult:
    """
    Результат одного trial-а. Либо есть все поля ответа, либо нет ни одного.
    """
    response_made: bool
    rt_ms: Optional[int] = None
    responded_key: Optional[KeyToken] = None
    answered_relation: Optional[Relation] = None
    is_correct: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        present = [
            self.rt_ms is not None,
            self.responded_key is not None,
            self.answered_relation is not None,
            self.is_correct is not None,
        ]
        if self.response_made and not all(present):
            raise ValueError("A response result needs rt, key, relation and correctness")
        if not self.response_made and any(present):
            raise ValueError("A no-response result must not carry response fields")

    @classmethod
    def no_response(cls) -> "TrialResult":
        return cls(response_made=False)

    @classmethod
    def from_response(cls, key: KeyToken, rt_ms: int, correct_relation: Relation) -> "TrialResult":
        relation = KEY_TO_RELATION[key]
        return cls(
            response_made=True,
            rt_ms=rt_ms,
            responded_key=key,
            answered_relation=relation,
            is_correct=relation == correct_relation,
        )

    @property
    def is_timeout(self) -> bool:
        return not self.response_made

    def as_row(self) -> Dict[str, Any]:
        row = {
            "rt": self.rt_ms,
            "response": self.responded_key.value if self.responded_key is not None else None,
            "relation": self.answered_relation.value if self.answered_relation is not None else None,
            "correct": self.is_correct,
            "response_made": self.response_made,
            "timeout": self.is_timeout,
        }
        row.update(self.extra)
        return row
