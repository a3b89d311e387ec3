import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from data.models import ConfigError


ENV_PREFIX = "SILHOUETTE_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class WindowConfig:
    width: int = 1280
    height: int = 800
    fps: int = 60
    title: str = "Compositional Inference"


@dataclass(frozen=True)
class TimingConfig:
    trial_timeout_ms: int = 6000
    feedback_duration_ms: int = 1000
    timeout_notice_ms: int = 1000
    inter_trial_ms: int = 500
    min_valid_rt_ms: int = 50
    preview_ms: int = 6000


@dataclass(frozen=True)
class Settings:
    window: WindowConfig = field(default_factory=WindowConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    log_level: str = "INFO"
    log_path: Optional[Path] = None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{ENV_PREFIX}{name} must be non-negative, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    if env is None:
        env = os.environ

    window_defaults = WindowConfig()
    timing_defaults = TimingConfig()

    window = WindowConfig(
        width=_env_int(env, "WIDTH", window_defaults.width),
        height=_env_int(env, "HEIGHT", window_defaults.height),
        fps=max(1, _env_int(env, "FPS", window_defaults.fps)),
        title=env.get(ENV_PREFIX + "TITLE", "").strip() or window_defaults.title,
    )
    timing = TimingConfig(
        trial_timeout_ms=_env_int(env, "TRIAL_TIMEOUT_MS", timing_defaults.trial_timeout_ms),
        feedback_duration_ms=_env_int(env, "FEEDBACK_MS", timing_defaults.feedback_duration_ms),
        timeout_notice_ms=_env_int(env, "TIMEOUT_NOTICE_MS", timing_defaults.timeout_notice_ms),
        inter_trial_ms=_env_int(env, "ITI_MS", timing_defaults.inter_trial_ms),
        min_valid_rt_ms=_env_int(env, "MIN_RT_MS", timing_defaults.min_valid_rt_ms),
        preview_ms=_env_int(env, "PREVIEW_MS", timing_defaults.preview_ms),
    )

    log_level = env.get(ENV_PREFIX + "LOG_LEVEL", "").strip().upper() or "INFO"
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"{ENV_PREFIX}LOG_LEVEL is not a logging level: {log_level!r}")
    raw_log_path = env.get(ENV_PREFIX + "LOG_PATH", "").strip()
    log_path = Path(raw_log_path).expanduser() if raw_log_path else None

    return Settings(window=window, timing=timing, log_level=log_level, log_path=log_path)
