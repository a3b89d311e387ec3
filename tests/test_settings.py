import logging

import pytest

from config.log_setup import setup_logging
from config.settings import Settings, TimingConfig, WindowConfig, load_settings
from data.models import ConfigError


def test_defaults_match_experiment_timings():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.timing == TimingConfig(
        trial_timeout_ms=6000,
        feedback_duration_ms=1000,
        timeout_notice_ms=1000,
        inter_trial_ms=500,
        min_valid_rt_ms=50,
        preview_ms=6000,
    )
    assert settings.window == WindowConfig()
    assert settings.log_path is None


def test_env_overrides(tmp_path):
    settings = load_settings(
        {
            "SILHOUETTE_TRIAL_TIMEOUT_MS": "3000",
            "SILHOUETTE_FEEDBACK_MS": " 250 ",
            "SILHOUETTE_FPS": "0",
            "SILHOUETTE_LOG_LEVEL": "debug",
            "SILHOUETTE_LOG_PATH": str(tmp_path / "run.log"),
        }
    )
    assert settings.timing.trial_timeout_ms == 3000
    assert settings.timing.feedback_duration_ms == 250
    assert settings.window.fps == 1
    assert settings.log_level == "DEBUG"
    assert settings.log_path == tmp_path / "run.log"


@pytest.mark.parametrize(
    "env",
    [
        {"SILHOUETTE_ITI_MS": "soon"},
        {"SILHOUETTE_MIN_RT_MS": "-5"},
        {"SILHOUETTE_LOG_LEVEL": "loud"},
    ],
)
def test_bad_env_values_are_config_errors(env):
    with pytest.raises(ConfigError):
        load_settings(env)


def test_setup_logging_writes_file(tmp_path):
    log_path = tmp_path / "logs" / "experiment.log"
    root = logging.getLogger()
    saved = root.handlers[:]
    try:
        setup_logging("INFO", log_path)
        logging.getLogger("silhouette.test").info("hello block")
        for handler in root.handlers:
            handler.flush()
        assert "hello block" in log_path.read_text(encoding="utf-8")
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved
