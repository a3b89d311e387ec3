import asyncio

from config.settings import TimingConfig
from data.models import KeyToken, Relation, TrialConfig
from helpers import FakeKeyboard, RecordingSurface, press_later
from silhouette.session import TIMEOUT_NOTICE_TEXT, run_block

FAST = TimingConfig(timeout_notice_ms=20, inter_trial_ms=10)


def probe(name, relation, **overrides):
    values = {
        "stimulus_ref": name,
        "correct_relation": relation,
        "trial_timeout_ms": 40,
        "feedback_duration_ms": 10,
    }
    values.update(overrides)
    return TrialConfig(**values)


def test_block_runs_trials_in_order_and_notices_timeouts():
    surface = RecordingSurface()

    async def scenario():
        keyboard = FakeKeyboard()
        press_later(keyboard.queue, 20, KeyToken.UP)
        configs = [probe("a.png", "above", trial_timeout_ms=500), probe("b.png", "left")]
        return await run_block(configs, surface, keyboard, FAST)

    first, second = asyncio.run(scenario())
    assert first.response_made and first.is_correct
    assert first.extra == {"trial_index": 0, "stimulus": "a.png", "correct_relation": "above", "feedback": True}
    assert second.is_timeout
    assert second.as_row()["trial_index"] == 1
    assert surface.names() == [
        "show_probe",
        "mark_response",
        "clear",
        "show_probe",
        "show_notice",
        "clear",
    ]
    assert ("show_notice", TIMEOUT_NOTICE_TEXT) in surface.calls


def test_test_mode_has_no_timeout_notice():
    surface = RecordingSurface()

    async def scenario():
        return await run_block([probe("a.png", Relation.BELOW, feedback_enabled=False)], surface, FakeKeyboard(), FAST)

    (result,) = asyncio.run(scenario())
    assert result.is_timeout
    assert "show_notice" not in surface.names()


def test_preview_is_shown_before_probe():
    surface = RecordingSurface()

    async def scenario():
        config = probe("probe.png", "right", preview_ref="silhouette.png", preview_ms=15)
        return await run_block([config], surface, FakeKeyboard(), FAST)

    asyncio.run(scenario())
    assert surface.calls[0] == ("show_preview", "silhouette.png")
    assert surface.calls[1][0] == "show_probe"


def test_quit_aborts_block_without_result():
    surface = RecordingSurface()

    async def scenario():
        keyboard = FakeKeyboard()
        asyncio.get_running_loop().call_later(0.03, keyboard.quit_event.set)
        configs = [probe("a.png", "above", trial_timeout_ms=5000), probe("b.png", "left")]
        return await run_block(configs, surface, keyboard, FAST)

    assert asyncio.run(scenario()) == []
    assert surface.names() == ["show_probe"]
