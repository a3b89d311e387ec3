import asyncio
import contextlib
import logging
from dataclasses import replace
from typing import Awaitable, Iterable, List, Optional, TypeVar

from config.settings import TimingConfig
from data.models import TrialConfig, TrialResult
from silhouette.controller import TrialController

logger = logging.getLogger(__name__)

T = TypeVar("T")

TIMEOUT_NOTICE_TEXT = "Time-out"


async def _until_quit(aw: Awaitable[T], quit_event: asyncio.Event) -> Optional[T]:
    """Ждёт aw, но отменяет его, если участник вышел (ESC / закрыл окно)."""
    task = asyncio.ensure_future(aw)
    quit_wait = asyncio.ensure_future(quit_event.wait())
    try:
        done, _ = await asyncio.wait({task, quit_wait}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        task.cancel()
        quit_wait.cancel()
        raise
    if task in done:
        quit_wait.cancel()
        return task.result()
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    return None


async def run_block(
    configs: Iterable[TrialConfig],
    renderer,
    keyboard,
    timing: Optional[TimingConfig] = None,
) -> List[TrialResult]:
    """
    Проигрывает trial-ы строго по одному: экран принадлежит текущему trial-у.

    Для каждого trial-а:
    - превью силуэта без кнопок (если задано)
    - сам probe-trial
    - "Time-out" после таймаута, только в блоках с обратной связью
    - пауза между trial-ами
    """
    timing = timing or TimingConfig()
    results: List[TrialResult] = []

    for index, config in enumerate(configs):
        if keyboard.quit_requested:
            break

        if config.preview_ref and config.preview_ms > 0:
            renderer.show_preview(config.preview_ref)
            await _until_quit(asyncio.sleep(config.preview_ms / 1000), keyboard.quit_event)
            if keyboard.quit_requested:
                break

        controller = TrialController(config, renderer, keyboard.queue)
        result = await _until_quit(controller.run(), keyboard.quit_event)
        if result is None:
            logger.warning("Block aborted during trial %d", index)
            break

        results.append(
            replace(
                result,
                extra={
                    "trial_index": index,
                    "stimulus": config.stimulus_ref,
                    "correct_relation": config.correct_relation.value,
                    "feedback": config.feedback_enabled,
                },
            )
        )

        if result.is_timeout and config.feedback_enabled and timing.timeout_notice_ms > 0:
            renderer.show_notice(TIMEOUT_NOTICE_TEXT)
            await _until_quit(asyncio.sleep(timing.timeout_notice_ms / 1000), keyboard.quit_event)

        renderer.clear()
        if timing.inter_trial_ms > 0:
            await _until_quit(asyncio.sleep(timing.inter_trial_ms / 1000), keyboard.quit_event)

    correct = sum(1 for r in results if r.is_correct)
    timeouts = sum(1 for r in results if r.is_timeout)
    logger.info("Block finished: %d trials, %d correct, %d timeouts", len(results), correct, timeouts)
    return results
