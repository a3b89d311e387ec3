import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol

from data.models import DEFAULT_BUTTON_LABELS, KeyToken, Relation, TrialConfig, TrialResult

logger = logging.getLogger(__name__)


# Фазы одного probe-trial-а
PHASE_IDLE = "IDLE"                    # ещё не запущен
PHASE_AWAITING = "AWAITING_RESPONSE"   # кнопки на экране, ждём клавишу или таймаут
PHASE_FEEDBACK = "SHOWING_FEEDBACK"    # кнопка подсвечена, ждём feedback_duration_ms
PHASE_DONE = "DONE"                    # результат отдан, дальше ничего не происходит


@dataclass(frozen=True)
class KeyPress:
    token: KeyToken
    timestamp: float  # seconds, same clock as the controller


class TrialSurface(Protocol):
    def show_probe(self, stimulus_ref: str, labels: Mapping[Relation, str]) -> None:
        ...

    def mark_response(self, relation: Relation, is_correct: bool) -> None:
        ...

    def clear(self) -> None:
        ...


class TrialController:
    """
    Управляет одним probe-trial-ом.

    Идея:
    - run() рисует стимул и пять кнопок
    - дальше гонка: первая подходящая клавиша против trial_timeout_ms
    - asyncio.wait_for снимает таймер раньше, чем мы обработаем ответ,
      а при таймауте отменяет слушателя клавиатуры
    - результат отдаётся ровно один раз, после этого фаза DONE
    """

    def __init__(
        self,
        config: TrialConfig,
        surface: TrialSurface,
        keys: "asyncio.Queue[KeyPress]",
        clock: Optional[Callable[[], float]] = None,
        on_finish: Optional[Callable[[TrialResult], None]] = None,
        labels: Optional[Mapping[Relation, str]] = None,
    ) -> None:
        self.config = config
        self.surface = surface
        self.keys = keys
        self.on_finish = on_finish
        self.labels = labels if labels is not None else DEFAULT_BUTTON_LABELS
        self._clock = clock

        self.phase: str = PHASE_IDLE
        self.started_at: Optional[float] = None
        self.listening: bool = False
        self._result: Optional[TrialResult] = None

    @property
    def result(self) -> Optional[TrialResult]:
        return self._result

    async def run(self) -> TrialResult:
        if self.phase != PHASE_IDLE:
            raise RuntimeError(f"Trial controller can run only once (phase {self.phase})")
        try:
            self._start()
            try:
                press = await asyncio.wait_for(self._listen(), timeout=self.config.trial_timeout_ms / 1000)
            except asyncio.TimeoutError:
                return self._finish(TrialResult.no_response())

            result = TrialResult.from_response(press.token, self._rt_ms(press), self.config.correct_relation)
            if not self.config.feedback_enabled:
                return self._finish(result)

            self._set_phase(PHASE_FEEDBACK)
            self.surface.mark_response(result.answered_relation, result.is_correct)
            await asyncio.sleep(self.config.feedback_duration_ms / 1000)
            return self._finish(result)
        finally:
            if self.phase != PHASE_DONE:
                # run() cancelled by the runner: terminal without a result
                self.listening = False
                self._set_phase(PHASE_DONE)

    def _start(self) -> None:
        # старые нажатия (из прошлого trial-а или превью) не должны попасть в этот
        dropped = 0
        while not self.keys.empty():
            self.keys.get_nowait()
            dropped += 1
        if dropped:
            logger.debug("Dropped %d stale key presses", dropped)

        self.surface.show_probe(self.config.stimulus_ref, self.labels)
        self.started_at = self._now()
        self._set_phase(PHASE_AWAITING)

    async def _listen(self) -> KeyPress:
        self.listening = True
        try:
            while True:
                press = await self.keys.get()
                if press.token not in self.config.valid_keys:
                    logger.debug("Ignoring key %r: not a response key", press.token)
                    continue
                rt_ms = self._rt_ms(press)
                if rt_ms < self.config.min_valid_rt_ms:
                    logger.debug(
                        "Ignoring key %r at %d ms: faster than %d ms", press.token, rt_ms, self.config.min_valid_rt_ms
                    )
                    continue
                return press
        finally:
            self.listening = False

    def _finish(self, result: TrialResult) -> TrialResult:
        if self.phase == PHASE_DONE:
            logger.debug("Trial already finished, dropping %r", result)
            return self._result
        self.listening = False
        self._result = result
        self._set_phase(PHASE_DONE)

        if result.response_made:
            logger.info(
                "Trial %s: key=%r relation=%s correct=%s rt=%d ms",
                self.config.stimulus_ref,
                result.responded_key.value,
                result.answered_relation.value,
                result.is_correct,
                result.rt_ms,
            )
        else:
            logger.info("Trial %s: no response within %d ms", self.config.stimulus_ref, self.config.trial_timeout_ms)

        if self.on_finish is not None:
            self.on_finish(result)
        return result

    def _set_phase(self, phase: str) -> None:
        logger.debug("Phase %s -> %s", self.phase, phase)
        self.phase = phase

    def _rt_ms(self, press: KeyPress) -> int:
        return int(round((press.timestamp - self.started_at) * 1000))

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()


async def run_trial(
    config: TrialConfig,
    surface: TrialSurface,
    keys: "asyncio.Queue[KeyPress]",
    clock: Optional[Callable[[], float]] = None,
    labels: Optional[Mapping[Relation, str]] = None,
) -> TrialResult:
    controller = TrialController(config, surface, keys, clock=clock, labels=labels)
    return await controller.run()
