import argparse
import asyncio
import contextlib
import logging
import os
from typing import List

import pygame

from config.log_setup import setup_logging
from config.settings import LOG_LEVELS, Settings, load_settings
from data.models import ConfigError, TrialConfig, TrialResult
from silhouette.keyboard import PygameKeyboard
from silhouette.renderer import ProbeRenderer
from silhouette.session import run_block

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a block of silhouette probe trials.")
    parser.add_argument(
        "--probe",
        action="append",
        default=[],
        metavar="PATH=RELATION",
        help="probe image and its correct relation (label or legacy code 1-5); repeatable",
    )
    parser.add_argument("--preview", default=None, help="silhouette image shown before every probe")
    parser.add_argument("--test-mode", action="store_true", help="no feedback, no time-out notice")
    parser.add_argument("--timeout-ms", type=int, default=None)
    parser.add_argument("--feedback-ms", type=int, default=None)
    parser.add_argument("--log-level", default=None, type=str.upper, choices=LOG_LEVELS)
    args = parser.parse_args(argv)
    if not args.probe:
        parser.error("at least one --probe PATH=RELATION is required")
    args.parser = parser
    return args


def build_configs(args: argparse.Namespace, settings: Settings) -> List[TrialConfig]:
    timing = settings.timing
    if args.preview is not None and not os.path.exists(args.preview):
        raise ConfigError(f"Preview image not found: {args.preview}")
    configs = []
    for item in args.probe:
        path, sep, relation = item.rpartition("=")
        if not sep or not path:
            raise ConfigError(f"--probe expects PATH=RELATION, got {item!r}")
        if not os.path.exists(path):
            raise ConfigError(f"Probe image not found: {path}")
        configs.append(
            TrialConfig(
                stimulus_ref=path,
                correct_relation=relation,
                feedback_duration_ms=args.feedback_ms if args.feedback_ms is not None else timing.feedback_duration_ms,
                trial_timeout_ms=args.timeout_ms if args.timeout_ms is not None else timing.trial_timeout_ms,
                feedback_enabled=not args.test_mode,
                min_valid_rt_ms=timing.min_valid_rt_ms,
                preview_ref=args.preview,
                preview_ms=timing.preview_ms if args.preview else 0,
            )
        )
    return configs


async def run(configs: List[TrialConfig], settings: Settings) -> List[TrialResult]:
    window = settings.window
    screen = pygame.display.set_mode((window.width, window.height))
    pygame.display.set_caption(window.title)

    renderer = ProbeRenderer(screen)
    keyboard = PygameKeyboard(renderer, fps=window.fps)
    pump = asyncio.ensure_future(keyboard.pump())
    block = asyncio.ensure_future(run_block(configs, renderer, keyboard, settings.timing))
    try:
        done, _ = await asyncio.wait({block, pump}, return_when=asyncio.FIRST_COMPLETED)
        # без живого цикла кадров окно замёрзло, trial-ы дальше гонять нельзя
        if block not in done and pump.exception() is not None:
            logger.error("Frame loop failed, aborting block")
            block.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await block
            pump.result()
        return await block
    finally:
        keyboard.stop()
        if not block.done():
            block.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await block
        if not pump.done():
            await pump


def main(argv=None) -> None:
    args = parse_args(argv)
    try:
        settings = load_settings()
        configs = build_configs(args, settings)
    except ConfigError as exc:
        args.parser.error(str(exc))

    setup_logging(args.log_level or settings.log_level, settings.log_path)
    logger.info("Running %d probe trials (feedback=%s)", len(configs), not args.test_mode)

    pygame.init()
    try:
        results = asyncio.run(run(configs, settings))
    finally:
        pygame.quit()

    print("Block finished")
    for r in results:
        row = r.as_row()
        print(
            row["trial_index"],
            row["stimulus"],
            row["response"],
            row["relation"],
            row["correct"],
            row["rt"],
        )


if __name__ == "__main__":
    main()
