import asyncio

import pygame
import pytest

from data.models import KeyToken
from silhouette.keyboard import PygameKeyboard, read_key_token


def keydown(key):
    return pygame.event.Event(pygame.KEYDOWN, key=key, mod=0, unicode="", scancode=0)


@pytest.mark.parametrize(
    "key, token",
    [
        (pygame.K_UP, KeyToken.UP),
        (pygame.K_LEFT, KeyToken.LEFT),
        (pygame.K_RIGHT, KeyToken.RIGHT),
        (pygame.K_DOWN, KeyToken.DOWN),
        (pygame.K_SPACE, KeyToken.SPACE),
    ],
)
def test_response_keys_map_to_tokens(key, token):
    assert read_key_token(keydown(key)) is token


def test_other_keys_and_events_are_not_observed():
    assert read_key_token(keydown(pygame.K_f)) is None
    assert read_key_token(keydown(pygame.K_RETURN)) is None
    assert read_key_token(pygame.event.Event(pygame.KEYUP, key=pygame.K_UP)) is None


def test_key_presses_are_queued_with_timestamp():
    keyboard = PygameKeyboard()
    keyboard.process_pygame_event(keydown(pygame.K_LEFT), 12.5)
    keyboard.process_pygame_event(keydown(pygame.K_a), 12.6)
    assert keyboard.queue.qsize() == 1
    press = keyboard.queue.get_nowait()
    assert press.token is KeyToken.LEFT
    assert press.timestamp == 12.5


def test_escape_and_quit_request_stop():
    keyboard = PygameKeyboard()
    keyboard.process_pygame_event(keydown(pygame.K_ESCAPE), 1.0)
    assert keyboard.quit_requested
    assert keyboard.queue.empty()

    other = PygameKeyboard()
    other.process_pygame_event(pygame.event.Event(pygame.QUIT), 1.0)
    assert other.quit_requested


class CountingRenderer:
    def __init__(self):
        self.frames = 0

    def draw(self):
        self.frames += 1


def test_pump_forwards_events_and_draws_frames(pygame_screen):
    async def scenario():
        renderer = CountingRenderer()
        keyboard = PygameKeyboard(renderer, fps=100)
        pygame.event.clear()
        pygame.event.post(keydown(pygame.K_RIGHT))
        pump = asyncio.ensure_future(keyboard.pump())
        await asyncio.sleep(0.05)
        keyboard.stop()
        await pump
        return renderer, keyboard

    renderer, keyboard = asyncio.run(scenario())
    assert renderer.frames >= 1
    assert keyboard.running is False
    press = keyboard.queue.get_nowait()
    assert press.token is KeyToken.RIGHT


def test_pump_stops_on_quit(pygame_screen):
    async def scenario():
        keyboard = PygameKeyboard(fps=100)
        pygame.event.clear()
        pygame.event.post(pygame.event.Event(pygame.QUIT))
        await asyncio.wait_for(keyboard.pump(), timeout=1.0)
        return keyboard

    assert asyncio.run(scenario()).quit_requested
