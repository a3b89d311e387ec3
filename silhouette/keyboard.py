import asyncio
import logging
from typing import Optional

import pygame

from data.models import KeyToken
from silhouette.controller import KeyPress

logger = logging.getLogger(__name__)


PYGAME_KEY_TOKENS = {
    pygame.K_UP: KeyToken.UP,
    pygame.K_LEFT: KeyToken.LEFT,
    pygame.K_RIGHT: KeyToken.RIGHT,
    pygame.K_DOWN: KeyToken.DOWN,
    pygame.K_SPACE: KeyToken.SPACE,
}


def read_key_token(event: pygame.event.Event) -> Optional[KeyToken]:
    if event.type != pygame.KEYDOWN:
        return None
    return PYGAME_KEY_TOKENS.get(event.key)


class PygameKeyboard:
    """
    Прослойка между pygame и контроллером trial-а.

    - pump() крутит кадры: забирает события pygame, рисует кадр через renderer
    - нажатия из пяти ответных клавиш кладём в queue вместе со временем кадра
    - QUIT / ESC выставляют quit_event, раннер блока по нему останавливается
    """

    def __init__(self, renderer=None, fps: int = 60) -> None:
        self.renderer = renderer
        self.fps = max(1, fps)
        self.queue: "asyncio.Queue[KeyPress]" = asyncio.Queue()
        self.quit_event = asyncio.Event()
        self.running = False

    @property
    def quit_requested(self) -> bool:
        return self.quit_event.is_set()

    def process_pygame_event(self, event: pygame.event.Event, timestamp: float) -> None:
        if event.type == pygame.QUIT or (event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE):
            if not self.quit_event.is_set():
                logger.info("Quit requested")
            self.quit_event.set()
            return
        token = read_key_token(event)
        if token is None:
            return
        self.queue.put_nowait(KeyPress(token=token, timestamp=timestamp))

    def stop(self) -> None:
        self.running = False

    async def pump(self) -> None:
        loop = asyncio.get_running_loop()
        frame_sec = 1.0 / self.fps
        self.running = True
        try:
            while self.running and not self.quit_event.is_set():
                now = loop.time()
                for event in pygame.event.get():
                    self.process_pygame_event(event, now)
                if self.renderer is not None:
                    self.renderer.draw()
                    pygame.display.flip()
                await asyncio.sleep(frame_sec)
        finally:
            self.running = False
