import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pygame
import pytest

from helpers import RecordingSurface


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture(scope="session")
def pygame_screen():
    pygame.init()
    screen = pygame.display.set_mode((1280, 800))
    yield screen
    pygame.quit()


@pytest.fixture
def stimulus_png(tmp_path, pygame_screen):
    path = tmp_path / "probe.png"
    image = pygame.Surface((120, 100))
    image.fill((0, 0, 0))
    pygame.image.save(image, str(path))
    return str(path)
