from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import pygame

from data.models import DEFAULT_BUTTON_LABELS, Relation


MODE_BLANK = "BLANK"
MODE_PREVIEW = "PREVIEW"
MODE_PROBE = "PROBE"
MODE_NOTICE = "NOTICE"


@dataclass(frozen=True)
class ProbeTheme:
    bg: Tuple[int, int, int] = (255, 255, 255)
    text: Tuple[int, int, int] = (20, 20, 20)
    button: Tuple[int, int, int] = (239, 239, 239)
    border: Tuple[int, int, int] = (118, 118, 118)
    correct: Tuple[int, int, int] = (144, 238, 144)  # lightgreen
    incorrect: Tuple[int, int, int] = (255, 0, 0)
    notice: Tuple[int, int, int] = (255, 0, 0)


class ProbeRenderer:
    """
    Renderer отвечает ТОЛЬКО за рисование.
    Контроллер говорит, что показать (стимул, кнопки, подсветку), draw() рисует это каждый кадр.
    """

    stimulus_size = (600, 500)
    button_size = (200, 48)
    button_gap = 10
    top_margin = 20

    def __init__(self, screen: pygame.Surface, theme: Optional[ProbeTheme] = None) -> None:
        self.screen = screen
        self.w, self.h = screen.get_size()
        self.theme = theme or ProbeTheme()

        self.font = pygame.font.SysFont(None, 30)
        self.font_bold = pygame.font.SysFont(None, 30, bold=True)
        self.font_notice = pygame.font.SysFont(None, 40)

        self.mode = MODE_BLANK
        self.labels: Dict[Relation, str] = dict(DEFAULT_BUTTON_LABELS)
        self.marked: Optional[Tuple[Relation, bool]] = None
        self.notice_text = ""
        self._image: Optional[pygame.Surface] = None
        self._image_cache: Dict[Tuple[str, Tuple[int, int]], pygame.Surface] = {}

        self.stimulus_rect, self.button_rects = self._build_layout()

    # -----------------------
    # Что показывать
    # -----------------------

    def show_probe(self, stimulus_ref: str, labels: Mapping[Relation, str]) -> None:
        self.mode = MODE_PROBE
        self.labels = dict(labels)
        self.marked = None
        self._image = self._load_image(stimulus_ref, self.stimulus_rect.size)

    def mark_response(self, relation: Relation, is_correct: bool) -> None:
        self.marked = (relation, is_correct)

    def show_preview(self, stimulus_ref: str) -> None:
        self.mode = MODE_PREVIEW
        self.marked = None
        size = (min(600, self.w), min(600, self.h))
        self._image = self._load_image(stimulus_ref, size)

    def show_notice(self, text: str) -> None:
        self.mode = MODE_NOTICE
        self.marked = None
        self.notice_text = text
        self._image = None

    def clear(self) -> None:
        self.mode = MODE_BLANK
        self.marked = None
        self._image = None

    # -----------------------
    # Рисование
    # -----------------------

    def draw(self) -> None:
        self.screen.fill(self.theme.bg)
        if self.mode == MODE_PREVIEW and self._image is not None:
            self.screen.blit(self._image, self._image.get_rect(center=(self.w // 2, self.h // 2)))
        elif self.mode == MODE_PROBE:
            if self._image is not None:
                self.screen.blit(self._image, self.stimulus_rect)
            for relation, rect in self.button_rects.items():
                self._draw_button(relation, rect)
        elif self.mode == MODE_NOTICE:
            surf = self.font_notice.render(self.notice_text, True, self.theme.notice)
            self.screen.blit(surf, surf.get_rect(center=(self.w // 2, self.h // 2)))

    def button_fill(self, relation: Relation) -> Tuple[int, int, int]:
        if self.marked is None or self.marked[0] != relation:
            return self.theme.button
        return self.theme.correct if self.marked[1] else self.theme.incorrect

    def _draw_button(self, relation: Relation, rect: pygame.Rect) -> None:
        is_marked = self.marked is not None and self.marked[0] == relation
        pygame.draw.rect(self.screen, self.button_fill(relation), rect, border_radius=6)
        pygame.draw.rect(self.screen, self.theme.border, rect, width=2, border_radius=6)
        font = self.font_bold if is_marked else self.font
        surf = font.render(self.labels.get(relation, relation.value), True, self.theme.text)
        self.screen.blit(surf, surf.get_rect(center=rect.center))

    # -----------------------
    # Раскладка: вверх / лево+право / вниз / отдельная "не соединены"
    # -----------------------

    def _build_layout(self) -> Tuple[pygame.Rect, Dict[Relation, pygame.Rect]]:
        bw, bh = self.button_size
        gap = self.button_gap
        buttons_h = bh * 4 + gap * 3

        stim_w = min(self.stimulus_size[0], self.w - 40)
        stim_h = min(self.stimulus_size[1], max(60, self.h - buttons_h - self.top_margin * 3))
        stimulus = pygame.Rect(0, 0, stim_w, stim_h)
        stimulus.midtop = (self.w // 2, self.top_margin)

        cx = self.w // 2
        y = stimulus.bottom + self.top_margin
        rects: Dict[Relation, pygame.Rect] = {}

        rects[Relation.ABOVE] = pygame.Rect(cx - bw // 2, y, bw, bh)
        y += bh + gap
        rects[Relation.LEFT] = pygame.Rect(cx - bw - gap // 2, y, bw, bh)
        rects[Relation.RIGHT] = pygame.Rect(cx + gap // 2, y, bw, bh)
        y += bh + gap
        rects[Relation.BELOW] = pygame.Rect(cx - bw // 2, y, bw, bh)
        y += bh + gap
        rects[Relation.NOT_CONNECTED] = pygame.Rect(cx - bw // 2, y, bw, bh)
        return stimulus, rects

    def _load_image(self, ref: str, size: Tuple[int, int]) -> pygame.Surface:
        key = (ref, size)
        cached = self._image_cache.get(key)
        if cached is not None:
            return cached
        image = pygame.image.load(ref)
        if pygame.display.get_surface() is not None:
            image = pygame.transform.smoothscale(image.convert_alpha(), size)
        else:
            image = pygame.transform.scale(image, size)
        self._image_cache[key] = image
        return image
