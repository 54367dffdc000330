"""
Pygame Rendering Surface
========================

Paints draw lists onto pygame surfaces and routes pointer movement to the
hover callbacks attached to cells.

Draw lists are expressed in diagram-local coordinates; each panel is painted
at an origin on the screen, and pointer positions are translated back into
the panel's coordinates for hit testing.
"""

import pygame
from typing import Dict, Optional, Sequence, Tuple

from config import Config
from mlpviz.visualizer.render import DrawList, PolylineCommand, RectCommand, TextCommand
from mlpviz.visualizer.tooltip import TooltipState

Point = Tuple[float, float]
Panel = Tuple[DrawList, Point]


class PygameSurface:
    """
    Draws rectangles, text and polylines from a DrawList.

    Example:
        >>> surface = PygameSurface(config)
        >>> surface.draw(screen, pipeline.draw_lists[DiagramKind.WEIGHT_MATRIX], origin=(20, 40))
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        pygame.font.init()
        self._fonts: Dict[int, pygame.font.Font] = {}

        self.tooltip_bg = (33, 37, 41)
        self.tooltip_text = (248, 249, 250)
        self.tooltip_padding = 6

    def font(self, size: int) -> pygame.font.Font:
        # pygame's default font renders smaller than CSS pixels; scale up a little
        if size not in self._fonts:
            self._fonts[size] = pygame.font.Font(None, int(size * 1.4))
        return self._fonts[size]

    def draw(self, screen: pygame.Surface, draw_list: DrawList, origin: Point = (0, 0)) -> None:
        """Paint every command of draw_list with its top-left at origin."""
        ox, oy = origin
        for item in draw_list.items:
            if isinstance(item, RectCommand):
                self._draw_rect(screen, item, ox, oy)
            elif isinstance(item, TextCommand):
                self._draw_text(screen, item, ox, oy)
            elif isinstance(item, PolylineCommand):
                self._draw_polyline(screen, item, ox, oy)

    def _draw_rect(self, screen: pygame.Surface, rect: RectCommand, ox: float, oy: float) -> None:
        area = pygame.Rect(
            int(round(ox + rect.x)),
            int(round(oy + rect.y)),
            max(1, int(round(rect.width))),
            max(1, int(round(rect.height))),
        )
        pygame.draw.rect(screen, rect.fill, area)
        if rect.stroke is not None:
            pygame.draw.rect(screen, rect.stroke, area, 1)

    def _draw_text(self, screen: pygame.Surface, text: TextCommand, ox: float, oy: float) -> None:
        rendered = self.font(text.size).render(text.text, True, text.color)
        if text.rotation:
            rendered = pygame.transform.rotate(rendered, text.rotation)

        x, y = ox + text.x, oy + text.y
        if text.rotation:
            rect = rendered.get_rect(center=(x, y))
        elif text.anchor == 'start':
            rect = rendered.get_rect(midleft=(x, y))
        elif text.anchor == 'end':
            rect = rendered.get_rect(midright=(x, y))
        else:
            rect = rendered.get_rect(center=(x, y))
        screen.blit(rendered, rect)

    def _draw_polyline(self, screen: pygame.Surface, line: PolylineCommand, ox: float, oy: float) -> None:
        points = [(ox + px, oy + py) for px, py in line.points]
        if len(points) == 1:
            pygame.draw.circle(screen, line.color, (int(points[0][0]), int(points[0][1])), max(1, line.width))
        elif points:
            pygame.draw.lines(screen, line.color, False, points, line.width)

    def draw_tooltip(self, screen: pygame.Surface, state: TooltipState) -> None:
        """Paint the shared tooltip next to the pointer when visible."""
        if not state.visible or not state.text:
            return

        rendered = self.font(12).render(state.text, True, self.tooltip_text)
        pad = self.tooltip_padding
        box = rendered.get_rect(topleft=(int(state.x) + 12, int(state.y) + 12)).inflate(pad * 2, pad * 2)

        # Keep the box on screen
        screen_rect = screen.get_rect()
        if box.right > screen_rect.right:
            box.right = int(state.x) - 4
        if box.bottom > screen_rect.bottom:
            box.bottom = int(state.y) - 4

        pygame.draw.rect(screen, self.tooltip_bg, box, border_radius=4)
        screen.blit(rendered, rendered.get_rect(center=box.center))


class HoverTracker:
    """
    Converts pointer motion into cell enter/leave callbacks.

    Panels are hit-tested in order; the first hoverable rectangle under the
    pointer wins. Moving onto a cell fires the previous cell's on_leave (when
    it is a different cell) and the new cell's on_enter; moving off all cells
    fires on_leave once.
    """

    def __init__(self):
        self.current: Optional[RectCommand] = None

    @staticmethod
    def _cell_key(rect: Optional[RectCommand]):
        if rect is None or rect.meta is None:
            return None
        meta = rect.meta
        return (meta.kind, meta.layer, meta.i, meta.j)

    def hit_test(self, pointer: Point, panels: Sequence[Panel]) -> Optional[RectCommand]:
        px, py = pointer
        for draw_list, (ox, oy) in panels:
            for rect in draw_list.rects():
                if rect.on_enter is not None and rect.contains(px - ox, py - oy):
                    return rect
        return None

    def update(self, pointer: Point, panels: Sequence[Panel]) -> Optional[RectCommand]:
        """
        Process a pointer position.

        Returns:
            The rectangle under the pointer, if any
        """
        hit = self.hit_test(pointer, panels)

        if hit is None:
            if self.current is not None and self.current.on_leave is not None:
                self.current.on_leave()
            self.current = None
            return None

        if (self.current is not None and self.current.on_leave is not None
                and self._cell_key(self.current) != self._cell_key(hit)):
            self.current.on_leave()

        # Re-entering the same cell refreshes position and value after a redraw
        hit.on_enter(pointer)
        self.current = hit
        return hit

    def reset(self) -> None:
        """Leave the current cell, e.g. when the pointer exits the window."""
        if self.current is not None and self.current.on_leave is not None:
            self.current.on_leave()
        self.current = None
