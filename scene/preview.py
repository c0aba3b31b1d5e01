# scene/preview.py
import logging
import math
import time
from typing import Dict, List, Optional, Sequence

import numpy as np
import pygame

from config import (
    WIN_W, WIN_H, CAMERA_DISTANCE, FOV_DEG, FPS,
    PREVIEW_NEEDLE_STRIDE, HOVER_PICK_PX,
)
from formation.engine import FormationEngine
from formation.state import FormationMode
from gesture.controller import GestureController

logger = logging.getLogger(__name__)

BG = (5, 5, 5)
PANEL_W, PANEL_H = 1.2, 1.5
FOCAL = (WIN_H / 2) / math.tan(math.radians(FOV_DEG) / 2)


def project(points: np.ndarray):
    """
    Pinhole projection from a camera on +z looking at the origin.
    Returns (xy pixels, depth); rows behind the camera get depth <= 0.
    """
    points = np.atleast_2d(points)
    depth = CAMERA_DISTANCE - points[:, 2]
    safe = np.where(depth > 1e-3, depth, 1e-3)
    sx = WIN_W / 2 + points[:, 0] * FOCAL / safe
    sy = WIN_H / 2 - points[:, 1] * FOCAL / safe
    return np.stack([sx, sy], axis=1), depth


def draw_needles(screen, engine: FormationEngine) -> None:
    needles = engine.needles
    xy, depth = project(needles.positions[::PREVIEW_NEEDLE_STRIDE])
    colors = needles.colors[::PREVIEW_NEEDLE_STRIDE]
    xs = xy[:, 0].astype(np.int32)
    ys = xy[:, 1].astype(np.int32)
    visible = (depth > 0) & (xs >= 0) & (xs < WIN_W) & (ys >= 0) & (ys < WIN_H)
    pixels = pygame.surfarray.pixels3d(screen)
    pixels[xs[visible], ys[visible]] = (colors[visible] * 255).astype(np.uint8)
    del pixels


def draw_ornaments(screen, engine: FormationEngine) -> np.ndarray:
    ornaments = engine.ornaments
    xy, depth = project(ornaments.positions)
    order = np.argsort(-depth)    # far to near
    for i in order:
        if depth[i] <= 0:
            continue
        r = max(1, int(0.3 * ornaments.scales[i] * FOCAL / depth[i]))
        color = tuple(int(c * 255) for c in ornaments.color[i])
        pygame.draw.circle(screen, color, (int(xy[i, 0]), int(xy[i, 1])), r)
        if ornaments.hovered == i:
            pygame.draw.circle(screen, (255, 255, 255), (int(xy[i, 0]), int(xy[i, 1])), r + 2, 1)
    return xy


def draw_emblem(screen, engine: FormationEngine) -> None:
    emblem = engine.emblem
    xy, depth = project(emblem.position)
    if depth[0] <= 0:
        return
    k = emblem.scale * FOCAL / depth[0]
    yaw = emblem.rotation[1]
    roll = emblem.rotation[2]
    pts = []
    for x, y in emblem.outline:
        x *= math.cos(yaw)    # spin about the vertical axis, seen edge-on
        rx = x * math.cos(roll) - y * math.sin(roll)
        ry = x * math.sin(roll) + y * math.cos(roll)
        pts.append((xy[0, 0] + rx * k, xy[0, 1] - ry * k))
    glow = min(255, int(170 + 40 * emblem.emissive_intensity))
    pygame.draw.polygon(screen, (255, glow, 60), pts)


def load_thumbnail(url: str) -> Optional[pygame.Surface]:
    try:
        return pygame.image.load(url).convert()
    except (pygame.error, FileNotFoundError) as e:
        logger.warning("Could not load photo %s: %s", url, e)
        return None


def draw_photos(screen, engine: FormationEngine, thumbs: Dict[str, Optional[pygame.Surface]]) -> Dict[str, pygame.Rect]:
    rects = {}
    panels = list(engine.photos)
    if not panels:
        return rects
    xy, depth = project(np.array([p.position for p in panels]))
    for i in np.argsort(-depth):
        panel = panels[i]
        if depth[i] <= 0:
            continue
        k = panel.scale * FOCAL / depth[i]
        w = max(2, int(PANEL_W * k * abs(math.cos(panel.rotation[1] - math.pi / 2)) + 2))
        h = max(2, int(PANEL_H * k))
        rect = pygame.Rect(0, 0, w, h)
        rect.center = (int(xy[i, 0]), int(xy[i, 1]))
        pygame.draw.rect(screen, (240, 240, 240), rect)
        thumb = thumbs.get(panel.record.id)
        if thumb is not None:
            inner = rect.inflate(-max(2, w // 10), -max(2, h // 4))
            inner.top = rect.top + max(1, w // 20)
            if inner.width > 0 and inner.height > 0:
                screen.blit(pygame.transform.smoothscale(thumb, inner.size), inner)
        if panel.zoomed:
            pygame.draw.rect(screen, (255, 215, 0), rect, 2)
        rects[panel.record.id] = rect
    return rects


def pick_ornament(mouse, xy: np.ndarray) -> Optional[int]:
    if len(xy) == 0:
        return None
    d = np.hypot(xy[:, 0] - mouse[0], xy[:, 1] - mouse[1])
    i = int(np.argmin(d))
    return i if d[i] <= HOVER_PICK_PX else None


def pick_photo(mouse, rects: Dict[str, pygame.Rect]) -> Optional[str]:
    for panel_id, rect in reversed(list(rects.items())):
        if rect.collidepoint(mouse):
            return panel_id
    return None


def run_preview(engine: FormationEngine, controller: GestureController, photo_paths: Sequence[str] = ()):
    pygame.init()
    screen = pygame.display.set_mode((WIN_W, WIN_H))
    pygame.display.set_caption("Gesture Tree")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("Consolas", 18)

    context = engine.context
    pending: List[str] = list(photo_paths)
    thumbs: Dict[str, Optional[pygame.Surface]] = {}
    ornament_xy = np.zeros((0, 2))
    photo_rects: Dict[str, pygame.Rect] = {}

    def set_vision(enabled: bool):
        if enabled:
            controller.enable()
        else:
            controller.disable()

    last_time = time.time()
    try:
        while True:
            now = time.time()
            dt = now - last_time
            last_time = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    return
                if event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        return
                    if event.key == pygame.K_f:
                        engine.set_mode(FormationMode.ASSEMBLED)
                    if event.key == pygame.K_u:
                        engine.set_mode(FormationMode.DISPERSED)
                    if event.key == pygame.K_c:
                        set_vision(context.toggle_vision())
                    if event.key == pygame.K_p:
                        if pending:
                            url = pending.pop(0)
                            record = engine.add_photo(url)
                            thumbs[record.id] = load_thumbnail(url)
                        else:
                            logger.info("No more photos to add")

            mouse = pygame.mouse.get_pos()
            engine.hover_photo(pick_photo(mouse, photo_rects))
            engine.hover_ornament(pick_ornament(mouse, ornament_xy))

            frame = engine.step(dt)

            screen.fill(BG)
            draw_needles(screen, engine)
            ornament_xy = draw_ornaments(screen, engine)
            draw_emblem(screen, engine)
            photo_rects = draw_photos(screen, engine, thumbs)

            vision = "Vision Active" if context.vision_enabled else "Vision Off"
            hud1 = font.render(f"Mode: {frame.mode.value}", True, (255, 215, 0))
            hud2 = font.render(f"{vision} | Gesture: {frame.gesture.value}", True, (200, 200, 200))
            hud3 = font.render(controller.status(), True, (120, 120, 120))
            hud4 = font.render("F form | U unleash | C camera | P add photo | ESC quit", True, (150, 150, 150))
            screen.blit(hud1, (8, 6))
            screen.blit(hud2, (8, 28))
            screen.blit(hud3, (8, 50))
            screen.blit(hud4, (8, WIN_H - 26))

            pygame.display.flip()
            clock.tick(FPS)
    finally:
        controller.close()
        pygame.quit()
