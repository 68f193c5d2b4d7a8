"""
Pygame renderer for the double-slit simulation.

``Demo`` draws a ``FrameState`` produced by ``simulation.Simulation``:
the emitter, the barrier with its slits, particles and their paths, the wave
overlay, the detection screen with the analytic intensity curve, and the
live histogram along the bottom of the viewport.  It never mutates the
session.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
import pygame

import config
from config import EngineSettings, SimulationConfig
from simulation import FrameState
from wave_math import field_brightness, screen_profile, wave_field_amplitude

BACKGROUND_COLOR = (0, 0, 0)
SCREEN_STRIP_COLOR = (17, 17, 17)
BARRIER_COLOR = (85, 85, 85)
EMITTER_COLOR = (85, 85, 85)
AXIS_COLOR = (102, 102, 102)
COUNTER_COLOR = (220, 220, 220)
GRAPH_BACKGROUND = (0, 0, 0, 77)

BARRIER_THICKNESS = 6
SCREEN_STRIP_WIDTH = 10
PATTERN_STRIP_WIDTH = 5
DETECTION_RADIUS = 2
PATH_ALPHA = 128

DEFAULT_GRAPH_HEIGHT = 100
DEFAULT_CONTRAST_GAMMA = 0.7
DEFAULT_SMOOTHING_WINDOW = 3
DEFAULT_WAVE_ANGULAR_SPEED = 5.0
DEFAULT_WAVEFRONT_SPEED = 10.0


def smooth_array(values: Sequence[float], window: int) -> np.ndarray:
    """Centred moving average over ``[i - window, i + window]``.

    The window is clipped at both ends, so edge cells average fewer
    neighbours instead of being padded.
    """
    data = np.asarray(values, dtype=float)
    n = data.size
    if n == 0 or window <= 0:
        return data.copy()
    csum = np.concatenate(([0.0], np.cumsum(data)))
    idx = np.arange(n)
    lo = np.maximum(0, idx - window)
    hi = np.minimum(n - 1, idx + window) + 1
    return (csum[hi] - csum[lo]) / (hi - lo)


class Demo:
    def __init__(
        self,
        screen: pygame.Surface,
        settings: Optional[EngineSettings] = None,
        loader: Optional[config.ConfigLoader] = None,
    ):
        """
        Parameters
        ----------
        screen : pygame.Surface
            Target surface; its size is the simulation viewport.
        settings : EngineSettings, optional
            Geometry and wavelength shared with the engine.
        loader : ConfigLoader, optional
            Source of the ``display`` section.
        """
        self.screen = screen
        self.settings = settings or EngineSettings()
        self._configure_display(loader or config.ConfigLoader())
        self.font = pygame.font.Font(None, 20)
        self._pattern_surface: Optional[pygame.Surface] = None
        self._pattern_cache_key: Optional[tuple] = None

    def _configure_display(self, loader: config.ConfigLoader) -> None:
        """Read the ``display`` section with per-key fallbacks."""
        display = loader.section('display')

        try:
            graph_height = int(display.get('graph_height', DEFAULT_GRAPH_HEIGHT))
        except (TypeError, ValueError):
            graph_height = DEFAULT_GRAPH_HEIGHT
        self.graph_height: int = max(10, graph_height)

        try:
            gamma = float(display.get('contrast_gamma', DEFAULT_CONTRAST_GAMMA))
        except (TypeError, ValueError):
            gamma = DEFAULT_CONTRAST_GAMMA
        if not math.isfinite(gamma) or gamma <= 0.0:
            gamma = DEFAULT_CONTRAST_GAMMA
        self.contrast_gamma: float = gamma

        try:
            window = int(display.get('smoothing_window', DEFAULT_SMOOTHING_WINDOW))
        except (TypeError, ValueError):
            window = DEFAULT_SMOOTHING_WINDOW
        self.smoothing_window: int = max(0, window)

        try:
            angular = float(display.get('wave_angular_speed', DEFAULT_WAVE_ANGULAR_SPEED))
        except (TypeError, ValueError):
            angular = DEFAULT_WAVE_ANGULAR_SPEED
        self.wave_angular_speed: float = angular if math.isfinite(angular) else DEFAULT_WAVE_ANGULAR_SPEED

        try:
            front_speed = float(display.get('wavefront_speed', DEFAULT_WAVEFRONT_SPEED))
        except (TypeError, ValueError):
            front_speed = DEFAULT_WAVEFRONT_SPEED
        self.wavefront_speed: float = front_speed if math.isfinite(front_speed) else DEFAULT_WAVEFRONT_SPEED

    def set_surface(self, screen: pygame.Surface) -> None:
        """Switch to a new target surface after a window resize."""
        self.screen = screen
        self._pattern_surface = None
        self._pattern_cache_key = None

    # -----------------------------------------------------------------
    def draw(self, state: FrameState, cfg: SimulationConfig) -> None:
        """Render one full frame."""
        self.screen.fill(BACKGROUND_COLOR)
        self._draw_apparatus(cfg)
        self._draw_particles(state, cfg)
        if cfg.detection_mode == 'wave':
            self._draw_wave_pattern(state, cfg)
        self._draw_detection_screen(state, cfg)
        self.draw_intensity_graph(state.histogram, cfg)
        self._draw_counters(state)

    def _draw_apparatus(self, cfg: SimulationConfig) -> None:
        s = self.settings
        height = int(cfg.height)
        cy = height // 2
        emitter_color = s.style_for(cfg.particle_type).color
        pygame.draw.circle(self.screen, emitter_color, (int(s.emitter_x) - 10, cy), 12, 2)
        pygame.draw.circle(self.screen, EMITTER_COLOR, (int(s.emitter_x) - 10, cy), 9)

        barrier_left = int(s.barrier_x) - BARRIER_THICKNESS // 2
        pygame.draw.rect(self.screen, BARRIER_COLOR, (barrier_left, 0, BARRIER_THICKNESS, height))
        for slit in cfg.open_slits:
            if slit.width <= 0.0:
                continue
            top = int(round(slit.y - slit.width / 2.0))
            gap = max(1, int(round(slit.width)))
            pygame.draw.rect(self.screen, BACKGROUND_COLOR, (barrier_left, top, BARRIER_THICKNESS, gap))

    def _draw_particles(self, state: FrameState, cfg: SimulationConfig) -> None:
        barrier_x = self.settings.barrier_x
        overlay = None
        if cfg.show_paths:
            overlay = pygame.Surface(self.screen.get_size(), pygame.SRCALPHA)
        for p in state.particles:
            if cfg.detection_mode != 'wave' or p.x < barrier_x:
                pygame.draw.circle(self.screen, p.color, (int(p.x), int(p.y)), p.size)
            if overlay is not None and p.paths:
                points = [(int(px), int(py)) for px, py in p.paths]
                points.append((int(p.x), int(p.y)))
                if len(points) >= 2:
                    pygame.draw.lines(overlay, (*p.color, PATH_ALPHA), False, points, 1)
        if overlay is not None:
            self.screen.blit(overlay, (0, 0))

    def _draw_wave_pattern(self, state: FrameState, cfg: SimulationConfig) -> None:
        """Animated field strip beside the screen plus wavefronts from both slits."""
        open_slits = cfg.open_slits
        if not open_slits:
            return
        s = self.settings
        width, height = cfg.viewport
        screen_x = width - 5
        sources = [(s.barrier_x, slit.y) for slit in open_slits]
        base = s.style_for(cfg.particle_type).color

        overlay = pygame.Surface((width, height), pygame.SRCALPHA)
        for y in range(height):
            amplitude = wave_field_amplitude(
                (float(screen_x), float(y)),
                sources,
                s.wavelength,
                state.simulation_time,
                self.wave_angular_speed,
            )
            alpha = int(255 * field_brightness(amplitude) * 0.5 * 0.5)
            pygame.draw.line(overlay, (*base, alpha), (screen_x - 10, y), (screen_x - 1, y))

        if cfg.both_slits_open:
            shift = (state.simulation_time * self.wavefront_speed) % s.wavelength
            radius = 10.0 + shift
            while radius < width:
                alpha = int(255 * max(0.0, 0.2 - radius / width * 0.2))
                if alpha > 0:
                    for slit in open_slits:
                        pygame.draw.circle(
                            overlay,
                            (255, 255, 255, alpha),
                            (int(s.barrier_x), int(slit.y)),
                            int(radius),
                            1,
                        )
                radius += s.wavelength
        self.screen.blit(overlay, (0, 0))

    # -----------------------------------------------------------------
    def _pattern_key(self, cfg: SimulationConfig) -> tuple:
        return (cfg.viewport, cfg.slit_geometry, self.settings.barrier_x, self.settings.wavelength, self.contrast_gamma)

    def _build_pattern_surface(self, cfg: SimulationConfig) -> pygame.Surface:
        """Greyscale strip of the analytic screen intensity."""
        height = int(cfg.height)
        surface = pygame.Surface((PATTERN_STRIP_WIDTH, max(1, height)))
        surface.fill(SCREEN_STRIP_COLOR)
        open_slits = cfg.open_slits
        if not open_slits:
            return surface
        center_y = sum(slit.y for slit in open_slits) / len(open_slits)
        profile = screen_profile(
            rows=height,
            center_y=center_y,
            screen_distance=cfg.width - self.settings.barrier_x,
            slit_separation=cfg.slit_distance,
            slit_width=cfg.slit_width,
            wavelength=self.settings.wavelength,
            open_count=len(open_slits),
        )
        shades = np.clip(255.0 * np.power(profile, self.contrast_gamma), 0, 255).astype(int)
        for y, shade in enumerate(shades):
            shade = int(shade)
            pygame.draw.line(surface, (shade, shade, shade), (0, y), (PATTERN_STRIP_WIDTH - 1, y))
        return surface

    def _draw_detection_screen(self, state: FrameState, cfg: SimulationConfig) -> None:
        width, height = cfg.viewport
        pygame.draw.rect(self.screen, SCREEN_STRIP_COLOR, (width - SCREEN_STRIP_WIDTH, 0, SCREEN_STRIP_WIDTH, height))

        key = self._pattern_key(cfg)
        if self._pattern_surface is None or self._pattern_cache_key != key:
            self._pattern_surface = self._build_pattern_surface(cfg)
            self._pattern_cache_key = key
        self.screen.blit(self._pattern_surface, (width - PATTERN_STRIP_WIDTH, 0))

        if not state.detections:
            return
        overlay = pygame.Surface((width, height), pygame.SRCALPHA)
        for d in state.detections:
            alpha = int(max(0.0, min(1.0, d.opacity)) * 255)
            if alpha <= 0:
                continue
            pygame.draw.circle(overlay, (*d.color, alpha), (int(d.x) - DETECTION_RADIUS, int(d.y)), DETECTION_RADIUS)
        self.screen.blit(overlay, (0, 0))

    def draw_intensity_graph(self, histogram: np.ndarray, cfg: SimulationConfig) -> Optional[np.ndarray]:
        """Draw the smoothed, max-normalised histogram along the bottom band.

        Returns the normalised values that were plotted, or ``None`` when
        there is nothing to draw.
        """
        width, height = cfg.viewport
        counts = np.asarray(histogram, dtype=float)
        if counts.size < 2 or width <= 1 or height <= 1:
            return None
        graph_height = min(self.graph_height, height)
        top = height - graph_height
        max_intensity = max(float(counts.max()), 1.0)
        normalised = smooth_array(counts, self.smoothing_window) / max_intensity

        overlay = pygame.Surface((width, height), pygame.SRCALPHA)
        overlay.fill(GRAPH_BACKGROUND, pygame.Rect(0, top, width, graph_height))
        pygame.draw.line(overlay, AXIS_COLOR, (0, top), (width, top), 1)

        n = normalised.size
        points = [
            (int(round(i / n * width)), int(round(height - value * graph_height)))
            for i, value in enumerate(normalised)
        ]
        color = self.settings.style_for(cfg.particle_type).color
        polygon = points + [(width, height), (0, height)]
        pygame.draw.polygon(overlay, (*color, 110), polygon)
        pygame.draw.lines(overlay, (*color, 255), False, points, 2)
        self.screen.blit(overlay, (0, 0))
        return normalised

    def _draw_counters(self, state: FrameState) -> None:
        lines = (
            f"Particles fired: {state.particles_fired}",
            f"Time: {state.simulation_time:.1f} s",
        )
        y = 8
        for text in lines:
            label = self.font.render(text, True, COUNTER_COLOR)
            self.screen.blit(label, (8, y))
            y += label.get_height() + 2
