from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np
import pygame

import config
from config import DETECTION_MODES, PARTICLE_TYPES, EngineSettings, SimulationConfig
from demo import Demo
from simulation import Simulation

logger = logging.getLogger(__name__)

RATE_RANGE = (0.0, 100.0)
SLIT_WIDTH_RANGE = (0.0, 60.0)
SLIT_DISTANCE_RANGE = (0.0, 200.0)
RATE_STEP = 5.0
SLIT_WIDTH_STEP = 2.0
SLIT_DISTANCE_STEP = 10.0
MIN_WINDOW_SIZE = (320, 200)
DEFAULT_WINDOW_SIZE = (900, 520)
DEFAULT_FPS = 60


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    return float(max(bounds[0], min(bounds[1], value)))


@dataclass
class ControlState:
    """Mutable control values edited by the user between frames."""

    emission_rate: float = 30.0
    slit_width: float = 40.0
    slit_distance: float = 30.0
    slit_top_open: bool = True
    slit_bottom_open: bool = True
    particle_type: str = 'photon'
    detection_mode: str = 'accumulation'
    show_paths: bool = False

    @classmethod
    def from_config(cls, initial: SimulationConfig) -> 'ControlState':
        state = cls(
            emission_rate=initial.emission_rate,
            slit_width=initial.slit_width,
            slit_distance=initial.slit_distance,
            slit_top_open=initial.slit_top_open,
            slit_bottom_open=initial.slit_bottom_open,
            particle_type=initial.particle_type,
            detection_mode=initial.detection_mode,
            show_paths=initial.show_paths,
        )
        state.clamp()
        return state

    def clamp(self) -> None:
        self.emission_rate = _clamp(self.emission_rate, RATE_RANGE)
        self.slit_width = _clamp(self.slit_width, SLIT_WIDTH_RANGE)
        self.slit_distance = _clamp(self.slit_distance, SLIT_DISTANCE_RANGE)

    def adjust_rate(self, delta: float) -> None:
        self.emission_rate = _clamp(self.emission_rate + delta, RATE_RANGE)

    def adjust_slit_width(self, delta: float) -> None:
        self.slit_width = _clamp(self.slit_width + delta, SLIT_WIDTH_RANGE)

    def adjust_slit_distance(self, delta: float) -> None:
        self.slit_distance = _clamp(self.slit_distance + delta, SLIT_DISTANCE_RANGE)

    def toggle_top_slit(self) -> None:
        self.slit_top_open = not self.slit_top_open

    def toggle_bottom_slit(self) -> None:
        self.slit_bottom_open = not self.slit_bottom_open

    def cycle_particle_type(self) -> None:
        idx = PARTICLE_TYPES.index(self.particle_type)
        self.particle_type = PARTICLE_TYPES[(idx + 1) % len(PARTICLE_TYPES)]

    def cycle_detection_mode(self) -> None:
        idx = DETECTION_MODES.index(self.detection_mode)
        self.detection_mode = DETECTION_MODES[(idx + 1) % len(DETECTION_MODES)]

    def toggle_paths(self) -> None:
        self.show_paths = not self.show_paths

    def snapshot(self, width: int, height: int) -> SimulationConfig:
        """Freeze the current controls into the per-tick engine config."""
        return SimulationConfig(
            emission_rate=self.emission_rate,
            slit_width=self.slit_width,
            slit_distance=self.slit_distance,
            slit_top_open=self.slit_top_open,
            slit_bottom_open=self.slit_bottom_open,
            particle_type=self.particle_type,
            detection_mode=self.detection_mode,
            show_paths=self.show_paths,
            width=int(width),
            height=int(height),
        )


class DemoScreen:
    def __init__(self, loader: Optional[config.ConfigLoader] = None, seed: Optional[int] = None):
        self.loader = loader or config.ConfigLoader()
        display = self.loader.section('display')
        size = display.get('window_size', DEFAULT_WINDOW_SIZE)
        try:
            width, height = int(size[0]), int(size[1])
        except (TypeError, ValueError, IndexError):
            width, height = DEFAULT_WINDOW_SIZE
        self.window_size = (max(MIN_WINDOW_SIZE[0], width), max(MIN_WINDOW_SIZE[1], height))
        try:
            self.fps = max(1, int(display.get('fps', DEFAULT_FPS)))
        except (TypeError, ValueError):
            self.fps = DEFAULT_FPS

        self.settings = EngineSettings.from_loader(self.loader)
        initial = SimulationConfig.from_loader(self.loader, *self.window_size)
        self.controls = ControlState.from_config(initial)
        self.simulation = Simulation(initial, self.settings, rng=np.random.default_rng(seed))

        self.screen: Optional[pygame.Surface] = None
        self.demo: Optional[Demo] = None
        self.clock: Optional[pygame.time.Clock] = None
        self.running = False
        self.caption_one_by_one: Optional[bool] = None
        self.key_bindings: Dict[int, Callable[[], None]] = {
            pygame.K_UP: lambda: self.controls.adjust_rate(RATE_STEP),
            pygame.K_DOWN: lambda: self.controls.adjust_rate(-RATE_STEP),
            pygame.K_RIGHT: lambda: self.controls.adjust_slit_width(SLIT_WIDTH_STEP),
            pygame.K_LEFT: lambda: self.controls.adjust_slit_width(-SLIT_WIDTH_STEP),
            pygame.K_RIGHTBRACKET: lambda: self.controls.adjust_slit_distance(SLIT_DISTANCE_STEP),
            pygame.K_LEFTBRACKET: lambda: self.controls.adjust_slit_distance(-SLIT_DISTANCE_STEP),
            pygame.K_1: self.controls.toggle_top_slit,
            pygame.K_2: self.controls.toggle_bottom_slit,
            pygame.K_t: self.controls.cycle_particle_type,
            pygame.K_m: self.controls.cycle_detection_mode,
            pygame.K_p: self.controls.toggle_paths,
            pygame.K_o: self.toggle_one_by_one,
            pygame.K_r: self.reset,
            pygame.K_ESCAPE: self.stop,
        }

    def toggle_one_by_one(self) -> None:
        enabled = self.simulation.toggle_one_by_one()
        self._update_caption(enabled)

    def reset(self) -> None:
        self.simulation.reset()
        self._update_caption(False)

    def stop(self) -> None:
        self.running = False

    def _update_caption(self, one_by_one: bool) -> None:
        self.caption_one_by_one = one_by_one
        if self.screen is None:
            return
        mode = 'one-by-one' if one_by_one else 'continuous'
        pygame.display.set_caption(f"Double-slit experiment ({mode} fire)")

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.stop()
        elif event.type == pygame.KEYDOWN:
            handler = self.key_bindings.get(event.key)
            if handler is not None:
                handler()
        elif event.type == pygame.VIDEORESIZE:
            self._resize((event.w, event.h))

    def _resize(self, size: tuple[int, int]) -> None:
        width = max(MIN_WINDOW_SIZE[0], int(size[0]))
        height = max(MIN_WINDOW_SIZE[1], int(size[1]))
        self.window_size = (width, height)
        self.screen = pygame.display.set_mode(self.window_size, pygame.RESIZABLE)
        if self.demo is not None:
            self.demo.set_surface(self.screen)
        # The session picks the new height up from the next snapshot.

    def step(self, dt: float) -> None:
        """Advance and draw one frame."""
        cfg = self.controls.snapshot(*self.window_size)
        state = self.simulation.tick(cfg, dt)
        # A particle-type change resets the session, one-by-one mode included.
        if self.simulation.one_by_one != self.caption_one_by_one:
            self._update_caption(self.simulation.one_by_one)
        if self.demo is not None:
            self.demo.draw(state, cfg)

    def run(self) -> None:
        pygame.init()
        self.screen = pygame.display.set_mode(self.window_size, pygame.RESIZABLE)
        self._update_caption(self.simulation.one_by_one)
        self.demo = Demo(self.screen, self.settings, self.loader)
        self.clock = pygame.time.Clock()
        self.running = True
        logger.info("Window opened at %dx%d, %d fps", self.window_size[0], self.window_size[1], self.fps)
        try:
            while self.running:
                for event in pygame.event.get():
                    self.handle_event(event)
                if not self.running:
                    break
                dt = self.clock.tick(self.fps) / 1000.0
                self.step(dt)
                pygame.display.flip()
        finally:
            pygame.quit()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    DemoScreen().run()


if __name__ == '__main__':
    main()
