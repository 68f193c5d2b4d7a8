"""
Double-slit particle simulation engine.

Particles are emitted from a point source, cross a barrier holding up to two
slits and land on a detection screen at the right edge of the viewport.
Landings accumulate in a per-row histogram which, over many particles,
approaches the interference (two slits) or diffraction (one slit) curve.

The engine is split the same way the frame is processed:

* ``ParticleLifecycle`` spawns particles, moves them, decides slit
  transmission and applies interference steering.
* ``DetectionAccumulator`` keeps the detection points and the histogram.
* ``Simulation`` is the session object holding both, driven once per frame
  by the host with a fresh ``SimulationConfig`` snapshot.

Positions are in screen pixels and one call to ``Simulation.tick`` is one
integration step; elapsed wall time only feeds the simulation clock.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from numpy import ndarray

from config import EngineSettings, SimulationConfig
from wave_math import TWO_PI, interference_weight

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    """Result of advancing a particle by one tick."""

    ALIVE = 'alive'
    ABSORBED = 'absorbed'
    DETECTED = 'detected'


@dataclass
class Particle:
    """A single in-flight particle in screen coordinates."""

    x: float
    y: float
    vx: float
    vy: float
    size: int
    color: Tuple[int, int, int]
    phase_offset: float = 0.0
    paths: List[Tuple[float, float]] = field(default_factory=list)
    passed_barrier: bool = False
    detectable: bool = True
    age: int = 0


@dataclass
class Detection:
    """A landing point on the detection screen."""

    x: float
    y: float
    color: Tuple[int, int, int]
    time: float
    opacity: float = 1.0


@dataclass(frozen=True)
class FrameState:
    """Read-only view of the session handed to the renderer each tick."""

    particles: Tuple[Particle, ...]
    detections: Tuple[Detection, ...]
    histogram: ndarray
    particles_fired: int
    simulation_time: float
    absorbed: int = 0
    detected: int = 0


################################################################################
# Particle lifecycle
################################################################################

class ParticleLifecycle:
    """Own the live particle set: spawn, integrate, transmit, steer."""

    def __init__(self, settings: EngineSettings, rng: np.random.Generator):
        self.settings = settings
        self.rng = rng
        self.particles: List[Particle] = []
        self.particles_fired: int = 0
        # Fire-one-at-a-time bookkeeping
        self.one_by_one: bool = False
        self._in_flight: Optional[Particle] = None

    @property
    def awaiting_flight(self) -> bool:
        """True while a one-at-a-time particle has not been absorbed or detected."""
        return self._in_flight is not None

    def set_one_by_one(self, enabled: bool) -> None:
        self.one_by_one = bool(enabled)
        self._in_flight = None

    def reset(self) -> None:
        self.particles.clear()
        self.particles_fired = 0
        self.one_by_one = False
        self._in_flight = None

    # -------------------------------------------------------------------------
    def try_spawn(self, config: SimulationConfig) -> Optional[Particle]:
        """Run one emission trial; return the new particle if one was emitted."""
        if self.one_by_one and self._in_flight is not None:
            return None
        if self.rng.random() >= config.emission_rate / 100.0:
            return None

        s = self.settings
        style = s.style_for(config.particle_type)
        y = config.height / 2.0 + (self.rng.random() - 0.5) * s.spawn_jitter
        particle = Particle(
            x=s.emitter_x,
            y=y,
            vx=s.particle_speed,
            vy=0.0,
            size=style.size,
            color=style.color,
            phase_offset=float(self.rng.random() * TWO_PI),
        )
        self.particles.append(particle)
        self.particles_fired += 1
        if self.one_by_one:
            self._in_flight = particle
        return particle

    def advance(self, particle: Particle, config: SimulationConfig) -> Outcome:
        """Move ``particle`` one tick and report what happened to it.

        The caller is responsible for removing absorbed and detected
        particles from the live set (see ``advance_all``).
        """
        s = self.settings
        if config.show_paths and particle.age % s.path_stride == 0:
            particle.paths.append((particle.x, particle.y))
        particle.age += 1

        if particle.x >= s.barrier_x and not particle.passed_barrier:
            particle.passed_barrier = True
            if not any(slit.transmits(particle.y) for slit in config.slits):
                return Outcome.ABSORBED
            # Small random deflection at the slit; interference dominates it.
            particle.vy += (self.rng.random() - 0.5) * s.slit_jitter
            if config.both_slits_open:
                self.steer(particle, config)

        particle.x += particle.vx
        particle.y += particle.vy

        if particle.x >= config.width:
            return Outcome.DETECTED
        return Outcome.ALIVE

    def steer(self, particle: Particle, config: SimulationConfig) -> None:
        """Bias ``vy`` toward interference maxima near the projected landing row.

        Every ``row_step``-th screen row gets a two-slit weight
        ``cos^2(dphi / 2)``.  Rows within ``capture_radius`` of the
        straight-line landing estimate pull the particle toward them in
        proportion to that weight, so bright fringes attract and dark
        fringes barely pull at all.  The estimate is refreshed after each
        pull.
        """
        if not config.both_slits_open:
            return
        s = self.settings
        dist_to_screen = config.width - particle.x
        if particle.vx <= 0.0 or dist_to_screen <= 0.0:
            return
        sources = [(s.barrier_x, slit.y) for slit in config.slits]
        screen_x = float(config.width)
        for screen_y in range(0, int(config.height), s.steering_row_step):
            landing = particle.y + particle.vy * dist_to_screen / particle.vx
            if abs(landing - screen_y) >= s.steering_capture_radius:
                continue
            weight = interference_weight(
                (screen_x, float(screen_y)),
                sources,
                s.wavelength,
                particle.phase_offset,
            )
            direction = 1.0 if screen_y - particle.y > 0 else -1.0
            particle.vy += direction * weight * s.steering_gain

    def advance_all(self, config: SimulationConfig) -> List[Tuple[Particle, Outcome]]:
        """Advance every live particle; return the ones that left the set."""
        finished: List[Tuple[Particle, Outcome]] = []
        survivors: List[Particle] = []
        for particle in self.particles:
            outcome = self.advance(particle, config)
            if outcome is Outcome.ALIVE:
                survivors.append(particle)
                continue
            finished.append((particle, outcome))
            if particle is self._in_flight:
                self._in_flight = None
        self.particles = survivors
        return finished


################################################################################
# Detection accumulator
################################################################################

class DetectionAccumulator:
    """Detection points on the screen plus the per-row landing histogram."""

    def __init__(self, rows: int, fade_step: float = 0.01):
        if rows < 0:
            raise ValueError("rows must be >= 0")
        self.fade_step = float(fade_step)
        self.detections: List[Detection] = []
        self._histogram: ndarray = np.zeros(int(rows), dtype=np.int64)

    @property
    def histogram(self) -> ndarray:
        return self._histogram

    @property
    def rows(self) -> int:
        return int(self._histogram.size)

    @property
    def total_counts(self) -> int:
        return int(self._histogram.sum())

    def record(self, x: float, y: float, color: Tuple[int, int, int], time: float) -> Detection:
        """Store a landing and bump its histogram row when it is on screen."""
        detection = Detection(x=x, y=y, color=color, time=time, opacity=1.0)
        self.detections.append(detection)
        if math.isfinite(y):
            row = math.floor(y)
            if 0 <= row < self._histogram.size:
                self._histogram[row] += 1
        return detection

    def tick(self, mode: str) -> None:
        """Fade detections in particle mode; other modes keep them."""
        if mode != 'particle':
            return
        kept: List[Detection] = []
        for detection in self.detections:
            detection.opacity = max(0.0, detection.opacity - self.fade_step)
            if detection.opacity > 0.0:
                kept.append(detection)
        self.detections = kept

    def restore_opacity(self) -> None:
        for detection in self.detections:
            detection.opacity = 1.0

    def reset(self) -> None:
        self.detections.clear()
        self._histogram[:] = 0

    def resize(self, new_rows: int) -> None:
        """Redistribute counts into ``new_rows`` cells.

        Old row ``i`` is added to new row ``floor(i * new_rows / old_rows)``.
        Several old rows may merge into one, but counts are only ever moved,
        never created.
        """
        new_rows = int(new_rows)
        if new_rows < 0:
            raise ValueError("new_rows must be >= 0")
        old = self._histogram
        if new_rows == old.size:
            return
        resized = np.zeros(new_rows, dtype=np.int64)
        if old.size and new_rows:
            target = (np.arange(old.size, dtype=np.int64) * new_rows) // old.size
            np.add.at(resized, target, old)
        self._histogram = resized


################################################################################
# Simulation session
################################################################################

class Simulation:
    """One visualisation session.

    Holds the particle lifecycle, the detection accumulator and the session
    counters.  The host calls ``tick`` once per displayed frame with the
    current configuration snapshot.
    """

    def __init__(
        self,
        config: SimulationConfig,
        settings: Optional[EngineSettings] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """Create a session for the given initial configuration.

        Parameters
        ----------
        config: SimulationConfig
            Initial snapshot; sets the histogram height and the baseline for
            change detection.
        settings: EngineSettings, optional
            Engine constants.  Defaults match the bundled ``config.json``.
        rng: numpy.random.Generator, optional
            Source of randomness for emission and jitter.  Pass a seeded
            generator for reproducible runs.
        """
        self.settings = settings or EngineSettings()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.lifecycle = ParticleLifecycle(self.settings, self.rng)
        self.accumulator = DetectionAccumulator(int(config.height), self.settings.fade_step)
        self.simulation_time: float = 0.0
        self._config: SimulationConfig = config
        logger.info(
            "Simulation started: %dx%d viewport, %s in %s mode",
            config.width, config.height, config.particle_type, config.detection_mode,
        )

    # -------------------------------------------------------------------------
    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def particles(self) -> List[Particle]:
        return self.lifecycle.particles

    @property
    def detections(self) -> List[Detection]:
        return self.accumulator.detections

    @property
    def histogram(self) -> ndarray:
        return self.accumulator.histogram

    @property
    def particles_fired(self) -> int:
        return self.lifecycle.particles_fired

    @property
    def one_by_one(self) -> bool:
        return self.lifecycle.one_by_one

    # -------------------------------------------------------------------------
    def toggle_one_by_one(self) -> bool:
        """Switch between continuous and one-at-a-time emission."""
        self.lifecycle.set_one_by_one(not self.lifecycle.one_by_one)
        return self.lifecycle.one_by_one

    def reset(self) -> None:
        """Drop all particles and detections and zero every counter."""
        self.lifecycle.reset()
        self.accumulator.reset()
        self.simulation_time = 0.0
        logger.info("Simulation reset")

    def resize(self, width: int, height: int) -> None:
        """Adopt a new viewport, redistributing the histogram rows."""
        self.accumulator.resize(int(height))
        logger.info("Viewport resized to %dx%d", width, height)

    def _apply_config_changes(self, config: SimulationConfig) -> None:
        prev = self._config
        if config.particle_type != prev.particle_type:
            logger.debug("Particle type changed to %s; resetting", config.particle_type)
            self.reset()
        elif config.slit_geometry != prev.slit_geometry and config.detection_mode == 'accumulation':
            logger.debug("Slits changed in accumulation mode; clearing detections")
            self.accumulator.reset()
        if config.detection_mode != prev.detection_mode and config.detection_mode == 'particle':
            self.accumulator.restore_opacity()
        if config.viewport != prev.viewport or self.accumulator.rows != int(config.height):
            self.resize(config.width, config.height)
        self._config = config

    def tick(self, config: SimulationConfig, dt: float = 0.0) -> FrameState:
        """Run one frame: spawn, advance, accumulate, fade.

        ``dt`` is the wall time in seconds since the previous frame.  A
        particle spawned in this tick is advanced in this tick as well.
        """
        self._apply_config_changes(config)
        if math.isfinite(dt) and dt > 0.0:
            self.simulation_time += dt

        self.lifecycle.try_spawn(config)
        finished = self.lifecycle.advance_all(config)

        absorbed = 0
        detected = 0
        for particle, outcome in finished:
            if outcome is Outcome.ABSORBED:
                absorbed += 1
                continue
            detected += 1
            if particle.detectable:
                self.accumulator.record(float(config.width), particle.y, particle.color, self.simulation_time)
        if absorbed or detected:
            logger.debug("tick: %d absorbed, %d detected", absorbed, detected)

        self.accumulator.tick(config.detection_mode)
        return self.frame_state(absorbed=absorbed, detected=detected)

    def frame_state(self, absorbed: int = 0, detected: int = 0) -> FrameState:
        return FrameState(
            particles=tuple(self.lifecycle.particles),
            detections=tuple(self.accumulator.detections),
            histogram=self.accumulator.histogram.copy(),
            particles_fired=self.lifecycle.particles_fired,
            simulation_time=self.simulation_time,
            absorbed=absorbed,
            detected=detected,
        )
