"""
Configuration for the double-slit simulation.

Engine constants (geometry, steering gains, particle styles) live in
``config.json`` next to this module and are read through ``ConfigLoader``.
Per-frame control values are captured into an immutable
``SimulationConfig`` snapshot which the host hands to the engine once per
tick.
"""

from __future__ import annotations

import copy
import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)

PARTICLE_TYPES: Tuple[str, ...] = ('photon', 'electron')
DETECTION_MODES: Tuple[str, ...] = ('particle', 'wave', 'accumulation')

CONFIG_FILENAME = 'config.json'

DEFAULTS: dict = {
    'geometry': {'emitter_x': 70.0, 'barrier_x': 150.0},
    'physics': {'particle_speed': 2.5, 'wavelength': 20.0, 'spawn_jitter': 5.0, 'slit_jitter': 0.2},
    'steering': {'gain': 0.02, 'row_step': 5, 'capture_radius': 10.0},
    'detection': {'fade_step': 0.01, 'path_stride': 3},
    'particle_types': {
        'photon': {'size': 2, 'color': '#00BFFF'},
        'electron': {'size': 3, 'color': '#4CAF50'},
    },
    'display': {
        'window_size': [900, 520],
        'fps': 60,
        'graph_height': 100,
        'contrast_gamma': 0.7,
        'smoothing_window': 3,
        'wave_angular_speed': 5.0,
        'wavefront_speed': 10.0,
    },
    'controls': {
        'emission_rate': 30,
        'slit_width': 40,
        'slit_distance': 30,
        'slit_top_open': True,
        'slit_bottom_open': True,
        'particle_type': 'photon',
        'detection_mode': 'accumulation',
        'show_paths': False,
    },
}


def _load_config_file(path: Optional[Path] = None) -> Optional[dict]:
    """Return the parsed ``config.json`` or ``None`` if unavailable."""
    if path is None:
        path = Path(__file__).resolve().parent / CONFIG_FILENAME
        if not path.exists():
            alt = Path.cwd() / CONFIG_FILENAME
            if not alt.exists():
                return None
            path = alt
    try:
        with Path(path).open('r', encoding='utf-8') as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        logger.warning("Could not read %s (%s); using built-in defaults", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top-level value is not an object", path)
        return None
    return data


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Dictionary-style access to ``config.json`` merged over ``DEFAULTS``."""

    def __init__(self, path: Optional[Path] = None):
        data = _load_config_file(path)
        self._loader: dict = _merge(DEFAULTS, data) if data else copy.deepcopy(DEFAULTS)

    def __getitem__(self, key: str) -> Any:
        return self._loader[key]

    def __contains__(self, key: str) -> bool:
        return key in self._loader

    def section(self, name: str) -> dict:
        """Return a config section, or an empty dict if it is missing or malformed."""
        value = self._loader.get(name)
        return value if isinstance(value, dict) else {}


def parse_hex_color(color: str, fallback: tuple[int, int, int] = (255, 255, 255)) -> tuple[int, int, int]:
    """Convert a #RRGGBB string into an RGB tuple."""
    if not isinstance(color, str):
        return fallback
    value = color.strip().lstrip('#')
    if len(value) != 6:
        return fallback
    try:
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))
    except ValueError:
        return fallback


def _float(section: dict, key: str, fallback: float) -> float:
    try:
        value = float(section.get(key, fallback))
    except (TypeError, ValueError):
        return fallback
    return value if math.isfinite(value) else fallback


def _int(section: dict, key: str, fallback: int) -> int:
    try:
        return int(section.get(key, fallback))
    except (TypeError, ValueError):
        return fallback


@dataclass(frozen=True)
class ParticleStyle:
    """Visual attributes assigned to a particle at spawn."""

    size: int
    color: Tuple[int, int, int]


@dataclass(frozen=True)
class EngineSettings:
    """Fixed engine constants.

    Attributes
    ----------
    emitter_x, barrier_x: float
        Horizontal positions (px) of the emitter and the barrier.
    particle_speed: float
        Horizontal speed in px per tick.
    wavelength: float
        Wavelength in px used by both the steering step and the overlays.
    spawn_jitter: float
        Full width of the uniform vertical jitter applied at the emitter.
    slit_jitter: float
        Full width of the uniform ``vy`` kick applied on slit transmission.
    steering_gain, steering_row_step, steering_capture_radius:
        Interference steering parameters.
    fade_step: float
        Opacity lost per tick by detections in particle mode.
    path_stride: int
        A path sample is recorded every ``path_stride`` ticks.
    """

    emitter_x: float = 70.0
    barrier_x: float = 150.0
    particle_speed: float = 2.5
    wavelength: float = 20.0
    spawn_jitter: float = 5.0
    slit_jitter: float = 0.2
    steering_gain: float = 0.02
    steering_row_step: int = 5
    steering_capture_radius: float = 10.0
    fade_step: float = 0.01
    path_stride: int = 3
    particle_styles: dict = field(default_factory=lambda: {
        'photon': ParticleStyle(2, (0, 191, 255)),
        'electron': ParticleStyle(3, (76, 175, 80)),
    })

    def style_for(self, particle_type: str) -> ParticleStyle:
        return self.particle_styles.get(particle_type) or ParticleStyle(2, (200, 200, 200))

    @classmethod
    def from_loader(cls, loader: ConfigLoader) -> 'EngineSettings':
        defaults = cls()
        geometry = loader.section('geometry')
        physics = loader.section('physics')
        steering = loader.section('steering')
        detection = loader.section('detection')

        styles = dict(defaults.particle_styles)
        for name, raw in loader.section('particle_types').items():
            if name not in PARTICLE_TYPES or not isinstance(raw, dict):
                continue
            fallback = styles[name]
            styles[name] = ParticleStyle(
                size=max(1, _int(raw, 'size', fallback.size)),
                color=parse_hex_color(raw.get('color'), fallback=fallback.color),
            )

        return cls(
            emitter_x=_float(geometry, 'emitter_x', defaults.emitter_x),
            barrier_x=_float(geometry, 'barrier_x', defaults.barrier_x),
            particle_speed=_float(physics, 'particle_speed', defaults.particle_speed),
            wavelength=max(_float(physics, 'wavelength', defaults.wavelength), 1e-6),
            spawn_jitter=max(_float(physics, 'spawn_jitter', defaults.spawn_jitter), 0.0),
            slit_jitter=max(_float(physics, 'slit_jitter', defaults.slit_jitter), 0.0),
            steering_gain=_float(steering, 'gain', defaults.steering_gain),
            steering_row_step=max(1, _int(steering, 'row_step', defaults.steering_row_step)),
            steering_capture_radius=max(_float(steering, 'capture_radius', defaults.steering_capture_radius), 0.0),
            fade_step=max(_float(detection, 'fade_step', defaults.fade_step), 0.0),
            path_stride=max(1, _int(detection, 'path_stride', defaults.path_stride)),
            particle_styles=styles,
        )


@dataclass(frozen=True)
class Slit:
    """A gap in the barrier centred on ``y``."""

    y: float
    width: float
    is_open: bool

    def transmits(self, y: float) -> bool:
        # Zero-width slits transmit nothing; the window edge is inclusive.
        if not self.is_open or self.width <= 0.0:
            return False
        return abs(y - self.y) <= self.width / 2.0


@dataclass(frozen=True)
class SimulationConfig:
    """Immutable per-tick snapshot of the control values.

    ``emission_rate`` is a percentage of ticks that attempt to emit,
    ``slit_width`` and ``slit_distance`` are in pixels and ``width`` /
    ``height`` describe the viewport.  Numeric ranges are validated by the
    host; only the enumerated values are checked here.
    """

    emission_rate: float = 30.0
    slit_width: float = 40.0
    slit_distance: float = 30.0
    slit_top_open: bool = True
    slit_bottom_open: bool = True
    particle_type: str = 'photon'
    detection_mode: str = 'accumulation'
    show_paths: bool = False
    width: int = 900
    height: int = 520

    def __post_init__(self):
        if self.particle_type not in PARTICLE_TYPES:
            raise ValueError(f"Unknown particle type: {self.particle_type!r}")
        if self.detection_mode not in DETECTION_MODES:
            raise ValueError(f"Unknown detection mode: {self.detection_mode!r}")

    @property
    def slit_top_y(self) -> float:
        return self.height / 2.0 - self.slit_distance / 2.0

    @property
    def slit_bottom_y(self) -> float:
        return self.height / 2.0 + self.slit_distance / 2.0

    @property
    def slits(self) -> Tuple[Slit, Slit]:
        """Top and bottom slits, in the order they are tested."""
        return (
            Slit(self.slit_top_y, self.slit_width, self.slit_top_open),
            Slit(self.slit_bottom_y, self.slit_width, self.slit_bottom_open),
        )

    @property
    def open_slits(self) -> Tuple[Slit, ...]:
        return tuple(s for s in self.slits if s.is_open)

    @property
    def both_slits_open(self) -> bool:
        return self.slit_top_open and self.slit_bottom_open

    @property
    def slit_geometry(self) -> tuple:
        return (self.slit_width, self.slit_distance, self.slit_top_open, self.slit_bottom_open)

    @property
    def viewport(self) -> Tuple[int, int]:
        return (int(self.width), int(self.height))

    @classmethod
    def from_loader(cls, loader: ConfigLoader, width: int, height: int) -> 'SimulationConfig':
        """Build the initial snapshot from the ``controls`` section."""
        defaults = cls()
        controls = loader.section('controls')
        particle_type = controls.get('particle_type', defaults.particle_type)
        if particle_type not in PARTICLE_TYPES:
            particle_type = defaults.particle_type
        mode = controls.get('detection_mode', defaults.detection_mode)
        if mode not in DETECTION_MODES:
            mode = defaults.detection_mode
        return cls(
            emission_rate=_float(controls, 'emission_rate', defaults.emission_rate),
            slit_width=max(_float(controls, 'slit_width', defaults.slit_width), 0.0),
            slit_distance=max(_float(controls, 'slit_distance', defaults.slit_distance), 0.0),
            slit_top_open=bool(controls.get('slit_top_open', defaults.slit_top_open)),
            slit_bottom_open=bool(controls.get('slit_bottom_open', defaults.slit_bottom_open)),
            particle_type=particle_type,
            detection_mode=mode,
            show_paths=bool(controls.get('show_paths', defaults.show_paths)),
            width=int(width),
            height=int(height),
        )
