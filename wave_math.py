"""
Wave math for the double-slit simulation.

Pure functions over explicit inputs.  Slits are treated as coherent point
sources for the superposition helpers, while ``single_slit_diffraction`` and
``double_slit_pattern`` give the closed-form Fraunhofer intensities used for
the theoretical overlay.

Two superposition variants are kept apart on purpose:

* ``complex_amplitude`` adds unit phasors without normalisation, so the
  amplitude doubles at antinodes.  The interference steering uses it.
* ``wave_field_amplitude`` divides by the number of open sources so that the
  animated field stays in ``[-1, 1]`` for colour mapping.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

Point = Tuple[float, float]

# Below this |alpha| the sinc function returns its analytic limit.
SINC_EPSILON: float = 1.0e-3

TWO_PI: float = 2.0 * math.pi


def path_length(ax: float, ay: float, bx: float, by: float) -> float:
    """Euclidean distance between ``(ax, ay)`` and ``(bx, by)``."""
    return math.hypot(bx - ax, by - ay)


def phase(distance: float, wavelength: float) -> float:
    """Phase accumulated over ``distance`` for the given wavelength."""
    return distance / wavelength * TWO_PI


def complex_amplitude(
    point: Point,
    sources: Sequence[Point],
    wavelength: float,
    phase_offset: float = 0.0,
) -> complex:
    """Superpose unit phasors from every source at ``point``.

    ``sources`` must contain only the open slits.  The common
    ``phase_offset`` rotates every phasor equally and therefore does not
    change ``probability`` of the result.
    """
    re = 0.0
    im = 0.0
    px, py = point
    for sx, sy in sources:
        phi = phase(path_length(sx, sy, px, py), wavelength) + phase_offset
        re += math.cos(phi)
        im += math.sin(phi)
    return complex(re, im)


def probability(amplitude: complex) -> float:
    """Intensity ``|A|^2`` of a complex amplitude."""
    return amplitude.real * amplitude.real + amplitude.imag * amplitude.imag


def interference_weight(
    point: Point,
    sources: Sequence[Point],
    wavelength: float,
    phase_offset: float = 0.0,
) -> float:
    """Two-source transmission weight in ``[0, 1]``.

    For two unit sources ``|A|^2 = 4 cos^2(dphi / 2)``, so the weight is the
    familiar ``cos^2`` of half the phase difference.
    """
    if len(sources) < 2:
        return 1.0
    amplitude = complex_amplitude(point, sources, wavelength, phase_offset)
    return probability(amplitude) / float(len(sources)) ** 2


def wave_field_amplitude(
    point: Point,
    sources: Sequence[Point],
    wavelength: float,
    time: float,
    angular_speed: float = 5.0,
) -> float:
    """Normalised travelling-wave amplitude in ``[-1, 1]`` for display."""
    if not sources:
        return 0.0
    px, py = point
    total = 0.0
    for sx, sy in sources:
        total += math.cos(phase(path_length(sx, sy, px, py), wavelength) - time * angular_speed)
    return total / len(sources)


def field_brightness(amplitude: float) -> float:
    """Map a display amplitude onto a brightness in ``[0.5, 1]``."""
    return (amplitude * amplitude + 1.0) / 2.0


def sinc(alpha: float) -> float:
    if abs(alpha) < SINC_EPSILON:
        return 1.0
    return math.sin(alpha) / alpha


def single_slit_diffraction(theta: float, slit_width: float, wavelength: float) -> float:
    """Fraunhofer intensity ``sinc^2(pi w sin(theta) / lambda)``."""
    alpha = math.pi * slit_width * math.sin(theta) / wavelength
    return sinc(alpha) ** 2


def double_slit_pattern(
    theta: float,
    slit_separation: float,
    slit_width: float,
    wavelength: float,
) -> float:
    """Two-slit intensity: ``cos^2`` fringes under the single-slit envelope."""
    phase_diff = math.pi * slit_separation * math.sin(theta) / wavelength
    return math.cos(phase_diff) ** 2 * single_slit_diffraction(theta, slit_width, wavelength)


def screen_profile(
    rows: int,
    center_y: float,
    screen_distance: float,
    slit_separation: float,
    slit_width: float,
    wavelength: float,
    open_count: int,
) -> np.ndarray:
    """Analytic intensity for every screen row, shape ``(rows,)``.

    ``center_y`` is the midpoint between the open slits (or the single open
    slit), and ``open_count`` selects the two-slit or one-slit law.
    """
    rows = max(int(rows), 0)
    if open_count <= 0 or rows == 0:
        return np.zeros(rows, dtype=float)
    y = np.arange(rows, dtype=float)
    theta = np.arctan2(y - center_y, max(screen_distance, 1e-9))
    sin_theta = np.sin(theta)
    alpha = math.pi * slit_width * sin_theta / wavelength
    small = np.abs(alpha) < SINC_EPSILON
    safe_alpha = np.where(small, 1.0, alpha)
    envelope = np.where(small, 1.0, np.sin(safe_alpha) / safe_alpha) ** 2
    if open_count == 1:
        return envelope
    fringes = np.cos(math.pi * slit_separation * sin_theta / wavelength) ** 2
    return fringes * envelope
