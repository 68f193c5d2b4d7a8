import numpy as np
import pygame
import pytest

from config import ConfigLoader
from demo import Demo, smooth_array
from simulation import Simulation


@pytest.fixture(scope='module', autouse=True)
def pygame_session():
    pygame.init()
    yield
    pygame.quit()


def test_smooth_array_clips_window_at_edges():
    result = smooth_array([0, 0, 9, 0, 0], 1)
    assert result.tolist() == pytest.approx([0.0, 3.0, 3.0, 3.0, 0.0])
    edges = smooth_array([4, 0, 0, 0], 1)
    assert edges[0] == pytest.approx(2.0)


def test_smooth_array_preserves_constant_signal():
    assert smooth_array([5.0] * 10, 3).tolist() == pytest.approx([5.0] * 10)
    assert smooth_array([], 3).size == 0
    assert smooth_array([1.0, 2.0], 0).tolist() == [1.0, 2.0]


@pytest.mark.parametrize('mode', ['particle', 'wave', 'accumulation'])
def test_draw_full_frame(settings, rng, make_config, mode):
    cfg = make_config(slit_width=40.0, slit_distance=40.0, detection_mode=mode, show_paths=True)
    surface = pygame.Surface(cfg.viewport)
    demo = Demo(surface, settings, ConfigLoader())
    sim = Simulation(cfg, settings, rng)
    for _ in range(200):
        state = sim.tick(cfg, 1.0 / 60.0)
    demo.draw(state, cfg)
    assert surface.get_size() == cfg.viewport


def test_barrier_drawn_at_configured_column(settings, rng, make_config):
    cfg = make_config(emission_rate=0.0)
    surface = pygame.Surface(cfg.viewport)
    demo = Demo(surface, settings, ConfigLoader())
    demo.draw(Simulation(cfg, settings, rng).frame_state(), cfg)
    assert tuple(surface.get_at((int(settings.barrier_x), 0)))[:3] == (85, 85, 85)
    # Open slit gaps are cut out of the barrier.
    assert tuple(surface.get_at((int(settings.barrier_x), int(cfg.slit_top_y))))[:3] == (0, 0, 0)


def test_draw_with_slits_closed(settings, rng, make_config):
    cfg = make_config(slit_top_open=False, slit_bottom_open=False, detection_mode='wave')
    surface = pygame.Surface(cfg.viewport)
    demo = Demo(surface, settings, ConfigLoader())
    state = Simulation(cfg, settings, rng).tick(cfg, 0.1)
    demo.draw(state, cfg)


def test_intensity_graph_is_max_normalised(settings, make_config):
    cfg = make_config()
    surface = pygame.Surface(cfg.viewport)
    demo = Demo(surface, settings, ConfigLoader())
    histogram = np.zeros(cfg.height, dtype=np.int64)
    histogram[140:160] = 8
    plotted = demo.draw_intensity_graph(histogram, cfg)
    assert plotted is not None
    assert plotted.max() <= 1.0
    assert plotted[150] == pytest.approx(1.0)
    assert demo.draw_intensity_graph(np.zeros(1), cfg) is None


def test_pattern_surface_is_cached(settings, make_config):
    cfg = make_config()
    surface = pygame.Surface(cfg.viewport)
    demo = Demo(surface, settings, ConfigLoader())
    state = Simulation(cfg, settings, np.random.default_rng(0)).frame_state()
    demo.draw(state, cfg)
    cached = demo._pattern_surface
    demo.draw(state, cfg)
    assert demo._pattern_surface is cached
    demo.draw(state, make_config(slit_distance=60.0))
    assert demo._pattern_surface is not cached
