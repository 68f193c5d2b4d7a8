import json
import logging

import pytest

from config import ConfigLoader, EngineSettings, SimulationConfig, Slit, parse_hex_color


def test_bundled_config_matches_defaults():
    settings = EngineSettings.from_loader(ConfigLoader())
    assert settings == EngineSettings()


def test_loader_merges_over_defaults(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'physics': {'wavelength': 32},
        'particle_types': {'electron': {'color': '#102030', 'size': 5}},
    }), encoding='utf-8')
    settings = EngineSettings.from_loader(ConfigLoader(path))
    assert settings.wavelength == 32.0
    assert settings.particle_speed == 2.5
    assert settings.style_for('electron').color == (16, 32, 48)
    assert settings.style_for('electron').size == 5
    assert settings.style_for('photon').color == (0, 191, 255)


def test_bad_values_fall_back(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'steering': {'gain': 'strong', 'row_step': 0},
        'detection': {'path_stride': None},
    }), encoding='utf-8')
    settings = EngineSettings.from_loader(ConfigLoader(path))
    assert settings.steering_gain == 0.02
    assert settings.steering_row_step == 1
    assert settings.path_stride == 3


def test_broken_file_warns_and_uses_defaults(tmp_path, caplog):
    path = tmp_path / 'config.json'
    path.write_text('{not json', encoding='utf-8')
    with caplog.at_level(logging.WARNING, logger='config'):
        loader = ConfigLoader(path)
    assert loader['geometry']['barrier_x'] == 150.0
    assert any('defaults' in record.message for record in caplog.records)


def test_parse_hex_color():
    assert parse_hex_color('#00BFFF') == (0, 191, 255)
    assert parse_hex_color('4caf50') == (76, 175, 80)
    assert parse_hex_color('#12', fallback=(1, 2, 3)) == (1, 2, 3)
    assert parse_hex_color('#zzzzzz', fallback=(1, 2, 3)) == (1, 2, 3)
    assert parse_hex_color(None) == (255, 255, 255)


def test_snapshot_validates_enums():
    with pytest.raises(ValueError):
        SimulationConfig(particle_type='neutron')
    with pytest.raises(ValueError):
        SimulationConfig(detection_mode='tomography')


def test_slit_geometry():
    cfg = SimulationConfig(slit_distance=80.0, slit_width=20.0, height=300, slit_bottom_open=False)
    top, bottom = cfg.slits
    assert (top.y, bottom.y) == (110.0, 190.0)
    assert cfg.open_slits == (top,)
    assert not cfg.both_slits_open


def test_slit_transmission_window():
    slit = Slit(y=100.0, width=10.0, is_open=True)
    assert slit.transmits(95.0)
    assert slit.transmits(105.0)
    assert not slit.transmits(105.5)
    assert not Slit(y=100.0, width=10.0, is_open=False).transmits(100.0)
    assert not Slit(y=100.0, width=0.0, is_open=True).transmits(100.0)


def test_initial_snapshot_from_controls_section():
    cfg = SimulationConfig.from_loader(ConfigLoader(), 640, 480)
    assert cfg.viewport == (640, 480)
    assert cfg.detection_mode == 'accumulation'
    assert cfg.emission_rate == 30.0


def test_bundled_slit_windows_cover_emitter_band():
    loader = ConfigLoader()
    settings = EngineSettings.from_loader(loader)
    cfg = SimulationConfig.from_loader(loader, 900, 520)
    band = (cfg.height / 2 - settings.spawn_jitter / 2, cfg.height / 2 + settings.spawn_jitter / 2)
    for slit in cfg.open_slits:
        assert slit.transmits(band[0]) and slit.transmits(band[1])
    assert not hasattr(settings, 'screen_min_x')
