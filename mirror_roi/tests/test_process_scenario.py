"""
End-to-end test of the scenario replay script on the bundled example.
"""

import json
import pytest
from pathlib import Path

from mirror_roi.scripts.process_scenario import frame_stamps, main


CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


def test_frame_stamps():
    assert frame_stamps({'start': 0.5, 'stop': 1.0, 'step': 0.1}) == pytest.approx(
        [0.5, 0.6, 0.7, 0.8, 0.9, 1.0])
    assert frame_stamps([1, 2.5]) == [1.0, 2.5]
    assert frame_stamps(None) == []


def test_example_scenario(tmp_path):
    output = tmp_path / "rois.json"

    exit_code = main([
        '--scenario', str(CONFIG_DIR / "example_scenario.yaml"),
        '--config-dir', str(CONFIG_DIR),
        '--output', str(output),
    ])

    assert exit_code == 0
    with open(output) as f:
        payload = json.load(f)

    frames = payload['frames']
    assert len(frames) == 21
    assert payload['metadata']['frames_skipped'] == 0
    for frame in frames:
        # the route covers lanelet 1 only, and mirror 102 is solid
        assert [roi['traffic_mirror_id'] for roi in frame['rois']] == [101]
        assert [roi['traffic_mirror_id'] for roi in frame['expect_rois']] == [101]


def test_render_frames(tmp_path):
    render_dir = tmp_path / "frames"

    exit_code = main([
        '--scenario', str(CONFIG_DIR / "example_scenario.yaml"),
        '--config-dir', str(CONFIG_DIR),
        '--output', str(tmp_path / "rois.json"),
        '--render-dir', str(render_dir),
        '--max-frames', '2',
    ])

    assert exit_code == 0
    assert sorted(p.name for p in render_dir.iterdir()) == ['frame_00000.png', 'frame_00001.png']


def test_missing_scenario(tmp_path):
    exit_code = main([
        '--scenario', str(tmp_path / "missing.yaml"),
        '--config-dir', str(CONFIG_DIR),
        '--output', str(tmp_path / "rois.json"),
    ])

    assert exit_code == 1
