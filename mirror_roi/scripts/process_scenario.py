#!/usr/bin/env python3
"""
Replay a recorded scenario through the traffic mirror detector.

Pipeline:
1. Load detector parameters and the scenario
2. Load the vector map (and the route, if any)
3. Fill a transform buffer with the recorded poses
4. Run the detector on every camera frame stamp
5. Save ROIs (and optionally rendered frames)

Scenario file (YAML)
--------------------
camera_info:               # CameraInfo fields; or omit and use camera_config.yaml
  width: 640
  height: 480
  k: [500, 0, 320, 0, 500, 240, 0, 0, 1]
  d: [0, 0, 0, 0, 0]
camera_frame: camera
map: example_map.yaml      # path relative to the scenario file, or inline
route: {segments: [{primitives: [1]}]}   # optional
camera_mount:              # optional; when present, poses are vehicle poses
  frame: base_link
  translation: [1.5, 0.0, 1.2]
  yaw: 0.0
  pitch: 0.0
poses:
  - {stamp: 0.0, position: [0, 0, 0], yaw: 0.0}           # or orientation: [x, y, z, w]
frames: {start: 0.1, stop: 1.0, step: 0.1}               # or a list of stamps

Usage:
    python -m mirror_roi.scripts.process_scenario --scenario config/example_scenario.yaml \
                                                 --output results/rois.json \
                                                 --render-dir results/frames
"""

import argparse
import logging
import sys
import cv2
import numpy as np
from pathlib import Path
from scipy.spatial.transform import Rotation
from tqdm import tqdm

from mirror_roi.calibration.load_calibration import load_camera_from_config
from mirror_roi.detection.map_based_detector import MapBasedDetector
from mirror_roi.geometry.transform import CameraPose, camera_rotation_from_yaw
from mirror_roi.mapping.lanelet_map import MapReferenceError, load_lanelet_map, load_route
from mirror_roi.tracking.transform_buffer import TransformBuffer
from mirror_roi.utils.config_loader import load_all_configs, load_config
from mirror_roi.utils.data_io import save_frame_results
from mirror_roi.utils.detector_config import DetectorConfig
from mirror_roi.visualization.draw_utils import blank_frame, draw_frame_result


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Replay a scenario and compute traffic mirror ROIs',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--scenario',
        type=str,
        required=True,
        help='Path of the scenario YAML'
    )

    parser.add_argument(
        '--config-dir',
        type=str,
        default='config',
        help='Directory holding detector_params.yaml and camera_config.yaml'
    )

    parser.add_argument(
        '--output',
        type=str,
        default='results/rois.json',
        help='Path of the results JSON'
    )

    parser.add_argument(
        '--render-dir',
        type=str,
        default=None,
        help='If set, write one annotated PNG per frame in this directory'
    )

    parser.add_argument(
        '--max-frames',
        type=int,
        default=None,
        help='Maximum number of frames to process (for debugging)'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def _resolve(source, base_dir: Path):
    """Inline dicts are used as-is, strings are paths relative to the scenario."""
    if source is None or isinstance(source, dict):
        return source
    path = Path(source)
    return path if path.is_absolute() else base_dir / path


def _pose_from_entry(entry: dict, is_camera: bool) -> CameraPose:
    translation = entry.get('position', entry.get('translation', [0.0, 0.0, 0.0]))
    if 'orientation' in entry:
        return CameraPose.from_quaternion(translation, entry['orientation'])

    yaw = float(entry.get('yaw', 0.0))
    pitch = float(entry.get('pitch', 0.0))
    if is_camera:
        rotation = camera_rotation_from_yaw(yaw, pitch)
    else:
        rotation = Rotation.from_euler('ZY', [yaw, pitch])
    return CameraPose.from_rotation(translation, rotation)


def build_transform_buffer(scenario: dict, camera_frame: str) -> TransformBuffer:
    """Fill a TransformBuffer with the scenario poses (and camera mount)."""
    tf_buffer = TransformBuffer(cache_time=float('inf'))

    mount = scenario.get('camera_mount')
    if mount:
        pose_frame = mount.get('frame', 'base_link')
        tf_buffer.set_static_transform(pose_frame, camera_frame, _pose_from_entry(mount, is_camera=True))
    else:
        pose_frame = camera_frame

    for entry in scenario.get('poses', []):
        pose = _pose_from_entry(entry, is_camera=not mount)
        tf_buffer.set_transform(float(entry['stamp']), pose_frame, pose)
    return tf_buffer


def frame_stamps(frames) -> list:
    if isinstance(frames, dict):
        start, stop, step = float(frames['start']), float(frames['stop']), float(frames['step'])
        count = int(np.floor((stop - start) / step + 1e-9)) + 1
        return [start + i * step for i in range(max(count, 0))]
    return [float(stamp) for stamp in frames or []]


def process_scenario(args) -> int:
    """
    Process the whole scenario.

    Args:
        args: Command line arguments

    Returns:
        0 on success, 1 on error
    """
    # ========== SETUP ==========
    print("=" * 60)
    print("TRAFFIC MIRROR ROI - SCENARIO REPLAY")
    print("=" * 60)

    print("\n[1/5] Loading configuration...")
    configs = load_all_configs(args.config_dir)
    config = DetectorConfig.from_dict(configs['detector_params'])

    scenario_path = Path(args.scenario)
    try:
        scenario = load_config(str(scenario_path))
    except FileNotFoundError as e:
        print(f"❌ {e}")
        return 1
    base_dir = scenario_path.parent
    camera_frame = scenario.get('camera_frame', 'camera')

    camera_info = scenario.get('camera_info')
    if camera_info is None:
        camera_info = load_camera_from_config(configs['camera_config']).to_camera_info()
    print(f"  Camera: {camera_info['width']}x{camera_info['height']}, frame '{camera_frame}'")

    print("[2/5] Loading map...")
    try:
        lanelet_map = load_lanelet_map(_resolve(scenario['map'], base_dir))
    except (KeyError, FileNotFoundError, MapReferenceError, ValueError) as e:
        print(f"❌ Cannot load map: {e}")
        return 1

    print("[3/5] Loading poses...")
    tf_buffer = build_transform_buffer(scenario, camera_frame)
    print(f"  {len(scenario.get('poses', []))} poses")

    detector = MapBasedDetector(config, tf_buffer)
    detector.on_map(lanelet_map)

    route_source = _resolve(scenario.get('route'), base_dir)
    if route_source is not None:
        if not detector.on_route(load_route(route_source)):
            print("⚠️  Route rejected, using every traffic mirror of the map")

    stamps = frame_stamps(scenario.get('frames'))
    if args.max_frames is not None:
        stamps = stamps[:args.max_frames]

    render_dir = Path(args.render_dir) if args.render_dir else None
    if render_dir is not None:
        render_dir.mkdir(parents=True, exist_ok=True)

    # ========== PROCESSING ==========
    print(f"[4/5] Processing {len(stamps)} frames...")
    results = []
    skipped = 0
    for index, stamp in enumerate(tqdm(stamps, desc="Frames")):
        frame_info = dict(camera_info, header={'stamp': stamp, 'frame_id': camera_frame})
        result = detector.on_camera_info(frame_info)
        if result is None:
            skipped += 1
            continue
        results.append(result)

        if render_dir is not None:
            canvas = blank_frame(camera_info['width'], camera_info['height'])
            cv2.imwrite(str(render_dir / f"frame_{index:05d}.png"), draw_frame_result(canvas, result))

    # ========== SAVE ==========
    print("[5/5] Saving results...")
    output_file = save_frame_results(results, args.output, metadata={
        'scenario': str(scenario_path),
        'frames_processed': len(results),
        'frames_skipped': skipped,
    })

    detections = sum(len(r.rois) for r in results)
    print(f"\n✅ {len(results)} frames, {detections} traffic mirror ROIs, {skipped} frames skipped")
    print(f"   Results: {output_file}")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )
    return process_scenario(args)


if __name__ == '__main__':
    sys.exit(main())
