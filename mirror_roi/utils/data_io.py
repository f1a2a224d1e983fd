"""
Data I/O - Saving and loading per-frame ROI results.
"""

import json
from pathlib import Path
from typing import Iterable, List, Optional


def save_frame_results(results: Iterable, output_path: str, metadata: Optional[dict] = None) -> Path:
    """
    Save the results of a run as JSON.

    Args:
        results: FrameResult objects (anything with ``as_dict()``) or dicts
        output_path: Path of the output file (.json)
        metadata: Optional metadata stored next to the frames

    Returns:
        Path of the written file
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    frames = [r.as_dict() if hasattr(r, 'as_dict') else r for r in results]
    payload = {'frames': frames}
    if metadata:
        payload['metadata'] = metadata

    with open(output_file, 'w') as f:
        json.dump(payload, f, indent=2)
    return output_file


def load_frame_results(input_path: str) -> List[dict]:
    """
    Load results written by ``save_frame_results``.

    Args:
        input_path: Path of the .json file

    Returns:
        List of per-frame dicts with 'stamp', 'frame_id', 'rois',
        'expect_rois' and 'markers'
    """
    with open(input_path, 'r') as f:
        payload = json.load(f)
    return payload.get('frames', [])
