"""
Debug markers: one line ("beam") per visible traffic mirror, from the camera
origin to the mirror center, expressed in the camera frame.
"""

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from mirror_roi.geometry.transform import CameraPose
from mirror_roi.mapping.traffic_mirror import TrafficMirror


@dataclass(frozen=True)
class BeamMarker:
    id:       int
    start:    Tuple[float, float, float]
    end:      Tuple[float, float, float]
    ns:       str = 'beam'
    scale:    float = 0.05
    lifetime: float = 0.2
    color:    Tuple[float, float, float, float] = (0.0, 1.0, 0.0, 0.999)  # RGBA

    def as_dict(self) -> dict:
        return {
            'id': self.id,
            'ns': self.ns,
            'points': [list(self.start), list(self.end)],
            'scale': self.scale,
            'lifetime': self.lifetime,
            'color': list(self.color),
        }


def build_beam_markers(camera_pose: CameraPose,
                       traffic_mirrors: Iterable[TrafficMirror]) -> List[BeamMarker]:
    """
    Args:
        camera_pose:     ``map <- camera`` pose the beams are drawn from.
        traffic_mirrors: Visible mirrors.
    """
    map_to_camera = camera_pose.inverse()
    markers = []
    for traffic_mirror in traffic_mirrors:
        camera_to_center = map_to_camera.transform_point(traffic_mirror.center)
        markers.append(BeamMarker(
            id=traffic_mirror.id,
            start=(0.0, 0.0, 0.0),
            end=tuple(float(c) for c in camera_to_center),
        ))
    return markers
