"""
Mapping module - Traffic mirror records and vector map/route ingestion.
"""

from .traffic_mirror import TrafficMirror, TrafficMirrorSet
from .lanelet_map import (
    LaneletMap,
    LaneletRoute,
    MapReferenceError,
    load_lanelet_map,
    load_route,
)

__all__ = [
    'TrafficMirror',
    'TrafficMirrorSet',
    'LaneletMap',
    'LaneletRoute',
    'MapReferenceError',
    'load_lanelet_map',
    'load_route',
]
