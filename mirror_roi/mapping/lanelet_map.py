"""
lanelet_map.py

Vector map and route ingestion.

Map file layout (YAML)
----------------------
traffic_mirrors:          # line strings tagged as mirrors
  - id: 101
    points: [[x, y, z], [x, y, z]]   # front ... back
    height: 1.2
    subtype: reflective
regulatory_elements:
  - id: 201
    type: traffic_mirror
    traffic_mirrors: [101]
lanelets:
  - id: 1
    regulatory_elements: [201]

Route file layout (YAML)
------------------------
segments:
  - primitives: [1, 2]                # lanelet ids, or {id: 1, primitive_type: lane}

Only traffic mirrors referenced by a ``traffic_mirror`` regulatory element
attached to a lanelet are ever handed to the detector.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple, Union

from mirror_roi.mapping.traffic_mirror import TrafficMirror, TrafficMirrorSet
from mirror_roi.utils.config_loader import load_config


logger = logging.getLogger(__name__)

TRAFFIC_MIRROR_REGULATORY_TYPE = 'traffic_mirror'

MapSource = Union[str, Path, dict]


class MapReferenceError(LookupError):
    """A map or route refers to a primitive id that is not loaded."""


@dataclass(frozen=True)
class RegulatoryElement:
    id:              int
    type:            str
    traffic_mirrors: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Lanelet:
    id:                  int
    regulatory_elements: Tuple[int, ...] = ()


@dataclass(frozen=True)
class LaneletRoute:
    """Ordered route segments, each a tuple of lanelet ids."""
    segments: Tuple[Tuple[int, ...], ...]

    @property
    def lanelet_ids(self) -> List[int]:
        return [primitive for segment in self.segments for primitive in segment]


class LaneletMap:
    """
    Read-only vector map: lanelets, regulatory elements and traffic mirrors.

    A new map revision is a new LaneletMap instance; nothing is mutated
    after construction.
    """

    def __init__(self,
                 lanelets: Dict[int, Lanelet],
                 regulatory_elements: Dict[int, RegulatoryElement],
                 traffic_mirrors: Dict[int, TrafficMirror]):
        self.lanelets = dict(lanelets)
        self.regulatory_elements = dict(regulatory_elements)
        self.traffic_mirrors = dict(traffic_mirrors)

        for regulatory_element in self.regulatory_elements.values():
            for mirror_id in regulatory_element.traffic_mirrors:
                if mirror_id not in self.traffic_mirrors:
                    raise MapReferenceError(
                        f"Regulatory element {regulatory_element.id} refers to "
                        f"unknown traffic mirror {mirror_id}"
                    )
        for lanelet in self.lanelets.values():
            for regulatory_element_id in lanelet.regulatory_elements:
                if regulatory_element_id not in self.regulatory_elements:
                    raise MapReferenceError(
                        f"Lanelet {lanelet.id} refers to unknown regulatory "
                        f"element {regulatory_element_id}"
                    )

    def get_lanelet(self, lanelet_id: int) -> Lanelet:
        try:
            return self.lanelets[lanelet_id]
        except KeyError:
            raise MapReferenceError(f"Lanelet with id {lanelet_id} not found in the map") from None

    def _collect_traffic_mirrors(self, lanelets: List[Lanelet]) -> TrafficMirrorSet:
        mirrors = []
        for lanelet in lanelets:
            for regulatory_element_id in lanelet.regulatory_elements:
                regulatory_element = self.regulatory_elements[regulatory_element_id]
                if regulatory_element.type != TRAFFIC_MIRROR_REGULATORY_TYPE:
                    continue
                mirrors.extend(self.traffic_mirrors[mirror_id]
                               for mirror_id in regulatory_element.traffic_mirrors)
        return TrafficMirrorSet(mirrors)

    def all_traffic_mirrors(self) -> TrafficMirrorSet:
        """Every traffic mirror reachable from any lanelet of the map."""
        return self._collect_traffic_mirrors(list(self.lanelets.values()))

    def route_traffic_mirrors(self, route: LaneletRoute) -> TrafficMirrorSet:
        """
        Traffic mirrors reachable from the lanelets of a route.

        Raises:
            MapReferenceError: If the route contains a lanelet id absent
                               from this map.
        """
        route_lanelets = [self.get_lanelet(lanelet_id) for lanelet_id in route.lanelet_ids]
        return self._collect_traffic_mirrors(route_lanelets)


# ===========================================================================
# Loaders
# ===========================================================================

def _as_dict(source: MapSource) -> dict:
    if isinstance(source, dict):
        return source
    return load_config(str(source)) or {}


def _parse_traffic_mirror(item: dict) -> TrafficMirror:
    points = item.get('points', [])
    if len(points) < 2:
        raise ValueError(f"Traffic mirror {item.get('id')} needs at least 2 points, got {len(points)}")

    front = tuple(float(c) for c in points[0])
    back = tuple(float(c) for c in points[-1])
    if len(front) != 3 or len(back) != 3:
        raise ValueError(f"Traffic mirror {item.get('id')} points must be 3D")

    return TrafficMirror(
        id=int(item['id']),
        front=front,
        back=back,
        height=float(item.get('height', 0.0)),
        subtype=item.get('subtype'),
    )


def load_lanelet_map(source: MapSource) -> LaneletMap:
    """
    Load a vector map from a YAML file or an already parsed dictionary.

    Args:
        source: Path to the map YAML, or its parsed content.

    Returns:
        LaneletMap instance.

    Raises:
        FileNotFoundError: If the map file does not exist.
        MapReferenceError: If an element refers to an unknown id.
        ValueError:        If a traffic mirror is malformed.
    """
    data = _as_dict(source)

    traffic_mirrors = {}
    for item in data.get('traffic_mirrors', []) or []:
        mirror = _parse_traffic_mirror(item)
        traffic_mirrors[mirror.id] = mirror

    regulatory_elements = {}
    for item in data.get('regulatory_elements', []) or []:
        regulatory_element = RegulatoryElement(
            id=int(item['id']),
            type=str(item.get('type', '')),
            traffic_mirrors=tuple(int(i) for i in item.get('traffic_mirrors', []) or []),
        )
        regulatory_elements[regulatory_element.id] = regulatory_element

    lanelets = {}
    for item in data.get('lanelets', []) or []:
        lanelet = Lanelet(
            id=int(item['id']),
            regulatory_elements=tuple(int(i) for i in item.get('regulatory_elements', []) or []),
        )
        lanelets[lanelet.id] = lanelet

    lanelet_map = LaneletMap(lanelets, regulatory_elements, traffic_mirrors)
    logger.info("Loaded map: %d lanelets, %d regulatory elements, %d traffic mirrors",
                len(lanelets), len(regulatory_elements), len(traffic_mirrors))
    return lanelet_map


def load_route(source: MapSource) -> LaneletRoute:
    """
    Load a route from a YAML file or an already parsed dictionary.

    Primitives may be plain lanelet ids or dicts with an ``id`` key.
    """
    data = _as_dict(source)

    segments = []
    for segment in data.get('segments', []) or []:
        primitives = []
        for primitive in segment.get('primitives', []) or []:
            primitive_id = primitive['id'] if isinstance(primitive, dict) else primitive
            primitives.append(int(primitive_id))
        segments.append(tuple(primitives))

    return LaneletRoute(segments=tuple(segments))
