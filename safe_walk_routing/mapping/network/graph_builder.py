"""
Build a routable pedestrian graph from raw street-network ways.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import networkx as nx

from ...config.routing_config import RoutingConfig
from ...config.scoring_tables import PAVED_SURFACES, UNPAVED_SURFACES
from ...data.models import (
    HighwayClass, LitFlag, StreetEdge, StreetNetworkData, StreetNode, SurfaceFlag,
)
from ...errors import GraphEmptyError

logger = logging.getLogger(__name__)

FOOT_ACCESS_VALUES = frozenset({'yes', 'designated', 'permissive'})
SIDEWALK_VALUES = frozenset({'both', 'left', 'right', 'yes', 'separate'})
MOTOR_ONLY_CLASSES = frozenset({'motorway', 'motorway_link'})
TRUNK_CLASSES = frozenset({'trunk', 'trunk_link'})
NON_ROUTABLE_CLASSES = frozenset({
    'construction', 'proposed', 'abandoned', 'raceway', 'bus_guideway', 'escape', 'platform',
})


def _tag(tags: Mapping[str, Any], key: str) -> str:
    value = tags.get(key)
    return str(value).strip().lower() if value is not None else ''


def has_sidewalk(tags: Mapping[str, Any]) -> bool:
    if _tag(tags, 'footway') == 'sidewalk':
        return True
    for key in ('sidewalk', 'sidewalk:both', 'sidewalk:left', 'sidewalk:right'):
        if _tag(tags, key) in SIDEWALK_VALUES:
            return True
    return False


def is_walkable(tags: Mapping[str, Any]) -> bool:
    """
    Whether a way may be walked.

    Motor-only classes are dropped, trunk roads need explicit foot access or
    a sidewalk, and private/no access needs an explicit foot grant.
    """
    highway = _tag(tags, 'highway')
    foot = _tag(tags, 'foot')
    if foot == 'no':
        return False
    if highway in MOTOR_ONLY_CLASSES or highway in NON_ROUTABLE_CLASSES:
        return False
    if highway in TRUNK_CLASSES and foot not in FOOT_ACCESS_VALUES and not has_sidewalk(tags):
        return False
    if _tag(tags, 'access') in ('no', 'private') and foot not in FOOT_ACCESS_VALUES:
        return False
    return True


def parse_surface(tags: Mapping[str, Any]) -> SurfaceFlag:
    surface = _tag(tags, 'surface')
    if surface in UNPAVED_SURFACES:
        return SurfaceFlag.UNPAVED
    if surface in PAVED_SURFACES:
        return SurfaceFlag.PAVED
    return SurfaceFlag.UNKNOWN


def build_street_graph(data: StreetNetworkData,
                       config: Optional[RoutingConfig] = None) -> nx.MultiGraph:
    """
    Turn raw ways/nodes into an undirected pedestrian MultiGraph.

    One edge is created per consecutive node pair of every walkable way.
    Nodes carry OSMnx-style ``y``/``x`` attributes plus the StreetNode;
    edges are keyed by edge id and carry the StreetEdge and its ``length``.

    Args:
        data: Raw street network for the request's bounding box
        config: Routing configuration

    Returns:
        Routable graph

    Raises:
        GraphEmptyError: If no usable edge remains
    """
    config = config or RoutingConfig()
    graph = nx.MultiGraph(crs='epsg:4326')
    stats: Dict[str, int] = {'ways': len(data.ways), 'excluded_ways': 0,
                             'short_segments': 0, 'missing_nodes': 0}

    for way in data.ways:
        tags = way.tags or {}
        if not is_walkable(tags):
            stats['excluded_ways'] += 1
            continue

        highway = HighwayClass.parse(tags.get('highway'))
        lit = LitFlag.parse(tags.get('lit'))
        surface = parse_surface(tags)
        sidewalk = has_sidewalk(tags)
        name = tags.get('name') or None

        for index, (a, b) in enumerate(zip(way.node_ids, way.node_ids[1:])):
            point_a = data.nodes.get(a)
            point_b = data.nodes.get(b)
            if point_a is None or point_b is None:
                stats['missing_nodes'] += 1
                continue
            if a == b:
                continue
            length = point_a.distance_to(point_b)
            if length < config.min_segment_length_m:
                stats['short_segments'] += 1
                continue

            edge = StreetEdge(
                id=f"{way.id}:{index}",
                way_id=way.id,
                u=a,
                v=b,
                geometry=(point_a, point_b),
                length_m=length,
                highway=highway,
                lit=lit,
                surface=surface,
                name=name,
                has_sidewalk=sidewalk,
            )
            for node_id, point in ((a, point_a), (b, point_b)):
                if node_id not in graph:
                    graph.add_node(node_id, y=point.latitude, x=point.longitude,
                                   node=StreetNode(node_id, point))
            graph.add_edge(a, b, key=edge.id, edge=edge, length=length)

    if graph.number_of_edges() == 0:
        logger.warning(f"Graph build produced no usable edges: {stats}")
        raise GraphEmptyError(
            "No walkable streets were found in the requested area",
            {"ways_received": stats['ways'], "ways_excluded": stats['excluded_ways']},
        )

    logger.info(f"Graph built: {graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges "
                f"({stats['excluded_ways']} ways excluded, {stats['short_segments']} short segments skipped)")
    return graph
