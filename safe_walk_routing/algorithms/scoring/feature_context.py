"""
Per-request spatial indexes over the point features used for scoring.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import networkx as nx

from ...data.models import (
    BoundingBox, CrimeIncident, LitFlag, PoiKind, PointOfInterest, StreetEdge,
)
from ...mapping.index.spatial_grid import SpatialGridIndex

logger = logging.getLogger(__name__)


@dataclass
class FeatureContext:
    """
    Everything the scorers look up by location for one request.

    Built once after the fetch barrier and read-only afterwards.
    """
    crimes: SpatialGridIndex
    activity: SpatialGridIndex
    cctv: SpatialGridIndex
    street_lamps: SpatialGridIndex
    transit: SpatialGridIndex
    lit_edges: SpatialGridIndex
    crime_list: List[CrimeIncident] = field(default_factory=list)
    poi_lists: Dict[PoiKind, List[PointOfInterest]] = field(default_factory=dict)
    tagged_edges: List[StreetEdge] = field(default_factory=list)

    @classmethod
    def build(cls, graph: nx.MultiGraph, crimes: Sequence[CrimeIncident],
              points_of_interest: Sequence[PointOfInterest],
              transit_stops: Sequence[PointOfInterest],
              reference_latitude: float, cell_size_m: float = 100.0) -> 'FeatureContext':
        """
        Index crimes, POIs, transit stops and explicitly lit-tagged edges.

        Args:
            graph: Street graph with StreetEdge objects on its edges
            crimes: Crime incidents for the area
            points_of_interest: Activity places, CCTV and street lamps
            transit_stops: Transit stop POIs
            reference_latitude: Latitude for grid cell sizing
            cell_size_m: Grid cell edge length
        """
        def new_index() -> SpatialGridIndex:
            return SpatialGridIndex(reference_latitude, cell_size_m)

        poi_lists: Dict[PoiKind, List[PointOfInterest]] = {kind: [] for kind in PoiKind}
        for poi in points_of_interest:
            poi_lists[poi.kind].append(poi)
        for stop in transit_stops:
            poi_lists[PoiKind.TRANSIT].append(stop)

        indexes = {kind: new_index() for kind in PoiKind}
        for kind, items in poi_lists.items():
            for poi in items:
                indexes[kind].insert(poi, poi.point)

        crime_index = new_index()
        for incident in crimes:
            crime_index.insert(incident, incident.point)

        lit_index = new_index()
        tagged_edges = []
        for _, _, edge in graph.edges(data='edge'):
            if edge.lit is not LitFlag.UNKNOWN:
                lit_index.insert(edge, edge.midpoint)
                tagged_edges.append(edge)

        context = cls(
            crimes=crime_index,
            activity=indexes[PoiKind.ACTIVITY],
            cctv=indexes[PoiKind.CCTV],
            street_lamps=indexes[PoiKind.STREET_LAMP],
            transit=indexes[PoiKind.TRANSIT],
            lit_edges=lit_index,
            crime_list=list(crimes),
            poi_lists=poi_lists,
            tagged_edges=tagged_edges,
        )
        logger.info(f"Feature indexes built: {context.counts()}")
        return context

    def counts(self) -> Dict[str, int]:
        """Data-quality counts per source."""
        lit = sum(1 for e in self.tagged_edges if e.lit is LitFlag.YES)
        return {
            'crimes': len(self.crimes),
            'street_lamps': len(self.street_lamps),
            'lit_roads': lit,
            'unlit_roads': len(self.tagged_edges) - lit,
            'activity_places': len(self.activity),
            'cctv': len(self.cctv),
            'transit_stops': len(self.transit),
        }

    def sources_with_data(self, area: BoundingBox, has_roads: bool) -> Dict[str, bool]:
        """
        Which sources returned anything inside ``area``.

        Lighting counts street lamps and explicitly lit-tagged edges.
        """
        def any_in(items) -> bool:
            return any(area.contains(item.point) for item in items)

        return {
            'crime': any_in(self.crime_list),
            'lighting': (any_in(self.poi_lists.get(PoiKind.STREET_LAMP, ())) or
                         any(area.contains(e.midpoint) for e in self.tagged_edges)),
            'road': has_roads,
            'activity': any_in(self.poi_lists.get(PoiKind.ACTIVITY, ())),
            'transit': any_in(self.poi_lists.get(PoiKind.TRANSIT, ())),
        }
