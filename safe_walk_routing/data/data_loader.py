"""
Crime data loader for GeoJSON incident files.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import geopandas as gpd

from ..config.scoring_tables import severity_for_category
from .models import CrimeIncident, GeoPoint

logger = logging.getLogger(__name__)

CATEGORY_FIELDS = ('category', 'crime_type', 'MCI_CATEGORY', 'offence', 'type')
PERIOD_FIELDS = ('month', 'period', 'OCC_MONTH_ISO', 'occurrence_month')


def _first_present(row, fields) -> Optional[str]:
    for name in fields:
        if name in row and row[name] is not None and str(row[name]).strip() not in ('', 'nan', 'None'):
            return str(row[name]).strip()
    return None


def _normalize_category(raw: Optional[str]) -> str:
    if not raw:
        return 'unknown'
    return raw.strip().lower().replace(' ', '-').replace('_', '-')


def load_crime_incidents(data_path: Union[str, Path]) -> List[CrimeIncident]:
    """
    Load crime incidents from a GeoJSON file of Point features.

    Args:
        data_path: Path to the GeoJSON crime data file

    Returns:
        List of CrimeIncident with severity looked up from the category

    Raises:
        FileNotFoundError: If crime data file not found
        ValueError: If the file holds no usable point features
    """
    data_path = Path(data_path)
    if not data_path.exists():
        raise FileNotFoundError(f"Crime data file not found: {data_path}")

    logger.info(f"Loading crime data from: {data_path}")
    gdf = gpd.read_file(data_path)

    incidents = []
    skipped = 0
    for _, row in gdf.iterrows():
        geom = row.geometry
        if geom is None or geom.is_empty or geom.geom_type != 'Point':
            skipped += 1
            continue
        point = GeoPoint(float(geom.y), float(geom.x))
        if not (-90 <= point.latitude <= 90 and -180 <= point.longitude <= 180):
            skipped += 1
            continue
        category = _normalize_category(_first_present(row, CATEGORY_FIELDS))
        incidents.append(CrimeIncident(
            point=point,
            category=category,
            severity=severity_for_category(category),
            period=_first_present(row, PERIOD_FIELDS),
        ))

    if not incidents and len(gdf) > 0:
        raise ValueError(f"No valid point features in crime data file: {data_path}")

    if skipped:
        logger.warning(f"Skipped {skipped} non-point or invalid crime features")
    logger.info(f"Loaded {len(incidents)} crime incidents")
    return incidents


def default_crime_data_path() -> Optional[str]:
    """Crime data path from the SAFE_WALK_CRIME_DATA environment variable, if set."""
    path = os.environ.get('SAFE_WALK_CRIME_DATA')
    return path or None
