import copy
import json
import logging

import pandas as pd
from config import FIPS_TO_ABBR, STATES_GEOJSON

logger = logging.getLogger(__name__)


def load_region_geometry(path: str | None = None) -> dict:
    """Read the state polygon FeatureCollection (feature id = two-digit FIPS code)."""
    geo_path = path if path is not None else STATES_GEOJSON
    with open(geo_path, encoding="utf-8") as fh:
        geometry = json.load(fh)
    if geometry.get("type") != "FeatureCollection":
        raise KeyError(f"{geo_path} is not a GeoJSON FeatureCollection")
    logger.info("Loaded %d region polygons from %s", len(geometry.get("features", [])), geo_path)
    return geometry


def feature_abbr(feature: dict) -> str | None:
    fid = feature.get("id")
    if fid is None:
        fid = feature.get("properties", {}).get("STATE")
    if fid is None:
        return None
    return FIPS_TO_ABBR.get(str(fid).zfill(2))


def attach_region_funding(geometry: dict, regions: pd.DataFrame) -> dict:
    """
    Copy of the FeatureCollection with `state_abbr` and `state_funding`
    properties on every feature; regions without data get 0.
    """
    funding = regions["funding"].to_dict() if not regions.empty else {}
    out = copy.deepcopy(geometry)
    for feature in out.get("features", []):
        abbr = feature_abbr(feature)
        props = feature.setdefault("properties", {})
        props["state_abbr"] = abbr
        props["state_funding"] = float(funding.get(abbr, 0.0)) if abbr else 0.0
    return out


def map_frame(geometry: dict, regions: pd.DataFrame) -> pd.DataFrame:
    """One row per mapped region (every polygon with a known abbreviation), zero-filled."""
    abbrs = [a for a in (feature_abbr(f) for f in geometry.get("features", [])) if a]
    frame = pd.DataFrame({"state": abbrs})
    frame = frame.merge(regions.reset_index(), on="state", how="left")
    frame["event_count"] = frame["event_count"].fillna(0).astype(int)
    frame["funding"] = frame["funding"].fillna(0.0)
    return frame
