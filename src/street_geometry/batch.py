"""
Batch street resolution and export.

Resolves a table of street queries and exports the matched ways as
GeoJSON or GeoPackage for GIS tools and web maps.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import geopandas as gpd
import pandas as pd
from shapely.geometry import shape
from tqdm import tqdm

from .errors import InvalidInputError
from .resolver import StreetMatchResolver

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("street_name", "lat", "lon")
OPTIONAL_COLUMNS = ("city", "barangay")

# Alternate spellings accepted in input files
COLUMN_ALIASES = {
    "streetname": "street_name",
    "street": "street_name",
    "latitude": "lat",
    "longitude": "lon",
    "lng": "lon",
    "brgy": "barangay",
}


def load_queries(path: Union[str, Path]) -> pd.DataFrame:
    """Load a CSV or Excel file of street queries.

    Raises:
        FileNotFoundError: If path doesn't exist
        ValueError: If required columns are missing
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Query file not found: {path}")

    if path.suffix.lower() in (".xlsx", ".xls"):
        df = pd.read_excel(path)
    else:
        df = pd.read_csv(path)

    return normalize_columns(df)


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case column names, map aliases and check required columns."""
    df = df.rename(columns=lambda c: str(c).strip().lower().replace(" ", "_"))
    df = df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in df.columns and v not in df.columns})

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required column(s): {', '.join(missing)}")

    for column in OPTIONAL_COLUMNS:
        if column not in df.columns:
            df[column] = ""

    return df


class BatchResolver:
    """Resolve many street queries with one resolver."""

    def __init__(self, resolver: StreetMatchResolver, show_progress: bool = True):
        self.resolver = resolver
        self.show_progress = show_progress

    def run(self, queries: pd.DataFrame) -> pd.DataFrame:
        """Resolve every row of a query table.

        Rows with invalid input record the error and are not sent upstream.

        Args:
            queries: DataFrame with street_name, lat, lon and optional
                city, barangay columns

        Returns:
            Copy of queries with matched, best_score, matched_name, tier,
            note, error and feature columns added
        """
        queries = normalize_columns(queries)
        records: List[Dict[str, Any]] = []

        rows = queries.to_dict(orient="records")
        for row in tqdm(rows, desc="Resolving streets", disable=not self.show_progress):
            records.append(self._resolve_row(row))

        results = queries.copy()
        for column in ("matched", "best_score", "matched_name", "tier", "note", "error", "feature"):
            results[column] = [record[column] for record in records]

        matched = int(results["matched"].sum())
        logger.info(f"Resolved {len(results)} queries: {matched} matched, {len(results) - matched} unmatched")
        return results

    def _resolve_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "matched": False,
            "best_score": None,
            "matched_name": None,
            "tier": None,
            "note": None,
            "error": None,
            "feature": None,
        }
        try:
            result = self.resolver.resolve(
                _clean(row.get("street_name")),
                _clean(row.get("city")),
                _clean(row.get("barangay")),
                row.get("lat"),
                row.get("lon"),
            )
        except InvalidInputError as e:
            record["error"] = str(e)
            return record

        record.update(
            matched=result.matched,
            best_score=result.best_score,
            matched_name=result.matched_name,
            tier=result.tier,
            note=result.note,
            feature=result.feature,
        )
        return record


def _clean(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value)


def to_geodataframe(results: pd.DataFrame) -> gpd.GeoDataFrame:
    """Matched rows as a GeoDataFrame of way LineStrings (EPSG:4326)."""
    matched = results[results["matched"] & results["feature"].notna()]

    rows = []
    for _, row in matched.iterrows():
        feature = row["feature"]
        rows.append({
            "street_name": row["street_name"],
            "city": row.get("city", ""),
            "barangay": row.get("barangay", ""),
            "matched_name": row["matched_name"],
            "best_score": row["best_score"],
            "tier": row["tier"],
            "osm_way_id": feature["properties"]["id"],
            "geometry": shape(feature["geometry"]),
        })

    columns = ["street_name", "city", "barangay", "matched_name", "best_score", "tier", "osm_way_id", "geometry"]
    return gpd.GeoDataFrame(rows, columns=columns, geometry="geometry", crs="EPSG:4326")


def export(results: pd.DataFrame, output_path: Union[str, Path]) -> Path:
    """Write matched ways to GeoJSON (.geojson/.json) or GeoPackage (.gpkg).

    Returns:
        Path to created file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    gdf = to_geodataframe(results)
    suffix = output_path.suffix.lower()
    if suffix == ".gpkg":
        gdf.to_file(output_path, layer="streets", driver="GPKG")
    elif suffix in (".geojson", ".json"):
        gdf.to_file(output_path, driver="GeoJSON")
    else:
        raise ValueError(f"Unsupported export format: {output_path.suffix}")

    logger.info(f"Exported {len(gdf)} matched street(s) to {output_path}")
    return output_path
