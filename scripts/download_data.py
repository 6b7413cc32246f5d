#!/usr/bin/env python3
"""
Download and process WHO growth standard tables into NumPy .npz format.

This script downloads the WHO Child Growth Standards LMS tables published on
the CDC ftp server, parses the CSVs, and saves them as compressed NumPy
structured arrays for use by anthro's LookupEngine.

Every array has the fields (x, L, M, S):
- waz_<sex>: weight-for-age, x is age in months
- haz_<sex>: length-for-age, x is age in months
- whz_<sex>: weight-for-length, x is length in cm
"""

import argparse
import hashlib
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import requests
from requests.adapters import HTTPAdapter
from tqdm import tqdm
from urllib3.util.retry import Retry

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = (
    Path(__file__).parent.parent / "src" / "anthro" / "data" / "growth_references.npz"
)

# Data sources with URLs
DATA_SOURCES: List[Tuple[str, str]] = [
    (
        "boys_wtage",
        "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Boys-Weight-for-age-Percentiles.csv",
    ),
    (
        "boys_lenage",
        "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Boys-Length-for-age-Percentiles.csv",
    ),
    (
        "boys_wtlen",
        "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Boys-Weight-for-length-Percentiles.csv",
    ),
    (
        "girls_wtage",
        "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Girls-Weight-for-age%20Percentiles.csv",
    ),
    (
        "girls_lenage",
        "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Girls-Length-for-age-Percentiles.csv",
    ),
    (
        "girls_wtlen",
        "https://ftp.cdc.gov/pub/Health_Statistics/NCHS/growthcharts/WHO-Girls-Weight-for-length-Percentiles.csv",
    ),
]

MEASURE_MAP = {"wtage": "waz", "lenage": "haz", "wtlen": "whz"}

REFERENCE_DTYPE = np.dtype([("x", "f8"), ("L", "f8"), ("M", "f8"), ("S", "f8")])


def download_csv(url: str, timeout: int = 30) -> str:
    """Download CSV content from URL with retries."""
    try:
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=2,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)

        with requests.Session() as session:
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            response = session.get(url, timeout=timeout, verify=True)
            response.raise_for_status()
            return response.text
    except Exception as e:
        logger.error(f"Failed to download {url}: {e}")
        raise


def compute_sha256(content: str) -> str:
    """Compute SHA-256 hash of content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def array_key(name: str) -> str:
    """Map a source name like 'boys_wtlen' to its array key 'whz_male'."""
    for key, measure in MEASURE_MAP.items():
        if key in name:
            break
    else:
        raise ValueError(f"Unknown measure in source name: {name}")
    sex = "male" if name.startswith("boys") else "female"
    return f"{measure}_{sex}"


def validate_array(arr: np.ndarray, array_name: str) -> None:
    """Validate a parsed reference table.

    Raises:
        ValueError: On non-finite index values, unsorted index, or
            non-positive M or S.
    """
    if arr.size == 0:
        logger.warning(f"{array_name}: empty array")
        return

    index = arr["x"]
    if not np.all(np.isfinite(index)):
        raise ValueError(f"{array_name}: non-finite index values")
    if len(index) > 1 and not np.all(index[:-1] <= index[1:]):
        raise ValueError(f"{array_name}: index not monotonically increasing")

    for col in ["L", "M", "S"]:
        values = arr[col]
        if not np.all(np.isfinite(values)):
            raise ValueError(f"{array_name}: non-finite {col} values")
        if col != "L" and np.any(values <= 0):
            raise ValueError(f"{array_name}: non-positive {col} values")


def parse_who_csv(content: str, name: str) -> Dict[str, np.ndarray]:
    """Parse a WHO percentile CSV into a (x, L, M, S) structured array."""
    lines = content.strip().splitlines()
    header_clean = [
        col.replace("\ufeff", "").strip().strip('"')
        for col in lines[0].split(",")
    ]

    # Weight-for-length is indexed by Length, the others by Month
    index_col = "Length" if "wtlen" in name else "Month"
    essential_cols = [index_col, "L", "M", "S"]
    missing = [col for col in essential_cols if col not in header_clean]
    if missing:
        raise ValueError(f"Essential columns {missing} not found in {name} header")
    col_indices = [header_clean.index(col) for col in essential_cols]

    rows = []
    for line in lines[1:]:
        if not line.strip():
            continue
        values = [v.strip().strip('"') for v in line.split(",")]
        try:
            rows.append(tuple(float(values[idx]) for idx in col_indices))
        except (IndexError, ValueError):
            logger.warning(f"Skipping malformed line in {name}: {line!r}")

    structured = np.array(rows, dtype=REFERENCE_DTYPE)
    key = array_key(name)
    validate_array(structured, key)
    return {key: structured}


def save_npz(data: Dict[str, np.ndarray], output_path: Path) -> None:
    """Save data dictionary as compressed NumPy .npz file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(output_path, **data)
    logger.info(f"Saved {len(data)} arrays to {output_path}")


def main(strict_mode: bool = False, output_path: Optional[Path] = None) -> Dict[str, np.ndarray]:
    """Download, parse and save all WHO tables.

    Returns:
        The arrays written, metadata included.

    Raises:
        RuntimeError: In strict mode, if any source failed.
    """
    output_path = Path(output_path) if output_path else DEFAULT_OUTPUT

    all_data: Dict[str, np.ndarray] = {}
    failed_sources = []

    with tqdm(total=len(DATA_SOURCES), desc="Fetching sources") as pbar:
        for name, url in DATA_SOURCES:
            pbar.set_postfix({"source": name})
            pbar.update(1)
            try:
                csv_content = download_csv(url)
                all_data.update(parse_who_csv(csv_content, name))

                metadata = {
                    "url": url,
                    "hash": compute_sha256(csv_content),
                    "timestamp": str(np.datetime64("now")),
                }
                for key, value in metadata.items():
                    all_data[f"metadata_{name}_{key}"] = np.array([value], dtype="U256")
            except Exception as e:
                failed_sources.append(name)
                logger.error(f"Failed to process {name}: {e}")

    if strict_mode and failed_sources:
        raise RuntimeError(
            f"Strict mode failed: Unable to process sources: {', '.join(failed_sources)}"
        )

    save_npz(all_data, output_path)

    with np.load(output_path) as loaded:
        logger.info(f"Verification: {len(loaded.files)} arrays saved")
        for key in loaded.files:
            if not key.startswith("metadata_"):
                logger.info(f"  {key}: shape {loaded[key].shape}")

    return all_data


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Download WHO growth standard tables for the lookup engine."
    )
    parser.add_argument(
        "--output",
        type=Path,
        help=f"Output .npz path (default: {DEFAULT_OUTPUT})",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Strict mode: exit on any error instead of continuing with warnings",
    )
    args = parser.parse_args()

    main(strict_mode=args.strict, output_path=args.output)
