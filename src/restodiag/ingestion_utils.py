"""File helpers for configuration and survey record ingestion."""
from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

import pandas as pd
import yaml


SUPPORTED_SUFFIXES = (".csv", ".json", ".jsonl")


def load_yaml(path: str | Path) -> Dict:
    """Load a YAML configuration file."""

    with open(path, "r", encoding="utf-8") as stream:
        return yaml.safe_load(stream) or {}


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested mappings merge, everything else replaces."""

    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def ensure_directory(directory: str | Path) -> Path:
    """Ensure that the directory exists."""

    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def file_sha256(path: str | Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def normalize_headers(df: pd.DataFrame) -> pd.DataFrame:
    """Strip whitespace from headers and map spaced or dashed names to snake_case."""

    df = df.copy()
    df.columns = [str(col).strip().replace(" ", "_").replace("-", "_") for col in df.columns]
    return df


def load_records(path: str | Path) -> List[Dict[str, Any]]:
    """Read survey records from CSV, JSON (list of objects) or JSON-lines.

    Values are returned untouched apart from blank cells becoming ``None``;
    coercion is left to :func:`restodiag.guard.guard_record`.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")
    elif suffix == ".jsonl":
        df = pd.read_json(path, lines=True, dtype=False)
    elif suffix == ".json":
        with open(path, "r", encoding="utf-8") as stream:
            payload = json.load(stream)
        if isinstance(payload, Mapping):
            payload = payload.get("records", [payload])
        df = pd.DataFrame(list(payload))
    else:
        raise ValueError(f"Unsupported input format '{path.suffix}'; expected one of {', '.join(SUPPORTED_SUFFIXES)}")

    df = normalize_headers(df)
    df = df.astype(object).where(pd.notna(df), None)
    df = df.replace({"": None})
    return df.to_dict(orient="records")
