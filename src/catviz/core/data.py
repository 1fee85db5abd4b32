from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from catviz.core.logging import get_logger

logger = get_logger(__name__)

DatasetLike = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]


def load_dataset(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if path.suffix.lower() in {".csv"}:
        return pd.read_csv(path)
    if path.suffix.lower() in {".parquet"}:
        return pd.read_parquet(path)
    raise ValueError(f"Unsupported dataset format: {path.suffix}. Use .csv or .parquet")


def load_mtcars() -> pd.DataFrame:
    """Return the bundled 32-record automobile dataset.

    Columns: model, mpg, cyl, disp, hp, drat, wt, qsec, vs, am, gear, carb.
    ``am`` is the transmission (0 = automatic, 1 = manual) and ``vs`` the
    engine shape (0 = V-shaped, 1 = straight).
    """

    source = resources.files("catviz").joinpath("data/mtcars.csv")
    with source.open("r", encoding="utf-8") as f:
        return pd.read_csv(f)


def as_frame(data: DatasetLike) -> pd.DataFrame:
    """Accept a DataFrame or any sequence of records (mappings) as a dataset."""

    if isinstance(data, pd.DataFrame):
        return data
    records = list(data)
    if records and not all(isinstance(r, Mapping) for r in records):
        raise TypeError("Dataset records must be mappings of attribute name to value.")
    return pd.DataFrame.from_records(records)


def validate_columns(df: pd.DataFrame, columns: Iterable[str]) -> None:
    """Raise if any of ``columns`` is absent from the dataset."""

    missing: List[str] = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"Dataset is missing required columns: {missing}")


def relabel_categories(
    df: pd.DataFrame,
    labels: Mapping[str, Mapping[Any, str]],
) -> pd.DataFrame:
    """Return a copy of ``df`` with coded category values replaced by labels.

    Keys of each inner mapping may be the raw values or their string form
    (YAML configs often carry ``"0"`` for an integer column). Values without a
    label are kept as they are.
    """

    validate_columns(df, labels.keys())
    out = df.copy()
    for col, mapping in labels.items():
        lookup: Dict[Any, str] = {}
        for k, v in mapping.items():
            lookup[k] = v
            lookup.setdefault(str(k), v)

        def _relabel(value: Any, _lookup: Dict[Any, str] = lookup) -> Any:
            if pd.isna(value):
                return value
            if value in _lookup:
                return _lookup[value]
            return _lookup.get(str(value), value)

        out[col] = out[col].map(_relabel)
        logger.debug("Relabelled column %s with %d labels", col, len(mapping))
    return out


def resolve_dataset(
    path: Optional[str | Path] = None,
    *,
    labels: Optional[Mapping[str, Mapping[Any, str]]] = None,
) -> pd.DataFrame:
    """Load ``path`` (or the bundled mtcars data) and apply optional relabelling."""

    df = load_dataset(path) if path is not None else load_mtcars()
    logger.debug("Loaded dataset with %d records and %d attributes", len(df), df.shape[1])
    if labels:
        df = relabel_categories(df, labels)
    return df
