from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from catviz.core.config import AggregationMode
from catviz.core.data import DatasetLike, as_frame
from catviz.core.errors import EmptyPartition, InvalidAggregationRequest
from catviz.core.logging import get_logger

logger = get_logger(__name__)

CategoryTuple = Tuple[Any, ...]


@dataclass(frozen=True)
class AggregatedTable:
    """Category combinations mapped to a count or probability.

    ``cells`` and ``counts`` share keys: 1-tuples ``(primary,)`` for a single
    key, 2-tuples ``(primary, secondary)`` otherwise. Keys iterate in
    ``primary_levels`` x ``secondary_levels`` order.
    """

    mode: AggregationMode
    primary: str
    secondary: Optional[str]
    cells: Mapping[CategoryTuple, float]
    counts: Mapping[CategoryTuple, int]
    # First-encountered order in the source dataset.
    primary_levels: Tuple[Any, ...]
    # Canonical (sorted) order of the secondary category.
    secondary_levels: Tuple[Any, ...]
    total: int

    @property
    def has_secondary(self) -> bool:
        return self.secondary is not None

    def __len__(self) -> int:
        return len(self.cells)

    def __getitem__(self, key: CategoryTuple) -> float:
        return self.cells[key]

    def keys(self):
        return self.cells.keys()

    def values(self):
        return self.cells.values()

    def items(self):
        return self.cells.items()

    def primary_totals(self) -> Dict[Any, float]:
        """Sum of cell values per primary category, in dataset order."""

        totals: Dict[Any, float] = {p: 0.0 for p in self.primary_levels}
        for key, value in self.cells.items():
            totals[key[0]] += value
        return totals

    def partition(self, primary_value: Any) -> Dict[Any, float]:
        """Cells sharing one primary value, keyed by the secondary value."""

        if not self.has_secondary:
            raise InvalidAggregationRequest("Table has no secondary category to partition by.")
        return {key[1]: v for key, v in self.cells.items() if key[0] == primary_value}

    def to_frame(self, decimals: Optional[int] = None) -> pd.DataFrame:
        """Long format: one row per cell with its count and value."""

        columns = [self.primary] + ([self.secondary] if self.has_secondary else []) + ["count", "value"]
        rows = [list(key) + [self.counts[key], value] for key, value in self.cells.items()]
        df = pd.DataFrame(rows, columns=columns)
        if decimals is not None:
            df["value"] = df["value"].round(decimals)
        return df

    def to_wide(self, decimals: Optional[int] = 2) -> pd.DataFrame:
        """Tabular display: primary rows by secondary columns.

        Unobserved combinations show as 0. Counts are never rounded.
        """

        if self.mode == AggregationMode.count:
            decimals = None

        if not self.has_secondary:
            df = pd.DataFrame(
                {self.mode.value: [self.cells[(p,)] for p in self.primary_levels]},
                index=pd.Index(self.primary_levels, name=self.primary),
            )
        else:
            df = pd.DataFrame(
                0.0,
                index=pd.Index(self.primary_levels, name=self.primary),
                columns=pd.Index(self.secondary_levels, name=self.secondary),
            )
            for (p, s), value in self.cells.items():
                df.loc[p, s] = value

        if self.mode == AggregationMode.count:
            return df.astype(int)
        if decimals is not None:
            df = df.round(decimals)
        return df


def _native(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


def canonical_levels(values: Iterable[Any]) -> Tuple[Any, ...]:
    levels = list(dict.fromkeys(values))
    try:
        return tuple(sorted(levels))
    except TypeError:
        # Mixed, mutually incomparable values keep first-encountered order.
        return tuple(levels)


def _validate_request(
    df: pd.DataFrame,
    primary: Optional[str],
    secondary: Optional[str],
    mode: AggregationMode,
) -> List[str]:
    if primary is None or primary == "":
        raise InvalidAggregationRequest("A primary category key is required.")
    if primary not in df.columns:
        raise InvalidAggregationRequest(
            f"Unknown attribute '{primary}'. Available: {list(map(str, df.columns))}"
        )

    if secondary == "":
        secondary = None

    if mode.needs_secondary and secondary is None:
        raise InvalidAggregationRequest(f"Mode {mode.value} requires a secondary category key.")
    if mode == AggregationMode.relative_frequency and secondary is not None:
        raise InvalidAggregationRequest(
            "Mode relative_frequency takes a single category key; "
            "use joint_probability for two keys."
        )

    if secondary is None:
        return [primary]
    if secondary not in df.columns:
        raise InvalidAggregationRequest(
            f"Unknown attribute '{secondary}'. Available: {list(map(str, df.columns))}"
        )
    if secondary == primary:
        raise InvalidAggregationRequest("Primary and secondary category keys must differ.")
    return [primary, secondary]


def aggregate(
    dataset: DatasetLike,
    primary: str,
    secondary: Optional[str] = None,
    *,
    mode: AggregationMode = AggregationMode.count,
) -> AggregatedTable:
    """Count and normalise the categories of one or two attributes.

    - ``count``: records per category (per combination when ``secondary`` is given).
    - ``relative_frequency``: count / number of records.
    - ``joint_probability``: combination count / number of records.
    - ``conditional_probability``: combination count / records sharing the
      primary value, i.e. P(secondary | primary).

    Records with a missing value in a selected key are left out, and the
    number of records is counted after dropping them.
    """

    df = as_frame(dataset)
    try:
        mode = AggregationMode(mode)
    except ValueError as e:
        raise InvalidAggregationRequest(f"Unknown aggregation mode: {mode!r}") from e
    keys = _validate_request(df, primary, secondary, mode)
    secondary = keys[1] if len(keys) > 1 else None

    frame = df[keys].dropna()
    total = len(frame)
    if total == 0 and mode != AggregationMode.count:
        raise EmptyPartition(f"Cannot compute {mode.value}: no records with values for {keys}.")

    # observed=True: categorical keys must not yield zero-count combinations.
    sizes = frame.groupby(keys, sort=False, observed=True).size()
    raw_counts: Dict[CategoryTuple, int] = {}
    for k, n in sizes.items():
        key = tuple(k) if isinstance(k, tuple) else (k,)
        raw_counts[tuple(_native(v) for v in key)] = int(n)

    primary_levels = tuple(_native(v) for v in pd.unique(frame[primary]))
    secondary_levels = canonical_levels(_native(v) for v in frame[secondary]) if secondary is not None else ()

    # Deterministic cell order: primary in dataset order, then canonical secondary.
    if secondary is not None:
        ordered = [(p, s) for p in primary_levels for s in secondary_levels if (p, s) in raw_counts]
    else:
        ordered = [(p,) for p in primary_levels]
    counts = {key: raw_counts[key] for key in ordered}

    if mode == AggregationMode.count:
        cells = {key: float(n) for key, n in counts.items()}
    elif mode in (AggregationMode.relative_frequency, AggregationMode.joint_probability):
        cells = {key: n / total for key, n in counts.items()}
    else:
        marginals: Dict[Any, int] = {p: 0 for p in primary_levels}
        for key, n in counts.items():
            marginals[key[0]] += n
        cells = {}
        for key, n in counts.items():
            denom = marginals[key[0]]
            if denom == 0:
                raise EmptyPartition(f"Partition {primary}={key[0]!r} has no records.")
            cells[key] = n / denom

    logger.debug(
        "Aggregated %d records by %s into %d cells (%s)",
        total,
        keys,
        len(cells),
        mode.value,
    )
    return AggregatedTable(
        mode=mode,
        primary=primary,
        secondary=secondary,
        cells=MappingProxyType(cells),
        counts=MappingProxyType(counts),
        primary_levels=primary_levels,
        secondary_levels=secondary_levels,
        total=total,
    )


_NORMALIZE_MODES = {
    None: AggregationMode.count,
    "all": AggregationMode.joint_probability,
    "index": AggregationMode.conditional_probability,
}


def cross_tabulate(
    dataset: DatasetLike,
    primary: str,
    secondary: str,
    *,
    normalize: Optional[str] = None,
    decimals: Optional[int] = 2,
) -> pd.DataFrame:
    """Contingency table of two attributes.

    ``normalize``: None for counts, ``"all"`` for joint probabilities,
    ``"index"`` for probabilities conditional on the primary (row) category.
    """

    if normalize not in _NORMALIZE_MODES:
        raise ValueError(f"Unknown normalize option: {normalize!r}. Use None, 'all' or 'index'.")
    if secondary is None or secondary == "":
        raise InvalidAggregationRequest("cross_tabulate requires a secondary category key.")
    table = aggregate(dataset, primary, secondary, mode=_NORMALIZE_MODES[normalize])
    return table.to_wide(decimals=decimals)
