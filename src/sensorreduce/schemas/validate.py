"""Validation helpers for raw sensor value tables.

Every helper raises ValueError with an actionable message containing:
- Table name (if provided)
- The rule that failed and the offending column(s)
- Count of failing rows
- Sample of failing row indices (first 5)
"""

from __future__ import annotations

from typing import Any, Iterable

import pandas as pd


def _format_error(
    table: str | None,
    rule: str,
    detail: str,
    failing_indices: list[Any] | None = None,
    count: int | None = None,
) -> str:
    parts = []
    if table:
        parts.append(f"[{table}]")
    parts.append(rule)
    parts.append(f": {detail}")
    if count is not None:
        parts.append(f" ({count} rows)")
    if failing_indices:
        parts.append(f" | sample indices: {failing_indices[:5]}")
    return "".join(parts)


def require_columns(
    columns: Iterable[str],
    required: Iterable[str],
    table: str | None = None,
) -> None:
    """Raise ValueError if any required column is absent.

    Args:
        columns: Column names present (e.g., df.columns)
        required: Column names that must be present
        table: Optional table name for error messages
    """
    missing = set(required) - set(columns)
    if missing:
        raise ValueError(
            _format_error(table, "Missing columns", f"{sorted(missing)}")
        )


def require_no_nulls(
    df: pd.DataFrame,
    cols: Iterable[str],
    table: str | None = None,
) -> None:
    """Raise ValueError if any of the given columns holds a null."""
    for col in cols:
        if col not in df.columns:
            continue  # require_columns reports missing columns

        null_mask = df[col].isna()
        null_count = int(null_mask.sum())
        if null_count > 0:
            raise ValueError(
                _format_error(
                    table,
                    "Null values",
                    f"column '{col}' has nulls",
                    df.index[null_mask].tolist(),
                    null_count,
                )
            )


def require_unique(
    df: pd.DataFrame,
    key_cols: list[str],
    table: str | None = None,
) -> None:
    """Raise ValueError if the key columns contain duplicate combinations.

    A sensor value table keyed on (dataset_id, column_id, ts_utc) must never
    hold two readings for the same column at the same instant.
    """
    if df.empty or any(col not in df.columns for col in key_cols):
        return

    dup_mask = df.duplicated(subset=key_cols, keep=False)
    dup_count = int(dup_mask.sum())
    if dup_count > 0:
        raise ValueError(
            _format_error(
                table,
                "Duplicate keys",
                f"columns {key_cols} have duplicates",
                df.index[dup_mask].tolist(),
                dup_count,
            )
        )


def require_timezone_utc(
    df: pd.DataFrame,
    ts_col: str,
    table: str | None = None,
) -> None:
    """Raise ValueError if a timestamp column is not tz-aware UTC."""
    if ts_col not in df.columns or df.empty:
        return

    dtype = df[ts_col].dtype
    if getattr(dtype, "tz", None) is None:
        raise ValueError(
            _format_error(
                table,
                "Timezone required",
                f"column '{ts_col}' must be tz-aware UTC, got {dtype}",
            )
        )

    tz_str = str(dtype.tz).upper()
    if tz_str not in ("UTC", "TIMEZONE.UTC", "PYTZ.UTC", "ZONEINFO.ZONEINFO('UTC')"):
        raise ValueError(
            _format_error(
                table,
                "Wrong timezone",
                f"column '{ts_col}' must be UTC, got {dtype.tz}",
            )
        )


def require_isin(
    df: pd.DataFrame,
    col: str,
    allowed: Iterable[Any],
    table: str | None = None,
) -> None:
    """Raise ValueError if a column holds values outside an allowed set.

    Nulls are ignored here; pair with require_no_nulls where needed.
    """
    if col not in df.columns or df.empty:
        return

    allowed = sorted(allowed)
    series = df[col].dropna()
    bad = ~series.isin(allowed)
    bad_count = int(bad.sum())
    if bad_count > 0:
        raise ValueError(
            _format_error(
                table,
                "Unknown values",
                f"column '{col}' has values outside {allowed}",
                series.index[bad].tolist(),
                bad_count,
            )
        )
