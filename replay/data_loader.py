"""
Load bid/ask quote history from CSV or DataFrame for replay.

Expects one row per tick: a timestamp, the commodity, bid and ask. Column
names are normalised and common aliases accepted.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from bullion_core.market import Commodity, Quote

QUOTE_COLUMNS = ("commodity", "bid", "ask")


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lowercase column names; map common aliases to commodity/bid/ask."""
    out = df.copy()
    out.columns = [str(c).lower().strip() for c in out.columns]
    renames = {
        "metal": "commodity",
        "symbol": "commodity",
        "b": "bid",
        "bid_price": "bid",
        "a": "ask",
        "offer": "ask",
        "ask_price": "ask",
    }
    out = out.rename(columns={k: v for k, v in renames.items() if k in out.columns})
    return out


def _finish(df: pd.DataFrame, commodity: str | None) -> pd.DataFrame:
    if "commodity" not in df.columns:
        if commodity is None:
            raise ValueError("Quote data has no commodity column; pass commodity=")
        df["commodity"] = commodity
    missing = [c for c in ("bid", "ask") if c not in df.columns]
    if missing:
        raise ValueError(f"Quote data is missing columns: {missing}")
    df["commodity"] = df["commodity"].astype(str).str.strip().str.lower()
    df.index.name = "datetime"
    # stable sort keeps file order for ticks sharing a timestamp
    return df[list(QUOTE_COLUMNS)].sort_index(kind="stable")


def load_csv(
    path: str | Path,
    *,
    date_column: str | None = None,
    datetime_format: str | None = None,
    commodity: str | None = None,
) -> pd.DataFrame:
    """
    Load quote ticks from a CSV file.

    Parameters
    ----------
    path : str or Path
        Path to the CSV file.
    date_column : str, optional
        Column to use as datetime index. If None, 'timestamp', 'datetime' or
        'date' is used, else the first column.
    datetime_format : str, optional
        Format for parsing dates.
    commodity : str, optional
        Commodity for files without a commodity column.

    Returns
    -------
    pd.DataFrame
        DatetimeIndex named 'datetime' and columns commodity, bid, ask.
    """
    df = _normalize_columns(pd.read_csv(path))
    if date_column is None:
        date_column = next((c for c in ("timestamp", "datetime", "date") if c in df.columns), df.columns[0])
    df["_ts"] = pd.to_datetime(df[date_column.lower()], format=datetime_format)
    df = df.drop(columns=[date_column.lower()]).set_index("_ts")
    return _finish(df, commodity)


def load_dataframe(
    df: pd.DataFrame,
    *,
    datetime_index: str | None = None,
    commodity: str | None = None,
) -> pd.DataFrame:
    """
    Normalize a DataFrame of quotes: DatetimeIndex and commodity/bid/ask columns.

    If datetime_index is None the index is assumed to hold the timestamps.
    """
    out = _normalize_columns(df)
    if datetime_index is not None and datetime_index.lower() in out.columns:
        key = datetime_index.lower()
        out[key] = pd.to_datetime(out[key])
        out = out.set_index(key)
    elif not isinstance(out.index, pd.DatetimeIndex):
        out.index = pd.to_datetime(out.index)
    return _finish(out, commodity)


def quotes_from_dataframe(df: pd.DataFrame) -> list[Quote]:
    """Convert a normalized quote frame into Quote objects, in index order."""
    quotes: list[Quote] = []
    for ts, row in df.iterrows():
        quotes.append(
            Quote(
                commodity=Commodity.parse(row["commodity"]),
                # str() of the float repr keeps e.g. 5850.25 exact
                bid=str(row["bid"]),
                ask=str(row["ask"]),
                timestamp=ts.to_pydatetime(),
            )
        )
    return quotes
