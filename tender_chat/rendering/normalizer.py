import decimal
import json
import logging
import math
import numbers
from typing import Any, Dict, List, Optional, Sequence

from tender_chat.core.exceptions import ShapeMismatch
from tender_chat.schemas.table import CanonicalTable, Scalar

logger = logging.getLogger(__name__)

# Keys that may wrap a result shape one level down
_WRAPPER_KEYS = ("data", "results")


def normalize(raw: Any, fallback_columns: Optional[Sequence[str]] = None) -> Optional[CanonicalTable]:
    """Turn an arbitrarily shaped result payload into a CanonicalTable.

    Returns None (the no-data marker) when no table can be recognized, so a
    single bad payload only suppresses rendering instead of breaking the chat.

    Args:
        raw: The payload (chat ``data`` field, export response body, ...).
        fallback_columns: Column names for array-of-arrays rows when the
            payload carries none. Without them, ``Column 1..N`` is used.
    """
    try:
        return normalize_strict(raw, fallback_columns)
    except ShapeMismatch as e:
        logger.info(f"[normalize] No table in payload: {e}")
        return None


def normalize_strict(raw: Any, fallback_columns: Optional[Sequence[str]] = None) -> CanonicalTable:
    """Same as normalize() but raises ShapeMismatch instead of returning None."""
    if isinstance(raw, CanonicalTable):
        return raw
    return _match_shape(raw, fallback_columns, allow_unwrap=True)


def _match_shape(raw: Any, fallback_columns: Optional[Sequence[str]], allow_unwrap: bool) -> CanonicalTable:
    # 1. List of records
    if isinstance(raw, list) and raw and all(isinstance(item, dict) for item in raw):
        return _build_table(raw, None, fallback_columns)

    if isinstance(raw, dict):
        # 2. Nested {result: {rows, columns?}}
        result = raw.get("result")
        if isinstance(result, dict) and isinstance(result.get("rows"), list):
            return _build_table(result["rows"], _declared_columns(result), fallback_columns)

        # 3. Top-level {rows, columns? | columnNames?}
        if isinstance(raw.get("rows"), list):
            return _build_table(raw["rows"], _declared_columns(raw), fallback_columns)

        # 4. {data: ...} / {results: ...} one level down
        if allow_unwrap:
            for key in _WRAPPER_KEYS:
                if key in raw and raw[key] is not None:
                    try:
                        return _match_shape(raw[key], fallback_columns, allow_unwrap=False)
                    except ShapeMismatch:
                        logger.debug(f"[normalize] '{key}' wrapper does not hold a table, trying next shape.")
        raise ShapeMismatch(f"Unrecognized object payload with keys {sorted(raw.keys())[:10]}")

    # 5. Bare array of arrays
    if isinstance(raw, list) and raw and all(isinstance(item, (list, tuple)) for item in raw):
        return _build_table(raw, None, fallback_columns)

    if isinstance(raw, list) and not raw:
        raise ShapeMismatch("Empty array payload")
    raise ShapeMismatch(f"Unsupported payload type {type(raw).__name__}")


def _declared_columns(container: Dict[str, Any]) -> Optional[List[str]]:
    for key in ("columns", "columnNames"):
        value = container.get(key)
        if isinstance(value, list) and value:
            return [_column_name(name, index) for index, name in enumerate(value)]
    return None


def _column_name(name: Any, index: int) -> str:
    if isinstance(name, dict):
        # Some backends describe columns as {"name": ..., "type": ...}
        name = name.get("name") or name.get("label")
    if name is None or str(name).strip() == "":
        return f"Column {index + 1}"
    return str(name)


def _unique(columns: Sequence[str]) -> List[str]:
    seen: Dict[str, int] = {}
    unique = []
    for name in columns:
        if name in seen:
            seen[name] += 1
            candidate = f"{name} ({seen[name]})"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name} ({seen[name]})"
            seen[candidate] = 1
            unique.append(candidate)
        else:
            seen[name] = 1
            unique.append(name)
    return unique


def _build_table(rows: List[Any], columns: Optional[List[str]], fallback_columns: Optional[Sequence[str]]) -> CanonicalTable:
    record_rows = [row for row in rows if isinstance(row, dict)]
    array_rows = [row for row in rows if isinstance(row, (list, tuple))]
    if rows and len(record_rows) + len(array_rows) != len(rows):
        raise ShapeMismatch("Rows mix records, arrays and scalars")
    if record_rows and array_rows:
        raise ShapeMismatch("Rows mix records and arrays")

    if columns is None:
        if record_rows:
            columns = [str(key) for key in record_rows[0].keys()]
        elif array_rows:
            arity = max(len(row) for row in array_rows)
            if fallback_columns:
                columns = list(fallback_columns)
                if arity > len(columns):
                    columns += [f"Column {i + 1}" for i in range(len(columns), arity)]
            else:
                columns = [f"Column {i + 1}" for i in range(arity)]
        else:
            raise ShapeMismatch("No rows and no columns to infer a table from")

    columns = _unique(columns)

    canonical_rows: List[Dict[str, Scalar]] = []
    if record_rows:
        for record in record_rows:
            canonical_rows.append({name: _to_scalar(record.get(name)) for name in columns})
    else:
        # Array rows are always data rows; a header-looking first row is kept
        for values in array_rows:
            canonical_rows.append({
                name: _to_scalar(values[i]) if i < len(values) else None
                for i, name in enumerate(columns)
            })

    logger.debug(f"[normalize] Built table with {len(columns)} columns and {len(canonical_rows)} rows.")
    return CanonicalTable(columns=columns, rows=canonical_rows)


def _to_scalar(value: Any) -> Scalar:
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, (numbers.Real, decimal.Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)
