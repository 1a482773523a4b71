"""
Multi-source result combination.

Rows from every source are grouped by the unique identifier value. Within a
group, valuation fields are summed (unparseable values count as 0) and
every other requested column takes the first non-empty value seen.
"""

from __future__ import annotations

from typing import Any

from bankquery.models import SourceMeta
from bankquery.shared.numbers import to_number

Row = dict[str, Any]


def _group_key(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def combine_multi_source_results(
    source_results: list[tuple[SourceMeta, list[Row]]],
    unique_id: str,
    columns: list[str],
    valuation_fields: list[str],
) -> list[Row]:
    groups: dict[str, dict[str, Any]] = {}
    for source, rows in source_results:
        for row in rows:
            key = _group_key(row.get(unique_id))
            if key is None:
                continue
            group = groups.setdefault(key, {"id": row.get(unique_id), "rows": [], "sources": []})
            group["rows"].append(row)
            if source.source_id not in group["sources"]:
                group["sources"].append(source.source_id)

    other_columns = [c for c in columns if c != unique_id and c not in valuation_fields]
    combined: list[Row] = []
    for group in groups.values():
        members = group["rows"]
        agg: Row = {unique_id: group["id"]}
        for field in valuation_fields:
            agg[field] = sum((to_number(r.get(field)) or 0.0) for r in members)
        for field in other_columns:
            for r in members:
                value = r.get(field)
                if value is not None and value != "":
                    agg[field] = value
                    break
        agg["_isAggregated"] = len(members) > 1
        agg["_subRows"] = members
        agg["_sourceIds"] = group["sources"]
        combined.append(agg)
    return combined
