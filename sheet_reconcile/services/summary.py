from __future__ import annotations

from ..models.classification import ApplyOutcome, ClassificationResult, ClassifiedRecord, RecordKind

"""SUMMARY line and review listing rendering."""

__all__ = [
    "render_summary_line",
    "render_record_line",
]


def render_summary_line(result: ClassificationResult, outcome: ApplyOutcome | None = None) -> str:
    """Render a SUMMARY line for one reconciliation pass.

    Format::

        SUMMARY archive={id} rows={total} new={n} match={m} disagreement={d}
        [ignored={i} updated={u} added={a} skipped={s}]

    The decision counters are appended only when ``outcome`` is given.

    Examples:
        >>> render_summary_line(ClassificationResult.empty(7))
        'SUMMARY archive=7 rows=0 new=0 match=0 disagreement=0'
    """
    line = (
        f"SUMMARY archive={result.archive_id} "
        f"rows={result.total} "
        f"new={len(result.new_records)} "
        f"match={len(result.match_records)} "
        f"disagreement={len(result.disagreement_records)}"
    )
    if outcome is not None:
        line += (
            f" ignored={outcome.ignored}"
            f" updated={outcome.updated}"
            f" added={outcome.added}"
            f" skipped={outcome.skipped}"
        )
    return line


def render_record_line(record: ClassifiedRecord) -> str:
    """One-line description of a classified record for the review listing."""
    key = record.unique_key or "<no key>"
    head = f"{record.kind.value.upper():<12} row={record.row_number} key={key}"
    if record.kind is RecordKind.DISAGREEMENT:
        return f"{head} | " + "; ".join(record.discrepancies)  # type: ignore[attr-defined]
    return f"{head} | " + ", ".join(f"{c}={v}" for c, v in zip(record.columns, record.new_values))
