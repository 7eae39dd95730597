"""
Tabular views of simulation output for charts and CSV download.
"""

from typing import Iterable, List, Sequence

import pandas as pd

from .dilemma import DilemmaResults
from .engine import Event, HistoryRecord

# State fields carried alongside the metrics in every row
STATE_COLUMNS = (
    "trust", "wealth", "education", "personal_agency",
    "social_pressure", "rigidity", "soc", "population_exit_rate",
)


def history_frame(history: Sequence[HistoryRecord]) -> pd.DataFrame:
    """One row per step: step index, derived metrics, key state fields, phase label."""
    rows = []
    for rec in history:
        row = {"step": rec.step}
        row.update(rec.metrics.as_dict())
        for name in STATE_COLUMNS:
            row[name] = rec.state[name]
        row["phase"] = rec.phase_label
        rows.append(row)
    return pd.DataFrame(rows)


def event_log_lines(preset_name: str, events: Iterable[Event], generated: str = None) -> List[str]:
    """Comment lines describing the run, for the top of an exported CSV."""
    lines = [f"# Societrics Crisis Analysis: {preset_name}"]
    if generated:
        lines.append(f"# Generated: {generated}")
    log = "; ".join(f"{e.kind}:{e.name}@T{e.step}" for e in events)
    lines.append(f"# Events: {log}")
    return lines


def dilemma_frame(results: DilemmaResults) -> pd.DataFrame:
    return pd.DataFrame({
        "time": results.time,
        "wsi": results.wsi,
        "soc": results.soc,
        "theta": results.theta,
        "trust": results.trust,
        "education": results.education,
        "w_acc": results.w_acc,
        "phi": results.phi,
        "honest_payoff": results.honest_payoff,
        "cheat_payoff": results.cheat_payoff,
        "threshold_crossed": results.threshold_crossed,
    })
