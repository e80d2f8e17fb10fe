"""
Tabular and text renderings of a serial dilution plan.

Pure formatting: every function here is built from the step list and the
cell-addition instructions only, and gives the same text for the same
input.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import pandas as pd

from labcalc.config import DEFAULT_CONFIG, EngineConfig
from labcalc.models import CellAdditionInstruction, ExportData, SerialDilutionStep
from labcalc.units import format_number

DILUTION_HEADERS = ["Step", "From", "To", "Stock Volume", "Solvent Volume", "Dilution Factor"]
ADDITION_HEADERS = ["Target", "Use Step", "Addition Volume", "Final Volume"]


def dilution_table(
    steps: Sequence[SerialDilutionStep],
    config: Optional[EngineConfig] = None,
) -> List[List[str]]:
    """Header row followed by one formatted row per step."""
    dp = (config or DEFAULT_CONFIG).decimal_places
    rows = [list(DILUTION_HEADERS)]
    for s in steps:
        rows.append([
            str(s.step_number),
            f"{format_number(s.from_concentration, dp)} {s.concentration_unit.symbol}",
            f"{format_number(s.to_concentration, dp)} {s.concentration_unit.symbol}",
            f"{format_number(s.stock_volume, dp)} {s.volume_unit.symbol}",
            f"{format_number(s.solvent_volume, dp)} {s.volume_unit.symbol}",
            f"{format_number(s.dilution_factor, dp)}×",
        ])
    return rows


def addition_table(
    instructions: Sequence[CellAdditionInstruction],
    config: Optional[EngineConfig] = None,
) -> List[List[str]]:
    dp = (config or DEFAULT_CONFIG).decimal_places
    rows = [list(ADDITION_HEADERS)]
    for ins in instructions:
        rows.append([
            f"{format_number(ins.target_concentration, dp)} {ins.concentration_unit.symbol}",
            ins.step_name,
            f"{format_number(ins.addition_volume, dp)} {ins.volume_unit.symbol}",
            f"{format_number(ins.final_cell_volume, dp)} {ins.volume_unit.symbol}",
        ])
    return rows


def steps_frame(steps: Sequence[SerialDilutionStep]) -> pd.DataFrame:
    """Numeric (unformatted) step table, one row per step."""
    rows = [
        {
            "step": s.step_number,
            "name": s.name,
            f"from ({s.concentration_unit.symbol})": s.from_concentration,
            f"to ({s.concentration_unit.symbol})": s.to_concentration,
            f"stock ({s.volume_unit.symbol})": s.stock_volume,
            f"solvent ({s.volume_unit.symbol})": s.solvent_volume,
            f"total ({s.volume_unit.symbol})": s.total_volume,
            "dilution factor": s.dilution_factor,
        }
        for s in steps
    ]
    return pd.DataFrame(rows)


def to_csv(table: List[List[str]]) -> str:
    df = pd.DataFrame(table[1:], columns=table[0])
    return df.to_csv(index=False, lineterminator="\n")


def to_markdown(table: List[List[str]]) -> str:
    header, body = table[0], table[1:]
    lines = [
        "| " + " | ".join(header) + " |",
        "| " + " | ".join("---" for _ in header) + " |",
    ]
    for row in body:
        lines.append("| " + " | ".join(row) + " |")
    return "\n".join(lines) + "\n"


def to_text(
    steps: Sequence[SerialDilutionStep],
    instructions: Sequence[CellAdditionInstruction] = (),
) -> str:
    """Numbered protocol: dilution steps, then the cell additions."""
    lines = ["Dilution steps:"]
    for s in steps:
        lines.append(f"{s.step_number}. {s.name}: {s.description}")
    if instructions:
        lines.append("")
        lines.append("Cell additions:")
        for n, ins in enumerate(instructions, 1):
            lines.append(f"{n}. {ins.description}")
    return "\n".join(lines) + "\n"


def build_export_data(
    steps: Sequence[SerialDilutionStep],
    instructions: Sequence[CellAdditionInstruction],
    config: Optional[EngineConfig] = None,
) -> ExportData:
    dilutions = dilution_table(steps, config)
    additions = addition_table(instructions, config)
    markdown = "## Dilution steps\n\n" + to_markdown(dilutions)
    if instructions:
        markdown += "\n## Cell additions\n\n" + to_markdown(additions)
    return ExportData(
        dilution_table=dilutions,
        addition_table=additions,
        csv_format=to_csv(dilutions),
        markdown_format=markdown,
        text_format=to_text(steps, instructions),
    )
