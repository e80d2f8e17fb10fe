"""
Input and result records for the lab solution calculators.

No logic lives here beyond serialisation: every record is created fresh
by a calculator call and handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from labcalc.units import ConcentrationUnit, MassUnit, VolumeUnit


# --- Enums ---

class WarningType(Enum):
    HIGH_CONCENTRATION = "high_concentration"
    LOW_CONCENTRATION = "low_concentration"
    SMALL_VOLUME = "small_volume"
    LARGE_VOLUME = "large_volume"
    MISSING_MOLECULAR_WEIGHT = "missing_molecular_weight"
    UNUSUAL_DILUTION_FACTOR = "unusual_dilution_factor"
    VOLUME_OVERFLOW = "volume_overflow"


class ErrorType(Enum):
    MISSING_REQUIRED_FIELD = "missing_required_field"
    NEGATIVE_VALUE = "negative_value"
    INVALID_CONCENTRATION = "invalid_concentration"
    INVALID_VOLUME = "invalid_volume"
    INVALID_MOLECULAR_WEIGHT = "invalid_molecular_weight"
    CALCULATION_ERROR = "calculation_error"


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _plain(value: Any) -> Any:
    """Turn records, enums and tuples into JSON-ready data."""
    if isinstance(value, (VolumeUnit, MassUnit, ConcentrationUnit)):
        return value.symbol
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


class _Record:
    def to_dict(self) -> Dict[str, Any]:
        return _plain(self)


# --- Diagnostics ---

@dataclass(frozen=True)
class CalcWarning(_Record):
    """Advisory note attached to a computed result."""
    type: WarningType
    message: str
    severity: Severity = Severity.MEDIUM
    component_index: Optional[int] = None


@dataclass(frozen=True)
class ValidationError(_Record):
    """Blocking problem with the input (or with one buffer component)."""
    type: ErrorType
    message: str
    field: Optional[str] = None
    component_index: Optional[int] = None


@dataclass(frozen=True)
class CalculationStep(_Record):
    step: int
    description: str
    result: float
    unit: str
    formula: Optional[str] = None


# --- Inputs ---

@dataclass(frozen=True)
class ComponentInput(_Record):
    """One row of a buffer recipe."""
    name: str
    stock_concentration: float
    stock_unit: ConcentrationUnit
    final_concentration: float
    final_unit: ConcentrationUnit
    lot_number: Optional[str] = None
    molecular_weight: Optional[float] = None  # only for mg/mL, µg/mL, % w/v rows


@dataclass(frozen=True)
class BufferInput(_Record):
    total_volume: float
    components: Sequence[ComponentInput]
    volume_unit: Optional[VolumeUnit] = None  # falls back to config.default_volume_unit
    name: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class StockInput(_Record):
    reagent_name: str
    molecular_weight: Optional[float]
    target_concentration: float
    concentration_unit: ConcentrationUnit
    volume: float
    volume_unit: VolumeUnit
    purity: Optional[float] = None  # percent, (0, 100]
    solvent: str = "water"
    name: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class DilutionInput(_Record):
    stock_concentration: float
    stock_unit: ConcentrationUnit
    final_concentration: float
    final_unit: ConcentrationUnit
    final_volume: float
    volume_unit: VolumeUnit
    molecular_weight: Optional[float] = None
    name: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class SerialDilutionInput(_Record):
    """
    Serial dilution feeding a cell assay.

    ``target_concentrations`` are the concentrations wanted *in the
    wells*, after ``addition_volume`` of a tube is added to
    ``cell_volume`` of suspension.
    """
    stock_concentration: float
    stock_unit: ConcentrationUnit
    target_concentrations: Sequence[float]
    target_unit: ConcentrationUnit
    cell_volume: float
    cell_volume_unit: VolumeUnit
    addition_volume: float
    addition_volume_unit: VolumeUnit
    dilution_volume: float
    dilution_volume_unit: VolumeUnit
    molecular_weight: Optional[float] = None
    name: Optional[str] = None
    notes: Optional[str] = None


# --- Results ---

@dataclass(frozen=True)
class RecipeInfo(_Record):
    name: str
    total_volume: float
    total_volume_unit: VolumeUnit
    notes: Optional[str] = None


@dataclass(frozen=True)
class CalculatedComponent(_Record):
    """
    A computed row. ``volume_needed`` is always in liters; ``display`` is
    the human-readable amount in ``display_unit`` (a mass unit for stock
    solutions).
    """
    source: ComponentInput
    volume_needed: float
    display_unit: Union[VolumeUnit, MassUnit]
    display: str
    percent_of_total: float
    mass_equivalent: Optional[float] = None
    mass_unit: Optional[MassUnit] = None


@dataclass(frozen=True)
class CalculationResult(_Record):
    recipe: RecipeInfo
    components: List[CalculatedComponent] = field(default_factory=list)
    raw_solvent_volume: float = 0.0  # liters, negative on overflow
    solvent_volume: float = 0.0  # liters, clamped at 0
    solvent_display: str = ""
    warnings: List[CalcWarning] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)
    calculation_steps: Optional[List[CalculationStep]] = None
    dilution_factor: Optional[float] = None

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class SerialDilutionStep(_Record):
    step_number: int
    name: str
    from_concentration: float
    to_concentration: float
    concentration_unit: ConcentrationUnit
    stock_volume: float
    solvent_volume: float
    total_volume: float
    volume_unit: VolumeUnit
    dilution_factor: float
    description: str


@dataclass(frozen=True)
class CellAdditionInstruction(_Record):
    target_concentration: float
    concentration_unit: ConcentrationUnit
    step_to_use: int
    step_name: str
    addition_volume: float
    volume_unit: VolumeUnit
    final_cell_volume: float
    description: str


@dataclass(frozen=True)
class ProtocolSummary(_Record):
    total_steps: int
    total_volume: float
    volume_unit: VolumeUnit
    highest_dilution_factor: float
    estimated_time: str
    required_tubes: int


@dataclass(frozen=True)
class ExportData(_Record):
    dilution_table: List[List[str]]
    addition_table: List[List[str]]
    csv_format: str
    markdown_format: str
    text_format: str


@dataclass(frozen=True)
class SerialDilutionResult(_Record):
    recipe: RecipeInfo
    steps: List[SerialDilutionStep] = field(default_factory=list)
    cell_addition_instructions: List[CellAdditionInstruction] = field(default_factory=list)
    warnings: List[CalcWarning] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)
    protocol_summary: Optional[ProtocolSummary] = None
    export_data: Optional[ExportData] = None

    @property
    def ok(self) -> bool:
        return not self.errors
