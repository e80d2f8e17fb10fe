"""
labcalc: buffer, stock-solution and dilution calculators for the lab bench.

Main entry points
-----------------
calc_buffer : volumes of each stock for a multi-component buffer
calc_stock_solution : mass of solid to weigh for a stock solution
calc_dilution : single C1V1 = C2V2 dilution
calc_serial_dilution : serial dilution plan for cell assays

Basic usage
-----------
>>> from labcalc import BufferInput, ComponentInput, ConcentrationUnit as C, VolumeUnit as V, calc_buffer
>>> result = calc_buffer(BufferInput(
...     total_volume=100, volume_unit=V.MILLILITER,
...     components=[ComponentInput("NaCl", 5, C.MOLAR, 150, C.MILLIMOLAR)],
... ))
>>> result.components[0].display
'3 mL'
"""

__version__ = "0.1.0"

from labcalc.calculators import (
    ImpossibleConcentration,
    calc_buffer,
    calc_dilution,
    calc_serial_dilution,
    calc_stock_solution,
)
from labcalc.config import DEFAULT_CONFIG, EngineConfig, update_config
from labcalc.models import (
    BufferInput,
    CalcWarning,
    CalculatedComponent,
    CalculationResult,
    CalculationStep,
    CellAdditionInstruction,
    ComponentInput,
    DilutionInput,
    ErrorType,
    ExportData,
    ProtocolSummary,
    RecipeInfo,
    SerialDilutionInput,
    SerialDilutionResult,
    SerialDilutionStep,
    Severity,
    StockInput,
    ValidationError,
    WarningType,
)
from labcalc.router import CALC_REGISTRY, run_batch, run_calculation
from labcalc.units import (
    ConcentrationUnit,
    MassUnit,
    MissingMolecularWeight,
    UnitConversionError,
    UnsupportedConversion,
    VolumeUnit,
)

__all__ = [
    "BufferInput",
    "CALC_REGISTRY",
    "CalcWarning",
    "CalculatedComponent",
    "CalculationResult",
    "CalculationStep",
    "CellAdditionInstruction",
    "ComponentInput",
    "ConcentrationUnit",
    "DEFAULT_CONFIG",
    "DilutionInput",
    "EngineConfig",
    "ErrorType",
    "ExportData",
    "ImpossibleConcentration",
    "MassUnit",
    "MissingMolecularWeight",
    "ProtocolSummary",
    "RecipeInfo",
    "SerialDilutionInput",
    "SerialDilutionResult",
    "SerialDilutionStep",
    "Severity",
    "StockInput",
    "UnitConversionError",
    "UnsupportedConversion",
    "ValidationError",
    "VolumeUnit",
    "WarningType",
    "calc_buffer",
    "calc_dilution",
    "calc_serial_dilution",
    "calc_stock_solution",
    "run_batch",
    "run_calculation",
    "update_config",
]
