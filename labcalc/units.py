"""
Unit families and conversions for the lab solution calculators.

Every unit carries its factor relative to the base unit of its family:
    value_in_unit = value_in_base * factor

Conversions always go through the base unit (L, g, M or g/L), so any
pair of units in a family converts without a pairwise table.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Tuple, Union


class UnitConversionError(ValueError):
    """Raised when a value cannot be expressed in the requested unit."""


class UnsupportedConversion(UnitConversionError):
    """Raised when two units share no conversion path."""


class MissingMolecularWeight(UnitConversionError):
    """Raised when a mass-based concentration needs a molecular weight."""


# ------------------------------------------------------------
# Unit families
# ------------------------------------------------------------

class _Unit(Enum):
    """Enum base: members are (symbol, factor, *aliases)."""

    def __init__(self, symbol: str, factor: float, *aliases: str):
        self.symbol = symbol
        self.factor = factor
        self.aliases = aliases

    def __str__(self) -> str:
        return self.symbol

    @classmethod
    def parse(cls, text):
        """Look up a unit by symbol or alias ("uL", "ul", "µl", ...)."""
        if isinstance(text, cls):
            return text
        key = str(text).strip().replace("μ", "µ")
        for unit in cls:
            if key == unit.symbol or key in unit.aliases:
                return unit
        lowered = key.lower()
        for unit in cls:
            if lowered == unit.symbol.lower() or lowered in (a.lower() for a in unit.aliases):
                return unit
        raise ValueError(f"Unknown {cls.__name__}: {text!r}")


class VolumeUnit(_Unit):
    LITER = ("L", 1.0, "l", "liter", "litre")
    MILLILITER = ("mL", 1e3, "ml", "milliliter")
    MICROLITER = ("µL", 1e6, "uL", "ul", "µl", "microliter")
    NANOLITER = ("nL", 1e9, "nl", "nanoliter")


class MassUnit(_Unit):
    GRAM = ("g", 1.0, "gram")
    MILLIGRAM = ("mg", 1e3, "milligram")
    MICROGRAM = ("µg", 1e6, "ug", "microgram")
    NANOGRAM = ("ng", 1e9, "nanogram")


class ConcentrationUnit(_Unit):
    # molar family, base M
    MOLAR = ("M", 1.0, "mol/L")
    MILLIMOLAR = ("mM", 1e3, "mmol/L")
    MICROMOLAR = ("µM", 1e6, "uM", "umol/L")
    NANOMOLAR = ("nM", 1e9, "nmol/L")
    # mass concentration, base g/L
    MG_PER_ML = ("mg/mL", 1.0, "mg/ml", "g/L", "mg_per_ml")
    UG_PER_ML = ("µg/mL", 1e3, "ug/mL", "ug/ml", "µg/ml", "mg/L", "ug_per_ml")
    PERCENT_WV = ("%w/v", 0.1, "% w/v", "%", "percent_wv")
    # ratios, no conversion path
    PERCENT_WW = ("%w/w", math.nan, "% w/w", "percent_ww")
    PERCENT_VV = ("%v/v", math.nan, "% v/v", "percent_vv")
    PPM = ("ppm", math.nan)
    PPB = ("ppb", math.nan)

    @property
    def is_molar(self) -> bool:
        return self in _MOLAR_UNITS

    @property
    def is_mass_concentration(self) -> bool:
        return self in _MASS_CONCENTRATION_UNITS


_MOLAR_UNITS = frozenset({
    ConcentrationUnit.MOLAR,
    ConcentrationUnit.MILLIMOLAR,
    ConcentrationUnit.MICROMOLAR,
    ConcentrationUnit.NANOMOLAR,
})

_MASS_CONCENTRATION_UNITS = frozenset({
    ConcentrationUnit.MG_PER_ML,
    ConcentrationUnit.UG_PER_ML,
    ConcentrationUnit.PERCENT_WV,
})


# ------------------------------------------------------------
# Conversions
# ------------------------------------------------------------

def convert_volume(value: float, from_unit: VolumeUnit, to_unit: VolumeUnit) -> float:
    if from_unit is to_unit:
        return value
    return value / from_unit.factor * to_unit.factor


def convert_mass(value: float, from_unit: MassUnit, to_unit: MassUnit) -> float:
    if from_unit is to_unit:
        return value
    return value / from_unit.factor * to_unit.factor


def convert_molar(
    value: float,
    from_unit: ConcentrationUnit,
    to_unit: ConcentrationUnit,
) -> float:
    """Convert between M, mM, µM and nM."""
    if not (from_unit.is_molar and to_unit.is_molar):
        raise UnsupportedConversion(
            f"Can only convert between molar units (M, mM, µM, nM), "
            f"not {from_unit.symbol} → {to_unit.symbol}"
        )
    if from_unit is to_unit:
        return value
    return value / from_unit.factor * to_unit.factor


def _check_molecular_weight(unit: ConcentrationUnit, molecular_weight: Optional[float]) -> float:
    if molecular_weight is None or not molecular_weight > 0 or not math.isfinite(molecular_weight):
        raise MissingMolecularWeight(
            f"Molecular weight is required to convert {unit.symbol} to molarity"
        )
    return float(molecular_weight)


def to_molarity(
    value: float,
    unit: ConcentrationUnit,
    molecular_weight: Optional[float] = None,
) -> float:
    """
    Express a concentration in mol/L.

    Molar units convert directly. mg/mL, µg/mL and % w/v go through g/L
    and need the molecular weight (g/mol). Ratio units (% w/w, % v/v,
    ppm, ppb) depend on density and are rejected.
    """
    if unit.is_molar:
        return convert_molar(value, unit, ConcentrationUnit.MOLAR)
    if unit.is_mass_concentration:
        mw = _check_molecular_weight(unit, molecular_weight)
        grams_per_liter = value / unit.factor
        return grams_per_liter / mw
    raise UnsupportedConversion(f"{unit.symbol} cannot be converted to molarity")


def from_molarity(
    value: float,
    unit: ConcentrationUnit,
    molecular_weight: Optional[float] = None,
) -> float:
    """Inverse of :func:`to_molarity`."""
    if unit.is_molar:
        return convert_molar(value, ConcentrationUnit.MOLAR, unit)
    if unit.is_mass_concentration:
        mw = _check_molecular_weight(unit, molecular_weight)
        return value * mw * unit.factor
    raise UnsupportedConversion(f"Molarity cannot be expressed in {unit.symbol}")


def can_convert_concentration(from_unit: ConcentrationUnit, to_unit: ConcentrationUnit) -> bool:
    """True when no molecular weight is needed to go from one unit to the other."""
    if from_unit is to_unit:
        return True
    if from_unit.is_molar and to_unit.is_molar:
        return True
    return from_unit.is_mass_concentration and to_unit.is_mass_concentration


def dilution_factor(stock_conc: float, final_conc: float) -> float:
    if final_conc <= 0:
        raise ValueError("Final concentration must be greater than 0")
    return stock_conc / final_conc


# ------------------------------------------------------------
# Display optimisation
# ------------------------------------------------------------

# (unit, min inclusive, max exclusive), largest unit first
_VOLUME_LADDER = (
    (VolumeUnit.LITER, 1.0, math.inf),
    (VolumeUnit.MILLILITER, 1.0, 1000.0),
    (VolumeUnit.MICROLITER, 1.0, 1000.0),
    (VolumeUnit.NANOLITER, 0.0, 1000.0),
)

_MASS_LADDER = (
    (MassUnit.GRAM, 1.0, math.inf),
    (MassUnit.MILLIGRAM, 1.0, 1000.0),
    (MassUnit.MICROGRAM, 1.0, 1000.0),
    (MassUnit.NANOGRAM, 0.0, 1000.0),
)


def _walk_ladder(value, unit, ladder, convert, decimal_places):
    for candidate, low, high in ladder:
        converted = convert(value, unit, candidate)
        # judge the number as it will be printed: 0.9999999 mL shows as "1 mL"
        shown = converted if decimal_places is None else round(converted, decimal_places)
        if low <= shown < high:
            return converted, candidate
    return value, unit


def optimize_volume(
    value: float,
    unit: VolumeUnit,
    decimal_places: Optional[int] = None,
) -> Tuple[float, VolumeUnit]:
    """
    Pick the volume unit that puts ``value`` in a readable range.

    With ``decimal_places`` the ranges are checked against the rounded
    value, so a number never prints as "1000" of a unit.
    """
    return _walk_ladder(value, unit, _VOLUME_LADDER, convert_volume, decimal_places)


def optimize_mass(
    value: float,
    unit: MassUnit = MassUnit.GRAM,
    decimal_places: Optional[int] = None,
) -> Tuple[float, MassUnit]:
    """Pick the mass unit that puts ``value`` in a readable range."""
    return _walk_ladder(value, unit, _MASS_LADDER, convert_mass, decimal_places)


def format_number(value: float, decimal_places: int = 2) -> str:
    """Round to ``decimal_places`` and drop trailing zeros ("3.50" → "3.5")."""
    if not math.isfinite(value):
        return str(value)
    text = f"{value:.{decimal_places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def format_quantity(
    value: float,
    unit: Union[VolumeUnit, MassUnit],
    decimal_places: int = 2,
) -> str:
    """Optimised "<number> <unit>" string for a volume or mass."""
    if isinstance(unit, VolumeUnit):
        shown, shown_unit = optimize_volume(value, unit, decimal_places)
    else:
        shown, shown_unit = optimize_mass(value, unit, decimal_places)
    return f"{format_number(shown, decimal_places)} {shown_unit.symbol}"
