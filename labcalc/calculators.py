"""
Calculator functions for buffers, stock solutions and dilutions.

Each function here is a pure calculator:
- Takes one input record and an EngineConfig.
- Returns a result record (``.to_dict()`` gives JSON-ready data).
- Never raises for bad numbers: problems come back as ValidationError
  records, advisory notes as CalcWarning records.

Used by:
- router.run_calculation (named tools / batch rows)
- any caller that builds the input records itself
"""

from __future__ import annotations

import logging
import math
from typing import List, NamedTuple, Optional, Tuple

from labcalc.config import DEFAULT_CONFIG, EngineConfig
from labcalc.exports import build_export_data
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
from labcalc.units import (
    MassUnit,
    MissingMolecularWeight,
    UnitConversionError,
    VolumeUnit,
    convert_volume,
    dilution_factor,
    format_number,
    format_quantity,
    from_molarity,
    optimize_mass,
    to_molarity,
)

logger = logging.getLogger(__name__)


class ImpossibleConcentration(ValueError):
    """Raised when a final concentration is above its stock concentration."""


# Thresholds
SMALL_DISPLAY_VOLUME = 0.1  # in the configured display unit
SMALL_SOLVENT_FRACTION = 0.1
HIGH_DILUTION_FACTOR = 1000.0
LOW_DILUTION_FACTOR = 2.0
SMALL_STOCK_MASS_G = 0.001
LARGE_STOCK_MASS_G = 10.0
SMALL_STOCK_VOLUME_L = 0.001
MIN_PIPETTE_UL = 1.0
MINUTES_PER_STEP = 3


def _check_positive(
    errors: List[ValidationError],
    value,
    field: str,
    label: str,
    invalid_type: ErrorType,
    component_index: Optional[int] = None,
) -> None:
    """Append an error unless ``value`` is a finite number > 0."""
    if value is None:
        errors.append(ValidationError(
            ErrorType.MISSING_REQUIRED_FIELD, f"{label} is required", field, component_index))
    elif isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        errors.append(ValidationError(
            invalid_type, f"{label} must be a finite number", field, component_index))
    elif value <= 0:
        errors.append(ValidationError(
            ErrorType.NEGATIVE_VALUE, f"{label} must be greater than 0", field, component_index))


def _conversion_error(exc: UnitConversionError, field: str) -> ValidationError:
    if isinstance(exc, MissingMolecularWeight):
        return ValidationError(ErrorType.INVALID_MOLECULAR_WEIGHT, str(exc), "molecular_weight")
    return ValidationError(ErrorType.INVALID_CONCENTRATION, str(exc), field)


# ------------------------------------------------------------
# 1) BUFFER RECIPE (N components, C1V1 = C2V2 each)
# ------------------------------------------------------------

class _ComponentOutcome(NamedTuple):
    """Either a computed component or the error that replaced it."""
    component: Optional[CalculatedComponent]
    error: Optional[ValidationError]
    warnings: List[CalcWarning]
    steps: List[Tuple[str, str, float, str]]  # description, formula, result, unit


def _validate_buffer(data: BufferInput) -> List[ValidationError]:
    errors: List[ValidationError] = []
    _check_positive(errors, data.total_volume, "total_volume", "Total volume", ErrorType.INVALID_VOLUME)

    if not data.components:
        errors.append(ValidationError(
            ErrorType.MISSING_REQUIRED_FIELD, "At least one component is required", "components"))
        return errors

    for index, component in enumerate(data.components):
        if not component.name or not component.name.strip():
            errors.append(ValidationError(
                ErrorType.MISSING_REQUIRED_FIELD, "Component name is required", "name", index))
        _check_positive(errors, component.stock_concentration, "stock_concentration",
                        "Stock concentration", ErrorType.INVALID_CONCENTRATION, index)
        _check_positive(errors, component.final_concentration, "final_concentration",
                        "Final concentration", ErrorType.INVALID_CONCENTRATION, index)
    return errors


def _component_molarities(component: ComponentInput) -> Tuple[float, float]:
    stock_m = to_molarity(component.stock_concentration, component.stock_unit, component.molecular_weight)
    final_m = to_molarity(component.final_concentration, component.final_unit, component.molecular_weight)
    if final_m > stock_m:
        raise ImpossibleConcentration(
            f"Final concentration ({component.final_concentration} {component.final_unit.symbol}) "
            f"cannot be higher than stock concentration "
            f"({component.stock_concentration} {component.stock_unit.symbol})"
        )
    return stock_m, final_m


def _calc_component(
    component: ComponentInput,
    index: int,
    total_volume_l: float,
    config: EngineConfig,
) -> _ComponentOutcome:
    try:
        stock_m, final_m = _component_molarities(component)
    except (ImpossibleConcentration, UnitConversionError) as exc:
        logger.debug("component %d (%s) failed: %s", index, component.name, exc)
        error = ValidationError(
            ErrorType.CALCULATION_ERROR,
            f"Error calculating component {component.name}: {exc}",
            component_index=index,
        )
        return _ComponentOutcome(None, error, [], [])

    # V1 = C2 * V2 / C1
    required_l = final_m * total_volume_l / stock_m
    display_unit = config.default_volume_unit
    required = convert_volume(required_l, VolumeUnit.LITER, display_unit)
    dp = config.decimal_places

    steps = [
        (
            f"Calculate {component.name} volume",
            f"V₁ = (C₂ × V₂) / C₁ = ({final_m} M × {total_volume_l} L) / {stock_m} M",
            required_l,
            VolumeUnit.LITER.symbol,
        ),
        (
            f"Convert to {display_unit.symbol}",
            f"{required_l} L × {display_unit.factor:g}",
            required,
            display_unit.symbol,
        ),
    ]

    warnings: List[CalcWarning] = []
    if required < SMALL_DISPLAY_VOLUME:
        warnings.append(CalcWarning(
            WarningType.SMALL_VOLUME,
            f"Very small volume required for {component.name} "
            f"({format_number(required, dp)} {display_unit.symbol}). Consider using a more dilute stock.",
            Severity.MEDIUM,
            index,
        ))
    factor = dilution_factor(stock_m, final_m)
    if factor > HIGH_DILUTION_FACTOR:
        warnings.append(CalcWarning(
            WarningType.UNUSUAL_DILUTION_FACTOR,
            f"Very high dilution factor for {component.name} ({round(factor)}×). "
            f"Consider using a more dilute stock.",
            Severity.LOW,
            index,
        ))

    calculated = CalculatedComponent(
        source=component,
        volume_needed=required_l,
        display_unit=display_unit,
        display=format_quantity(required, display_unit, dp),
        percent_of_total=round(required_l / total_volume_l * 100, 2),
    )
    return _ComponentOutcome(calculated, None, warnings, steps)


def calc_buffer(data: BufferInput, config: Optional[EngineConfig] = None) -> CalculationResult:
    """
    Volumes of each stock needed for a multi-component buffer.

    Parameters
    ----------
    data : BufferInput
        Total volume and the component rows (stock → final concentration).
    config : EngineConfig, optional
        Display unit, decimal places and step narration.

    Returns
    -------
    CalculationResult
        One CalculatedComponent per computable row. A row whose final
        concentration exceeds its stock becomes a CALCULATION_ERROR with
        its index; the other rows are still computed.
    """
    config = config or DEFAULT_CONFIG
    volume_unit = data.volume_unit or config.default_volume_unit
    recipe = RecipeInfo(
        name=data.name or "Untitled Buffer",
        total_volume=data.total_volume,
        total_volume_unit=volume_unit,
        notes=data.notes,
    )

    errors = _validate_buffer(data)
    if errors:
        logger.info("buffer %r rejected with %d validation error(s)", recipe.name, len(errors))
        return CalculationResult(recipe=recipe, errors=errors)

    total_l = convert_volume(data.total_volume, volume_unit, VolumeUnit.LITER)
    outcomes = [
        _calc_component(component, index, total_l, config)
        for index, component in enumerate(data.components)
    ]
    components = [o.component for o in outcomes if o.component is not None]
    errors = [o.error for o in outcomes if o.error is not None]
    warnings = [w for o in outcomes for w in o.warnings]

    raw_solvent_l = total_l - sum(c.volume_needed for c in components)
    solvent_l = max(0.0, raw_solvent_l)
    solvent = convert_volume(solvent_l, VolumeUnit.LITER, volume_unit)
    logger.debug(
        "buffer %r: total=%g L, components=%g L, solvent=%g L",
        recipe.name, total_l, total_l - raw_solvent_l, raw_solvent_l,
    )

    if raw_solvent_l < 0:
        warnings.append(CalcWarning(
            WarningType.VOLUME_OVERFLOW,
            "Component volumes exceed total volume. Consider increasing total volume.",
            Severity.HIGH,
        ))
    if raw_solvent_l < total_l * SMALL_SOLVENT_FRACTION:
        warnings.append(CalcWarning(
            WarningType.SMALL_VOLUME,
            "Solvent volume is very small. Consider reducing component concentrations.",
            Severity.MEDIUM,
        ))

    steps = None
    if config.show_calculation_steps:
        narrated = [s for o in outcomes for s in o.steps]
        narrated.append((
            "Calculate solvent volume",
            "Solvent volume = Total volume - Sum of component volumes",
            solvent,
            volume_unit.symbol,
        ))
        steps = [
            CalculationStep(step=n, description=d, formula=f, result=r, unit=u)
            for n, (d, f, r, u) in enumerate(narrated, 1)
        ]

    return CalculationResult(
        recipe=recipe,
        components=components,
        raw_solvent_volume=raw_solvent_l,
        solvent_volume=solvent_l,
        solvent_display=format_quantity(solvent, volume_unit, config.decimal_places),
        warnings=warnings,
        errors=errors,
        calculation_steps=steps,
    )


# ------------------------------------------------------------
# 2) STOCK SOLUTION FROM SOLID (mass = C × V × MW)
# ------------------------------------------------------------

def calc_stock_solution(data: StockInput, config: Optional[EngineConfig] = None) -> CalculationResult:
    """
    Mass of solid to weigh for a stock solution, corrected for purity.

    mass (g) = C (mol/L) × V (L) × MW (g/mol), divided by purity/100 when
    a purity below 100 % is given. The mass is shown in g, mg, µg or ng,
    whichever gives a readable number.
    """
    config = config or DEFAULT_CONFIG
    dp = config.decimal_places
    recipe = RecipeInfo(
        name=data.name or f"{data.reagent_name} Stock Solution",
        total_volume=data.volume,
        total_volume_unit=data.volume_unit,
        notes=data.notes,
    )

    errors: List[ValidationError] = []
    if not data.reagent_name or not data.reagent_name.strip():
        errors.append(ValidationError(
            ErrorType.MISSING_REQUIRED_FIELD, "Reagent name is required", "reagent_name"))
    mw = data.molecular_weight
    if (mw is None or isinstance(mw, bool) or not isinstance(mw, (int, float))
            or not math.isfinite(mw) or mw <= 0):
        errors.append(ValidationError(
            ErrorType.INVALID_MOLECULAR_WEIGHT,
            "Valid molecular weight is required for stock solution calculation",
            "molecular_weight",
        ))
    _check_positive(errors, data.target_concentration, "target_concentration",
                    "Target concentration", ErrorType.INVALID_CONCENTRATION)
    _check_positive(errors, data.volume, "volume", "Volume", ErrorType.INVALID_VOLUME)
    if data.purity is not None and not (0 < data.purity <= 100):
        errors.append(ValidationError(
            ErrorType.INVALID_CONCENTRATION, "Purity must be between 0 and 100 %", "purity"))

    if not errors:
        try:
            concentration_m = to_molarity(data.target_concentration, data.concentration_unit, mw)
        except UnitConversionError as exc:
            errors.append(_conversion_error(exc, "concentration_unit"))

    if errors:
        logger.info("stock %r rejected with %d validation error(s)", recipe.name, len(errors))
        return CalculationResult(recipe=recipe, errors=errors)

    volume_l = convert_volume(data.volume, data.volume_unit, VolumeUnit.LITER)
    pure_mass_g = concentration_m * volume_l * mw
    mass_g = pure_mass_g
    if data.purity is not None and 0 < data.purity < 100:
        mass_g = pure_mass_g / (data.purity / 100)

    shown_mass, mass_unit = optimize_mass(mass_g, MassUnit.GRAM, dp)
    solvent = (data.solvent or "").strip() or "water"

    steps = None
    if config.show_calculation_steps:
        steps = [CalculationStep(
            step=1,
            description="Calculate required mass",
            formula=(
                f"Mass = Concentration × Volume × Molecular Weight = "
                f"{concentration_m} mol/L × {volume_l} L × {mw} g/mol"
            ),
            result=pure_mass_g,
            unit=MassUnit.GRAM.symbol,
        )]
        if data.purity is not None and data.purity != 100:
            steps.append(CalculationStep(
                step=2,
                description="Adjust for purity",
                formula=f"Adjusted mass = {pure_mass_g} g / ({data.purity}% / 100%)",
                result=mass_g,
                unit=MassUnit.GRAM.symbol,
            ))
        steps.append(CalculationStep(
            step=len(steps) + 1,
            description=(
                f"Dissolve {format_number(shown_mass, dp)} {mass_unit.symbol} of "
                f"{data.reagent_name} in {solvent} and make up to "
                f"{format_number(data.volume, dp)} {data.volume_unit.symbol}"
            ),
            result=data.volume,
            unit=data.volume_unit.symbol,
        ))

    warnings: List[CalcWarning] = []
    if mass_g < SMALL_STOCK_MASS_G:
        warnings.append(CalcWarning(
            WarningType.SMALL_VOLUME,
            "Very small mass required. Consider making a more dilute stock solution.",
            Severity.MEDIUM,
        ))
    if mass_g > LARGE_STOCK_MASS_G:
        warnings.append(CalcWarning(
            WarningType.LARGE_VOLUME,
            "Large mass required. Consider making a smaller volume or more concentrated stock.",
            Severity.LOW,
        ))

    source = ComponentInput(
        name=data.reagent_name,
        stock_concentration=data.target_concentration,
        stock_unit=data.concentration_unit,
        final_concentration=data.target_concentration,
        final_unit=data.concentration_unit,
        molecular_weight=mw,
    )
    component = CalculatedComponent(
        source=source,
        volume_needed=volume_l,
        display_unit=mass_unit,
        display=f"{format_number(shown_mass, dp)} {mass_unit.symbol}",
        percent_of_total=100.0,
        mass_equivalent=shown_mass,
        mass_unit=mass_unit,
    )
    logger.debug("stock %r: %g g of %s in %g L", recipe.name, mass_g, data.reagent_name, volume_l)

    # by convention the whole volume is solvent + solute
    return CalculationResult(
        recipe=recipe,
        components=[component],
        raw_solvent_volume=volume_l,
        solvent_volume=volume_l,
        solvent_display=format_quantity(data.volume, data.volume_unit, dp),
        warnings=warnings,
        calculation_steps=steps,
    )


# ------------------------------------------------------------
# 3) SINGLE DILUTION (C1V1 = C2V2)
# ------------------------------------------------------------

def calc_dilution(data: DilutionInput, config: Optional[EngineConfig] = None) -> CalculationResult:
    """
    Single dilution using C1 × V1 = C2 × V2.

    Stock and final concentrations may be in different units; both are
    normalised to mol/L first (mass concentrations need
    ``data.molecular_weight``).

    Returns
    -------
    CalculationResult
        One component holding the stock volume (V1), the solvent to top
        up with, and ``dilution_factor`` = C1 / C2.
    """
    config = config or DEFAULT_CONFIG
    dp = config.decimal_places
    recipe = RecipeInfo(
        name=data.name or "Dilution",
        total_volume=data.final_volume,
        total_volume_unit=data.volume_unit,
        notes=data.notes,
    )

    errors: List[ValidationError] = []
    _check_positive(errors, data.stock_concentration, "stock_concentration",
                    "Stock concentration", ErrorType.INVALID_CONCENTRATION)
    _check_positive(errors, data.final_concentration, "final_concentration",
                    "Final concentration", ErrorType.INVALID_CONCENTRATION)
    _check_positive(errors, data.final_volume, "final_volume", "Final volume", ErrorType.INVALID_VOLUME)

    if not errors:
        try:
            stock_m = to_molarity(data.stock_concentration, data.stock_unit, data.molecular_weight)
            final_m = to_molarity(data.final_concentration, data.final_unit, data.molecular_weight)
        except UnitConversionError as exc:
            errors.append(_conversion_error(exc, "final_unit"))
        else:
            if final_m >= stock_m:
                errors.append(ValidationError(
                    ErrorType.INVALID_CONCENTRATION,
                    f"Final concentration ({data.final_concentration} {data.final_unit.symbol}) "
                    f"must be lower than stock concentration "
                    f"({data.stock_concentration} {data.stock_unit.symbol})",
                    "final_concentration",
                ))

    if errors:
        logger.info("dilution %r rejected with %d validation error(s)", recipe.name, len(errors))
        return CalculationResult(recipe=recipe, errors=errors)

    volume_l = convert_volume(data.final_volume, data.volume_unit, VolumeUnit.LITER)
    stock_volume_l = final_m * volume_l / stock_m
    solvent_l = volume_l - stock_volume_l
    factor = dilution_factor(stock_m, final_m)

    stock_volume = convert_volume(stock_volume_l, VolumeUnit.LITER, data.volume_unit)
    solvent = convert_volume(solvent_l, VolumeUnit.LITER, data.volume_unit)

    warnings: List[CalcWarning] = []
    if factor < LOW_DILUTION_FACTOR:
        warnings.append(CalcWarning(
            WarningType.UNUSUAL_DILUTION_FACTOR,
            f"Dilution factor is only {format_number(factor, dp)}×. "
            f"Check that the stock and final concentrations are correct.",
            Severity.MEDIUM,
        ))
    if stock_volume_l < SMALL_STOCK_VOLUME_L:
        warnings.append(CalcWarning(
            WarningType.SMALL_VOLUME,
            f"Stock volume is {format_quantity(stock_volume, data.volume_unit, dp)}. "
            f"Small volumes are hard to pipette accurately; consider an intermediate dilution.",
            Severity.MEDIUM,
        ))

    steps = None
    if config.show_calculation_steps:
        steps = [
            CalculationStep(
                step=1,
                description="Calculate stock volume",
                formula=f"V₁ = (C₂ × V₂) / C₁ = ({final_m} M × {volume_l} L) / {stock_m} M",
                result=stock_volume,
                unit=data.volume_unit.symbol,
            ),
            CalculationStep(
                step=2,
                description="Calculate solvent volume",
                formula=f"Solvent = V₂ - V₁ = {volume_l} L - {stock_volume_l} L",
                result=solvent,
                unit=data.volume_unit.symbol,
            ),
            CalculationStep(
                step=3,
                description="Calculate dilution factor",
                formula=f"DF = C₁ / C₂ = {stock_m} M / {final_m} M",
                result=factor,
                unit="×",
            ),
        ]

    source = ComponentInput(
        name=data.name or "Stock",
        stock_concentration=data.stock_concentration,
        stock_unit=data.stock_unit,
        final_concentration=data.final_concentration,
        final_unit=data.final_unit,
        molecular_weight=data.molecular_weight,
    )
    component = CalculatedComponent(
        source=source,
        volume_needed=stock_volume_l,
        display_unit=data.volume_unit,
        display=format_quantity(stock_volume, data.volume_unit, dp),
        percent_of_total=round(stock_volume_l / volume_l * 100, 2),
    )
    return CalculationResult(
        recipe=recipe,
        components=[component],
        raw_solvent_volume=solvent_l,
        solvent_volume=solvent_l,
        solvent_display=format_quantity(solvent, data.volume_unit, dp),
        warnings=warnings,
        calculation_steps=steps,
        dilution_factor=factor,
    )


# ------------------------------------------------------------
# 4) SERIAL DILUTION FOR CELL ASSAYS
# ------------------------------------------------------------

def _format_duration(minutes: int) -> str:
    if minutes > 60:
        return f"{minutes // 60}h {minutes % 60}min"
    return f"{minutes} min"


def calc_serial_dilution(
    data: SerialDilutionInput,
    config: Optional[EngineConfig] = None,
) -> SerialDilutionResult:
    """
    Plan a chain of dilutions whose tubes are later added to cells.

    Each target is the concentration wanted in the well. Adding
    ``addition_volume`` of a tube to ``cell_volume`` of suspension dilutes
    it again, so each tube must hold

        target × (cell_volume + addition_volume) / addition_volume

    Tube concentrations are sorted high → low and made one from the
    previous: step 1 draws from the stock, step k+1 from tube k.

    Returns
    -------
    SerialDilutionResult
        steps, which tube to add for every target, protocol summary and
        export tables.
    """
    config = config or DEFAULT_CONFIG
    dp = config.decimal_places
    recipe = RecipeInfo(
        name=data.name or "Serial Dilution",
        total_volume=data.dilution_volume,
        total_volume_unit=data.dilution_volume_unit,
        notes=data.notes,
    )

    errors: List[ValidationError] = []
    _check_positive(errors, data.stock_concentration, "stock_concentration",
                    "Stock concentration", ErrorType.INVALID_CONCENTRATION)
    _check_positive(errors, data.cell_volume, "cell_volume", "Cell volume", ErrorType.INVALID_VOLUME)
    _check_positive(errors, data.addition_volume, "addition_volume",
                    "Addition volume", ErrorType.INVALID_VOLUME)
    _check_positive(errors, data.dilution_volume, "dilution_volume",
                    "Dilution volume", ErrorType.INVALID_VOLUME)
    if not data.target_concentrations:
        errors.append(ValidationError(
            ErrorType.MISSING_REQUIRED_FIELD,
            "At least one target concentration is required",
            "target_concentrations",
        ))
    for index, target in enumerate(data.target_concentrations or ()):
        _check_positive(errors, target, "target_concentrations",
                        f"Target concentration #{index + 1}", ErrorType.INVALID_CONCENTRATION, index)

    if not errors:
        try:
            stock_m = to_molarity(data.stock_concentration, data.stock_unit, data.molecular_weight)
            targets_m = [
                to_molarity(t, data.target_unit, data.molecular_weight)
                for t in data.target_concentrations
            ]
            stock_in_target_unit = from_molarity(stock_m, data.target_unit, data.molecular_weight)
        except UnitConversionError as exc:
            errors.append(_conversion_error(exc, "target_unit"))

    if not errors:
        cell_l = convert_volume(data.cell_volume, data.cell_volume_unit, VolumeUnit.LITER)
        addition_l = convert_volume(data.addition_volume, data.addition_volume_unit, VolumeUnit.LITER)
        correction = (cell_l + addition_l) / addition_l
        required_m = [t * correction for t in targets_m]
        logger.debug("serial dilution %r: correction ×%g, tube conc. %s M",
                     recipe.name, correction, required_m)
        for index, (target, needed) in enumerate(zip(data.target_concentrations, required_m)):
            if needed >= stock_m:
                needed_shown = format_number(from_molarity(needed, data.target_unit, data.molecular_weight), dp)
                errors.append(ValidationError(
                    ErrorType.INVALID_CONCENTRATION,
                    f"Target {target} {data.target_unit.symbol} needs {needed_shown} "
                    f"{data.target_unit.symbol} in the tube, which is not below the stock "
                    f"concentration ({data.stock_concentration} {data.stock_unit.symbol})",
                    "target_concentrations",
                    index,
                ))

    if errors:
        logger.info("serial dilution %r rejected with %d validation error(s)", recipe.name, len(errors))
        return SerialDilutionResult(recipe=recipe, errors=errors)

    tube_concs = sorted(set(required_m), reverse=True)
    volume = data.dilution_volume
    volume_unit = data.dilution_volume_unit
    conc_unit = data.target_unit

    steps: List[SerialDilutionStep] = []
    warnings: List[CalcWarning] = []
    current_m = stock_m
    current = stock_in_target_unit
    source_name = "stock"
    for number, tube_m in enumerate(tube_concs, 1):
        factor = dilution_factor(current_m, tube_m)
        stock_volume = volume / factor
        solvent_volume = volume - stock_volume
        to_conc = from_molarity(tube_m, conc_unit, data.molecular_weight)
        name = f"Tube {number}"
        description = (
            f"Take {format_number(stock_volume, dp)} {volume_unit.symbol} of {source_name} "
            f"({format_number(current, dp)} {conc_unit.symbol}) and add "
            f"{format_number(solvent_volume, dp)} {volume_unit.symbol} of solvent to make "
            f"{format_number(volume, dp)} {volume_unit.symbol} at "
            f"{format_number(to_conc, dp)} {conc_unit.symbol}"
        )
        steps.append(SerialDilutionStep(
            step_number=number,
            name=name,
            from_concentration=current,
            to_concentration=to_conc,
            concentration_unit=conc_unit,
            stock_volume=stock_volume,
            solvent_volume=solvent_volume,
            total_volume=volume,
            volume_unit=volume_unit,
            dilution_factor=factor,
            description=description,
        ))

        stock_volume_ul = convert_volume(stock_volume, volume_unit, VolumeUnit.MICROLITER)
        if stock_volume_ul < MIN_PIPETTE_UL:
            warnings.append(CalcWarning(
                WarningType.SMALL_VOLUME,
                f"{name}: stock volume {format_number(stock_volume_ul, dp)} µL is below 1 µL. "
                f"Use a larger dilution volume or an intermediate step.",
                Severity.HIGH,
                number - 1,
            ))
        if factor > HIGH_DILUTION_FACTOR:
            warnings.append(CalcWarning(
                WarningType.UNUSUAL_DILUTION_FACTOR,
                f"{name}: dilution factor {round(factor)}× is unusually high.",
                Severity.MEDIUM,
                number - 1,
            ))

        current_m = tube_m
        current = to_conc
        source_name = name

    final_cell_volume = convert_volume(cell_l + addition_l, VolumeUnit.LITER, data.addition_volume_unit)
    instructions = []
    for target, needed in zip(data.target_concentrations, required_m):
        step = steps[tube_concs.index(needed)]
        instructions.append(CellAdditionInstruction(
            target_concentration=target,
            concentration_unit=conc_unit,
            step_to_use=step.step_number,
            step_name=step.name,
            addition_volume=data.addition_volume,
            volume_unit=data.addition_volume_unit,
            final_cell_volume=final_cell_volume,
            description=(
                f"Add {format_number(data.addition_volume, dp)} {data.addition_volume_unit.symbol} "
                f"of {step.name} to {format_number(data.cell_volume, dp)} "
                f"{data.cell_volume_unit.symbol} of cells for {format_number(target, dp)} "
                f"{conc_unit.symbol}"
            ),
        ))

    summary = ProtocolSummary(
        total_steps=len(steps),
        total_volume=sum(s.total_volume for s in steps),
        volume_unit=volume_unit,
        highest_dilution_factor=max(s.dilution_factor for s in steps),
        estimated_time=_format_duration(len(steps) * MINUTES_PER_STEP),
        required_tubes=len(steps) + 1,  # + stock tube
    )

    return SerialDilutionResult(
        recipe=recipe,
        steps=steps,
        cell_addition_instructions=instructions,
        warnings=warnings,
        protocol_summary=summary,
        export_data=build_export_data(steps, instructions, config),
    )
