import pytest

from labcalc import (
    ConcentrationUnit as C,
    DilutionInput,
    ErrorType,
    Severity,
    VolumeUnit as V,
    WarningType,
    calc_dilution,
)
from labcalc.units import to_molarity


def dilution(stock=10, stock_unit=C.MILLIMOLAR, final=1, final_unit=C.MILLIMOLAR,
             volume=100, volume_unit=V.MILLILITER, **kwargs):
    return DilutionInput(stock, stock_unit, final, final_unit, volume, volume_unit, **kwargs)


def test_ten_fold(config):
    result = calc_dilution(dilution(), config)

    assert result.errors == []
    assert result.warnings == []
    component = result.components[0]
    assert component.volume_needed == pytest.approx(0.01)
    assert component.display == "10 mL"
    assert component.source.name == "Stock"
    assert result.solvent_volume == pytest.approx(0.09)
    assert result.solvent_display == "90 mL"
    assert result.dilution_factor == pytest.approx(10)


@pytest.mark.parametrize("stock, stock_unit, final, final_unit, volume, volume_unit", [
    (10, C.MILLIMOLAR, 1, C.MILLIMOLAR, 100, V.MILLILITER),
    (1, C.MOLAR, 250, C.MICROMOLAR, 2, V.LITER),
    (500, C.MICROMOLAR, 75, C.NANOMOLAR, 800, V.MICROLITER),
    (3, C.MILLIMOLAR, 1, C.MILLIMOLAR, 50, V.MILLILITER),
])
def test_c1v1_equals_c2v2(config, stock, stock_unit, final, final_unit, volume, volume_unit):
    result = calc_dilution(dilution(stock, stock_unit, final, final_unit, volume, volume_unit), config)
    v1 = result.components[0].volume_needed
    v2 = result.components[0].volume_needed + result.solvent_volume

    assert v2 == pytest.approx(result.recipe.total_volume / volume_unit.factor)
    assert to_molarity(stock, stock_unit) * v1 == pytest.approx(to_molarity(final, final_unit) * v2)
    assert result.dilution_factor == pytest.approx(
        to_molarity(stock, stock_unit) / to_molarity(final, final_unit))


def test_mixed_units(config):
    # 1 M → 500 µM in 50 mL: 25 µL of stock
    result = calc_dilution(dilution(1, C.MOLAR, 500, C.MICROMOLAR, 50), config)

    assert result.components[0].display == "25 µL"
    assert result.dilution_factor == pytest.approx(2000)
    small = [w for w in result.warnings if w.type is WarningType.SMALL_VOLUME]
    assert len(small) == 1
    assert small[0].severity is Severity.MEDIUM


def test_mass_stock_with_molecular_weight(config):
    # 58.44 mg/mL NaCl is 1 M
    result = calc_dilution(
        dilution(58.44, C.MG_PER_ML, 100, C.MILLIMOLAR, 10, molecular_weight=58.44), config)
    assert result.components[0].display == "1 mL"
    assert result.dilution_factor == pytest.approx(10)


def test_mass_stock_without_molecular_weight(config):
    result = calc_dilution(dilution(58.44, C.MG_PER_ML, 100, C.MILLIMOLAR, 10), config)
    assert result.components == []
    assert [(e.type, e.field) for e in result.errors] == [
        (ErrorType.INVALID_MOLECULAR_WEIGHT, "molecular_weight")]


def test_ratio_units_are_rejected(config):
    result = calc_dilution(dilution(10, C.PERCENT_VV, 1, C.PERCENT_VV), config)
    assert [e.type for e in result.errors] == [ErrorType.INVALID_CONCENTRATION]


@pytest.mark.parametrize("final, final_unit", [(10, C.MILLIMOLAR), (20, C.MILLIMOLAR), (0.01, C.MOLAR)])
def test_final_not_below_stock(config, final, final_unit):
    result = calc_dilution(dilution(final=final, final_unit=final_unit), config)
    assert result.components == []
    assert [(e.type, e.field) for e in result.errors] == [
        (ErrorType.INVALID_CONCENTRATION, "final_concentration")]


def test_validation_accumulates(config):
    result = calc_dilution(dilution(stock=-1, final=float("inf"), volume=0), config)
    assert [(e.type, e.field) for e in result.errors] == [
        (ErrorType.NEGATIVE_VALUE, "stock_concentration"),
        (ErrorType.INVALID_CONCENTRATION, "final_concentration"),
        (ErrorType.NEGATIVE_VALUE, "final_volume"),
    ]
    assert result.dilution_factor is None


def test_low_dilution_factor_warning(config):
    result = calc_dilution(dilution(final=6), config)
    assert [w.type for w in result.warnings] == [WarningType.UNUSUAL_DILUTION_FACTOR]
    assert "1.67×" in result.warnings[0].message


def test_steps(steps_config):
    steps = calc_dilution(dilution(name="Tris"), steps_config).calculation_steps
    assert [s.description for s in steps] == [
        "Calculate stock volume",
        "Calculate solvent volume",
        "Calculate dilution factor",
    ]
    assert steps[0].result == pytest.approx(10)
    assert steps[0].unit == "mL"
    assert steps[1].result == pytest.approx(90)
    assert steps[2].result == pytest.approx(10)
    assert steps[2].unit == "×"


def test_named_dilution(config):
    result = calc_dilution(dilution(name="Tris"), config)
    assert result.recipe.name == "Tris"
    assert result.components[0].source.name == "Tris"


def test_idempotent(config):
    data = dilution(1, C.MOLAR, 500, C.MICROMOLAR, 50)
    assert calc_dilution(data, config) == calc_dilution(data, config)
