import pytest

from labcalc import (
    ConcentrationUnit as C,
    ErrorType,
    MassUnit,
    StockInput,
    VolumeUnit as V,
    WarningType,
    calc_stock_solution,
)


def nacl_stock(**overrides):
    fields = dict(
        reagent_name="NaCl",
        molecular_weight=58.44,
        target_concentration=1,
        concentration_unit=C.MOLAR,
        volume=100,
        volume_unit=V.MILLILITER,
    )
    fields.update(overrides)
    return StockInput(**fields)


def test_mass_for_molar_stock(config):
    result = calc_stock_solution(nacl_stock(), config)

    assert result.errors == []
    assert result.warnings == []
    component = result.components[0]
    # 1 mol/L × 0.1 L × 58.44 g/mol
    assert component.mass_equivalent == pytest.approx(5.844)
    assert component.mass_unit is MassUnit.GRAM
    assert component.display_unit is MassUnit.GRAM
    assert component.display == "5.84 g"
    assert component.volume_needed == pytest.approx(0.1)
    assert component.percent_of_total == 100.0
    assert result.solvent_display == "100 mL"
    assert result.recipe.name == "NaCl Stock Solution"


def test_purity_correction(config):
    pure = calc_stock_solution(nacl_stock(), config).components[0].mass_equivalent
    half = calc_stock_solution(nacl_stock(purity=50), config)

    assert half.components[0].mass_equivalent == pytest.approx(pure / 0.5)
    assert [w.type for w in half.warnings] == [WarningType.LARGE_VOLUME]
    assert half.warnings[0].severity.value == "low"


def test_full_purity_changes_nothing(config):
    assert calc_stock_solution(nacl_stock(purity=100), config) == calc_stock_solution(nacl_stock(), config)


@pytest.mark.parametrize("purity", [0, -5, 120])
def test_purity_out_of_range(config, purity):
    result = calc_stock_solution(nacl_stock(purity=purity), config)
    assert result.components == []
    assert [(e.type, e.field) for e in result.errors] == [(ErrorType.INVALID_CONCENTRATION, "purity")]


def test_small_mass_switches_unit(config):
    result = calc_stock_solution(
        nacl_stock(target_concentration=1, concentration_unit=C.MILLIMOLAR, volume=1), config)

    component = result.components[0]
    assert component.mass_unit is MassUnit.MICROGRAM
    assert component.display == "58.44 µg"
    assert [w.type for w in result.warnings] == [WarningType.SMALL_VOLUME]


def test_mass_concentration_target(config):
    # 10 mg/mL in 10 mL is 100 mg whatever the molecular weight
    result = calc_stock_solution(
        nacl_stock(target_concentration=10, concentration_unit=C.MG_PER_ML, volume=10,
                   molecular_weight=100), config)
    assert result.components[0].display == "100 mg"


@pytest.mark.parametrize("mw", [None, 0, -1, float("nan")])
def test_invalid_molecular_weight(config, mw):
    result = calc_stock_solution(nacl_stock(molecular_weight=mw), config)
    assert result.components == []
    assert [e.type for e in result.errors] == [ErrorType.INVALID_MOLECULAR_WEIGHT]


def test_ratio_unit_is_rejected(config):
    result = calc_stock_solution(nacl_stock(concentration_unit=C.PERCENT_VV), config)
    assert [(e.type, e.field) for e in result.errors] == [
        (ErrorType.INVALID_CONCENTRATION, "concentration_unit")]


def test_errors_accumulate(config):
    result = calc_stock_solution(
        nacl_stock(reagent_name="", target_concentration=0, volume=None), config)
    assert [e.field for e in result.errors] == ["reagent_name", "target_concentration", "volume"]
    assert result.errors[2].type is ErrorType.MISSING_REQUIRED_FIELD


def test_steps(steps_config):
    steps = calc_stock_solution(nacl_stock(), steps_config).calculation_steps
    assert [s.step for s in steps] == [1, 2]
    assert steps[0].description == "Calculate required mass"
    assert steps[0].result == pytest.approx(5.844)
    assert steps[0].unit == "g"
    assert steps[1].description == "Dissolve 5.84 g of NaCl in water and make up to 100 mL"
    assert steps[1].result == 100
    assert steps[1].unit == "mL"

    steps = calc_stock_solution(nacl_stock(purity=99.5), steps_config).calculation_steps
    assert [s.step for s in steps] == [1, 2, 3]
    assert steps[1].description == "Adjust for purity"
    assert steps[1].result == pytest.approx(5.844 / 0.995)
    assert steps[2].description.startswith("Dissolve 5.87 g of NaCl")


def test_solvent_named_in_steps(steps_config):
    steps = calc_stock_solution(nacl_stock(solvent="DMSO"), steps_config).calculation_steps
    assert steps[-1].description == "Dissolve 5.84 g of NaCl in DMSO and make up to 100 mL"

    steps = calc_stock_solution(nacl_stock(solvent=" "), steps_config).calculation_steps
    assert " in water " in steps[-1].description


def test_mass_just_under_a_gram_shows_in_grams(config):
    # 0.9999 g rounds to 1 at two decimals, so it reads "1 g" and not "999.9 mg"
    result = calc_stock_solution(nacl_stock(molecular_weight=9.999), config)
    assert result.components[0].display == "1 g"
    assert result.components[0].mass_unit is MassUnit.GRAM


def test_idempotent(config):
    data = nacl_stock(purity=98)
    assert calc_stock_solution(data, config) == calc_stock_solution(data, config)


def test_to_dict(config):
    out = calc_stock_solution(nacl_stock(name="NaCl 1 M"), config).to_dict()
    assert out["recipe"]["name"] == "NaCl 1 M"
    assert out["components"][0]["mass_unit"] == "g"
    assert out["components"][0]["source"]["molecular_weight"] == 58.44
