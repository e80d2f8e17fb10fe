import pytest

from labcalc import (
    ConcentrationUnit as C,
    ErrorType,
    SerialDilutionInput,
    Severity,
    VolumeUnit as V,
    WarningType,
    calc_serial_dilution,
)


def plan(targets=(100, 10, 1, 0.1), stock=100, stock_unit=C.MILLIMOLAR, **overrides):
    fields = dict(
        stock_concentration=stock,
        stock_unit=stock_unit,
        target_concentrations=list(targets),
        target_unit=C.MICROMOLAR,
        cell_volume=200,
        cell_volume_unit=V.MICROLITER,
        addition_volume=2,
        addition_volume_unit=V.MICROLITER,
        dilution_volume=200,
        dilution_volume_unit=V.MICROLITER,
    )
    fields.update(overrides)
    return SerialDilutionInput(**fields)


def test_four_step_plan(config):
    result = calc_serial_dilution(plan(), config)

    assert result.errors == []
    assert result.warnings == []
    assert [s.name for s in result.steps] == ["Tube 1", "Tube 2", "Tube 3", "Tube 4"]
    # 2 µL into 200 µL of cells dilutes 101-fold
    assert [s.to_concentration for s in result.steps] == pytest.approx([10100, 1010, 101, 10.1])

    first = result.steps[0]
    assert first.from_concentration == pytest.approx(100000)
    assert first.dilution_factor == pytest.approx(100000 / 10100)
    assert first.stock_volume == pytest.approx(20.2)
    assert first.solvent_volume == pytest.approx(179.8)
    assert first.description.startswith("Take 20.2 µL of stock (100000 µM)")

    for step in result.steps[1:]:
        assert step.dilution_factor == pytest.approx(10)
        assert step.stock_volume == pytest.approx(20)
        assert step.total_volume == 200
        assert step.volume_unit is V.MICROLITER
    assert "of Tube 1 (10100 µM)" in result.steps[1].description


def test_chain_invariant(config):
    steps = calc_serial_dilution(plan(targets=(50, 7, 3, 0.2, 0.01)), config).steps
    for previous, step in zip(steps, steps[1:]):
        assert step.from_concentration == previous.to_concentration
        assert step.stock_volume + step.solvent_volume == pytest.approx(step.total_volume)


def test_targets_are_sorted(config):
    ordered = calc_serial_dilution(plan(targets=(100, 10, 1, 0.1)), config)
    shuffled = calc_serial_dilution(plan(targets=(1, 100, 0.1, 10)), config)

    assert shuffled.steps == ordered.steps
    # instructions keep the caller's order
    assert [i.target_concentration for i in shuffled.cell_addition_instructions] == [1, 100, 0.1, 10]
    assert [i.step_to_use for i in shuffled.cell_addition_instructions] == [3, 1, 4, 2]


def test_duplicate_targets_share_a_tube(config):
    result = calc_serial_dilution(plan(targets=(10, 10, 1)), config)
    assert len(result.steps) == 2
    assert [i.step_name for i in result.cell_addition_instructions] == ["Tube 1", "Tube 1", "Tube 2"]


def test_cell_addition_instructions(config):
    instructions = calc_serial_dilution(plan(), config).cell_addition_instructions

    assert len(instructions) == 4
    first = instructions[0]
    assert first.step_to_use == 1
    assert first.step_name == "Tube 1"
    assert first.addition_volume == 2
    assert first.volume_unit is V.MICROLITER
    assert first.final_cell_volume == pytest.approx(202)
    assert first.description == "Add 2 µL of Tube 1 to 200 µL of cells for 100 µM"


def test_protocol_summary(config):
    summary = calc_serial_dilution(plan(), config).protocol_summary

    assert summary.total_steps == 4
    assert summary.required_tubes == 5
    assert summary.total_volume == 800
    assert summary.volume_unit is V.MICROLITER
    assert summary.highest_dilution_factor == pytest.approx(10)
    assert summary.estimated_time == "12 min"


def test_long_protocol_time_in_hours(config):
    targets = [2 ** -k for k in range(21)]
    summary = calc_serial_dilution(plan(targets=targets, stock=1, stock_unit=C.MOLAR), config).protocol_summary
    assert summary.total_steps == 21
    assert summary.estimated_time == "1h 3min"


def test_warnings_for_tiny_transfer(config):
    # 1 M stock to a 101 µM tube: factor ~9901, 0.02 µL of stock
    result = calc_serial_dilution(plan(targets=(1,), stock=1, stock_unit=C.MOLAR), config)

    assert result.errors == []
    by_type = {w.type: w for w in result.warnings}
    assert set(by_type) == {WarningType.SMALL_VOLUME, WarningType.UNUSUAL_DILUTION_FACTOR}
    assert by_type[WarningType.SMALL_VOLUME].severity is Severity.HIGH
    assert by_type[WarningType.SMALL_VOLUME].component_index == 0
    assert by_type[WarningType.UNUSUAL_DILUTION_FACTOR].severity is Severity.MEDIUM


def test_target_above_corrected_stock(config):
    # 1000 µM in the well needs 101000 µM in the tube, above the 100 mM stock
    result = calc_serial_dilution(plan(targets=(10, 1000)), config)

    assert result.steps == []
    assert result.protocol_summary is None
    assert [(e.type, e.field, e.component_index) for e in result.errors] == [
        (ErrorType.INVALID_CONCENTRATION, "target_concentrations", 1)]


def test_validation(config):
    result = calc_serial_dilution(plan(targets=(10, 0), cell_volume=-1, dilution_volume=None), config)
    assert [(e.type, e.field, e.component_index) for e in result.errors] == [
        (ErrorType.NEGATIVE_VALUE, "cell_volume", None),
        (ErrorType.MISSING_REQUIRED_FIELD, "dilution_volume", None),
        (ErrorType.NEGATIVE_VALUE, "target_concentrations", 1),
    ]


def test_no_targets(config):
    result = calc_serial_dilution(plan(targets=()), config)
    assert [e.type for e in result.errors] == [ErrorType.MISSING_REQUIRED_FIELD]
    assert result.cell_addition_instructions == []


def test_mass_stock_needs_molecular_weight(config):
    result = calc_serial_dilution(plan(stock=10, stock_unit=C.MG_PER_ML), config)
    assert [e.type for e in result.errors] == [ErrorType.INVALID_MOLECULAR_WEIGHT]

    result = calc_serial_dilution(plan(stock=10, stock_unit=C.MG_PER_ML, molecular_weight=100), config)
    assert result.errors == []
    # 10 mg/mL at 100 g/mol is 100 mM
    assert result.steps[0].from_concentration == pytest.approx(100000)


def test_mixed_volume_units(config):
    result = calc_serial_dilution(
        plan(cell_volume=0.2, cell_volume_unit=V.MILLILITER, dilution_volume=1,
             dilution_volume_unit=V.MILLILITER), config)

    assert [s.to_concentration for s in result.steps] == pytest.approx([10100, 1010, 101, 10.1])
    assert result.steps[1].stock_volume == pytest.approx(0.1)
    assert result.steps[1].volume_unit is V.MILLILITER
    assert result.cell_addition_instructions[0].final_cell_volume == pytest.approx(202)


def test_export_data_attached(config):
    result = calc_serial_dilution(plan(), config)
    assert len(result.export_data.dilution_table) == 5
    assert len(result.export_data.addition_table) == 5
    assert result.to_dict()["export_data"]["csv_format"].startswith("Step,From,To")


def test_idempotent(config):
    data = plan(targets=(1, 100, 0.1, 10))
    assert calc_serial_dilution(data, config) == calc_serial_dilution(data, config)
