"""
Engine configuration.

The configuration is a plain value passed to every calculator call.
Swap settings by building a new one with :func:`update_config`; nothing
in the calculators reads global state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from labcalc.units import ConcentrationUnit, VolumeUnit


@dataclass(frozen=True)
class EngineConfig:
    decimal_places: int = 2
    show_calculation_steps: bool = False
    default_volume_unit: VolumeUnit = VolumeUnit.MILLILITER
    default_concentration_unit: ConcentrationUnit = ConcentrationUnit.MILLIMOLAR

    def __post_init__(self):
        if isinstance(self.decimal_places, bool) or not isinstance(self.decimal_places, int):
            raise ValueError(f"decimal_places must be an integer, got {self.decimal_places!r}")
        if self.decimal_places < 0:
            raise ValueError("decimal_places must be >= 0")
        # accept unit symbols ("µL", "uM") as well as enum members
        object.__setattr__(self, "default_volume_unit", VolumeUnit.parse(self.default_volume_unit))
        object.__setattr__(
            self,
            "default_concentration_unit",
            ConcentrationUnit.parse(self.default_concentration_unit),
        )

    @classmethod
    def from_dict(cls, settings: Mapping[str, Any]) -> "EngineConfig":
        """
        Build a config from a settings mapping.

        Accepts snake_case keys and the camelCase keys used by exported
        settings files (``decimalPlaces``, ``showCalculationSteps``,
        ``defaultVolumeUnit``, ``defaultConcentrationUnit``). Unknown keys
        are ignored.
        """
        aliases = {
            "decimalPlaces": "decimal_places",
            "showCalculationSteps": "show_calculation_steps",
            "defaultVolumeUnit": "default_volume_unit",
            "defaultConcentrationUnit": "default_concentration_unit",
        }
        known = {"decimal_places", "show_calculation_steps",
                 "default_volume_unit", "default_concentration_unit"}
        kwargs = {}
        for key, value in settings.items():
            name = aliases.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)


DEFAULT_CONFIG = EngineConfig()


def update_config(config: EngineConfig, **changes: Any) -> EngineConfig:
    """Return a copy of ``config`` with ``changes`` applied."""
    return replace(config, **changes)
