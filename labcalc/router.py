# router.py
"""
Router between plain payloads (chat tool calls, batch rows, parsed
blocks) and the calculators.

- Looks the tool name up in CALC_REGISTRY.
- Builds the typed input record from the payload (unit strings parsed,
  camelCase keys accepted).
- Runs the calculator and returns its result as a plain dict.

A payload that cannot be dispatched comes back as
{"error": ..., "args": ...} instead of raising.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from labcalc.calculators import calc_buffer, calc_dilution, calc_serial_dilution, calc_stock_solution
from labcalc.config import DEFAULT_CONFIG, EngineConfig
from labcalc.models import BufferInput, ComponentInput, DilutionInput, SerialDilutionInput, StockInput
from labcalc.tools import get_tool_spec
from labcalc.units import ConcentrationUnit, VolumeUnit

logger = logging.getLogger(__name__)

# payload spellings → record field names
_ALIASES = {
    "stock_conc": "stock_concentration",
    "final_conc": "final_concentration",
    "stock_concentration_unit": "stock_unit",
    "final_concentration_unit": "final_unit",
    "reagent": "reagent_name",
    "mw": "molecular_weight",
}


def _snake(key: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", key).lower()


def _normalize(args: Mapping[str, Any]) -> Dict[str, Any]:
    out = {}
    for key, value in args.items():
        name = _snake(key)
        out[_ALIASES.get(name, name)] = value
    return out


def _blank(value) -> bool:
    """None, "" or a NaN cell from ``pd.read_csv``."""
    if value is None or isinstance(value, (list, tuple, dict)):
        return value is None
    if isinstance(value, str):
        return not value.strip()
    return bool(pd.isna(value))


def _number(value):
    if _blank(value):
        return None
    return float(value)


def _optional_number(payload: Mapping[str, Any], key: str):
    return _number(payload.get(key))


# ---------------------------------------------------------------------
# Payload adapters
# ---------------------------------------------------------------------

def _component(raw: Mapping[str, Any]) -> ComponentInput:
    item = _normalize(raw)
    return ComponentInput(
        name=str(item.get("name") or ""),
        stock_concentration=_number(item.get("stock_concentration")),
        stock_unit=ConcentrationUnit.parse(item["stock_unit"]),
        final_concentration=_number(item.get("final_concentration")),
        final_unit=ConcentrationUnit.parse(item["final_unit"]),
        lot_number=item.get("lot_number"),
        molecular_weight=_optional_number(item, "molecular_weight"),
    )


def _buffer_input(payload: Mapping[str, Any]) -> BufferInput:
    unit = payload.get("volume_unit")
    return BufferInput(
        total_volume=_number(payload["total_volume"]),
        components=[_component(c) for c in payload.get("components") or []],
        volume_unit=VolumeUnit.parse(unit) if unit else None,
        name=payload.get("name"),
        notes=payload.get("notes"),
    )


def _stock_input(payload: Mapping[str, Any]) -> StockInput:
    return StockInput(
        reagent_name=str(payload["reagent_name"]),
        molecular_weight=_number(payload["molecular_weight"]),
        target_concentration=_number(payload["target_concentration"]),
        concentration_unit=ConcentrationUnit.parse(payload["concentration_unit"]),
        volume=_number(payload["volume"]),
        volume_unit=VolumeUnit.parse(payload["volume_unit"]),
        purity=_optional_number(payload, "purity"),
        solvent=payload.get("solvent") or "water",
        name=payload.get("name"),
        notes=payload.get("notes"),
    )


def _dilution_input(payload: Mapping[str, Any]) -> DilutionInput:
    return DilutionInput(
        stock_concentration=_number(payload["stock_concentration"]),
        stock_unit=ConcentrationUnit.parse(payload["stock_unit"]),
        final_concentration=_number(payload["final_concentration"]),
        final_unit=ConcentrationUnit.parse(payload["final_unit"]),
        final_volume=_number(payload["final_volume"]),
        volume_unit=VolumeUnit.parse(payload["volume_unit"]),
        molecular_weight=_optional_number(payload, "molecular_weight"),
        name=payload.get("name"),
        notes=payload.get("notes"),
    )


def _serial_input(payload: Mapping[str, Any]) -> SerialDilutionInput:
    targets = payload["target_concentrations"]
    if isinstance(targets, str):
        # "100, 10, 1" as typed in a form field
        targets = [t for t in targets.split(",") if t.strip()]
    return SerialDilutionInput(
        stock_concentration=_number(payload["stock_concentration"]),
        stock_unit=ConcentrationUnit.parse(payload["stock_unit"]),
        target_concentrations=[_number(t) for t in targets],
        target_unit=ConcentrationUnit.parse(payload["target_unit"]),
        cell_volume=_number(payload["cell_volume"]),
        cell_volume_unit=VolumeUnit.parse(payload["cell_volume_unit"]),
        addition_volume=_number(payload["addition_volume"]),
        addition_volume_unit=VolumeUnit.parse(payload["addition_volume_unit"]),
        dilution_volume=_number(payload["dilution_volume"]),
        dilution_volume_unit=VolumeUnit.parse(payload["dilution_volume_unit"]),
        molecular_weight=_optional_number(payload, "molecular_weight"),
        name=payload.get("name"),
        notes=payload.get("notes"),
    )


Adapter = Callable[[Mapping[str, Any]], Any]

CALC_REGISTRY: Dict[str, Tuple[Adapter, Callable[..., Any]]] = {
    "buffer": (_buffer_input, calc_buffer),
    "stock_solution": (_stock_input, calc_stock_solution),
    "dilution": (_dilution_input, calc_dilution),
    "serial_dilution": (_serial_input, calc_serial_dilution),
}

# block type names used in notes ("stock", "serial-dilution")
CALC_REGISTRY["stock"] = CALC_REGISTRY["stock_solution"]
CALC_REGISTRY["serial-dilution"] = CALC_REGISTRY["serial_dilution"]


# ---------------------------------------------------------------------
# Public functions
# ---------------------------------------------------------------------

def run_calculation(
    tool_name: str,
    args: Mapping[str, Any],
    config: Optional[EngineConfig] = None,
) -> Dict[str, Any]:
    """
    Main entrypoint for named calculations.

    Parameters
    ----------
    tool_name : str
        One of the CALC_REGISTRY keys (e.g. 'dilution').
    args : mapping
        Payload with the tool's parameters; snake_case or camelCase keys,
        units as symbols ("µL", "uM", "mg/mL").
    config : EngineConfig, optional

    Returns
    -------
    dict
        ``result.to_dict()`` of the calculator, or
        ``{"error": message, "args": args}`` when the payload could not be
        turned into an input record.
    """
    config = config or DEFAULT_CONFIG
    entry = CALC_REGISTRY.get(tool_name)
    if entry is None:
        return {"error": f"Unknown tool: {tool_name}", "args": dict(args)}
    adapter, calc_fn = entry

    payload = _normalize(args)
    spec = get_tool_spec(_canonical_name(tool_name))
    required = spec["function"]["parameters"]["required"] if spec else []
    missing = [key for key in required if _blank(payload.get(key))]
    if missing:
        return {"error": f"Missing required argument(s): {', '.join(missing)}", "args": dict(args)}

    try:
        data = adapter(payload)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("could not build %s input: %s", tool_name, e)
        return {"error": str(e), "args": dict(args)}

    return calc_fn(data, config).to_dict()


def _canonical_name(tool_name: str) -> str:
    """Canonical tool name for a registry key ("stock" → "stock_solution")."""
    _, calc_fn = CALC_REGISTRY[tool_name]
    for name, (_, fn) in CALC_REGISTRY.items():
        if fn is calc_fn:
            return name
    return tool_name


def _summary(out: Mapping[str, Any]) -> Dict[str, Any]:
    if "error" in out:
        return {"status": "error", "error": out["error"], "result": None, "warnings": 0}
    if out.get("errors"):
        messages = "; ".join(e["message"] for e in out["errors"])
        if not out.get("components") and not out.get("steps"):
            return {"status": "invalid", "error": messages, "result": None, "warnings": 0}
    else:
        messages = None

    if "steps" in out:
        summary = out["protocol_summary"]
        text = f"{summary['total_steps']} steps, {summary['required_tubes']} tubes"
    else:
        parts = [f"{c['source']['name']}: {c['display']}" for c in out["components"]]
        parts.append(f"solvent: {out['solvent_display']}")
        text = "; ".join(parts)
    return {
        "status": "partial" if messages else "ok",
        "error": messages,
        "result": text,
        "warnings": len(out.get("warnings") or []),
    }


def run_batch(
    rows: Iterable[Mapping[str, Any]],
    config: Optional[EngineConfig] = None,
) -> pd.DataFrame:
    """
    Run one calculation per row (e.g. rows of an uploaded CSV).

    Each row names its calculator in a "mode" column; the other columns
    are the payload. The output has the row's scalar columns plus
    status / error / result / warnings.
    """
    out_rows: List[Dict[str, Any]] = []
    for row in rows:
        # blank CSV cells count as absent
        payload = {k: v for k, v in row.items() if not _blank(v)}
        mode = payload.pop("mode", None)
        if not mode:
            out = {"error": "Missing mode", "args": payload}
        else:
            out = run_calculation(mode, payload, config)
        scalars = {k: v for k, v in payload.items() if not isinstance(v, (list, tuple, dict))}
        out_rows.append({"mode": mode, **scalars, **_summary(out)})
    return pd.DataFrame(out_rows)
