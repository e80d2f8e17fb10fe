# tools.py
"""
Function-calling descriptions of the four calculators.

Same shape as OpenAI "tools" entries, so a chat front-end can hand them
to a model as-is. router.run_calculation uses the "required" lists to
reject incomplete payloads.
"""

_CONC_UNITS = ["M", "mM", "µM", "nM", "mg/mL", "µg/mL", "%w/v"]
_VOLUME_UNITS = ["L", "mL", "µL", "nL"]

TOOL_SPECS = [
    # 1. buffer
    {
        "type": "function",
        "function": {
            "name": "buffer",
            "description": "Volumes of each stock solution needed to make a multi-component buffer (C1V1 = C2V2 per component).",
            "parameters": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Buffer name."},
                    "total_volume": {"type": "number", "description": "Final buffer volume."},
                    "volume_unit": {"type": "string", "enum": _VOLUME_UNITS, "description": "Unit of total_volume."},
                    "components": {
                        "type": "array",
                        "description": "One entry per reagent.",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "stock_conc": {"type": "number", "description": "Stock concentration."},
                                "stock_unit": {"type": "string", "enum": _CONC_UNITS},
                                "final_conc": {"type": "number", "description": "Concentration wanted in the buffer."},
                                "final_unit": {"type": "string", "enum": _CONC_UNITS},
                                "lot_number": {"type": "string"},
                                "molecular_weight": {"type": "number", "description": "g/mol, only for mass-based units."}
                            },
                            "required": ["name", "stock_conc", "stock_unit", "final_conc", "final_unit"]
                        }
                    },
                    "notes": {"type": "string"}
                },
                "required": ["total_volume", "components"]
            }
        }
    },

    # 2. stock_solution
    {
        "type": "function",
        "function": {
            "name": "stock_solution",
            "description": "Mass of solid to weigh for a stock solution of a given concentration and volume, corrected for purity.",
            "parameters": {
                "type": "object",
                "properties": {
                    "reagent_name": {"type": "string", "description": "Reagent name."},
                    "molecular_weight": {"type": "number", "description": "Molecular weight in g/mol."},
                    "target_concentration": {"type": "number", "description": "Stock concentration to make."},
                    "concentration_unit": {"type": "string", "enum": _CONC_UNITS},
                    "volume": {"type": "number", "description": "Stock volume to make."},
                    "volume_unit": {"type": "string", "enum": _VOLUME_UNITS},
                    "purity": {"type": "number", "description": "Purity in %, e.g. 99.5.", "nullable": True},
                    "solvent": {"type": "string", "description": "Solvent, e.g. water or DMSO."}
                },
                "required": ["reagent_name", "molecular_weight", "target_concentration",
                             "concentration_unit", "volume", "volume_unit"]
            }
        }
    },

    # 3. dilution
    {
        "type": "function",
        "function": {
            "name": "dilution",
            "description": "Use C1V1 = C2V2 to dilute a stock solution to a desired concentration and volume.",
            "parameters": {
                "type": "object",
                "properties": {
                    "stock_concentration": {"type": "number", "description": "Stock concentration (C1)."},
                    "stock_unit": {"type": "string", "enum": _CONC_UNITS},
                    "final_concentration": {"type": "number", "description": "Final concentration (C2)."},
                    "final_unit": {"type": "string", "enum": _CONC_UNITS},
                    "final_volume": {"type": "number", "description": "Final volume (V2)."},
                    "volume_unit": {"type": "string", "enum": _VOLUME_UNITS},
                    "molecular_weight": {"type": "number", "description": "g/mol, only when mixing molar and mass units."}
                },
                "required": ["stock_concentration", "stock_unit", "final_concentration",
                             "final_unit", "final_volume", "volume_unit"]
            }
        }
    },

    # 4. serial_dilution
    {
        "type": "function",
        "function": {
            "name": "serial_dilution",
            "description": "Plan a serial dilution whose tubes are added to cells, correcting for the extra dilution in the well.",
            "parameters": {
                "type": "object",
                "properties": {
                    "stock_concentration": {"type": "number", "description": "Stock concentration."},
                    "stock_unit": {"type": "string", "enum": _CONC_UNITS},
                    "target_concentrations": {
                        "type": "array",
                        "items": {"type": "number"},
                        "description": "Concentrations wanted in the wells (any order)."
                    },
                    "target_unit": {"type": "string", "enum": _CONC_UNITS},
                    "cell_volume": {"type": "number", "description": "Volume of cell suspension per well."},
                    "cell_volume_unit": {"type": "string", "enum": _VOLUME_UNITS},
                    "addition_volume": {"type": "number", "description": "Volume added from a tube to each well."},
                    "addition_volume_unit": {"type": "string", "enum": _VOLUME_UNITS},
                    "dilution_volume": {"type": "number", "description": "Working volume of each dilution tube."},
                    "dilution_volume_unit": {"type": "string", "enum": _VOLUME_UNITS}
                },
                "required": ["stock_concentration", "stock_unit", "target_concentrations", "target_unit",
                             "cell_volume", "cell_volume_unit", "addition_volume", "addition_volume_unit",
                             "dilution_volume", "dilution_volume_unit"]
            }
        }
    },
]


def get_tool_spec(name: str):
    for spec in TOOL_SPECS:
        if spec["function"]["name"] == name:
            return spec
    return None
