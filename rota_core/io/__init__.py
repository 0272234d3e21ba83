"""Input/output layer around the rota engine.

Public API:
    load_input(directory)     -- read CSV input dir -> RotaInput
    load_input_xlsx(path)     -- read a single workbook -> RotaInput
    outcome_to_dict(outcome)  -- AllocationOutcome -> JSON-compatible dict
"""

from .reader import RotaInput, build_input, history_to_shifts, load_input
from .writer import outcome_to_dict

__all__ = [
    "RotaInput",
    "build_input",
    "history_to_shifts",
    "load_input",
    "load_input_xlsx",
    "outcome_to_dict",
]


# Lazy import for the optional openpyxl dependency.
def load_input_xlsx(*args, **kwargs):
    from .xlsx import load_input_xlsx as _fn
    return _fn(*args, **kwargs)
