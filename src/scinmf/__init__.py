"""
sciNMF: single-cell integration by non-negative matrix factorization.

This package decomposes the single-cell expression of every individual into
transcriptional programs and relates meta-program scores of bulk samples to
survival with univariate Cox regression.
"""

from importlib import import_module
from types import ModuleType
from typing import Any, Final

__version__ = "1.0.0"

__all__: Final = ["run_nmf", "mp_coxph", "score_gene_sets", "get_program_genes"]

_LOCATIONS: Final = {
    "run_nmf": ".nmf_analysis",
    "get_program_genes": ".nmf_analysis",
    "mp_coxph": ".survival_analysis",
    "score_gene_sets": ".survival_analysis",
}


def __getattr__(name: str) -> Any:  # PEP 562
    if name in _LOCATIONS:
        mod: ModuleType = import_module(_LOCATIONS[name], __name__)
        attr = getattr(mod, name)
        globals()[name] = attr          # cache for future look-ups
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
