"""
NMF Analysis package initialization
"""

from .run_nmf import run_nmf, factorize, nmf_parameters
from .export import PickleExporter, load_nmf_result
from .programs import get_program_genes, merge_program_genes, program_loadings
