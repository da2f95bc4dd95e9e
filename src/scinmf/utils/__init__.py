"""
Utils package initialization
"""

from .shared_functions import (
    setup_logging,
    load_expression_matrix,
    load_clinical_table,
    load_gene_signatures,
    save_gene_signatures,
    save_results,
    save_plot
)
