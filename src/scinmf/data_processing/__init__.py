"""
Data Processing module for single-cell expression preparation.

This package provides utilities for:
- Removing mitochondrial, ribosomal and heat shock protein genes
- Normalizing per-sample counts and selecting variable features
"""

from .gene_filter import filter_genes
from .normalization import check_normalization_method, normalize_sample
