"""
Per-sample normalization recipes applied before factorization.
"""

import logging
import numpy as np
import pandas as pd
import scanpy as sc
import scipy.sparse

from scinmf.config import NORMALIZATION_METHODS

logger = logging.getLogger(__name__)


def check_normalization_method(normalization_method):
    """Raise ValueError for an unsupported normalization method"""
    if normalization_method not in NORMALIZATION_METHODS:
        raise ValueError(
            f"Invalid normalization_method '{normalization_method}', "
            f"must be one of {', '.join(NORMALIZATION_METHODS)}"
        )


def _center_scale(X, do_center=True, do_scale=False):
    """Center and/or scale the columns (genes) of a cells x genes array"""
    if do_center:
        X = X - X.mean(axis=0)
    if do_scale:
        if do_center:
            scale = X.std(axis=0, ddof=1)
        else:
            # root mean square when the data is not centered
            scale = np.sqrt((X ** 2).sum(axis=0) / max(X.shape[0] - 1, 1))
        scale[scale == 0] = 1
        X = X / scale
    return X


def normalize_sample(adata, normalization_method='SCT', variable_features_n=7000,
                     do_scale=False, do_center=True):
    """
    Normalize the raw counts of one sample and restrict them to its variable features.

    Parameters:
    -----------
    adata : anndata.AnnData
        Cells x genes object holding raw counts in .X
    normalization_method : str
        'SCT' for analytic Pearson residuals, 'LogNormalize' for library size
        normalization followed by log1p
    variable_features_n : int
        Number of highly variable genes to keep
    do_scale, do_center : bool
        Scale genes to unit variance / center genes at zero

    Returns:
    --------
    pd.DataFrame
        Genes x cells matrix of normalized values for the variable features
    """
    check_normalization_method(normalization_method)

    adata = adata.copy()
    if not np.issubdtype(adata.X.dtype, np.floating):
        adata.X = adata.X.astype(np.float32)
    n_top_genes = min(int(variable_features_n), adata.n_vars)

    if normalization_method == 'SCT':
        sc.experimental.pp.highly_variable_genes(
            adata, flavor='pearson_residuals', n_top_genes=n_top_genes
        )
        sc.experimental.pp.normalize_pearson_residuals(adata)
    else:
        sc.pp.normalize_total(adata, target_sum=1e4)
        sc.pp.log1p(adata)
        sc.pp.highly_variable_genes(adata, n_top_genes=n_top_genes)

    adata = adata[:, adata.var['highly_variable'].values]

    X = adata.X
    if scipy.sparse.issparse(X):
        X = X.toarray()
    X = _center_scale(np.asarray(X, dtype=float), do_center=do_center, do_scale=do_scale)

    logger.debug(f"{normalization_method} normalization kept {adata.n_vars} variable features")
    return pd.DataFrame(X.T, index=adata.var_names.copy(), columns=adata.obs_names.copy())
