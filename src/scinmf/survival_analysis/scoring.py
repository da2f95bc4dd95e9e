"""
Gene set scoring of bulk samples
"""

import logging
import numpy as np
import pandas as pd
import gseapy as gp

from scinmf.config import CONFIG, SCORE_METHODS

logger = logging.getLogger(__name__)


def check_score_method(score_method):
    """Raise ValueError for an unsupported scoring method"""
    if score_method not in SCORE_METHODS:
        raise ValueError(
            f"Invalid score_method '{score_method}', must be one of {', '.join(SCORE_METHODS)}"
        )


def match_gene_sets(gene_sets, genes):
    """
    Restrict every gene set to the genes present in the expression matrix.

    Gene sets without any measured gene are dropped with a warning.
    """
    genes = set(genes)
    matched = {}
    empty = []
    for name, members in gene_sets.items():
        present = [g for g in dict.fromkeys(members) if g in genes]
        if present:
            matched[name] = present
        else:
            empty.append(name)
    if empty:
        logger.warning(f"Removed gene set {' '.join(map(str, empty))} for no gene found in the expression matrix")
    return matched


def _gseapy_scores(res2d, value_col, samples, set_names):
    scores = res2d.pivot(index='Name', columns='Term', values=value_col).astype(float)
    scores.index = scores.index.astype(str)
    return scores.reindex(index=samples, columns=set_names)


def _plage_scores(expr, gene_sets):
    """First right singular vector of the standardized genes of each set"""
    scores = {}
    for name, genes in gene_sets.items():
        sub = expr.loc[genes].to_numpy(dtype=float)
        sd = sub.std(axis=1, ddof=1, keepdims=True)
        sd[~np.isfinite(sd) | (sd == 0)] = 1
        z = (sub - sub.mean(axis=1, keepdims=True)) / sd
        _, _, vt = np.linalg.svd(z, full_matrices=False)
        scores[name] = vt[0]
    return pd.DataFrame(scores, index=expr.columns)


def _average_scores(expr, gene_sets):
    return pd.DataFrame(
        {name: expr.loc[genes].mean(axis=0) for name, genes in gene_sets.items()},
        index=expr.columns
    )


def score_gene_sets(expr, gene_sets, score_method=CONFIG['coxph']['score_method'],
                    kcdf=CONFIG['coxph']['kcdf'], threads=1):
    """
    Score every sample against every gene set.

    Parameters:
    -----------
    expr : pd.DataFrame
        Genes x samples expression matrix
    gene_sets : dict
        Gene set name -> list of genes
    score_method : str
        'ssgsea', 'gsva', 'plage' or 'average'
    kcdf : str
        Kernel for the CDF estimation of GSVA ('Gaussian', 'Poisson' or None)

    Returns:
    --------
    pd.DataFrame
        Samples x gene sets scores
    """
    check_score_method(score_method)

    expr = expr.copy()
    expr.index = expr.index.astype(str)
    expr.columns = expr.columns.astype(str)
    gene_sets = match_gene_sets(gene_sets, expr.index)
    samples = list(expr.columns)
    set_names = list(gene_sets)
    if not gene_sets:
        return pd.DataFrame(index=samples)

    max_size = max(len(genes) for genes in gene_sets.values()) + 1

    if score_method == 'ssgsea':
        res = gp.ssgsea(
            data=expr,
            gene_sets=gene_sets,
            outdir=None,
            sample_norm_method='rank',
            min_size=1,
            max_size=max_size,
            threads=threads,
            no_plot=True,
            verbose=False
        )
        scores = _gseapy_scores(res.res2d, 'NES', samples, set_names)
    elif score_method == 'gsva':
        res = gp.gsva(
            data=expr,
            gene_sets=gene_sets,
            outdir=None,
            kcdf=kcdf,
            min_size=1,
            max_size=max_size,
            threads=threads,
            verbose=False
        )
        scores = _gseapy_scores(res.res2d, 'ES', samples, set_names)
    elif score_method == 'plage':
        scores = _plage_scores(expr, gene_sets)
    else:
        scores = _average_scores(expr, gene_sets)

    logger.debug(f"Scored {len(samples)} samples against {len(set_names)} gene sets with {score_method}")
    return scores
