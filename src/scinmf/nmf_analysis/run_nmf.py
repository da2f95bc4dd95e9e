"""
Per-sample NMF
Decomposes the single-cell expression of every individual into transcriptional programs
"""

import logging
from datetime import datetime

import anndata as ad
import numpy as np
import pandas as pd
import scipy.sparse
from joblib import Parallel, delayed
from sklearn.decomposition import NMF

from scinmf.config import CONFIG, NMF_LOSSES, NMF_SOLVERS
from scinmf.data_processing import check_normalization_method, filter_genes, normalize_sample
from scinmf.nmf_analysis.export import PickleExporter

logger = logging.getLogger(__name__)

DEFAULTS = CONFIG['nmf']


def nmf_parameters(loss='mse', method='scd', max_iter=5000, seed=123, **nmf_kwargs):
    """
    Translate loss/method names into sklearn.decomposition.NMF keyword arguments.

    Raises:
        ValueError: If loss is not 'mse'/'mkl' or method is not 'scd'/'lee'
    """
    if loss not in NMF_LOSSES:
        raise ValueError(f"Invalid loss '{loss}', must be one of {', '.join(NMF_LOSSES)}")
    if method not in NMF_SOLVERS:
        raise ValueError(f"Invalid method '{method}', must be one of {', '.join(NMF_SOLVERS)}")

    solver = NMF_SOLVERS[method]
    if loss == 'mkl' and solver != 'mu':
        logger.debug("KL-divergence loss requires multiplicative updates, using solver 'mu'")
        solver = 'mu'

    params = {
        'beta_loss': NMF_LOSSES[loss],
        'solver': solver,
        'max_iter': max_iter,
        'random_state': seed,
        'init': 'random',
    }
    params.update(nmf_kwargs)
    return params


def factorize(data, k, program_names=None, **nmf_params):
    """
    Factorize a genes x cells matrix into W (genes x k) and H (k x cells).

    The same nmf_params, including random_state, are used for every call so
    results for different k share one initialization seed.
    """
    model = NMF(n_components=k, **nmf_params)
    W = model.fit_transform(data.values)
    H = model.components_
    if program_names is None:
        program_names = [f"P{i}" for i in range(1, k + 1)]
    W = pd.DataFrame(W, index=data.index, columns=program_names)
    H = pd.DataFrame(H, index=program_names, columns=data.columns)
    return W, H


def _run_sample(sample, sub, k_range, project, min_cell, normalization_method,
                variable_features_n, do_scale, do_center, nmf_params, exporter):
    """Run the whole NMF workflow for the cells of one sample"""
    logger.info(f"Start sample {sample} -- Current time: {datetime.now()}")

    if sub.n_obs < min_cell:
        logger.info(f"Sample {sample} has only {sub.n_obs} cells less than {min_cell} cells, skip it")
        return sample, None

    # genes without any count in this sample
    totals = np.asarray(sub.X.sum(axis=0)).ravel()
    sub = sub[:, totals > 0].copy()

    data = normalize_sample(
        sub,
        normalization_method=normalization_method,
        variable_features_n=variable_features_n,
        do_scale=do_scale,
        do_center=do_center
    )
    data = data.clip(lower=0)
    data = data.loc[data.var(axis=1) > 0]

    all_W, all_H = [], []
    for k in k_range:
        names = [f"{project}_{sample}_K{k}_P{i}" for i in range(1, k + 1)]
        W, H = factorize(data, k, program_names=names, **nmf_params)
        all_W.append(W)
        all_H.append(H)

    result = {'W': pd.concat(all_W, axis=1), 'H': pd.concat(all_H, axis=0)}

    if exporter is not None:
        exporter(sample, result, k_range)

    logger.info(f"Sample {sample} done!")
    return sample, result


def run_nmf(adata, group_by, dir_output=None, k_range=None, samples=None,
            project=DEFAULTS['project'],
            normalization_method=DEFAULTS['normalization_method'],
            min_cell=DEFAULTS['min_cell'],
            variable_features_n=DEFAULTS['variable_features_n'],
            do_scale=DEFAULTS['do_scale'], do_center=DEFAULTS['do_center'],
            n_jobs=DEFAULTS['n_jobs'], seed=DEFAULTS['seed'],
            rm_mt=DEFAULTS['rm_mt'], rm_rp=DEFAULTS['rm_rp'], rm_hsp=DEFAULTS['rm_hsp'],
            loss=DEFAULTS['loss'], max_iter=DEFAULTS['max_iter'], method=DEFAULTS['method'],
            layer=None, exporter=None, **nmf_kwargs):
    """
    Run non-negative matrix factorization for every individual of a single-cell dataset.

    Parameters:
    -----------
    adata : anndata.AnnData
        Cells x genes object with raw counts in .X (or in `layer`)
    group_by : str
        Column of adata.obs used for grouping cells, e.g. the patient
    dir_output : str, optional
        If given, the result of each sample is saved as a pickle file there
    k_range : iterable of int
        Numbers of programs to fit, default 3 to 8
    samples : list, optional
        Samples to analyze, default all values of the group_by column
    project : str
        Prefix for program names and output files
    normalization_method : str
        'SCT' (Pearson residuals) or 'LogNormalize'
    min_cell : int
        Samples with fewer cells are skipped
    variable_features_n : int
        Number of highly variable genes kept per sample
    do_scale, do_center : bool
        Scale / center the normalized data per gene
    n_jobs : int
        Number of parallel workers
    seed : int
        Random seed, reused for every k
    rm_mt, rm_rp, rm_hsp : bool
        Remove MT-, RPS/RPL and HSP genes
    loss : str
        'mse' (Frobenius) or 'mkl' (KL divergence)
    max_iter : int
        Maximum number of NMF iterations
    method : str
        'scd' (coordinate descent) or 'lee' (multiplicative updates)
    layer : str, optional
        Layer holding the raw counts instead of .X
    exporter : callable, optional
        Called as exporter(sample, result, k_range) for each finished sample;
        overrides dir_output
    **nmf_kwargs
        Passed on to sklearn.decomposition.NMF

    Returns:
    --------
    dict
        Sample -> {'W': genes x programs DataFrame, 'H': programs x cells DataFrame}.
        Skipped samples are not included.
    """
    check_normalization_method(normalization_method)
    nmf_params = nmf_parameters(loss=loss, method=method, max_iter=max_iter, seed=seed, **nmf_kwargs)
    k_range = list(DEFAULTS['k_range'] if k_range is None else k_range)

    if group_by not in adata.obs.columns:
        raise KeyError(f"Column '{group_by}' not found in adata.obs")

    missing = adata.obs[group_by].isna().values
    if missing.any():
        logger.warning(f"The {group_by} column contains NA and those cells are removed!")
        adata = adata[~missing]

    if samples is None:
        samples = list(pd.unique(adata.obs[group_by].astype(object)))

    genes = filter_genes(adata.var_names, rm_mt=rm_mt, rm_rp=rm_rp, rm_hsp=rm_hsp)
    gene_mask = adata.var_names.isin(genes)
    counts = adata.layers[layer] if layer is not None else adata.X
    counts = counts[:, gene_mask]
    if not scipy.sparse.issparse(counts):
        counts = np.asarray(counts)
    clean_counts = ad.AnnData(
        X=counts,
        obs=adata.obs[[group_by]].copy(),
        var=pd.DataFrame(index=adata.var_names[gene_mask])
    )

    if exporter is None and dir_output is not None:
        exporter = PickleExporter(dir_output, project=project, variable_features_n=variable_features_n)

    labels = clean_counts.obs[group_by].astype(object).values
    tasks = (
        delayed(_run_sample)(
            sample, clean_counts[labels == sample].copy(), k_range, project, min_cell,
            normalization_method, variable_features_n, do_scale, do_center,
            nmf_params, exporter
        )
        for sample in samples
    )
    outputs = Parallel(n_jobs=n_jobs)(tasks)

    results = {sample: result for sample, result in outputs if result is not None}
    logger.info(f"All Done! {len(results)} of {len(samples)} samples factorized")
    return results
