"""
Univariate Cox regression of meta-program scores
"""

import logging
import numpy as np
import pandas as pd
from lifelines import CoxPHFitter
from lifelines.exceptions import ConvergenceError
from statsmodels.stats.multitest import multipletests

from scinmf.config import CONFIG
from scinmf.survival_analysis.scoring import check_score_method, score_gene_sets
from scinmf.survival_analysis.plotting import plot_mp_coxph

logger = logging.getLogger(__name__)

DEFAULTS = CONFIG['coxph']
PLOT = CONFIG['plot']

# (upper p-value bound, number of asterisks)
SIGNIFICANCE_LEVELS = [(0.0001, 4), (0.001, 3), (0.01, 2), (0.05, 1)]

RESULT_COLUMNS = ['Group', 'Signature', 'Cindex', 'HR', 'pvalue']


def significance_level(pvalue):
    """Number of asterisks for a p-value, 0 when not significant or missing"""
    if pd.isna(pvalue):
        return 0
    for threshold, level in SIGNIFICANCE_LEVELS:
        if pvalue <= threshold:
            return level
    return 0


def significance_stars(pvalue, show_ns=True):
    """'****', '***', '**', '*' or 'ns' ('' when show_ns is False)"""
    level = significance_level(pvalue)
    if level == 0:
        return 'ns' if show_ns and not pd.isna(pvalue) else ''
    return '*' * level


def split_cohort(cli, group_by=None, min_sample=DEFAULTS['min_sample']):
    """
    Split the clinical table into subgroups.

    Subjects are grouped by the values of the group_by columns joined with '_',
    or all put into the group 'Data' without group_by. Groups with fewer than
    min_sample subjects are removed with a warning.

    Returns:
        dict: Group name -> clinical rows of that group, with a 'Group' column
    """
    cli = cli.copy()
    if group_by:
        cli['Group'] = cli[list(group_by)].astype(str).agg('_'.join, axis=1)
    else:
        cli['Group'] = 'Data'

    sizes = cli['Group'].value_counts()
    small = sorted(sizes[sizes < min_sample].index)
    if small:
        logger.warning(f"Removed group {' '.join(small)} for less than {min_sample} samples")

    return {
        group: cli[cli['Group'] == group]
        for group in sorted(sizes.index) if group not in small
    }


def fit_univariate_cox(data, covariate='Score', duration_col='time', event_col='event'):
    """
    Fit a univariate Cox proportional hazards model.

    Returns:
        dict: Cindex, HR (exp(coef)) and pvalue of the covariate; NaN values
        when the model does not converge
    """
    data = data[[duration_col, event_col, covariate]].dropna()
    try:
        cph = CoxPHFitter()
        cph.fit(data, duration_col=duration_col, event_col=event_col)
    except ConvergenceError as e:
        logger.warning(f"Cox regression on {covariate} did not converge: {e}")
        return {'Cindex': np.nan, 'HR': np.nan, 'pvalue': np.nan}

    summary = cph.summary.loc[covariate]
    return {
        'Cindex': cph.concordance_index_,
        'HR': summary['exp(coef)'],
        'pvalue': summary['p'],
    }


def adjust_pvalues(df):
    """Benjamini-Hochberg adjusted p-values within each group"""
    fdr = pd.Series(np.nan, index=df.index)
    for _, sub in df.groupby('Group'):
        pvalues = sub['pvalue'].dropna()
        if len(pvalues) > 0:
            fdr.loc[pvalues.index] = multipletests(pvalues, method='fdr_bh')[1]
    return fdr


def mp_coxph(mat_exp, cli, gene_list, time=DEFAULTS['time'], event=DEFAULTS['event'],
             group_by=None, min_sample=DEFAULTS['min_sample'], return_df=False,
             xlab=PLOT['xlab'], ylab=PLOT['ylab'], title=PLOT['title'],
             color_asterisks=PLOT['color_asterisks'], show_ns=DEFAULTS['show_ns'],
             score_method=DEFAULTS['score_method'], kcdf=DEFAULTS['kcdf']):
    """
    Cox proportional hazards regression for a set of meta-programs.

    Parameters:
    -----------
    mat_exp : pd.DataFrame
        Gene expression matrix, genes as rows and samples as columns
    cli : pd.DataFrame
        Clinical data indexed by sample with survival time and event status
    gene_list : dict
        Meta-program name -> genes
    time, event : str
        Columns of `cli` with the time-to-event and the event status (0/1)
    group_by : str or list of str, optional
        Columns of `cli` used to split the samples for subgroup analysis; all
        samples form one group when None
    min_sample : int
        Minimum number of samples of a subgroup
    return_df : bool
        Return the result table instead of a figure
    xlab, ylab, title, color_asterisks : str
        Plot labels and color of the significance marks
    show_ns : bool
        Show 'ns' for non significant results
    score_method : str
        'ssgsea', 'gsva', 'plage' or 'average'
    kcdf : str
        Kernel for GSVA, see gseapy.gsva

    Returns:
    --------
    pd.DataFrame or matplotlib.figure.Figure
        One row per group and meta-program with Cindex, HR, pvalue and
        Significance (****: p <= 0.0001, ***: p <= 0.001, **: p <= 0.01,
        *: p <= 0.05, ns otherwise), sorted by decreasing Cindex
    """
    check_score_method(score_method)

    if isinstance(group_by, str):
        group_by = [group_by]
    group_by = list(group_by) if group_by else []

    missing_cols = [col for col in group_by + [event, time] if col not in cli.columns]
    if missing_cols:
        raise KeyError(f"Missing columns in cli: {missing_cols}")

    mat_exp = mat_exp.copy()
    mat_exp.columns = mat_exp.columns.astype(str)
    cli = cli.copy()
    cli.index = cli.index.astype(str)

    found = cli.index.isin(mat_exp.columns)
    if not found.all():
        logger.warning(f"Some patients in cli are not found in mat_exp, {int((~found).sum())} removed")
        cli = cli[found]

    cli = cli[group_by + [event, time]]
    cli.columns = group_by + ['event', 'time']
    mat_exp = mat_exp[cli.index]

    partitions = split_cohort(cli, group_by=group_by, min_sample=min_sample)
    if not partitions:
        raise ValueError(f"No group has at least {min_sample} samples")

    rows = []
    for group, sub_cli in partitions.items():
        logger.info(f"Calculating scores for Group {group}")
        sub_score = score_gene_sets(mat_exp[sub_cli.index], gene_list, score_method=score_method, kcdf=kcdf)
        survival = sub_cli[['time', 'event']]

        for sig in sub_score.columns:
            data = survival.assign(Score=sub_score[sig].values)
            rows.append({'Group': group, 'Signature': sig, **fit_univariate_cox(data)})

    if not rows:
        raise ValueError("No gene set has a gene in mat_exp")

    df = pd.DataFrame(rows, columns=RESULT_COLUMNS)
    df['fdr'] = adjust_pvalues(df)
    df['Significance'] = [significance_stars(p, show_ns=show_ns) for p in df['pvalue']]

    group_size = {group: len(sub_cli) for group, sub_cli in partitions.items()}
    df['GroupName'] = df['Group']
    df['GroupSize'] = df['GroupName'].map(group_size).astype(int)
    df['Group'] = df['GroupName'] + '_(n=' + df['GroupSize'].astype(str) + ')'
    df = df.sort_values('Cindex', ascending=False, kind='mergesort').reset_index(drop=True)

    if return_df:
        return df

    return plot_mp_coxph(df, xlab=xlab, ylab=ylab, title=title, color_asterisks=color_asterisks)
