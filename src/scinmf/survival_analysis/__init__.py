"""
Survival Analysis package initialization
"""

from .mp_coxph import (
    mp_coxph,
    split_cohort,
    fit_univariate_cox,
    significance_level,
    significance_stars
)
from .scoring import score_gene_sets, match_gene_sets
from .plotting import plot_mp_coxph, hr_upper_limit, hr_colormap, clip_hazard_ratio
