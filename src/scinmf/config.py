"""
Default parameters shared by the library functions and the command line.
"""

# Configuration dictionary for analysis defaults
CONFIG = {
    'nmf': {
        'k_range': range(3, 9),
        'project': 'NMF',
        'normalization_method': 'SCT',
        'min_cell': 10,
        'variable_features_n': 7000,
        'do_scale': False,
        'do_center': True,
        'n_jobs': 1,
        'seed': 123,
        'rm_mt': True,
        'rm_rp': True,
        'rm_hsp': True,
        'loss': 'mse',
        'max_iter': 5000,
        'method': 'scd',
        'n_program_genes': 50,
    },
    'coxph': {
        'time': 'OS.time',
        'event': 'OS.status',
        'min_sample': 15,
        'score_method': 'ssgsea',
        'kcdf': 'Gaussian',
        'show_ns': False,
    },
    'plot': {
        'xlab': 'MetaProgram',
        'ylab': 'Group',
        'title': 'Univariate Cox Regression',
        'color_asterisks': 'white',
        # ColorBrewer RdYlBu (11 classes), blue to red
        'palette': ['#313695', '#4575B4', '#74ADD1', '#ABD9E9', '#E0F3F8', '#FFFFBF',
                    '#FEE090', '#FDAE61', '#F46D43', '#D73027', '#A50026'],
        'dpi': 300,
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    },
}

# Gene families removed before factorization, keyed by the run_nmf toggle
GENE_FAMILY_PATTERNS = {
    'rm_mt': r'^MT-',
    'rm_rp': r'^RP[SL]',
    'rm_hsp': r'^HSP',
}

NORMALIZATION_METHODS = ('SCT', 'LogNormalize')
SCORE_METHODS = ('ssgsea', 'gsva', 'plage', 'average')

# NNLM-style option names mapped onto sklearn.decomposition.NMF arguments
NMF_LOSSES = {'mse': 'frobenius', 'mkl': 'kullback-leibler'}
NMF_SOLVERS = {'scd': 'cd', 'lee': 'mu'}
