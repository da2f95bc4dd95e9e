"""
Shared Functions Module
Common loading, saving and logging helpers used across the analysis modules
"""

import os
import logging
import pandas as pd
import matplotlib.pyplot as plt
from gseapy.parser import read_gmt

from scinmf.config import CONFIG

logger = logging.getLogger(__name__)


def setup_logging(log_file=None, level=None):
    """
    Configure the root logger for command line runs.

    Parameters:
    -----------
    log_file : str, optional
        Also write log records to this file
    level : str or int, optional
        Logging level, default taken from CONFIG['logging']
    """
    if level is None:
        level = CONFIG['logging']['level']
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    handlers = [logging.StreamHandler()]
    if log_file is not None:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=CONFIG['logging']['format'],
        handlers=handlers,
        force=True
    )


def load_expression_matrix(path):
    """
    Load a genes x samples expression matrix.

    The first column holds gene identifiers. Tab separated files are
    recognised by their .tsv/.txt extension.
    """
    sep = '\t' if path.endswith(('.tsv', '.txt', '.tsv.gz', '.txt.gz')) else ','
    expr = pd.read_csv(path, sep=sep, index_col=0, encoding='utf-8-sig')
    expr.index = expr.index.astype(str)
    expr.columns = expr.columns.astype(str)
    logger.info(f"Loaded expression matrix from {path} with shape {expr.shape}")
    return expr


def load_clinical_table(path, index_col=0):
    """
    Load a clinical table with one row per subject.

    Parameters:
    -----------
    path : str
        CSV file; the subject identifiers are read from `index_col`
    index_col : int or str
        Column holding the subject identifiers

    Returns:
    --------
    pd.DataFrame
        Clinical table indexed by subject id
    """
    cli = pd.read_csv(path, index_col=index_col, encoding='utf-8-sig')
    cli.index = cli.index.astype(str)
    logger.info(f"Loaded clinical data for {len(cli)} subjects from {path}")
    logger.debug(f"Clinical data columns: {cli.columns.tolist()}")
    return cli


def load_gene_signatures(signature_file):
    """
    Load gene signatures from file.

    GMT files are parsed with gseapy. Any other file is read as blocks of
    '>' prefixed signature names followed by one gene per line.

    Returns:
    --------
    dict
        Mapping from signature name to list of genes
    """
    if not os.path.exists(signature_file):
        raise FileNotFoundError(f"Signature file not found: {signature_file}")

    if signature_file.endswith('.gmt'):
        signatures = read_gmt(signature_file)
    else:
        signatures = {}
        current_signature = None
        with open(signature_file, 'r') as f:
            for line in f:
                line = line.strip()

                # Skip empty lines
                if not line:
                    continue

                if line.startswith('>'):
                    current_signature = line[1:].strip()
                    signatures[current_signature] = []
                elif current_signature is not None:
                    signatures[current_signature].append(line)

    logger.info(f"Loaded {len(signatures)} gene signatures from {signature_file}")
    for sig_name, genes in signatures.items():
        logger.debug(f"- {sig_name}: {len(genes)} genes")

    return signatures


def save_gene_signatures(signatures, path, description='sciNMF'):
    """Write gene signatures as a GMT file"""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, 'w') as f:
        for name, genes in signatures.items():
            f.write('\t'.join([name, description] + list(genes)) + '\n')
    logger.info(f"Saved {len(signatures)} gene signatures to {path}")
    return path


def save_results(df, output_dir, filename, index=True):
    """Save results to CSV file and return the written path"""
    os.makedirs(output_dir, exist_ok=True)
    output_file = os.path.join(output_dir, filename)
    df.to_csv(output_file, index=index)
    logger.info(f"Saved results to {output_file}")
    return output_file


def save_plot(fig, filename, output_dir, dpi=None):
    """
    Save a matplotlib figure to the specified output directory

    Parameters:
    -----------
    fig : matplotlib.figure.Figure
        Figure to save
    filename : str
        Name of the file (without extension)
    output_dir : str
        Directory to save the plot
    """
    if dpi is None:
        dpi = CONFIG['plot']['dpi']
    os.makedirs(output_dir, exist_ok=True)
    plot_path = os.path.join(output_dir, f"{filename}.png")
    fig.savefig(plot_path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
    logger.info(f"Saved plot: {plot_path}")
    return plot_path
