import pandas as pd


def get_program_genes(result, n_genes=50):
    """
    Extract the top genes of every program of one sample.

    Args:
        result (dict): {'W': genes x programs DataFrame, 'H': ...} from run_nmf
        n_genes (int): Number of genes to keep per program

    Returns:
        dict: Program name -> genes ordered by decreasing loading. Genes with
        zero loading are never included.
    """
    W = result['W']
    programs = {}
    for program in W.columns:
        loadings = W[program]
        programs[program] = loadings[loadings > 0].nlargest(n_genes).index.tolist()
    return programs


def merge_program_genes(results, n_genes=50):
    """Top genes of all programs of all samples returned by run_nmf"""
    programs = {}
    for result in results.values():
        programs.update(get_program_genes(result, n_genes=n_genes))
    return programs


def program_loadings(results):
    """Concatenate the W matrices of all samples; genes absent in a sample get 0"""
    if not results:
        return pd.DataFrame()
    return pd.concat([result['W'] for result in results.values()], axis=1).fillna(0)
