import logging
import numpy as np
import pandas as pd

from scinmf.config import GENE_FAMILY_PATTERNS

logger = logging.getLogger(__name__)


def filter_genes(genes, rm_mt: bool = True, rm_rp: bool = True, rm_hsp: bool = True) -> pd.Index:
    """
    Remove mitochondrial (MT-), ribosomal protein (RPS/RPL) and heat shock
    protein (HSP) genes from a list of gene names, keeping the input order.
    """
    genes = pd.Index(genes).astype(str)
    toggles = {'rm_mt': rm_mt, 'rm_rp': rm_rp, 'rm_hsp': rm_hsp}
    keep = np.ones(len(genes), dtype=bool)
    for toggle, pattern in GENE_FAMILY_PATTERNS.items():
        if toggles[toggle]:
            hits = genes.str.contains(pattern, regex=True)
            logger.debug(f"{toggle}: removing {int(hits.sum())} genes matching {pattern}")
            keep &= ~np.asarray(hits)
    logger.info(f"Kept {int(keep.sum())} of {len(genes)} genes after gene family filtering")
    return genes[keep]
