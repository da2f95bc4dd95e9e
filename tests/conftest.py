import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import anndata as ad
import pytest


def make_counts_adata(cells_per_patient, n_genes=200, seed=0):
    """Poisson counts for several patients plus a few MT/RP/HSP genes."""
    rng = np.random.default_rng(seed)
    genes = [f"G{i}" for i in range(n_genes)] + ["MT-CO1", "MT-ND1", "RPS3", "RPL5", "HSPA1A"]
    n_cells = sum(cells_per_patient.values())
    # gene specific rates so that some genes are more variable than others
    rates = 0.5 + rng.gamma(shape=1.0, scale=2.0, size=len(genes))
    counts = rng.poisson(rates, size=(n_cells, len(genes))).astype(np.float32)
    patients = [p for p, n in cells_per_patient.items() for _ in range(n)]
    obs = pd.DataFrame(
        {"patient": patients},
        index=[f"cell{i}" for i in range(n_cells)]
    )
    return ad.AnnData(X=counts, obs=obs, var=pd.DataFrame(index=genes))


@pytest.fixture
def counts_adata():
    return make_counts_adata({"P1": 40, "P2": 35, "P3": 4})


@pytest.fixture
def survival_data():
    """Expression (genes x samples), clinical table and gene sets for 40 subjects."""
    rng = np.random.default_rng(1)
    n = 40
    samples = [f"S{i}" for i in range(n)]
    genes = [f"G{i}" for i in range(30)]
    expr = pd.DataFrame(rng.normal(5, 1, size=(len(genes), n)), index=genes, columns=samples)
    risk = expr.loc[["G0", "G1", "G2"]].mean()
    time = rng.exponential(scale=np.exp(-(risk - risk.mean())) * 10)
    event = (rng.uniform(size=n) < 0.75).astype(int)
    cli = pd.DataFrame(
        {
            "OS.time": time,
            "OS.status": event,
            "sex": ["M"] * 30 + ["F"] * 10,
            "stage": ["I", "II"] * 20,
        },
        index=samples
    )
    gene_sets = {
        "MP1": ["G0", "G1", "G2"],
        "MP2": ["G10", "G11", "G12", "G13"],
        "MP3": ["G20", "G21", "NOT_A_GENE"],
    }
    return expr, cli, gene_sets
