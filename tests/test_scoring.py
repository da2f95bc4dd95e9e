import logging

import numpy as np
import pandas as pd
import pytest

from scinmf.survival_analysis import score_gene_sets, match_gene_sets


@pytest.fixture
def expr():
    rng = np.random.default_rng(5)
    genes = [f"G{i}" for i in range(40)]
    samples = [f"S{i}" for i in range(12)]
    return pd.DataFrame(rng.normal(5, 1, size=(40, 12)), index=genes, columns=samples)


def test_match_gene_sets_drops_empty_sets(caplog):
    with caplog.at_level(logging.WARNING):
        matched = match_gene_sets({"A": ["G1", "X", "G1", "G2"], "EMPTY": ["X", "Y"]}, ["G1", "G2", "G3"])
    assert "Removed gene set EMPTY for no gene found in the expression matrix" in caplog.text
    assert matched == {"A": ["G1", "G2"]}


def test_average_scores(expr):
    scores = score_gene_sets(expr, {"A": ["G0", "G1", "MISSING"], "B": ["G5"]}, score_method="average")
    assert list(scores.columns) == ["A", "B"]
    assert list(scores.index) == list(expr.columns)
    np.testing.assert_allclose(scores["A"].values, expr.loc[["G0", "G1"]].mean().values)
    np.testing.assert_allclose(scores["B"].values, expr.loc["G5"].values)


def test_plage_scores_follow_the_set_signal(expr):
    signal = np.linspace(-2, 2, expr.shape[1])
    shifted = expr.copy()
    for gene in ["G0", "G1", "G2", "G3"]:
        shifted.loc[gene] = shifted.loc[gene] + 5 * signal
    scores = score_gene_sets(shifted, {"A": ["G0", "G1", "G2", "G3"]}, score_method="plage")
    assert scores.shape == (12, 1)
    assert abs(np.corrcoef(scores["A"], signal)[0, 1]) > 0.9


def test_ssgsea_scores_shape(expr):
    scores = score_gene_sets(expr, {"A": ["G0", "G1", "G2", "G3", "G4"], "B": ["G10", "G11", "G12"]},
                             score_method="ssgsea")
    assert list(scores.columns) == ["A", "B"]
    assert list(scores.index) == list(expr.columns)
    assert np.isfinite(scores.values).all()


def test_invalid_score_method(expr):
    with pytest.raises(ValueError, match="score_method"):
        score_gene_sets(expr, {"A": ["G0"]}, score_method="singscore")


def test_no_usable_gene_set(expr, caplog):
    with caplog.at_level(logging.WARNING):
        scores = score_gene_sets(expr, {"A": ["X"]}, score_method="average")
    assert "Removed gene set X" in caplog.text
    assert scores.shape == (12, 0)


def test_gsva_scores_shape(expr):
    scores = score_gene_sets(expr, {"A": ["G0", "G1", "G2", "G3", "G4"], "B": ["G10", "G11", "G12"]},
                             score_method="gsva")
    assert list(scores.columns) == ["A", "B"]
    assert list(scores.index) == list(expr.columns)
    assert np.isfinite(scores.values).all()
