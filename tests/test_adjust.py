import numpy as np
import pytest

from qrscreen.errors import FatalInputError
from qrscreen.stats.adjust import adjust_pvalues, bh_fdr, estimate_pi0, qvalue


def test_bh_fdr_basic():
    pvals = np.array([0.01, 0.02, 0.10, 0.20], dtype=float)
    qvals = bh_fdr(pvals)
    assert qvals.shape == pvals.shape
    assert np.allclose(qvals, [0.04, 0.04, 0.1333333, 0.2])


def test_bh_fdr_keeps_nan():
    qvals = bh_fdr(np.array([0.01, np.nan, 0.03]))
    assert np.isnan(qvals[1])
    assert np.allclose(qvals[[0, 2]], [0.02, 0.03])


@pytest.mark.parametrize("method", ["fdr", "qvalue"])
def test_adjustment_is_monotone_in_raw_pvalues(method):
    rng = np.random.default_rng(3)
    pvals = np.concatenate([rng.uniform(size=300), rng.uniform(0, 1e-3, size=30)])
    adj = adjust_pvalues(pvals, method)
    order = np.argsort(pvals, kind="mergesort")
    assert adj.shape == pvals.shape
    assert np.all(np.diff(adj[order]) >= -1e-12)
    assert np.all((adj >= 0.0) & (adj <= 1.0))


def test_qvalue_is_no_larger_than_bh():
    rng = np.random.default_rng(5)
    pvals = np.concatenate([rng.uniform(size=4000), rng.uniform(0, 1e-4, size=1000)])
    pi0 = estimate_pi0(pvals)
    assert 0.0 < pi0 <= 1.0
    assert pi0 < 0.95
    assert np.all(qvalue(pvals) <= bh_fdr(pvals) + 1e-12)


def test_qvalue_with_fixed_pi0_scales_bh():
    pvals = np.array([0.001, 0.01, 0.02, 0.5])
    assert np.allclose(qvalue(pvals, pi0=0.5), 0.5 * bh_fdr(pvals))


def test_pi0_falls_back_to_one_for_small_pvalues_only():
    assert estimate_pi0(np.array([1e-5, 2e-5, 0.01])) == 1.0


def test_unknown_method_is_fatal():
    with pytest.raises(FatalInputError, match="Unknown adjustment method"):
        adjust_pvalues(np.array([0.1, 0.2]), "invalid")


def test_out_of_range_pvalues_rejected():
    with pytest.raises(ValueError):
        bh_fdr(np.array([0.2, 1.5]))
