import numpy as np
import pytest
from scipy.stats import chi2

from qrscreen.core.score import (
    cholesky_whiten,
    composite_pvalue,
    score_block,
    tau_covariance,
)
from qrscreen.errors import FatalInputError


@pytest.mark.parametrize("taus", [(0.5,), (0.1, 0.5, 0.9), (0.75, 0.2, 0.4)])
def test_tau_covariance_symmetric_with_binomial_diagonal(taus):
    vn = tau_covariance(taus)
    t = np.asarray(taus)
    assert vn.shape == (len(taus), len(taus))
    assert np.allclose(vn, vn.T)
    assert np.allclose(np.diag(vn), t - t**2)


def test_tau_covariance_entries():
    vn = tau_covariance([0.1, 0.5])
    assert np.isclose(vn[0, 1], 0.1 - 0.05)
    assert np.all(np.linalg.eigvalsh(tau_covariance([0.1, 0.3, 0.6, 0.9])) > 0)


def test_tau_covariance_rejects_bad_levels():
    with pytest.raises(FatalInputError):
        tau_covariance([0.5, 1.0])
    with pytest.raises(FatalInputError):
        tau_covariance([])


def test_cholesky_whitening_round_trip():
    vn2 = tau_covariance([0.1, 0.25, 0.5, 0.75, 0.9]) * 3.7
    sn = np.array([0.4, -1.2, 2.0, 0.3, -0.8])
    L, sn2 = cholesky_whiten(sn, vn2)
    assert np.allclose(L @ L.T, vn2, atol=1e-12)
    assert np.allclose(np.triu(L, 1), 0.0)
    assert np.isclose(sn2 @ sn2, sn @ np.linalg.solve(vn2, sn))


def test_composite_pvalue_fails_softly_for_duplicated_levels():
    vn = tau_covariance([0.5, 0.5])
    p, failed = composite_pvalue(np.array([1.0, 1.0]), vn, 4.0)
    assert failed
    assert np.isnan(p)


def test_composite_single_tau_matches_quantile_pvalue():
    vn = tau_covariance([0.9])
    p, failed = composite_pvalue(np.array([1.3]), vn, 2.0)
    assert not failed
    assert np.isclose(p, chi2.sf(1.3**2 / (0.09 * 2.0), df=1))


def test_score_block_statistics_and_degenerate_column():
    rng = np.random.default_rng(2)
    n = 25
    ranks = rng.uniform(-0.5, 0.5, size=(n, 2))
    x = rng.normal(size=n)
    Xstar = np.column_stack([x, np.zeros(n)])
    raw_ss = np.array([x @ x, 9.0])
    vn = tau_covariance([0.3, 0.7])

    out = score_block(Xstar, raw_ss, ranks, vn)

    sn = x @ ranks
    expected = chi2.sf(sn**2 / (np.diag(vn) * (x @ x)), df=1)
    assert np.allclose(out.scores[0], sn)
    assert np.allclose(out.pvalues[0], expected)
    assert out.degenerate.tolist() == [False, True]
    assert np.all(out.pvalues[1] == 1.0)
    assert out.composite_failed.tolist() == [False, True]
    assert np.isnan(out.composite[1])
    assert 0.0 <= out.composite[0] <= 1.0


def test_score_block_uses_residual_sum_of_squares_when_given():
    rng = np.random.default_rng(4)
    n = 20
    ranks = rng.uniform(-0.5, 0.5, size=(n, 1))
    X = np.column_stack([np.full(n, 2.0), rng.normal(size=n)])
    raw_ss = np.einsum("ij,ij->j", X, X)
    centred = X - X.mean(axis=0)
    resid_ss = np.einsum("ij,ij->j", centred, centred)

    out = score_block(X, raw_ss, ranks, tau_covariance([0.5]), resid_ss=resid_ss)

    assert out.degenerate.tolist() == [True, False]
    assert np.allclose(out.scores[:, 0], X.T @ ranks[:, 0])
