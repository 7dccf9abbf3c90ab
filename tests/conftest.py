from __future__ import annotations

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def covariate_data():
    rng = np.random.default_rng(11)
    n = 60
    Z = pd.DataFrame({"age": rng.normal(size=n), "batch": rng.normal(size=n)})
    X = pd.DataFrame(
        {
            "dup_age": Z["age"].to_numpy(),
            "snp_a": rng.normal(size=n),
            "snp_b": rng.binomial(2, 0.3, size=n).astype(float),
        }
    )
    y = 0.5 * Z["age"].to_numpy() + 1.5 * X["snp_a"].to_numpy() + rng.standard_t(4, size=n)
    return X, y, Z
