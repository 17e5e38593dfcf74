"""Principal-component reduction of the 3-channel color window."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class PcaResult:
    ok: bool
    variance: np.ndarray  # per component, descending
    basis: np.ndarray  # 3x3, column j is axis j


def pca_basis(rgb: np.ndarray) -> PcaResult:
    """Eigen-decompose the sample covariance of an (n, 3) matrix.

    ``ok`` is False for non-finite input, fewer than two rows, or a window
    without variance along the leading axis.
    """
    x = np.asarray(rgb, dtype=np.float64)
    fail = PcaResult(False, np.zeros(3), np.eye(3))
    if x.ndim != 2 or x.shape[0] < 2 or not np.all(np.isfinite(x)):
        return fail
    cov = np.cov(x, rowvar=False)
    try:
        w, v = np.linalg.eigh(cov)
    except np.linalg.LinAlgError:
        return fail
    order = np.argsort(w)[::-1]
    w = w[order]
    v = v[:, order]
    if not w[0] > 0.0:
        return fail
    return PcaResult(True, w, v)


def project_first_component(rgb: np.ndarray, pca: PcaResult) -> np.ndarray:
    """Center rows by column means and project onto the first axis, unit variance."""
    x = np.asarray(rgb, dtype=np.float64)
    centered = x - x.mean(axis=0)
    return (centered @ pca.basis[:, 0]) / np.sqrt(pca.variance[0])
