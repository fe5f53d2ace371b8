"""
test_segmentation.py - Tests for Time-Series PCA

Tests cover:
- The segmentation transform (shapes, Z = Y B', whitening identity)
- Recovery of the 3/2/1 block design
- Idempotence for both grouping strategies
- Configuration and dimension errors
"""

import pytest
import numpy as np

from hdtsa import (
    segment_ts,
    pca_ts,
    SegmentationResult,
    TSPCAResult,
    CLIMEControl,
    ConfigError,
    DimensionError,
    simulate_segmented_series,
)


class TestSegmentTS:
    """Tests for the transform stage."""

    def test_shapes(self, segmented_dataset):
        """B is p x p and Z is n x p."""
        Y, _, _ = segmented_dataset
        seg = segment_ts(Y, lag_k=5)

        assert isinstance(seg, SegmentationResult)
        assert seg.B.shape == (6, 6)
        assert seg.Z.shape == (1500, 6)
        assert seg.lag_k == 5

    def test_transformed_series(self, segmented_dataset):
        """Z = Y @ B.T."""
        Y, _, _ = segmented_dataset
        seg = segment_ts(Y, lag_k=5)
        assert np.allclose(seg.Z, Y @ seg.B.T)

    def test_uncorrelated_components(self, segmented_dataset):
        """B V B' = I, so the components of Z are contemporaneously uncorrelated."""
        Y, _, _ = segmented_dataset
        seg = segment_ts(Y, lag_k=5)
        assert np.allclose(np.cov(seg.Z, rowvar=False), np.eye(6), atol=1e-8)

    def test_eigenvalues(self, segmented_dataset):
        """Eigenvalues of W_y are descending and at least 1 (identity term)."""
        Y, _, _ = segmented_dataset
        seg = segment_ts(Y, lag_k=5)
        assert np.all(np.diff(seg.eigenvalues) <= 0)
        assert seg.eigenvalues[-1] >= 1.0 - 1e-10

    def test_thresholded(self, segmented_dataset):
        """Thresholding runs on the normalized series."""
        Y, _, _ = segmented_dataset
        seg = segment_ts(Y, lag_k=5, thresh=True)
        assert seg.B.shape == (6, 6)

    def test_precision_estimator(self, segmented_dataset):
        """opt=2 with the exact inverse covariance reproduces opt=1."""
        Y, _, _ = segmented_dataset

        def exact(Y):
            return np.linalg.inv(np.cov(Y, rowvar=False))

        seg1 = segment_ts(Y, lag_k=3)
        seg2 = segment_ts(Y, lag_k=3, opt=2, precision_estimator=exact)
        assert np.allclose(seg1.B, seg2.B, atol=1e-8)

    def test_clime(self, rng):
        """opt=2 runs end to end with CLIME on a small problem."""
        Y, _, _ = simulate_segmented_series(n=300, rng=rng)
        control = CLIMEControl(nlambda=2, lambda_min=0.001, lambda_max=0.01, folds=2, standardize=True)
        seg = segment_ts(Y, lag_k=2, opt=2, control=control)
        assert seg.B.shape == (6, 6)
        assert np.all(np.isfinite(seg.Z))

    def test_lag_too_large(self):
        """lag_k >= n raises DimensionError."""
        with pytest.raises(DimensionError):
            segment_ts(np.random.default_rng(0).standard_normal((4, 2)), lag_k=4)

    def test_invalid_opt(self, segmented_dataset):
        """opt outside {1, 2} raises ConfigError."""
        Y, _, _ = segmented_dataset
        with pytest.raises(ConfigError):
            segment_ts(Y, opt=3)


class TestPCATS:
    """Tests for the pca_ts entry point."""

    def test_recovers_blocks_fdr(self):
        """The 3/2/1 design is recovered in most seeded trials (FDR)."""
        hits = 0
        for seed in range(5):
            Y, _, _ = simulate_segmented_series(n=1500, rng=np.random.default_rng(seed))
            res = pca_ts(Y, lag_k=5, permutation="fdr", beta=1e-10)
            hits += res.no_groups == 3 and sorted(res.no_of_members) == [1, 2, 3]
        assert hits >= 3

    def test_recovers_blocks_max(self):
        """The 3/2/1 design is recovered on every seeded trial (max)."""
        for seed in range(5):
            Y, _, _ = simulate_segmented_series(n=1500, rng=np.random.default_rng(seed))
            res = pca_ts(Y, lag_k=5, permutation="max", rng=seed)

            assert isinstance(res, TSPCAResult)
            assert res.method == "Maximum cross correlation method"
            assert res.no_groups == 3
            assert sorted(res.no_of_members) == [1, 2, 3]

    @pytest.mark.parametrize("kwargs", [
        {"permutation": "fdr", "beta": 0.1},
        {"permutation": "max", "rng": 0},
        {"permutation": "fdr", "beta": 0.1, "prewhiten": False, "m": 14},
    ])
    def test_short_series_fails_before_segmentation(self, monkeypatch, rng, kwargs):
        """A series too short for the grouping test is rejected before any transform."""
        import hdtsa.segmentation as segmentation

        def fail(*args, **kw):
            raise AssertionError("segmentation computed")

        monkeypatch.setattr(segmentation, "segment_ts", fail)
        with pytest.raises(DimensionError, match="m="):
            pca_ts(rng.standard_normal((14, 3)), lag_k=1, **kwargs)

    @pytest.mark.parametrize("kwargs", [
        {"permutation": "max", "rng": 3},
        {"permutation": "fdr", "beta": 1e-6},
    ])
    def test_partition(self, segmented_dataset, kwargs):
        """Groups partition range(p) for both methods."""
        Y, _, _ = segmented_dataset
        res = pca_ts(Y, lag_k=5, **kwargs)

        members = sorted(i for g in res.groups for i in g)
        assert members == list(range(6))
        assert sum(res.no_of_members) == 6
        assert res.no_groups == len(res.groups)

    def test_idempotent_max(self, segmented_dataset):
        """Same Y and seed give identical B, X and groups."""
        Y, _, _ = segmented_dataset
        a = pca_ts(Y, lag_k=5, permutation="max", rng=21)
        b = pca_ts(Y, lag_k=5, permutation="max", rng=21)

        assert np.array_equal(a.B, b.B)
        assert np.array_equal(a.X, b.X)
        assert a.groups == b.groups

    def test_idempotent_fdr(self, segmented_dataset):
        """Same Y and beta give identical B, X and groups."""
        Y, _, _ = segmented_dataset
        a = pca_ts(Y, lag_k=5, permutation="fdr", beta=1e-10)
        b = pca_ts(Y, lag_k=5, permutation="fdr", beta=1e-10)

        assert np.array_equal(a.B, b.B)
        assert np.array_equal(a.X, b.X)
        assert a.groups == b.groups

    def test_matches_segment_ts(self, segmented_dataset):
        """pca_ts returns the transform computed by segment_ts."""
        Y, _, _ = segmented_dataset
        seg = segment_ts(Y, lag_k=5)
        res = pca_ts(Y, lag_k=5, permutation="fdr", beta=1e-10)

        assert np.array_equal(res.B, seg.B)
        assert np.array_equal(res.X, seg.Z)

    def test_single_variable(self, rng):
        """p=1 gives one group."""
        res = pca_ts(rng.standard_normal((100, 1)), lag_k=2, rng=0)
        assert res.groups == ((0,),)
        assert res.p == 1

    def test_missing_beta_fails_fast(self, monkeypatch):
        """permutation='fdr' without beta fails before any computation."""
        import hdtsa.segmentation as segmentation

        def fail(*args, **kwargs):
            raise AssertionError("segmentation computed")

        monkeypatch.setattr(segmentation, "segment_ts", fail)
        with pytest.raises(ConfigError, match="beta"):
            pca_ts(np.zeros((10, 2)), permutation="fdr")

    def test_invalid_permutation(self, segmented_dataset):
        """Unknown permutation names raise ConfigError."""
        Y, _, _ = segmented_dataset
        with pytest.raises(ConfigError):
            pca_ts(Y, permutation="bootstrap")

    def test_repr(self, segmented_dataset):
        """repr summarizes the groups."""
        Y, _, _ = segmented_dataset
        res = pca_ts(Y, lag_k=5, permutation="fdr", beta=1e-10)
        text = repr(res)
        assert text.startswith("TSPCAResult(p=6")
        assert "FDR based on multiple tests" in text
