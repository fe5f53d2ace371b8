"""
hdtsa - Inference for High-Dimensional Vector Time Series
"""

__version__ = "0.1.0"

# =============================================================================
# CORE TYPES
# =============================================================================
from .types import (
    Eigenpairs,
    FactorResult,
    SegmentationResult,
    GroupingResult,
    TSPCAResult,
    CLIMEControl,
    WhiteningMethod,
    GroupingMethod,
)

# =============================================================================
# ERRORS
# =============================================================================
from .exceptions import (
    HDTSAError,
    DimensionError,
    NumericalError,
    ConfigError,
    EstimationError,
)

# =============================================================================
# AUTOCOVARIANCE PIPELINE
# =============================================================================
from .computation import (
    sample_autocovariance,
    threshold,
    default_delta,
    aggregate_autocovariance,
)

# =============================================================================
# EIGENANALYSIS & FACTORS
# =============================================================================
from .decomposition import (
    eigen_decomposition,
    select_rank,
    factors,
)

# =============================================================================
# SEGMENTATION
# =============================================================================
from .whitening import (
    whiten,
    CLIMEEstimator,
)
from .segmentation import (
    segment_ts,
    pca_ts,
)
from .grouping import (
    GroupingStrategy,
    MaxCrossCorrelationGrouping,
    FDRGrouping,
    make_grouping,
    prewhiten,
    max_cross_correlation,
)

# =============================================================================
# SIMULATION
# =============================================================================
from .simulation import (
    arma_series,
    simulate_factor_series,
    simulate_segmented_series,
)

# =============================================================================
# I/O
# =============================================================================
from .io import (
    save_result,
    load_result,
    ResultFormat,
)

# =============================================================================
# PUBLIC API
# =============================================================================
__all__ = [
    "__version__",
    "Eigenpairs",
    "FactorResult",
    "SegmentationResult",
    "GroupingResult",
    "TSPCAResult",
    "CLIMEControl",
    "WhiteningMethod",
    "GroupingMethod",
    "HDTSAError",
    "DimensionError",
    "NumericalError",
    "ConfigError",
    "EstimationError",
    "sample_autocovariance",
    "threshold",
    "default_delta",
    "aggregate_autocovariance",
    "eigen_decomposition",
    "select_rank",
    "factors",
    "whiten",
    "CLIMEEstimator",
    "segment_ts",
    "pca_ts",
    "GroupingStrategy",
    "MaxCrossCorrelationGrouping",
    "FDRGrouping",
    "make_grouping",
    "prewhiten",
    "max_cross_correlation",
    "arma_series",
    "simulate_factor_series",
    "simulate_segmented_series",
    "save_result",
    "load_result",
    "ResultFormat",
]
