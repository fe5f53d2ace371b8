"""
Test Suite for Examples Package
===============================
"""

import pytest
import sys
from pathlib import Path

# =============================================================================
# PATH SETUP
# =============================================================================
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from examples import list_examples, run_example  # noqa: E402

from hdtsa import FactorResult, TSPCAResult  # noqa: E402


class TestRunExample:
    """Test that examples run end-to-end via the wrapper."""

    def test_estimate_factors(self):
        result = run_example("estimate_factors", n=200, p=60, ar=(0.8, -0.7))
        assert isinstance(result, FactorResult)
        assert result.loading_mat.shape[0] == 60

    def test_segment_series(self):
        result = run_example("segment_series", n=800)
        assert isinstance(result, TSPCAResult)
        assert sorted(i for g in result.groups for i in g) == list(range(6))

    def test_unknown_example(self):
        with pytest.raises(ValueError, match="Unknown example"):
            run_example("backtest")

    def test_list_examples(self):
        assert set(list_examples()) == {"estimate_factors", "segment_series"}
