"""
hdtsa Examples Package
======================

Runnable examples for the two inference procedures in hdtsa.

Examples
--------
estimate_factors : module
    Factor-number and loading estimation on a simulated factor model,
    standard and two-step.
segment_series : module
    Time-series PCA on the 3/2/1 block design with both grouping methods.
"""

__all__ = ["list_examples", "run_example"]


def list_examples():
    """
    Return a dictionary of available examples with descriptions.

    Returns
    -------
    dict
        Example name -> one-line description.
    """
    return {
        "estimate_factors": "Factor number and loadings, standard and two-step",
        "segment_series": "Time-series PCA with FDR and max grouping",
    }


def run_example(name, *args, **kwargs):
    """
    Dynamically import and run an example.

    Parameters
    ----------
    name : str
        Name of the example to run (without .py extension).
    *args, **kwargs
        Arguments to pass to the example's main() function.

    Returns
    -------
    result
        Return value from the example's main() function.

    Examples
    --------
    >>> from examples import run_example
    >>> res = run_example('segment_series', n=800)
    """
    import importlib

    valid_examples = list_examples().keys()
    if name not in valid_examples:
        raise ValueError(
            f"Unknown example '{name}'. Valid examples: {', '.join(valid_examples)}"
        )

    module = importlib.import_module(f"examples.{name}")
    return module.main(*args, **kwargs)
