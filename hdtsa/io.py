"""
io.py - Result Serialization and Deserialization

This module handles saving and loading FactorResult and TSPCAResult
to/from disk. Supported formats:
- NPZ: NumPy's archive format (default, exact arrays)
- JSON: Human-readable format

Groups are stored in NPZ as a flat index array plus group sizes.

Example Usage:
-------------
    >>> from hdtsa.io import save_result, load_result
    >>>
    >>> save_result(res, "segmentation.npz")
    >>> loaded = load_result("segmentation.npz")
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Union

import numpy as np

from .types import FactorResult, TSPCAResult

Result = Union[FactorResult, TSPCAResult]


class ResultFormat(str, Enum):
    """Supported result file formats."""
    NPZ = "npz"
    JSON = "json"


def save_result(
    result: Result,
    path: Union[str, Path],
    format: ResultFormat = ResultFormat.NPZ
) -> None:
    """
    Save an estimation result to disk.

    Parameters
    ----------
    result : FactorResult or TSPCAResult
        The result to save.
    path : str or Path
        Destination file path.
    format : ResultFormat, default=ResultFormat.NPZ
        Output format.

    Examples
    --------
    >>> save_result(res, "factors.npz")
    >>> save_result(res, "factors.json", format=ResultFormat.JSON)
    """
    path = Path(path)

    if not isinstance(result, (FactorResult, TSPCAResult)):
        raise TypeError(f"Cannot save object of type {type(result).__name__}")

    if format == ResultFormat.NPZ:
        _save_npz(result, path)
    elif format == ResultFormat.JSON:
        _save_json(result, path)
    else:
        raise ValueError(f"Unsupported format: {format}")


def load_result(path: Union[str, Path]) -> Result:
    """
    Load an estimation result from disk.

    Parameters
    ----------
    path : str or Path
        Source file path. Format is inferred from extension.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file format or result kind is not recognized.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Result file not found: {path}")

    if path.suffix == ".npz":
        return _from_dict(_load_npz(path))
    elif path.suffix == ".json":
        with open(path, 'r') as f:
            return _from_dict(json.load(f))
    else:
        raise ValueError(f"Unknown result format: {path.suffix}")


def _to_dict(result: Result) -> dict:
    if isinstance(result, FactorResult):
        return {
            "kind": "factors",
            "factor_num": result.factor_num,
            "loading_mat": result.loading_mat,
            "X": result.X,
            "lag_k": result.lag_k,
            "eigenvalues": result.eigenvalues,
            "method": result.method,
            "p": result.loading_mat.shape[0],
            "n": result.X.shape[0],
        }
    return {
        "kind": "tspca",
        "B": result.B,
        "X": result.X,
        "groups": [list(g) for g in result.groups],
        "method": result.method,
    }


def _from_dict(data: dict) -> Result:
    kind = data.get("kind")
    if kind == "factors":
        r = int(data["factor_num"])
        return FactorResult(
            factor_num=r,
            loading_mat=np.asarray(data["loading_mat"], dtype=float).reshape(int(data["p"]), r),
            X=np.asarray(data["X"], dtype=float).reshape(int(data["n"]), r),
            lag_k=int(data["lag_k"]),
            eigenvalues=np.asarray(data["eigenvalues"], dtype=float),
            method=str(data["method"]),
        )
    if kind == "tspca":
        groups = tuple(tuple(int(i) for i in g) for g in data["groups"])
        return TSPCAResult(
            B=np.asarray(data["B"], dtype=float),
            X=np.asarray(data["X"], dtype=float),
            no_groups=len(groups),
            no_of_members=tuple(len(g) for g in groups),
            groups=groups,
            method=str(data["method"]),
        )
    raise ValueError(f"Unknown result kind: {kind}")


def _save_npz(result: Result, path: Path) -> None:
    data = _to_dict(result)
    if data["kind"] == "tspca":
        groups = data.pop("groups")
        data["group_members"] = np.array([i for g in groups for i in g], dtype=int)
        data["group_sizes"] = np.array([len(g) for g in groups], dtype=int)
    np.savez(path, **data)


def _load_npz(path: Path) -> dict:
    with np.load(path, allow_pickle=False) as archive:
        data = {key: archive[key] for key in archive.files}

    # 0-d arrays hold the scalar fields
    data = {key: (value.item() if value.ndim == 0 else value) for key, value in data.items()}

    if data.get("kind") == "tspca":
        bounds = np.cumsum(data.pop("group_sizes"))[:-1]
        data["groups"] = [g.tolist() for g in np.split(data.pop("group_members"), bounds)]
    return data


def _save_json(result: Result, path: Path) -> None:
    data = _to_dict(result)
    data = {key: (value.tolist() if isinstance(value, np.ndarray) else value) for key, value in data.items()}

    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
