"""
Helpers for pandas DataFrames used as column-oriented datasets.

Column metadata lives in ``DataFrame.attrs["metadata"]``, keyed by
column name. Every helper here returns a new DataFrame carrying
the metadata of the columns it keeps.
"""

import copy
import numpy as np
import pandas as pd

from scipy import sparse

__all__ = [
    "get_metadata",
    "with_column",
    "select",
    "drop",
    "rename",
    "vector_column",
    "stack_vectors",
    "is_vector"
]

_METADATA_KEY = "metadata"

def _all_metadata(dataset):
    return dataset.attrs.get(_METADATA_KEY, {})

def _set_metadata(dataset, metadata):
    attrs = {k: v for k, v in dataset.attrs.items() if k != _METADATA_KEY}
    attrs[_METADATA_KEY] = metadata
    dataset.attrs = attrs
    return dataset

def get_metadata(dataset, col):
    """ Metadata dictionary of column `col` (empty if none) """
    return copy.deepcopy(_all_metadata(dataset).get(col, {}))

def vector_column(vectors, index=None):
    """
    Build an object Series holding one vector (or other
    container) per row, without numpy broadcasting them
    into a 2-D array.
    """
    vectors = list(vectors)
    arr = np.empty(len(vectors), dtype=object)
    for i, v in enumerate(vectors):
        arr[i] = v
    return pd.Series(arr, index=index)

def with_column(dataset, col, values, metadata=None):
    """
    Add or replace column `col`, attaching `metadata` to it.
    Replacing a column without new metadata drops its old one.
    """
    out = dataset.copy()
    if not isinstance(values, pd.Series) and not np.isscalar(values):
        values = list(values)
        if any(is_vector(v) or isinstance(v, dict) for v in values):
            values = vector_column(values, index=dataset.index)
        else:
            values = pd.Series(values, index=dataset.index)
    out[col] = values
    metadata_ = copy.deepcopy(_all_metadata(dataset))
    metadata_.pop(col, None)
    if metadata:
        metadata_[col] = copy.deepcopy(metadata)
    return _set_metadata(out, metadata_)

def select(dataset, cols):
    """ Keep only `cols`, in the given order """
    cols = list(cols)
    out = dataset[cols].copy()
    metadata = _all_metadata(dataset)
    return _set_metadata(out, {
        k: copy.deepcopy(v) for k, v in metadata.items() if k in cols})

def drop(dataset, cols):
    """ Drop `cols` if present """
    cols = [c for c in cols if c in dataset.columns]
    return select(dataset, [c for c in dataset.columns if c not in cols])

def rename(dataset, old, new):
    """ Rename column `old` to `new`, moving its metadata along """
    out = dataset.rename(columns={old: new})
    metadata = copy.deepcopy(_all_metadata(dataset))
    metadata.pop(new, None)
    if old in metadata:
        metadata[new] = metadata.pop(old)
    return _set_metadata(out, metadata)

def is_vector(value):
    """ Returns whether a column cell holds a feature vector """
    return (
        isinstance(value, (np.ndarray, list, tuple))
        or sparse.issparse(value)
        )

def stack_vectors(vectors):
    """
    Stack a column of vectors into a 2-D feature matrix. Any
    sparse cell yields a scipy csr matrix, otherwise a dense
    numpy array is returned.
    """
    vectors = list(vectors)
    if not vectors:
        raise ValueError("Cannot stack an empty column of vectors.")
    if any(sparse.issparse(v) for v in vectors):
        return sparse.vstack([
            sparse.csr_matrix(v) if sparse.issparse(v)
            else sparse.csr_matrix(np.asarray(v, dtype=float).reshape(1, -1))
            for v in vectors]).tocsr()
    return np.vstack([np.asarray(v, dtype=float).ravel() for v in vectors])
