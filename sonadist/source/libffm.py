"""
Options and reader for the LIBFFM data format.

Each line of a LIBFFM file holds a label followed by
``field:feature:value`` triples, with zero-based field and
feature indices::

    1 0:3:0.5 1:17:1.0
    0 0:5:1.0 2:20:0.25
"""

import os
import numpy as np
import pandas as pd

from collections.abc import Mapping
from scipy import sparse

from ..distribute.attribute import vector_metadata
from ..distribute.dataset import vector_column, with_column

__all__ = [
    "LibFFMOptions",
    "read_libffm"
]

NUM_FEATURES = "numFeatures"
NUM_FIELDS = "numFields"
VECTOR_TYPE = "vectorType"
DENSE_VECTOR_TYPE = "dense"
SPARSE_VECTOR_TYPE = "sparse"
KEY_TYPE = "keyType"
INT_KEY_TYPE = "int"
LONG_KEY_TYPE = "long"

class _CaseInsensitiveMap(Mapping):
    """ Read-only mapping with case-insensitive string keys """
    def __init__(self, parameters):
        self._store = {
            str(k).lower(): (k, v) for k, v in dict(parameters).items()
            }

    def __getitem__(self, key):
        return self._store[str(key).lower()][1]

    def __iter__(self):
        return (k for k, _ in self._store.values())

    def __len__(self):
        return len(self._store)

def _positive_int(value):
    """ Positive integer value, or None if not numeric or not positive """
    try:
        value = int(str(value).strip())
    except ValueError:
        return None
    return value if value > 0 else None

def _choice(parameters, key, default, choices):
    """ Option value restricted to `choices` """
    value = parameters.get(key, default)
    if value not in choices:
        raise ValueError("Invalid value `{0}` for parameter `{1}`. Expected "
            "types are {2}.".format(
                value, key, " and ".join("`{0}`".format(c) for c in choices)))
    return value

class LibFFMOptions(object):
    """
    Options for the LIBFFM data source, read from a mapping of
    case-insensitive keys to string values.

    Options:
        numFeatures: number of features. If unspecified, nonpositive or
            not a number, it is determined from the data at the cost of
            one additional pass.
        numFields: number of fields. Ignored like ``numFeatures`` if
            unspecified, nonpositive or not a number.
        vectorType: 'sparse' (default) or 'dense' feature vectors
        keyType: 'int' (default) or 'long' index keys

    Args:
        parameters (dict): option names to values

    Raises:
        ValueError: on an unknown ``vectorType`` or ``keyType``
    """
    def __init__(self, parameters=None):
        parameters = _CaseInsensitiveMap(parameters or {})
        self._num_features = (
            _positive_int(parameters[NUM_FEATURES])
            if NUM_FEATURES in parameters else None)
        self._num_fields = (
            _positive_int(parameters[NUM_FIELDS])
            if NUM_FIELDS in parameters else None)
        self._is_sparse = _choice(
            parameters, VECTOR_TYPE, SPARSE_VECTOR_TYPE,
            (SPARSE_VECTOR_TYPE, DENSE_VECTOR_TYPE)) == SPARSE_VECTOR_TYPE
        self._is_long_key = _choice(
            parameters, KEY_TYPE, INT_KEY_TYPE,
            (INT_KEY_TYPE, LONG_KEY_TYPE)) == LONG_KEY_TYPE

    @property
    def num_features(self):
        return self._num_features

    @property
    def num_fields(self):
        return self._num_fields

    @property
    def is_sparse(self):
        return self._is_sparse

    @property
    def is_long_key(self):
        return self._is_long_key

    def as_dict(self):
        """ Normalized option map; parsing it again gives equal options """
        d = {
            VECTOR_TYPE: SPARSE_VECTOR_TYPE if self.is_sparse else DENSE_VECTOR_TYPE,
            KEY_TYPE: LONG_KEY_TYPE if self.is_long_key else INT_KEY_TYPE
            }
        if self.num_features is not None:
            d[NUM_FEATURES] = str(self.num_features)
        if self.num_fields is not None:
            d[NUM_FIELDS] = str(self.num_fields)
        return d

    def _key(self):
        return (self.num_features, self.num_fields,
                self.is_sparse, self.is_long_key)

    def __eq__(self, other):
        return isinstance(other, LibFFMOptions) and self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return "LibFFMOptions({0!r})".format(self.as_dict())

def _parse_line(line, line_number, file_path):
    """ Parse one LIBFFM line into (label, fields, features, values) """
    tokens = line.split()
    fields, features, values = [], [], []
    try:
        label = float(tokens[0])
        for token in tokens[1:]:
            field, feature, value = token.split(":")
            fields.append(int(field))
            features.append(int(feature))
            values.append(float(value))
    except ValueError as e:
        raise ValueError("Malformed LIBFFM record at line {0} of {1}: "
            "{2!r}".format(line_number, file_path, line)) from e
    return label, fields, features, values

def _list_files(path):
    if os.path.isdir(path):
        return [
            os.path.join(path, name) for name in sorted(os.listdir(path))
            if not name.startswith((".", "_"))
            ]
    return [path]

def _read_records(path):
    """ Yield (file, line number, parsed record) for all non-blank lines """
    for file_path in _list_files(path):
        with open(file_path, "r") as f:
            for line_number, line in enumerate(f, 1):
                if line.strip():
                    yield file_path, line_number, _parse_line(
                        line, line_number, file_path)

def read_libffm(path, **options):
    """
    Read LIBFFM text data into a pandas DataFrame.

    Args:
        path (str): file, or directory of part files
        **options: LIBFFM options (see ``LibFFMOptions``),
            e.g. ``numFeatures=100, vectorType='dense'``

    Returns:
        pandas DataFrame with columns 'label' (float), 'features'
        (one vector of length numFeatures per row) and 'fields'
        (the field of each active feature, in feature order)

    Raises:
        ValueError: on a malformed line, an out of range field or
            feature index, or a feature repeated on one line
    """
    options = LibFFMOptions(options)
    records = list(_read_records(path))

    num_features = options.num_features
    if num_features is None:
        num_features = max(
            (max(r[2]) + 1 for _, _, r in records if r[2]), default=0)
    index_dtype = np.int64 if options.is_long_key else np.int32

    labels, features, fields = [], [], []
    for file_path, line_number, (label, field_ids, indices, values) in records:
        if any(i < 0 or i >= num_features for i in indices):
            raise ValueError("Feature index out of range [0, {0}) at line "
                "{1} of {2}".format(num_features, line_number, file_path))
        if len(set(indices)) != len(indices):
            raise ValueError("Duplicate feature index at line {0} of "
                "{1}".format(line_number, file_path))
        if any(f < 0 for f in field_ids) or (
                options.num_fields is not None
                and any(f >= options.num_fields for f in field_ids)):
            raise ValueError("Field index out of range at line {0} of "
                "{1}".format(line_number, file_path))
        order = np.argsort(indices, kind="mergesort")
        indices = np.asarray(indices, dtype=index_dtype)[order]
        values = np.asarray(values, dtype=float)[order]
        if options.is_sparse:
            vector = sparse.csr_matrix(
                (values, indices, np.array([0, len(indices)], dtype=index_dtype)),
                shape=(1, num_features))
            # csr construction narrows index arrays that fit in int32
            vector.indices = vector.indices.astype(index_dtype)
            vector.indptr = vector.indptr.astype(index_dtype)
        else:
            vector = np.zeros(num_features)
            vector[indices] = values
        labels.append(label)
        features.append(vector)
        fields.append(np.asarray(field_ids, dtype=index_dtype)[order])

    dataset = pd.DataFrame({"label": np.asarray(labels, dtype=float)})
    dataset = with_column(
        dataset, "features", vector_column(features),
        vector_metadata(num_features, name="features"))
    return with_column(dataset, "fields", vector_column(fields))
