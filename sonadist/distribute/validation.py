"""
Validation functions for the distribute module
"""

import numbers

from pandas.api.types import is_numeric_dtype
from sklearn.utils.validation import check_is_fitted

from .dataset import is_vector

def _check_estimator(estimator, verbose=False):
    """ Print sparkContext awareness if apporpriate """
    if verbose:
        if getattr(estimator, "sc", None) is None:
            print("No spark context is provided; running locally")
        else:
            print("Spark context found; running with spark")

def _check_is_fitted(estimator, attributes=None):
    return check_is_fitted(estimator, attributes)

def _log_value(verbose, name, value):
    """ Print a named value of a fit or transform if verbose """
    if verbose:
        print("{0}: {1}".format(name, value))

def _check_column(dataset, col, role):
    if col not in dataset.columns:
        raise ValueError("{0} column '{1}' does not exist. Available: "
            "{2!r}".format(role, col, list(dataset.columns)))

def _check_features(dataset, features_col):
    """ Validates the features column holds vectors """
    _check_column(dataset, features_col, "Features")
    invalid = [
        type(v) for v in dataset[features_col].head(20)
        if not is_vector(v)
        ]
    if invalid:
        raise ValueError("Column {0} must hold feature vectors: got "
            "{1!r}".format(features_col, sorted(set(invalid), key=str)))

def _check_numeric(dataset, col, role):
    """ Validates a column exists and is numeric """
    _check_column(dataset, col, role)
    if not is_numeric_dtype(dataset[col]):
        raise ValueError("Column {0} must be of numeric type but was "
            "actually {1}.".format(col, dataset[col].dtype))

def _check_output_column(dataset, col):
    """ Validates an output column is not already present """
    if col and col in dataset.columns:
        raise ValueError("Output column {0} already exists.".format(col))

def _validate_and_transform_schema(dataset, features_col, label_col=None,
                                   weight_col=None, output_cols=(),
                                   fitting=False):
    """
    Validates dataset columns before fitting or transforming.
    Label (and weight, if given) columns are only checked when fitting.
    """
    _check_features(dataset, features_col)
    if fitting:
        _check_numeric(dataset, label_col, "Label")
        if weight_col:
            _check_numeric(dataset, weight_col, "Weight")
    else:
        for col in output_cols:
            _check_output_column(dataset, col)
    return list(dataset.columns) + [c for c in output_cols if c]

def _validate_models(models):
    """
    Validates sub-models of a multiclass model: at least one model,
    all sharing the same number of features.
    """
    if not models:
        raise ValueError(
            "OneVsRestModel requires at least one model for one class")
    num_features = set(
        m.num_features for m in models
        if isinstance(getattr(m, "num_features", None), numbers.Integral)
        )
    if len(num_features) > 1:
        raise ValueError("Sub-models must share the same number of "
            "features: got {0!r}".format(sorted(num_features)))
    return list(models)

def _check_writable(elem, name):
    """
    Validates that a stage can be saved. Raises before anything
    is written otherwise.
    """
    from .persistence import MLWritable
    if not isinstance(elem, MLWritable):
        raise NotImplementedError("OneVsRest write will fail"
            " because it contains {0} which does not implement MLWritable."
            " Non-Writable {0}: {1} of type {2}".format(
                name, getattr(elem, "uid", None), type(elem)))
