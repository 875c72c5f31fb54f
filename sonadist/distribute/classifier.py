"""
Column-oriented classifier interfaces and a scikit-learn adapter
"""

import os
import copy
import warnings
import joblib
import numpy as np

from sklearn.base import BaseEstimator
from sklearn.utils.validation import has_fit_parameter

from .base import _clone, _copy_with, _get_value, _random_uid
from .dataset import with_column, vector_column, stack_vectors
from .persistence import (
    MLWritable, MLReadable, MLWriter, MLReader,
    save_metadata, load_metadata, get_and_set_params, _class_name
    )
from .validation import _validate_and_transform_schema, _check_is_fitted

__all__ = [
    "Classifier",
    "ClassificationModel",
    "HasWeightCol",
    "SklearnClassifier",
    "SklearnClassificationModel"
]

class Classifier(BaseEstimator):
    """
    Trainable classifier over pandas DataFrames. Subclasses declare
    ``features_col``, ``label_col``, ``prediction_col`` and
    ``raw_prediction_col`` params and implement ``_fit``.
    """
    def fit(self, dataset, params=None):
        """
        Fit a model to the dataset.

        Args:
            dataset (pandas DataFrame): input dataset
            params (dict): param overrides applied to a copy
                of this classifier, leaving it untouched
        Returns:
            fitted ClassificationModel
        """
        if params:
            return self.copy(params).fit(dataset)
        return self._fit(dataset)

    def _fit(self, dataset):
        raise NotImplementedError

    def copy(self, extra=None):
        """ Clone of this classifier with `extra` params applied """
        return _copy_with(self, extra)

class HasWeightCol(object):
    """
    Declares support for per-instance weights read from
    the ``weight_col`` param.
    """

class ClassificationModel(BaseEstimator):
    """
    Scorable model over pandas DataFrames. ``transform`` appends a
    raw prediction column of per-class scores (the second component
    being the positive class score of a binary model) and a
    prediction column.
    """
    @property
    def num_features(self):
        raise NotImplementedError

    @property
    def num_classes(self):
        raise NotImplementedError

    def transform(self, dataset):
        raise NotImplementedError

    def copy(self, extra=None):
        """ Shallow copy of this model with `extra` params applied """
        new_object = copy.copy(self)
        if extra:
            params = new_object.get_params(deep=False)
            new_object.set_params(
                **{k: v for k, v in extra.items() if k in params})
        return new_object

class _ConstantPredictor(BaseEstimator):
    """ Predicts same labels as trained """
    def fit(self, X, y):
        self.y_ = y
        self.n_features_in_ = X.shape[1]
        return self

    def predict(self, X):
        _check_is_fitted(self, 'y_')
        return np.repeat(self.y_, X.shape[0])

    def decision_function(self, X):
        _check_is_fitted(self, 'y_')
        return np.repeat(np.inf if self.y_[0] == 1 else -np.inf, X.shape[0])

    def predict_proba(self, X):
        _check_is_fitted(self, 'y_')
        return np.repeat([np.hstack([1 - self.y_, self.y_])],
                         X.shape[0], axis=0)

def _fit_estimator(estimator, X, y, fit_params):
    """ Fit a single estimator, falling back to a constant predictor """
    unique_y = np.unique(y)
    if len(unique_y) == 1:
        warnings.warn("Label %s is present in all training examples." %
                      str(unique_y[0]))
        return _ConstantPredictor().fit(X, unique_y)
    est = _clone(_get_value(estimator))
    est.fit(X, y, **fit_params)
    return est

def _raw_prediction(estimator, X):
    """
    Raw per-class scores of a fitted estimator: margins
    ``[-m, m]`` from ``decision_function`` when available,
    otherwise class probabilities or one-hot predictions.
    """
    if hasattr(estimator, "decision_function"):
        scores = np.asarray(estimator.decision_function(X), dtype=float)
        if scores.ndim == 1:
            scores = np.column_stack([-scores, scores])
        return scores
    elif hasattr(estimator, "predict_proba"):
        return np.asarray(estimator.predict_proba(X), dtype=float)
    preds = np.asarray(estimator.predict(X), dtype=float)
    return np.column_stack([1.0 - preds, preds])

class _SklearnWriter(MLWriter):
    """ Saves metadata and the wrapped sklearn estimator """
    def save_impl(self, path):
        save_metadata(self.instance, path, exclude=("estimator",))
        data_path = os.path.join(path, "data")
        os.makedirs(data_path)
        joblib.dump(
            self.instance.estimator,
            os.path.join(data_path, "estimator.joblib"))

class _SklearnReader(MLReader):
    """ Loads a wrapper saved by ``_SklearnWriter`` """
    def load(self, path):
        metadata = load_metadata(path, _class_name(self.cls))
        estimator = joblib.load(
            os.path.join(path, "data", "estimator.joblib"))
        instance = self.cls(estimator=estimator, uid=metadata["uid"])
        return get_and_set_params(instance, metadata)

class SklearnClassifier(HasWeightCol, Classifier, MLWritable, MLReadable):
    """
    Wraps a scikit-learn classifier so it trains on the columns of a
    pandas DataFrame. Feature vectors are stacked into a dense or
    sparse matrix, labels are read from ``label_col``, and weights
    from ``weight_col`` when the estimator's ``fit`` accepts
    ``sample_weight``.

    Args:
        estimator (sklearn estimator): unfitted classifier implementing
            fit and one of decision_function, predict_proba or predict
        features_col (str): name of the features column
        label_col (str): name of the label column
        prediction_col (str): name of the prediction output column
        raw_prediction_col (str): name of the raw prediction output column
        weight_col (str): name of the instance weight column, optional
        uid (str): unique identifier, generated if None
    """
    def __init__(self, estimator=None, features_col="features",
                 label_col="label", prediction_col="prediction",
                 raw_prediction_col="rawPrediction", weight_col=None,
                 uid=None):
        self.estimator = estimator
        self.features_col = features_col
        self.label_col = label_col
        self.prediction_col = prediction_col
        self.raw_prediction_col = raw_prediction_col
        self.weight_col = weight_col
        self.uid = uid if uid is not None else _random_uid("sklearnClassifier")

    def _fit(self, dataset):
        use_weights = bool(self.weight_col)
        if use_weights and not has_fit_parameter(
                _get_value(self.estimator), "sample_weight"):
            warnings.warn("weight_col is ignored, as it is not supported "
                          "by {0} now.".format(type(self.estimator).__name__))
            use_weights = False
        _validate_and_transform_schema(
            dataset, self.features_col, label_col=self.label_col,
            weight_col=self.weight_col if use_weights else None,
            fitting=True)
        X = stack_vectors(dataset[self.features_col])
        y = dataset[self.label_col].values.astype(float)
        fit_params = {}
        if use_weights:
            fit_params["sample_weight"] = dataset[self.weight_col].values.astype(float)
        model = SklearnClassificationModel(
            estimator=_fit_estimator(self.estimator, X, y, fit_params),
            features_col=self.features_col,
            prediction_col=self.prediction_col,
            raw_prediction_col=self.raw_prediction_col,
            uid=self.uid
            )
        model.parent = self
        return model

    def write(self):
        return _SklearnWriter(self)

    @classmethod
    def read(cls):
        return _SklearnReader(cls)

class SklearnClassificationModel(ClassificationModel, MLWritable, MLReadable):
    """
    Fitted scikit-learn classifier scoring the feature vectors of a
    pandas DataFrame.

    Args:
        estimator (sklearn estimator): fitted classifier
        features_col (str): name of the features column
        prediction_col (str): name of the prediction output column
        raw_prediction_col (str): name of the raw prediction output column
        uid (str): unique identifier, generated if None
    """
    def __init__(self, estimator=None, features_col="features",
                 prediction_col="prediction",
                 raw_prediction_col="rawPrediction", uid=None):
        self.estimator = estimator
        self.features_col = features_col
        self.prediction_col = prediction_col
        self.raw_prediction_col = raw_prediction_col
        self.uid = uid if uid is not None else _random_uid("sklearnClassificationModel")

    @property
    def num_features(self):
        if hasattr(self.estimator, "n_features_in_"):
            return int(self.estimator.n_features_in_)
        coef = getattr(self.estimator, "coef_", None)
        return int(coef.shape[-1]) if coef is not None else None

    @property
    def num_classes(self):
        classes = getattr(self.estimator, "classes_", None)
        return len(classes) if classes is not None else 2

    def transform(self, dataset):
        """
        Append raw prediction and prediction columns.

        Args:
            dataset (pandas DataFrame): input dataset with
                a features column
        Returns:
            pandas DataFrame
        """
        _validate_and_transform_schema(
            dataset, self.features_col,
            output_cols=[self.prediction_col, self.raw_prediction_col])
        if len(dataset) == 0:
            raw = np.zeros((0, 2))
        else:
            raw = _raw_prediction(
                self.estimator, stack_vectors(dataset[self.features_col]))
        out = dataset
        if self.raw_prediction_col:
            out = with_column(
                out, self.raw_prediction_col,
                vector_column(list(raw), index=dataset.index))
        if self.prediction_col:
            out = with_column(
                out, self.prediction_col,
                np.argmax(raw, axis=1).astype(float))
        return out

    def write(self):
        return _SklearnWriter(self)

    @classmethod
    def read(cls):
        return _SklearnReader(cls)
