"""
Distributed multiclass meta-estimators
"""

import os
import json
import uuid
import numbers
import warnings
import numpy as np

from joblib import Parallel, delayed
from sklearn.base import BaseEstimator

from .attribute import (
    Attribute, BinaryAttribute, NominalAttribute,
    NumericAttribute, UnresolvedAttribute, get_num_classes
    )
from .base import (
    _copy_with, _get_value, _parse_partitions, _random_uid
    )
from .classifier import Classifier, HasWeightCol
from .dataset import (
    get_metadata, with_column, select, drop, rename, vector_column
    )
from .persistence import (
    MLWritable, MLReadable, MLWriter, MLReader,
    save_metadata, load_metadata, load_params_instance,
    get_and_set_params, _class_name
    )
from .validation import (
    _check_estimator, _log_value, _validate_and_transform_schema,
    _validate_models, _check_writable
    )

__all__ = [
    "OneVsRest",
    "OneVsRestModel"
]

def _check_classifier(classifier):
    """ Validates the base binary classifier """
    if not isinstance(classifier, Classifier):
        raise ValueError("classifier must be a sonadist Classifier: got "
            "{0!r}".format(type(classifier)))

def _check_parallelism(parallelism):
    """ Validates the number of concurrent binary fits """
    if not isinstance(parallelism, numbers.Integral) or parallelism < 1:
        raise ValueError("parallelism must be an integer >= 1: got "
            "{0!r}".format(parallelism))

def _compute_num_classes(dataset, label_col):
    """
    Number of classes from label metadata if declared, otherwise
    from the maximum label, classes being numbered 0..max.
    """
    num_classes = get_num_classes(get_metadata(dataset, label_col))
    if num_classes is None:
        max_label = dataset[label_col].astype(float).max()
        num_classes = int(max_label) + 1
    return num_classes

def _fit_binary(classifier, dataset, index, label_col, params):
    """ Fit a single binary classifier: class `index` against the rest """
    binary_col = "mc2b$" + str(index)
    labels = (dataset[label_col].values == float(index)).astype(float)
    training = with_column(
        dataset, binary_col, labels,
        BinaryAttribute().with_name("label").to_metadata())
    params = dict(params, label_col=binary_col)
    return classifier.fit(training, params)

def _update_scores(scores, index, raw_prediction):
    """ Add the positive class score of model `index` to a row's scores """
    scores = dict(scores)
    scores[index] = float(raw_prediction[1])
    return scores

def _to_raw_prediction(scores, num_classes):
    """ Dense vector of per-class scores, 0.0 where missing """
    raw = np.zeros(num_classes)
    for index, value in scores.items():
        raw[index] = value
    return raw

def _best_index(scores):
    """ Class index with the highest score; the first wins ties """
    return max(scores.items(), key=lambda x: x[1])[0]

def _validate_params(instance):
    """ Validates every stage of a one-vs-rest instance can be saved """
    if isinstance(instance, OneVsRestModel):
        for model in instance.models:
            _check_writable(model, "model")
    if not isinstance(instance, OneVsRestModel) or instance.classifier is not None:
        _check_writable(instance.classifier, "classifier")

def _save_impl(path, instance, extra_metadata=None):
    """ Save params (without the classifier) and the classifier """
    save_metadata(
        instance, path, extra_metadata=extra_metadata,
        exclude=("classifier", "models", "label_metadata"))
    if instance.classifier is not None:
        instance.classifier.save(os.path.join(path, "classifier"))

def _load_impl(path, expected_class_name):
    """ Load metadata and the classifier, if one was saved """
    metadata = load_metadata(path, expected_class_name)
    classifier_path = os.path.join(path, "classifier")
    classifier = (
        load_params_instance(classifier_path)
        if os.path.isdir(classifier_path) else None
        )
    return metadata, classifier

class OneVsRestModel(BaseEstimator, MLWritable, MLReadable):
    """
    Model produced by ``OneVsRest``. Stores one binary model per
    class, the i-th model trained with class i taking label 1 and
    the rest label 0. Each row is scored against all k models and
    the class of the model with the highest score is predicted.

    Args:
        models (list of ClassificationModel): fitted binary models,
            ordered by class index
        label_metadata (dict): metadata of the label column if it
            declares the classes, or a nominal attribute holding the
            number of classes otherwise
        classifier (Classifier): base binary classifier
        features_col (str): name of the features column
        label_col (str): name of the label column
        prediction_col (str): name of the prediction output column
        raw_prediction_col (str): name of the raw prediction output
            column; None or '' to skip it
        weight_col (str): name of the weight column used in training
        uid (str): unique identifier, generated if None
    """
    def __init__(self, models=None, label_metadata=None, classifier=None,
                 features_col="features", label_col="label",
                 prediction_col="prediction",
                 raw_prediction_col="rawPrediction", weight_col=None,
                 uid=None):
        _validate_models(models)
        self.models = models
        self.label_metadata = label_metadata
        self.classifier = classifier
        self.features_col = features_col
        self.label_col = label_col
        self.prediction_col = prediction_col
        self.raw_prediction_col = raw_prediction_col
        self.weight_col = weight_col
        self.uid = uid if uid is not None else _random_uid("oneVsRestModel")

    @property
    def num_classes(self):
        return len(self.models)

    @property
    def num_features(self):
        return self.models[0].num_features

    def transform(self, dataset):
        """
        Predict the class of each row.

        Args:
            dataset (pandas DataFrame): input dataset with
                a features column
        Returns:
            pandas DataFrame with the input columns, the prediction
            column and (if set) the raw prediction column
        """
        _validate_and_transform_schema(
            dataset, self.features_col,
            output_cols=[self.prediction_col, self.raw_prediction_col])

        orig_cols = list(dataset.columns)
        acc_col = "mbc$acc" + uuid.uuid4().hex
        aggregated = with_column(
            dataset, acc_col,
            vector_column([{} for _ in range(len(dataset))], index=dataset.index))

        # fold the positive class score of each model into the accumulator
        for index, model in enumerate(self.models):
            raw_col = model.raw_prediction_col
            tmp_col = "mbc$tmp" + uuid.uuid4().hex
            model.set_params(features_col=self.features_col)
            transformed = select(
                model.transform(aggregated), orig_cols + [raw_col, acc_col])
            updated = with_column(
                transformed, tmp_col,
                vector_column([
                    _update_scores(scores, index, raw)
                    for scores, raw in zip(transformed[acc_col], transformed[raw_col])
                    ], index=transformed.index))
            aggregated = rename(
                select(updated, orig_cols + [tmp_col]), tmp_col, acc_col)

        if self.raw_prediction_col:
            num_classes = self.num_classes
            raw = [
                _to_raw_prediction(scores, num_classes)
                for scores in aggregated[acc_col]
                ]
            out = with_column(
                aggregated, self.raw_prediction_col,
                vector_column(raw, index=aggregated.index))
            out = with_column(
                out, self.prediction_col,
                np.array([float(np.argmax(r)) for r in raw]),
                self.label_metadata)
        else:
            out = with_column(
                aggregated, self.prediction_col,
                np.array([float(_best_index(s)) for s in aggregated[acc_col]]),
                self.label_metadata)
        return drop(out, [acc_col])

    def copy(self, extra=None):
        """
        Copy of this model with `extra` params applied to it and
        to each binary model.
        """
        extra = extra or {}
        params = self.get_params(deep=False)
        params.update({
            k: v for k, v in extra.items()
            if k in params and k not in ("models", "uid")
            })
        params["models"] = [model.copy(extra) for model in self.models]
        copied = OneVsRestModel(**params)
        copied.parent = getattr(self, "parent", None)
        return copied

    def write(self):
        return OneVsRestModelWriter(self)

    @classmethod
    def read(cls):
        return OneVsRestModelReader(cls)

class OneVsRestModelWriter(MLWriter):
    """ Saves a ``OneVsRestModel`` and its binary models """
    def __init__(self, instance):
        _validate_params(instance)
        MLWriter.__init__(self, instance)

    def save_impl(self, path):
        extra_metadata = {
            "labelMetadata": json.dumps(self.instance.label_metadata or {}),
            "numClasses": len(self.instance.models)
            }
        _save_impl(path, self.instance, extra_metadata)
        for index, model in enumerate(self.instance.models):
            model.save(os.path.join(path, "model_{0}".format(index)))

class OneVsRestModelReader(MLReader):
    """ Loads a ``OneVsRestModel`` saved by ``OneVsRestModelWriter`` """
    def load(self, path):
        metadata, classifier = _load_impl(path, _class_name(self.cls))
        label_metadata = json.loads(metadata["labelMetadata"])
        num_classes = int(metadata["numClasses"])
        models = [
            load_params_instance(os.path.join(path, "model_{0}".format(index)))
            for index in range(num_classes)
            ]
        model = self.cls(
            models=models, label_metadata=label_metadata,
            uid=metadata["uid"])
        get_and_set_params(model, metadata)
        return model.set_params(classifier=classifier)

class OneVsRest(BaseEstimator, MLWritable, MLReadable):
    """
    Reduction of multiclass classification to binary classification
    using the one-against-all strategy. For k classes, k binary models
    are trained, one per class, with distributed training using spark
    when a spark context is given, or a local thread pool otherwise.

    Args:
        classifier (Classifier): base binary classifier; its input and
            output columns are overridden by the ones set here
        sc (sparkContext): Spark context for spark broadcasting and rdd
            operations. If None, binary models are trained locally.
        label_col (str): name of the label column, holding class
            indices 0..k-1
        features_col (str): name of the features column
        prediction_col (str): name of the prediction output column
        raw_prediction_col (str): name of the raw prediction output column
        weight_col (str): name of the instance weight column; ignored
            (with a warning) if the classifier does not support weights
        parallelism (int): number of binary models trained concurrently
            when running locally
        partitions (int or 'auto'): default 'auto'
            Number of partitions to use for parallelization of the
            binary fits. Integer values or None will be used directly for
            `numSlices`, while 'auto' will set `numSlices` to the number
            of classes.
        verbose (bool): print status messages
        uid (str): unique identifier, generated if None
    """
    def __init__(self, classifier=None, sc=None, label_col="label",
                 features_col="features", prediction_col="prediction",
                 raw_prediction_col="rawPrediction", weight_col=None,
                 parallelism=1, partitions='auto', verbose=False, uid=None):
        self.classifier = classifier
        self.sc = sc
        self.label_col = label_col
        self.features_col = features_col
        self.prediction_col = prediction_col
        self.raw_prediction_col = raw_prediction_col
        self.weight_col = weight_col
        self.parallelism = parallelism
        self.partitions = partitions
        self.verbose = verbose
        self.uid = uid if uid is not None else _random_uid("oneVsRest")

    def fit(self, dataset, params=None):
        """
        Fit one binary model per class. Parallelize fit operation
        using spark if a spark context is set.

        Args:
            dataset (pandas DataFrame): input dataset with label and
                features columns
            params (dict): param overrides applied to a copy of
                this estimator before fitting
        Returns:
            fitted OneVsRestModel
        """
        if params:
            return self.copy(params).fit(dataset)

        _check_classifier(self.classifier)
        _check_parallelism(self.parallelism)
        classifier = self.classifier
        weight_col_is_used = bool(self.weight_col)
        if weight_col_is_used and not isinstance(classifier, HasWeightCol):
            warnings.warn("weight_col is ignored, as it is not supported "
                          "by {0} now.".format(type(classifier).__name__))
            weight_col_is_used = False
        _validate_and_transform_schema(
            dataset, self.features_col, label_col=self.label_col,
            weight_col=self.weight_col if weight_col_is_used else None,
            fitting=True)

        _check_estimator(self, verbose=self.verbose)
        _log_value(self.verbose, "classifier", type(classifier).__name__)

        num_classes = _compute_num_classes(dataset, self.label_col)
        _log_value(self.verbose, "numClasses", num_classes)

        cols = [self.label_col, self.features_col]
        params = {
            "features_col": self.features_col,
            "prediction_col": self.prediction_col
            }
        if weight_col_is_used:
            cols.append(self.weight_col)
            params["weight_col"] = self.weight_col
        multiclass_labeled = select(dataset, cols)
        label_col = self.label_col

        if self.sc is None:
            models = Parallel(n_jobs=self.parallelism, prefer="threads")(
                delayed(_fit_binary)(
                    classifier, multiclass_labeled, index, label_col, params)
                for index in range(num_classes))
        else:
            # share the projected data once across all binary fits
            data = self.sc.broadcast(multiclass_labeled)
            classifier_ = self.sc.broadcast(classifier)
            partitions = _parse_partitions(self.partitions, num_classes)
            try:
                indexed_models = (
                    self.sc.parallelize(list(range(num_classes)), numSlices=partitions)
                    .map(lambda index: (index, _fit_binary(
                        _get_value(classifier_), _get_value(data),
                        index, label_col, params)))
                    .collect()
                    )
            finally:
                data.unpersist()
                classifier_.unpersist()
            models = [model for _, model in sorted(indexed_models, key=lambda x: x[0])]
        _log_value(self.verbose, "numFeatures", models[0].num_features)

        # reuse the label attribute if it declares the classes
        label_attr = Attribute.from_metadata(get_metadata(dataset, self.label_col))
        if isinstance(label_attr, NumericAttribute) or label_attr is UnresolvedAttribute:
            label_attr = NominalAttribute(name="label", num_values=num_classes)

        model = OneVsRestModel(
            models=models,
            label_metadata=label_attr.to_metadata(),
            classifier=self.classifier,
            features_col=self.features_col,
            label_col=self.label_col,
            prediction_col=self.prediction_col,
            raw_prediction_col=self.raw_prediction_col,
            weight_col=self.weight_col,
            uid=self.uid
            )
        model.parent = self
        return model

    def copy(self, extra=None):
        """
        Copy of this estimator with `extra` params applied to it
        and to its classifier.
        """
        copied = _copy_with(self, extra)
        if self.classifier is not None:
            copied.set_params(classifier=self.classifier.copy(extra))
        return copied

    def write(self):
        return OneVsRestWriter(self)

    @classmethod
    def read(cls):
        return OneVsRestReader(cls)

class OneVsRestWriter(MLWriter):
    """ Saves a ``OneVsRest`` and its classifier """
    def __init__(self, instance):
        _validate_params(instance)
        MLWriter.__init__(self, instance)

    def save_impl(self, path):
        _save_impl(path, self.instance)

class OneVsRestReader(MLReader):
    """ Loads a ``OneVsRest`` saved by ``OneVsRestWriter`` """
    def load(self, path):
        metadata, classifier = _load_impl(path, _class_name(self.cls))
        ovr = self.cls(uid=metadata["uid"])
        get_and_set_params(ovr, metadata)
        return ovr.set_params(classifier=classifier)
