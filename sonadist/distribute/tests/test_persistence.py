"""
Test saving and loading one-vs-rest stages
"""

import os
import json
import pytest

try:
    import numpy as np
    import pandas as pd
    from sklearn.linear_model import LogisticRegression
    from sonadist import __version__
    from sonadist.distribute.multiclass import OneVsRest, OneVsRestModel
    from sonadist.distribute.classifier import (
        Classifier, ClassificationModel, SklearnClassifier,
        SklearnClassificationModel
        )
    from sonadist.distribute.dataset import vector_column
    from sonadist.distribute.persistence import (
        MLWritable, MLReadable, load_params_instance, load_metadata
        )
    _import_error = None
except Exception as e:
    _import_error = e

class _UnsavableModel(ClassificationModel):
    def __init__(self, raw_prediction_col="rawPrediction"):
        self.raw_prediction_col = raw_prediction_col

    @property
    def num_features(self):
        return 2

class _UnsavableClassifier(Classifier):
    def __init__(self, features_col="features", label_col="label"):
        self.features_col = features_col
        self.label_col = label_col

def _dataset(n=20):
    return pd.DataFrame({
        "label": [0.0, 1.0, 2.0] * n,
        "features": vector_column(
            [np.array([1.0, 0.0]), np.array([0.0, 1.0]), np.array([1.0, 1.0])] * n)
        })

def _read_metadata(path):
    with open(os.path.join(path, "metadata")) as f:
        return json.load(f)

def test_persistence():
    assert _import_error == None

def test_model_layout(tmp_path):
    df = _dataset()
    model = OneVsRest(
        SklearnClassifier(LogisticRegression()), prediction_col="p").fit(df)
    path = str(tmp_path / "ovr_model")
    model.save(path)

    assert sorted(os.listdir(path)) == [
        "classifier", "metadata", "model_0", "model_1", "model_2"]
    metadata = _read_metadata(path)
    assert metadata["class"] == "sonadist.distribute.multiclass.OneVsRestModel"
    assert metadata["uid"] == model.uid
    assert metadata["sonadistVersion"] == __version__
    assert metadata["numClasses"] == 3
    assert json.loads(metadata["labelMetadata"]) == model.label_metadata
    assert metadata["paramMap"]["prediction_col"] == "p"
    assert "classifier" not in metadata["paramMap"]
    assert "models" not in metadata["paramMap"]
    assert os.path.isfile(
        os.path.join(path, "model_0", "data", "estimator.joblib"))

def test_model_round_trip(tmp_path):
    df = _dataset()
    model = OneVsRest(SklearnClassifier(LogisticRegression())).fit(df)
    path = str(tmp_path / "ovr_model")
    model.save(path)

    loaded = OneVsRestModel.load(path)
    assert loaded.uid == model.uid
    assert loaded.num_classes == 3
    assert loaded.label_metadata == model.label_metadata
    assert isinstance(loaded.classifier, SklearnClassifier)
    assert loaded.classifier.uid == model.classifier.uid
    assert all(isinstance(m, SklearnClassificationModel) for m in loaded.models)
    expected = model.transform(df)
    actual = loaded.transform(df)
    assert np.allclose(actual["prediction"].values, expected["prediction"].values)
    assert np.allclose(
        np.vstack(actual["rawPrediction"].values),
        np.vstack(expected["rawPrediction"].values))
    assert isinstance(load_params_instance(path), OneVsRestModel)

def test_model_without_classifier(tmp_path):
    df = _dataset()
    model = OneVsRest(SklearnClassifier(LogisticRegression())).fit(df)
    model = OneVsRestModel(models=model.models, label_metadata=model.label_metadata)
    path = str(tmp_path / "ovr_model")
    model.save(path)
    assert "classifier" not in os.listdir(path)
    loaded = OneVsRestModel.load(path)
    assert loaded.classifier is None
    assert np.allclose(
        loaded.transform(df)["prediction"].values, df["label"].values)

def test_estimator_round_trip(tmp_path):
    ovr = OneVsRest(
        SklearnClassifier(LogisticRegression(C=5.0)),
        label_col="y", parallelism=3, weight_col="w")
    path = str(tmp_path / "ovr")
    ovr.save(path)

    assert sorted(os.listdir(path)) == ["classifier", "metadata"]
    loaded = OneVsRest.load(path)
    assert loaded.uid == ovr.uid
    assert loaded.label_col == "y"
    assert loaded.parallelism == 3
    assert loaded.weight_col == "w"
    assert loaded.sc is None
    assert loaded.classifier.uid == ovr.classifier.uid
    assert loaded.classifier.estimator.C == 5.0

def test_overwrite(tmp_path):
    ovr = OneVsRest(SklearnClassifier(LogisticRegression()))
    path = str(tmp_path / "ovr")
    ovr.save(path)
    with pytest.raises(IOError, match="already exists"):
        ovr.save(path)
    other = OneVsRest(SklearnClassifier(LogisticRegression()), parallelism=2)
    other.write().overwrite().save(path)
    assert OneVsRest.load(path).uid == other.uid

def test_unwritable_classifier(tmp_path):
    path = str(tmp_path / "ovr")
    with pytest.raises(NotImplementedError, match="classifier"):
        OneVsRest(_UnsavableClassifier()).save(path)
    assert not os.path.exists(path)

def test_unwritable_model(tmp_path):
    path = str(tmp_path / "ovr_model")
    model = OneVsRestModel(models=[_UnsavableModel(), _UnsavableModel()])
    with pytest.raises(NotImplementedError, match="model"):
        model.save(path)
    assert not os.path.exists(path)

def test_wrong_class(tmp_path):
    path = str(tmp_path / "ovr")
    OneVsRest(SklearnClassifier(LogisticRegression())).save(path)
    with pytest.raises(ValueError, match="Expected class name"):
        OneVsRestModel.load(path)
    assert load_metadata(path)["class"] == "sonadist.distribute.multiclass.OneVsRest"
