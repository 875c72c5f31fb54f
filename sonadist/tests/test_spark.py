"""
Pyspark unit tests
"""

import pytest
import sys
import pandas as pd
import numpy as np

try:
    import pyspark
    from pyspark.sql import SparkSession, functions as F
except ImportError:
    pass

from sklearn.datasets import load_digits
from sklearn.model_selection import train_test_split
from sklearn.linear_model import LogisticRegression

from sonadist.distribute.classifier import SklearnClassifier
from sonadist.distribute.dataset import vector_column
from sonadist.distribute.multiclass import OneVsRest, OneVsRestModel
from sonadist.distribute.predict import get_prediction_udf

def _digits(test_size=0.2):
    data = load_digits()
    X_train, X_test, y_train, y_test = train_test_split(
        data["data"], data["target"], test_size=test_size, random_state=10
    )
    train = pd.DataFrame({
        "label": y_train.astype(float), "features": vector_column(list(X_train))})
    test = pd.DataFrame({
        "label": y_test.astype(float), "features": vector_column(list(X_test))})
    return train, test

@pytest.mark.skipif("pyspark" not in sys.modules, reason="requires pyspark")
def test_spark_session_dataframe(spark_session):
    test_df = spark_session.createDataFrame([[1, 3], [2, 4]], "a: int, b: int")

    assert type(test_df) == pyspark.sql.dataframe.DataFrame
    assert test_df.count() == 2

@pytest.mark.skipif("pyspark" not in sys.modules, reason="requires pyspark")
def test_multiclass(spark_session):
    sc = spark_session.sparkContext
    train, test = _digits()

    ### distributed one vs rest
    ovr = OneVsRest(SklearnClassifier(LogisticRegression(solver="liblinear")), sc=sc)
    # distributed fitting with spark
    model = ovr.fit(train)
    # predictions on the driver
    preds = model.transform(test)["prediction"].values

    assert model.num_classes == 10
    assert preds.shape == test["label"].values.shape
    assert np.mean(preds == test["label"].values) > 0.8

@pytest.mark.skipif("pyspark" not in sys.modules, reason="requires pyspark")
def test_multiclass_local_equivalence(spark_session):
    sc = spark_session.sparkContext
    train, test = _digits()
    clf = SklearnClassifier(LogisticRegression(solver="liblinear"))

    spark_model = OneVsRest(clf, sc=sc, partitions=3).fit(train)
    local_model = OneVsRest(clf, parallelism=4).fit(train)

    for m1, m2 in zip(spark_model.models, local_model.models):
        assert np.allclose(m1.estimator.coef_, m2.estimator.coef_)
    assert np.allclose(
        spark_model.transform(test)["prediction"].values,
        local_model.transform(test)["prediction"].values)

@pytest.mark.skipif("pyspark" not in sys.modules, reason="requires pyspark")
def test_save_load(spark_session, tmp_path):
    sc = spark_session.sparkContext
    train, test = _digits()
    model = OneVsRest(
        SklearnClassifier(LogisticRegression(solver="liblinear")), sc=sc).fit(train)
    path = str(tmp_path / "ovr_model")
    model.save(path)
    loaded = OneVsRestModel.load(path)
    assert np.allclose(
        loaded.transform(test)["prediction"].values,
        model.transform(test)["prediction"].values)

@pytest.mark.skipif("pyspark" not in sys.modules, reason="requires pyspark")
def test_predict(spark_session):
    train, test = _digits()
    model = OneVsRest(
        SklearnClassifier(LogisticRegression(solver="liblinear"))).fit(train)

    # get UDFs for class indices and per-class scores
    predict = get_prediction_udf(model, method="predict")
    raw_prediction = get_prediction_udf(model, method="raw_prediction")

    # create PySpark DataFrame from array features
    pdf = pd.DataFrame({
        "features": [[float(x) for x in v] for v in test["features"]]})
    sdf = spark_session.createDataFrame(pdf)

    # apply predict UDFs and select prediction output
    prediction_df = (
        sdf
            .withColumn("scores", raw_prediction(F.col("features")))
            .withColumn("preds", predict(F.col("features")))
            .select("preds", "scores")
    )
    rows = prediction_df.collect()
    assert len(rows) == len(test)
    assert len(rows[0]["scores"]) == 10
    expected = model.transform(test)["prediction"].values
    assert np.allclose([r["preds"] for r in rows], expected)
