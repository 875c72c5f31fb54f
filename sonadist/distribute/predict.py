"""
Functions for generating vectorized spark UDFs
to distribute the prediction of fitted one-vs-rest models
with PySpark DataFrames
"""

import pandas as pd
import numpy as np

from .dataset import vector_column

class PysparkRequired(ImportError):
    pass

class PyarrowRequired(ImportError):
    pass

_PYSPARK_INSTALLED = None
_PYARROW_INSTALLED = None

def _is_pyspark_installed():
    global _PYSPARK_INSTALLED
    if _PYSPARK_INSTALLED is None:
        try:
            import pyspark
            _PYSPARK_INSTALLED = True
        except ImportError:
            _PYSPARK_INSTALLED = False
    return _PYSPARK_INSTALLED

def _is_pyarrow_installed():
    global _PYARROW_INSTALLED
    if _PYARROW_INSTALLED is None:
        try:
            import pyarrow
            _PYARROW_INSTALLED = True
        except ImportError:
            _PYARROW_INSTALLED = False
    return _PYARROW_INSTALLED

def _transform_batch(model, features):
    """ Score a batch of feature arrays with the model """
    pdf = pd.DataFrame({
        model.features_col: vector_column(
            [np.asarray(v, dtype=float) for v in features])
        })
    return model.transform(pdf)

def get_prediction_udf(model, method="predict"):
    """
    Build a vectorized PySpark UDF to apply a fitted `OneVsRestModel`
    to an array<double> column of feature values in a PySpark DataFrame.
    The 'predict' method yields the predicted class index as a double,
    and 'raw_prediction' yields the per-class scores as an array.

    NOTE: This function requires pyarrow and pyspark with appropriate
    versions for vectorized pandas UDFs and appropriate spark configuration
    to use pyarrow. These requirements are not enforced by the sonadist
    package at setup time.

    Args:
        model (OneVsRestModel): fitted model to distribute
            predictions with PySpark
        method (str): name of prediction method; either 'predict'
            or 'raw_prediction'
    Returns:
        PySpark pandas UDF (pyspark.sql.functions.pandas_udf)
    Example:
    >>> import pandas as pd
    >>> from sklearn.linear_model import LogisticRegression
    >>> from pyspark.sql import SparkSession, functions as F
    >>> from sonadist.distribute.classifier import SklearnClassifier
    >>> from sonadist.distribute.multiclass import OneVsRest
    >>> spark = (
    >>>     SparkSession
    >>>     .builder
    >>>     .getOrCreate()
    >>>     )
    >>> pdf = pd.DataFrame({
    >>>     "label": [0.0, 1.0, 2.0] * 10,
    >>>     "features": [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]] * 10
    >>>     })
    >>> model = OneVsRest(SklearnClassifier(LogisticRegression(C=100.0))).fit(pdf)
    >>> predict = get_prediction_udf(model, method="predict")
    >>> sdf = spark.createDataFrame(pdf)
    >>> sdf.withColumn("preds", predict(F.col("features"))).show(3)
    ... +-----+----------+-----+
    ... |label|  features|preds|
    ... +-----+----------+-----+
    ... |  0.0|[1.0, 0.0]|  0.0|
    ... |  1.0|[0.0, 1.0]|  1.0|
    ... |  2.0|[1.0, 1.0]|  2.0|
    ... +-----+----------+-----+
    ... only showing top 3 rows
    """
    if not _is_pyspark_installed():
        raise PysparkRequired("Module pyspark not found")
    if not _is_pyarrow_installed():
        raise PyarrowRequired("Module pyarrow not found")
    from pyspark.sql import functions as F
    from pyspark.sql.types import DoubleType, ArrayType

    if method == "predict":
        def predict_func(features: pd.Series) -> pd.Series:
            out = _transform_batch(model, features)
            return pd.Series(out[model.prediction_col].values.astype(float))
        predict = F.pandas_udf(predict_func, returnType=DoubleType())
    elif method == "raw_prediction":
        if not model.raw_prediction_col:
            raise ValueError("Model has no raw prediction column set")
        def predict_func(features: pd.Series) -> pd.Series:
            out = _transform_batch(model, features)
            return pd.Series([list(v) for v in out[model.raw_prediction_col]])
        predict = F.pandas_udf(predict_func, returnType=ArrayType(DoubleType()))
    else:
        raise ValueError("Unknown method: {0}".format(method))
    return predict
