"""
=============================================================
Train a distributed one-vs-rest model on the digits dataset
=============================================================

In this example we fit the one-vs-rest multiclass strategy on the digits
dataset with distributed training using spark.

The only difference between local and distributed training is the
sparkContext variable passed to the one-vs-rest instantiation. Under the
hood, sonadist will then broadcast the projected training data out to the
executors, relabel it for each class, fit one binary model per class, and
collect the binary models back on the driver ordered by class index.

Without a sparkContext, the binary models are trained on a local thread
pool of `parallelism` workers instead, and the fitted models are the same.

The fitted model is then saved to a directory and loaded back, predicting
the same classes as shown.

Here is a sample output run:

-- One Vs Rest --
Weighted F1: 0.9588631625829608
Precision: 0.9609833792125458
Recall: 0.9583333333333334
Loaded model agrees: True
"""
print(__doc__)

import tempfile
import os
import pandas as pd
import numpy as np

from sonadist.distribute.classifier import SklearnClassifier
from sonadist.distribute.dataset import vector_column
from sonadist.distribute.multiclass import OneVsRest, OneVsRestModel
from sklearn.metrics import f1_score, precision_score, recall_score
from sklearn.linear_model import LogisticRegression
from sklearn.model_selection import train_test_split
from sklearn.datasets import load_digits
from pyspark.sql import SparkSession

# spark session initialization
spark = SparkSession.builder.getOrCreate()
sc = spark.sparkContext

# variables
scoring_average = "weighted"
solver = "liblinear"
test_size = 0.2

# load sample data (multiclass target)
data = load_digits()
X = data["data"]
y = data["target"]
X_train, X_test, y_train, y_test = train_test_split(
    X, y, test_size=test_size, random_state=10
)
train = pd.DataFrame({"label": y_train.astype(float), "features": vector_column(list(X_train))})
test = pd.DataFrame({"label": y_test.astype(float), "features": vector_column(list(X_test))})

### distributed one vs rest
ovr = OneVsRest(SklearnClassifier(LogisticRegression(solver=solver)), sc=sc, verbose=True)
# distributed fitting with spark
model = ovr.fit(train)
# predictions on the driver
preds = model.transform(test)["prediction"].values

# results
print("-- One Vs Rest --")
print("Weighted F1: {0}".format(f1_score(y_test, preds, average=scoring_average)))
print("Precision: {0}".format(precision_score(y_test, preds, average=scoring_average)))
print("Recall: {0}".format(recall_score(y_test, preds, average=scoring_average)))

# save and load
path = os.path.join(tempfile.mkdtemp(), "ovr_model")
model.save(path)
loaded = OneVsRestModel.load(path)
loaded_preds = loaded.transform(test)["prediction"].values
print("Loaded model agrees: {0}".format(np.allclose(preds, loaded_preds)))
