"""
=============================================================
Read LIBFFM data and train a one-vs-rest model
=============================================================

In this example we write a small LIBFFM file, read it into a pandas
DataFrame with sparse feature vectors and train a one-vs-rest model on it.

Each LIBFFM line holds a label followed by ``field:feature:value``
triples. The number of features is inferred from the data unless the
`numFeatures` option is set, and the reader options are validated the
same way for every source.

Here is a sample output run:

LibFFMOptions({'vectorType': 'sparse', 'keyType': 'int', 'numFeatures': '6'})
numClasses: 3
   label  prediction
0    0.0         0.0
1    1.0         1.0
2    2.0         2.0
"""
print(__doc__)

import os
import tempfile

from sonadist.source.libffm import LibFFMOptions, read_libffm
from sonadist.distribute.classifier import SklearnClassifier
from sonadist.distribute.multiclass import OneVsRest
from sklearn.linear_model import LogisticRegression

# write sample data
path = os.path.join(tempfile.mkdtemp(), "train.ffm")
with open(path, "w") as f:
    f.write("0 0:0:1.0 1:3:0.5\n")
    f.write("1 0:1:1.0 2:4:2.0\n")
    f.write("2 1:2:1.0 0:5:0.25\n")

# options are parsed with case-insensitive keys
options = {"NumFeatures": "6", "vectorType": "sparse"}
print(LibFFMOptions(options))
df = read_libffm(path, **options)

### local one vs rest
model = OneVsRest(SklearnClassifier(LogisticRegression(C=100.0))).fit(df)
print("numClasses: {0}".format(model.num_classes))
print(model.transform(df)[["label", "prediction"]])
