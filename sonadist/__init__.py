"""
Distributed multiclass reduction and data sources with PySpark
==============================================================
sonadist is a Python module that reduces multiclass classification to
binary classification over pandas DataFrames, training one binary
scikit-learn classifier per class. The binary fits are parallelized
with a local thread pool, or with spark when a sparkContext is given,
enabling the per-class fits to run on the executors of a cluster.

Fitted one-vs-rest models score DataFrames column-wise, persist
themselves as a directory tree (one sub-directory per binary model),
and can be applied to PySpark DataFrames with vectorized UDFs.

The module also carries the options and reader for the LIBFFM
text data format.
"""

__version__ = '0.2.0'

__all__ = ['distribute', 'source', 'tests']
