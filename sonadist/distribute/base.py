"""
Base functions for distributed meta-estimators
"""

import copy
import uuid

def _random_uid(prefix):
    """ Generates a unique identifier with the given prefix """
    return "{0}_{1}".format(prefix, uuid.uuid4().hex[-12:])

def _clone(estimator, safe=True):
    """
    Constructs a new estimator with the same parameters.
    Handles sparkContext which shouldn't be copied.
    """
    found_sc = False
    if hasattr(estimator, "sc"):
        found_sc = True
    estimator_type = type(estimator)
    # XXX: not handling dictionaries
    if estimator_type in (list, tuple, set, frozenset):
        return estimator_type([_clone(e, safe=safe) for e in estimator])
    elif not hasattr(estimator, 'get_params') or isinstance(estimator, type):
        if not safe:
            return copy.deepcopy(estimator)
        else:
            raise TypeError("Cannot clone object '%s' (type %s): "
                            "it does not seem to be a scikit-learn estimator "
                            "as it does not implement a 'get_params' methods."
                            % (repr(estimator), type(estimator)))
    klass = estimator.__class__
    new_object_params = estimator.get_params(deep=False)
    for name, param in new_object_params.items():
        if name != "sc":
            new_object_params[name] = _clone(param, safe=False)
    new_object = klass(**new_object_params)
    params_set = new_object.get_params(deep=False)

    # quick sanity check of the parameters of the clone
    for name in new_object_params:
        param1 = new_object_params[name]
        param2 = params_set[name]
        if param1 is not param2:
            raise RuntimeError('Cannot clone object %s, as the constructor '
                               'either does not set or modifies parameter %s' %
                               (estimator, name))

    if found_sc:
        new_object.sc = estimator.sc
    return new_object

def _copy_with(estimator, extra=None):
    """
    Clone an estimator and apply the parameter overrides in `extra`,
    ignoring names the estimator does not declare.
    """
    new_object = _clone(estimator)
    if extra:
        params = new_object.get_params(deep=False)
        new_object.set_params(
            **{k: v for k, v in extra.items() if k in params})
    return new_object

def _parse_partitions(partitions, auto_n):
    """ Handles the partitions input for spark parallelization """
    if partitions is None:
        partitions = None
    elif partitions == 'auto':
        partitions = auto_n
    else:
        try:
            partitions = int(partitions)
        except (TypeError, ValueError):
            partitions = None
    return partitions

def _get_value(obj):
    """
    Determines if input object is a spark broadcast variable.
    If so return its value, else return object. Other objects
    exposing a `value` attribute, such as DataFrames with a
    `value` column, are returned as is.
    """
    try:
        from pyspark.broadcast import Broadcast
    except ImportError:
        return obj
    return obj.value if isinstance(obj, Broadcast) else obj
