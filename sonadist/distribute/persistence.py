"""
Directory-based persistence for estimators and fitted models.

Every saved stage is a directory holding a JSON ``metadata`` file
(class name, uid, timestamp, package version, JSON-serializable
params and any extra keys) next to stage specific data. Composite
stages save their children in sub-directories, and loading dispatches
on the class name recorded in each child's metadata.
"""

import os
import json
import time
import shutil
import importlib
import numbers
import numpy as np

__all__ = [
    "MLWritable",
    "MLReadable",
    "MLWriter",
    "MLReader",
    "save_metadata",
    "load_metadata",
    "load_params_instance",
    "get_and_set_params"
]

_METADATA_FILE = "metadata"
_EXCLUDED_PARAMS = ("sc", "uid")

def _class_name(obj):
    """ Fully qualified class name of a class or instance """
    klass = obj if isinstance(obj, type) else obj.__class__
    return "{0}.{1}".format(klass.__module__, klass.__name__)

def _load_class(name):
    module_name, _, class_name = name.rpartition(".")
    return getattr(importlib.import_module(module_name), class_name)

def _is_json_value(value):
    """ Returns whether a param value can be written as JSON """
    if value is None or isinstance(value, (str, bool, numbers.Number)):
        return True
    if isinstance(value, (list, tuple)):
        return all(_is_json_value(v) for v in value)
    if isinstance(value, dict):
        return all(
            isinstance(k, str) and _is_json_value(v)
            for k, v in value.items())
    return False

def _json_value(value):
    """ Cast numpy scalars to builtin types """
    return value.item() if isinstance(value, np.generic) else value

class MLWriter(object):
    """
    Saves a stage to a directory.

    Args:
        instance: stage to save
    """
    def __init__(self, instance):
        self.instance = instance
        self.should_overwrite = False

    def overwrite(self):
        """ Overwrites if the output path already exists """
        self.should_overwrite = True
        return self

    def save(self, path):
        """ Save the stage to `path` """
        if os.path.exists(path):
            if not self.should_overwrite:
                raise IOError("Path {0} already exists. To overwrite it, "
                    "please use write().overwrite().save(path) "
                    "for Python.".format(path))
            if os.path.isdir(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        self.save_impl(path)

    def save_impl(self, path):
        raise NotImplementedError(
            "MLWriter is not yet implemented for type: {0}".format(
                type(self.instance)))

class MLReader(object):
    """
    Loads a stage of class `cls` from a directory.
    """
    def __init__(self, cls):
        self.cls = cls

    def load(self, path):
        raise NotImplementedError(
            "MLReader is not yet implemented for type: {0}".format(self.cls))

class MLWritable(object):
    """ Mixin for stages which can save themselves """
    def write(self):
        """ Returns an MLWriter instance for this stage """
        raise NotImplementedError(
            "MLWritable is not yet implemented for type: {0}".format(type(self)))

    def save(self, path):
        """ Save this stage to `path`; fails if the path exists """
        self.write().save(path)

class MLReadable(object):
    """ Mixin for stages which can be loaded from a directory """
    @classmethod
    def read(cls):
        """ Returns an MLReader instance for this class """
        raise NotImplementedError(
            "MLReadable.read is not implemented for type: {0}".format(cls))

    @classmethod
    def load(cls, path):
        """ Load a stage from `path` """
        return cls.read().load(path)

def _param_map(instance, exclude=()):
    """ JSON-serializable params of a stage """
    params = instance.get_params(deep=False)
    return {
        name: _json_value(value) for name, value in params.items()
        if name not in exclude and name not in _EXCLUDED_PARAMS
        and _is_json_value(_json_value(value))
        }

def save_metadata(instance, path, extra_metadata=None, exclude=()):
    """
    Save the metadata of a stage to ``<path>/metadata``.

    Args:
        instance: stage with ``uid`` and sklearn style ``get_params``
        path (str): stage directory; created if missing
        extra_metadata (dict): extra keys merged into the metadata
        exclude (iterable): names of params left out of ``paramMap``
    """
    from .. import __version__
    metadata = {
        "class": _class_name(instance),
        "timestamp": int(round(time.time() * 1000)),
        "sonadistVersion": __version__,
        "uid": instance.uid,
        "paramMap": _param_map(instance, exclude=exclude)
        }
    if extra_metadata:
        metadata.update(extra_metadata)
    if not os.path.isdir(path):
        os.makedirs(path)
    with open(os.path.join(path, _METADATA_FILE), "w") as f:
        json.dump(metadata, f)
    return metadata

def load_metadata(path, expected_class_name=""):
    """
    Load the metadata of a stage saved at `path`, checking the
    stored class name when `expected_class_name` is given.
    """
    with open(os.path.join(path, _METADATA_FILE), "r") as f:
        metadata = json.load(f)
    class_name = metadata["class"]
    if expected_class_name and class_name != expected_class_name:
        raise ValueError("Error loading metadata: Expected class name "
            "{0} but found class name {1}".format(
                expected_class_name, class_name))
    return metadata

def get_and_set_params(instance, metadata, skip=()):
    """ Set the params stored in `metadata` on `instance` """
    params = instance.get_params(deep=False)
    instance.set_params(**{
        name: value for name, value in metadata["paramMap"].items()
        if name in params and name not in skip
        })
    return instance

def load_params_instance(path):
    """ Load a stage of whichever class is recorded at `path` """
    metadata = load_metadata(path)
    cls = _load_class(metadata["class"])
    if not (isinstance(cls, type) and issubclass(cls, MLReadable)):
        raise NotImplementedError("Cannot load {0}: class {1} does not "
            "implement MLReadable.".format(path, metadata["class"]))
    return cls.load(path)
