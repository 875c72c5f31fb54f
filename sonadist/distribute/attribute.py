"""
ML attributes describing the values held by a DataFrame column.

Attributes are stored as JSON-friendly dictionaries under the
``"ml_attr"`` key of a column's metadata, the same layout spark
uses for ``StructField`` metadata. A label column tagged with a
nominal attribute declares its number of classes, which spares
a full pass over the data when fitting multiclass reductions.
"""

import json

__all__ = [
    "Attribute",
    "NumericAttribute",
    "NominalAttribute",
    "BinaryAttribute",
    "UnresolvedAttribute",
    "get_num_classes",
    "vector_metadata"
]

ML_ATTR = "ml_attr"

class Attribute(object):
    """
    Abstract column attribute.

    Args:
        name (str): column name, optional
        index (int): index within a vector column, optional
    """
    attr_type = None

    def __init__(self, name=None, index=None):
        self.name = name
        self.index = index

    def _to_dict(self):
        d = {"type": self.attr_type}
        if self.name is not None:
            d["name"] = self.name
        if self.index is not None:
            d["idx"] = self.index
        return d

    def _replace(self, **kwargs):
        d = dict(self.__dict__)
        d.update(kwargs)
        return self.__class__(**d)

    def with_name(self, name):
        """ Copy of this attribute with a new name """
        return self._replace(name=name)

    def to_metadata(self):
        """ Column metadata carrying this attribute """
        return {ML_ATTR: self._to_dict()}

    def to_json(self):
        return json.dumps(self.to_metadata(), sort_keys=True)

    @staticmethod
    def from_metadata(metadata):
        """
        Build an attribute from column metadata. Metadata without
        an attribute yields ``UnresolvedAttribute``.
        """
        attr = (metadata or {}).get(ML_ATTR)
        if not attr or "type" not in attr:
            return UnresolvedAttribute
        attr_type = attr["type"]
        if attr_type == NumericAttribute.attr_type:
            return NumericAttribute(
                name=attr.get("name"), index=attr.get("idx"))
        elif attr_type == NominalAttribute.attr_type:
            return NominalAttribute(
                name=attr.get("name"), index=attr.get("idx"),
                num_values=attr.get("num_vals"), values=attr.get("vals"),
                is_ordinal=attr.get("ord"))
        elif attr_type == BinaryAttribute.attr_type:
            return BinaryAttribute(
                name=attr.get("name"), index=attr.get("idx"),
                values=attr.get("vals"))
        raise ValueError("Unknown attribute type: {0}".format(attr_type))

    @staticmethod
    def from_json(s):
        return Attribute.from_metadata(json.loads(s))

    def __eq__(self, other):
        return (type(self) is type(other)
            and self._to_dict() == other._to_dict())

    def __hash__(self):
        return hash(json.dumps(self._to_dict(), sort_keys=True))

    def __repr__(self):
        return "{0}({1})".format(
            self.__class__.__name__, self._to_dict())

class NumericAttribute(Attribute):
    """ Attribute of a continuous column """
    attr_type = "numeric"

class NominalAttribute(Attribute):
    """
    Attribute of a categorical column.

    Args:
        name (str): column name, optional
        index (int): index within a vector column, optional
        num_values (int): number of categories, optional
        values (list of str): category names, optional
        is_ordinal (bool): whether categories are ordered, optional
    """
    attr_type = "nominal"

    def __init__(self, name=None, index=None, num_values=None,
                 values=None, is_ordinal=None):
        Attribute.__init__(self, name=name, index=index)
        if num_values is not None and values is not None:
            raise ValueError(
                "Cannot have both num_values and values defined.")
        self.num_values = num_values
        self.values = list(values) if values is not None else None
        self.is_ordinal = is_ordinal

    def with_num_values(self, num_values):
        return self._replace(num_values=num_values, values=None)

    def with_values(self, values):
        return self._replace(num_values=None, values=values)

    def get_num_values(self):
        """ Number of categories if known, else None """
        if self.values is not None:
            return len(self.values)
        return self.num_values

    def _to_dict(self):
        d = Attribute._to_dict(self)
        if self.is_ordinal is not None:
            d["ord"] = self.is_ordinal
        if self.values is not None:
            d["vals"] = list(self.values)
        if self.num_values is not None:
            d["num_vals"] = self.num_values
        return d

class BinaryAttribute(Attribute):
    """
    Attribute of a column with two categories.

    Args:
        name (str): column name, optional
        index (int): index within a vector column, optional
        values (list of str): names of the two categories, optional
    """
    attr_type = "binary"

    def __init__(self, name=None, index=None, values=None):
        Attribute.__init__(self, name=name, index=index)
        if values is not None and len(values) != 2:
            raise ValueError(
                "Number of values must be 2 for a binary attribute "
                "but got {0}.".format(values))
        self.values = list(values) if values is not None else None

    def _to_dict(self):
        d = Attribute._to_dict(self)
        if self.values is not None:
            d["vals"] = list(self.values)
        return d

class _UnresolvedAttribute(Attribute):
    """ Attribute of a column without attribute metadata """
    attr_type = "unresolved"

    def to_metadata(self):
        return {}

    def __repr__(self):
        return "UnresolvedAttribute"

UnresolvedAttribute = _UnresolvedAttribute()

def get_num_classes(metadata):
    """
    Number of classes declared by label column metadata:
    2 for a binary attribute, the number of values for a
    nominal attribute, None otherwise.
    """
    attr = Attribute.from_metadata(metadata)
    if isinstance(attr, BinaryAttribute):
        return 2
    elif isinstance(attr, NominalAttribute):
        return attr.get_num_values()
    return None

def vector_metadata(num_attributes, name=None):
    """ Metadata of a vector column holding `num_attributes` values """
    d = {"num_attrs": int(num_attributes)}
    if name is not None:
        d["name"] = name
    return {ML_ATTR: d}
