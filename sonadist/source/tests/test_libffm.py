"""
Test LIBFFM options and reader
"""

import pytest

try:
    import numpy as np
    from scipy import sparse
    from sklearn.linear_model import LogisticRegression
    from sonadist.source.libffm import LibFFMOptions, read_libffm
    from sonadist.distribute.dataset import get_metadata
    from sonadist.distribute.classifier import SklearnClassifier
    from sonadist.distribute.multiclass import OneVsRest
    _import_error = None
except Exception as e:
    _import_error = e

_DATA = "\n".join([
    "0 0:0:1.0 1:3:0.5",
    "1 0:1:1.0 2:4:2.0",
    "",
    "2 1:2:1.0 0:0:0.25",
    ]) + "\n"

@pytest.fixture
def libffm_file(tmp_path):
    path = tmp_path / "train.ffm"
    path.write_text(_DATA)
    return str(path)

def test_libffm():
    assert _import_error == None

def test_defaults():
    options = LibFFMOptions({})
    assert options.num_features is None
    assert options.num_fields is None
    assert options.is_sparse
    assert not options.is_long_key
    assert options == LibFFMOptions()

def test_options():
    options = LibFFMOptions({
        "numFeatures": "100", "numFields": "8",
        "vectorType": "dense", "keyType": "long"})
    assert options.num_features == 100
    assert options.num_fields == 8
    assert not options.is_sparse
    assert options.is_long_key

def test_case_insensitive_keys():
    options = LibFFMOptions({"NUMFEATURES": "7", "vectortype": "dense"})
    assert options.num_features == 7
    assert not options.is_sparse

def test_lenient_integers():
    for value in ["0", "-3", "abc", ""]:
        options = LibFFMOptions({"numFeatures": value, "numFields": value})
        assert options.num_features is None
        assert options.num_fields is None

def test_invalid_vector_type():
    with pytest.raises(ValueError, match="Expected types are `sparse` and `dense`"):
        LibFFMOptions({"vectorType": "Dense"})

def test_invalid_key_type():
    with pytest.raises(ValueError, match="keyType"):
        LibFFMOptions({"keyType": "short"})

def test_as_dict():
    options = LibFFMOptions({"numfeatures": "12", "keyType": "long"})
    assert LibFFMOptions(options.as_dict()) == options
    assert hash(LibFFMOptions(options.as_dict())) == hash(options)
    assert options != LibFFMOptions({"numFeatures": "12"})

def test_read_sparse(libffm_file):
    df = read_libffm(libffm_file)
    assert list(df.columns) == ["label", "features", "fields"]
    assert list(df["label"]) == [0.0, 1.0, 2.0]
    assert get_metadata(df, "features")["ml_attr"]["num_attrs"] == 5
    first = df["features"].iloc[0]
    assert sparse.issparse(first)
    assert np.allclose(first.toarray(), [[1.0, 0.0, 0.0, 0.5, 0.0]])
    assert list(df["fields"].iloc[2]) == [0, 1]

def test_read_dense(libffm_file):
    df = read_libffm(libffm_file, numFeatures="6", vectorType="dense")
    assert df["features"].iloc[2].shape == (6,)
    assert np.allclose(df["features"].iloc[2], [0.25, 0.0, 1.0, 0.0, 0.0, 0.0])

def test_read_long_keys(libffm_file):
    df = read_libffm(libffm_file, keyType="long")
    first = df["features"].iloc[0]
    assert df["fields"].iloc[0].dtype == np.int64
    assert sparse.issparse(first)
    assert first.indices.dtype == np.int64
    assert first.indptr.dtype == np.int64
    assert read_libffm(libffm_file)["features"].iloc[0].indices.dtype == np.int32

def test_read_out_of_range(libffm_file):
    with pytest.raises(ValueError, match="Feature index out of range"):
        read_libffm(libffm_file, numFeatures="3")
    with pytest.raises(ValueError, match="Field index out of range"):
        read_libffm(libffm_file, numFields="2")

def test_read_malformed(tmp_path):
    path = tmp_path / "bad.ffm"
    path.write_text("1 0:1:1.0\n0 0:1\n")
    with pytest.raises(ValueError, match="line 2"):
        read_libffm(str(path))

def test_read_directory(tmp_path):
    (tmp_path / "part-00000").write_text("0 0:0:1.0\n")
    (tmp_path / "part-00001").write_text("1 0:1:1.0\n")
    (tmp_path / "_SUCCESS").write_text("")
    df = read_libffm(str(tmp_path))
    assert list(df["label"]) == [0.0, 1.0]

def test_one_vs_rest(libffm_file):
    df = read_libffm(libffm_file, vectorType="dense")
    model = OneVsRest(SklearnClassifier(LogisticRegression(C=100.0))).fit(df)
    assert model.num_classes == 3
    assert model.num_features == 5
    out = model.transform(df)
    assert np.allclose(out["prediction"].values, df["label"].values)

def test_read_duplicate_feature(tmp_path):
    path = tmp_path / "dup.ffm"
    path.write_text("1 0:0:1.0\n0 0:1:1.0 1:1:2.0\n")
    for vector_type in ["sparse", "dense"]:
        with pytest.raises(ValueError, match="Duplicate feature index at line 2"):
            read_libffm(str(path), vectorType=vector_type)

def test_read_directory_errors_name_file(tmp_path):
    (tmp_path / "part-00000").write_text("0 0:0:1.0\n")
    (tmp_path / "part-00001").write_text("1 0:1\n")
    with pytest.raises(ValueError, match="line 1 of .*part-00001"):
        read_libffm(str(tmp_path))
    (tmp_path / "part-00001").write_text("1 0:7:1.0\n")
    with pytest.raises(ValueError, match="line 1 of .*part-00001"):
        read_libffm(str(tmp_path), numFeatures="3")
