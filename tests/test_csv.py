import pytest

from rlink.core.errors import TypeMismatchError
from rlink.io.csv import CSV
from rlink.types.dataframe import DataFrame, DataFrameDict
from rlink.types.factor import Factor


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("name,age,score\nann,31,1.5\nbob,25,2\n")
    return path


def test_read_infers_floats_by_default(csv_file):
    df = CSV.read(str(csv_file))
    assert df.column_names == ["name", "age", "score"]
    assert df.column("name") == ["ann", "bob"]
    assert df.column("age") == [31.0, 25.0]
    assert isinstance(df.column("age")[0], float)
    assert df.column("score") == [1.5, 2.0]


def test_read_infers_integers_per_column(csv_file):
    df = CSV.read(str(csv_file), infer_integers=True)
    assert df.column("age") == [31, 25]
    assert isinstance(df.column("age")[0], int)
    assert isinstance(df.column("score")[1], float)


def test_read_without_inference(csv_file):
    df = CSV.read(str(csv_file), infer_numbers=False)
    assert df.column("age") == ["31", "25"]


def test_read_without_headers(tmp_path):
    path = tmp_path / "raw.csv"
    path.write_text("1,a\n2,b\n")

    df = CSV.read(str(path), headers=False, infer_integers=True)

    assert df.column_names == ["X1", "X2"]
    assert df.column("X1") == [1, 2]
    assert df.column("X2") == ["a", "b"]


def test_empty_cells_stay_strings(tmp_path):
    path = tmp_path / "gaps.csv"
    path.write_text("v,w\n1,x\n,y\n", encoding="utf-8")

    df = CSV.read(str(path))

    assert df.column("v") == ["1", ""]


def test_write_round_trip(tmp_path):
    path = tmp_path / "out.csv"
    df = DataFrame({"a": [1, 2], "g": Factor([2, 1], ["lo", "hi"])})

    assert CSV.write(str(path), df) is True

    assert path.read_text().splitlines() == ["a,g", "1,hi", "2,lo"]
    back = CSV.read(str(path), infer_integers=True)
    assert back.column("a") == [1, 2]
    assert back.column("g") == ["hi", "lo"]


def test_write_requires_dataframe(tmp_path):
    with pytest.raises(TypeMismatchError):
        CSV.write(str(tmp_path / "x.csv"), {"a": [1]})


def test_read_all(tmp_path):
    (tmp_path / "b.csv").write_text("k,v\n2,y\n")
    (tmp_path / "a.csv").write_text("k,v\n1,x\n")
    (tmp_path / "notes.txt").write_text("ignored")

    frames = CSV.read_all(str(tmp_path / "*.csv"), infer_integers=True)

    assert isinstance(frames, DataFrameDict)
    assert list(frames) == [str(tmp_path / "a.csv"), str(tmp_path / "b.csv")]
    assert frames.bind_all().column("k") == [1, 2]
