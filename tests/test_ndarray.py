"""Tests for ndarray externalization to .npy files."""

from __future__ import annotations

import numpy as np
import pytest

from docstore.exceptions import ConversionError
from docstore.protocols import NdarrayStore
from docstore.storage.ndarray import REFERENCE_KEY, FileNdarrayStore, is_reference

ARRAY_OPTIONS = {
    "id": "images",
    "schema": {
        "dataSchema": {
            "id": {"__tdxType": ["string"]},
            "image": {"__tdxType": ["ndarray"]},
        },
        "uniqueIndex": [{"asc": "id"}],
    },
}


class TestFileNdarrayStore:
    def test_is_an_ndarray_store(self, tmp_path) -> None:
        assert isinstance(FileNdarrayStore(tmp_path), NdarrayStore)

    def test_write_replaces_arrays_with_references(self, tmp_path) -> None:
        arrays = FileNdarrayStore(tmp_path / "arrays")
        rows = [{"id": "a", "image": np.arange(6, dtype=np.int32).reshape(2, 3)}, {"id": "b", "image": None}]

        written = arrays.write_many(rows, ["image"])

        reference = written[0]["image"][REFERENCE_KEY]
        assert reference["dtype"] == "int32"
        assert reference["shape"] == [2, 3]
        assert (tmp_path / "arrays" / reference["file"]).exists()
        assert written[1]["image"] is None
        # Input rows are left untouched and key order is kept
        assert isinstance(rows[0]["image"], np.ndarray)
        assert list(written[0]) == ["id", "image"]

    def test_read_restores_arrays(self, tmp_path) -> None:
        arrays = FileNdarrayStore(tmp_path)
        written = arrays.write_many([{"image": [[1.5, 2.5]]}], ["image"])

        restored = arrays.read_many(written, ["image"])

        assert np.array_equal(restored[0]["image"], np.array([[1.5, 2.5]]))
        assert not is_reference(restored[0]["image"])

    def test_object_arrays_are_rejected(self, tmp_path) -> None:
        arrays = FileNdarrayStore(tmp_path)
        with pytest.raises(ConversionError) as info:
            arrays.write_many([{"image": [{"a": 1}]}], ["image"])
        assert info.value.column == "image"

    def test_missing_file(self, tmp_path) -> None:
        arrays = FileNdarrayStore(tmp_path)
        reference = {REFERENCE_KEY: {"file": "gone.npy", "dtype": "int64", "shape": [1]}}
        with pytest.raises(ConversionError):
            arrays.read_many([{"image": reference}], ["image"])

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"file": 5, "dtype": "int64", "shape": [1]},
            {"file": "a.npy"},
            {"file": "a.txt", "dtype": "int64", "shape": [1]},
            {"file": "../a.npy", "dtype": "int64", "shape": [1]},
        ],
    )
    def test_malformed_reference(self, tmp_path, body) -> None:
        arrays = FileNdarrayStore(tmp_path)
        row = {"image": {REFERENCE_KEY: body}}
        with pytest.raises(ConversionError, match="malformed ndarray reference"):
            arrays.read_many([row], ["image"])
        with pytest.raises(ConversionError, match="malformed ndarray reference"):
            arrays.write_many([row], ["image"])

    def test_reference_outside_directory_is_not_read(self, tmp_path) -> None:
        outside = tmp_path / "outside.npy"
        np.save(outside, np.arange(3), allow_pickle=False)
        arrays = FileNdarrayStore(tmp_path / "arrays")
        reference = {REFERENCE_KEY: {"file": str(outside), "dtype": "int64", "shape": [3]}}

        with pytest.raises(ConversionError):
            arrays.read_many([{"image": reference}], ["image"])

    def test_valid_reference_passes_through_write(self, tmp_path) -> None:
        arrays = FileNdarrayStore(tmp_path)
        reference = {REFERENCE_KEY: {"file": "a.npy", "dtype": "int64", "shape": [1]}}
        assert arrays.write_many([{"image": reference}], ["image"]) == [{"image": reference}]


class TestStoreWithArrays:
    def test_round_trip_through_store(self, store) -> None:
        store.create_dataset(ARRAY_OPTIONS)
        image = np.linspace(0.0, 1.0, 12).reshape(3, 4)
        store.add_data([{"id": "a", "image": image}, {"id": "b"}])

        docs = {doc["id"]: doc for doc in store.get_dataset_data().data}
        assert np.allclose(docs["a"]["image"], image)
        assert docs["b"]["image"] is None

    def test_projection_without_array_column(self, store) -> None:
        store.create_dataset(ARRAY_OPTIONS)
        store.add_data({"id": "a", "image": [1, 2, 3]})
        assert store.get_dataset_data(None, {"id": 1}).data == [{"id": "a"}]

    def test_update_by_query_writes_array(self, store) -> None:
        store.create_dataset(ARRAY_OPTIONS)
        store.add_data({"id": "a", "image": [1, 2, 3]})

        assert store.update_data_by_query({"id": "a"}, {"image": np.zeros(2)}) == 1

        doc = store.get_dataset_data({"id": "a"}).data[0]
        assert np.array_equal(doc["image"], np.zeros(2))

    def test_distinct_over_array_column_is_empty(self, store) -> None:
        store.create_dataset(ARRAY_OPTIONS)
        store.add_data({"id": "a", "image": [1, 2, 3]})
        assert store.get_distinct("image") == []

    def test_bad_array_fails_before_batch(self, store) -> None:
        store.create_dataset(ARRAY_OPTIONS)
        with pytest.raises(ConversionError):
            store.add_data([{"id": "a", "image": [1]}, {"id": "b", "image": [object()]}])
        assert store.get_dataset_data_count() == 0
        assert store.last_batch_stats is None

    def test_malformed_reference_fails_before_batch(self, store) -> None:
        store.create_dataset(ARRAY_OPTIONS)
        with pytest.raises(ConversionError):
            store.add_data([{"id": "a", "image": {REFERENCE_KEY: {}}}])
        assert store.get_dataset_data_count() == 0
        assert store.last_batch_stats is None
