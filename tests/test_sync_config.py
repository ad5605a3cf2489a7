"""Unit tests for sync configuration."""

import json

import pytest

from pys3sync.sync.comparator import ComparatorType, SizeOnlyComparator, SmartComparator
from pys3sync.sync.config import SyncConfig, SyncConfigError, load_sync_configs_from_json


class TestSyncConfigValidate:
    """Tests for SyncConfig.validate."""

    def test_valid_config(self, tmp_path):
        SyncConfig(local_path=tmp_path, bucket="my-bucket", prefix="www").validate()

    def test_normalized_prefix(self, tmp_path):
        assert SyncConfig(local_path=tmp_path, bucket="b-1", prefix="/www").normalized_prefix == "www/"
        assert SyncConfig(local_path=tmp_path, bucket="b-1", prefix="/").normalized_prefix == ""

    def test_invalid_bucket(self, tmp_path):
        with pytest.raises(SyncConfigError, match="bucket name"):
            SyncConfig(local_path=tmp_path, bucket="Bad_Bucket").validate()

    def test_missing_local_path(self, tmp_path):
        with pytest.raises(SyncConfigError, match="does not exist"):
            SyncConfig(local_path=tmp_path / "missing", bucket="my-bucket").validate()

    def test_local_path_is_file(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(SyncConfigError, match="not a directory"):
            SyncConfig(local_path=path, bucket="my-bucket").validate()

    @pytest.mark.parametrize("parallelism", [0, -1, 101])
    def test_parallelism_bounds(self, tmp_path, parallelism):
        with pytest.raises(SyncConfigError, match="Parallelism"):
            SyncConfig(local_path=tmp_path, bucket="my-bucket", parallelism=parallelism).validate()

    def test_chunk_size_minimum(self, tmp_path):
        with pytest.raises(SyncConfigError, match="at least 5 MB"):
            SyncConfig(local_path=tmp_path, bucket="my-bucket", chunk_size=1024).validate()

    def test_multipart_threshold_positive(self, tmp_path):
        with pytest.raises(SyncConfigError, match="threshold"):
            SyncConfig(local_path=tmp_path, bucket="my-bucket", multipart_threshold=0).validate()

    def test_invalid_pattern(self, tmp_path):
        with pytest.raises(SyncConfigError):
            SyncConfig(
                local_path=tmp_path, bucket="my-bucket", exclude_patterns=["[unclosed"]
            ).validate()

    def test_unknown_comparator(self, tmp_path):
        with pytest.raises(SyncConfigError, match="Unknown comparator"):
            SyncConfig(local_path=tmp_path, bucket="my-bucket", comparator="fuzzy").validate()

    def test_resolve_comparator(self, tmp_path):
        assert isinstance(
            SyncConfig(local_path=tmp_path, bucket="my-bucket").resolve_comparator(),
            SmartComparator,
        )
        assert isinstance(
            SyncConfig(
                local_path=tmp_path, bucket="my-bucket", comparator="size-only"
            ).resolve_comparator(),
            SizeOnlyComparator,
        )


class TestLoadSyncConfigs:
    """Tests for load_sync_configs_from_json."""

    def _write(self, tmp_path, data):
        path = tmp_path / "syncs.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_list_of_entries(self, tmp_path):
        (tmp_path / "site").mkdir()
        path = self._write(
            tmp_path,
            [
                {
                    "local": "site",
                    "bucket": "my-bucket",
                    "prefix": "www/",
                    "deleteExtra": True,
                    "include": ["*.html"],
                    "exclude": "*.tmp",
                    "parallelism": 3,
                    "comparator": "checksum",
                },
                {"local": str(tmp_path), "bucket": "other-bucket"},
            ],
        )

        first, second = load_sync_configs_from_json(path)

        assert first.local_path == tmp_path.resolve() / "site"
        assert first.bucket == "my-bucket"
        assert first.prefix == "www/"
        assert first.delete_extra is True
        assert first.include_patterns == ["*.html"]
        assert first.exclude_patterns == ["*.tmp"]
        assert first.parallelism == 3
        assert first.comparator == ComparatorType.CHECKSUM
        assert second.bucket == "other-bucket"
        assert second.delete_extra is False
        assert second.comparator is None

    def test_single_object(self, tmp_path):
        path = self._write(tmp_path, {"local": str(tmp_path), "bucket": "my-bucket"})
        configs = load_sync_configs_from_json(path)
        assert len(configs) == 1
        assert configs[0].local_path == tmp_path

    def test_missing_required_fields(self, tmp_path):
        path = self._write(tmp_path, [{"prefix": "www"}])
        with pytest.raises(SyncConfigError, match="local, bucket"):
            load_sync_configs_from_json(path)

    def test_bad_parallelism_type(self, tmp_path):
        path = self._write(tmp_path, [{"local": ".", "bucket": "b-1", "parallelism": "4"}])
        with pytest.raises(SyncConfigError, match="parallelism"):
            load_sync_configs_from_json(path)

    def test_bad_pattern_list(self, tmp_path):
        path = self._write(tmp_path, [{"local": ".", "bucket": "b-1", "exclude": [1, 2]}])
        with pytest.raises(SyncConfigError, match="list of strings"):
            load_sync_configs_from_json(path)

    def test_unknown_comparator(self, tmp_path):
        path = self._write(tmp_path, [{"local": ".", "bucket": "b-1", "comparator": "fuzzy"}])
        with pytest.raises(SyncConfigError, match="Sync definition 0"):
            load_sync_configs_from_json(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "syncs.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SyncConfigError, match="Invalid JSON"):
            load_sync_configs_from_json(path)

    def test_wrong_top_level_type(self, tmp_path):
        path = self._write(tmp_path, "just a string")
        with pytest.raises(SyncConfigError, match="list of objects"):
            load_sync_configs_from_json(path)

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(SyncConfigError, match="Cannot read"):
            load_sync_configs_from_json(tmp_path / "missing.json")
