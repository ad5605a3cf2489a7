"""Tests for the sync planner."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from pys3sync.exceptions import ComparatorError, PlanningError
from pys3sync.sync.comparator import FileComparator, NullComparator, SizeOnlyComparator
from pys3sync.sync.planner import (
    Operation,
    OperationType,
    SyncPlanner,
    size_class,
    summarize,
    validate_plan,
)
from pys3sync.sync.scanner import LocalFile, RemoteFile

MB = 1024 * 1024


def _local(rel: str, size: int = 10) -> LocalFile:
    return LocalFile(path=Path("/src") / rel, relative_path=rel, size=size, mtime=1000.0)


def _remote(rel: str, size: int = 10, prefix: str = "p/") -> RemoteFile:
    return RemoteFile(
        key=f"{prefix}{rel}", relative_path=rel, size=size, last_modified=1000.0, etag="abc"
    )


def _index(files):
    return {f.relative_path: f for f in files}


class TestSyncPlanner:
    """Tests for building plans from two inventories."""

    def test_new_file_is_uploaded(self):
        """A local-only file becomes an upload with the joined key."""
        planner = SyncPlanner(SizeOnlyComparator())
        plan = planner.plan(_index([_local("a.txt")]), {}, "p/")

        assert plan == [
            Operation(
                type=OperationType.UPLOAD,
                relative_path="a.txt",
                remote_key="p/a.txt",
                size=10,
                local_path=Path("/src/a.txt"),
                reason="new file",
            )
        ]

    def test_root_prefix_key(self):
        plan = SyncPlanner(SizeOnlyComparator()).plan(_index([_local("dir/a.txt")]), {}, "")
        assert plan[0].remote_key == "dir/a.txt"

    def test_unchanged_file_is_skipped(self):
        planner = SyncPlanner(SizeOnlyComparator())
        plan = planner.plan(_index([_local("a.txt")]), _index([_remote("a.txt")]), "p/")

        assert [(op.type, op.reason) for op in plan] == [(OperationType.SKIP, "unchanged")]

    def test_changed_file_is_single_upload(self):
        """A modified file yields exactly one upload and no delete or skip."""
        planner = SyncPlanner(SizeOnlyComparator())
        plan = planner.plan(
            _index([_local("a.txt", size=20)]),
            _index([_remote("a.txt", size=10)]),
            "p/",
            delete_extra=True,
        )

        assert len(plan) == 1
        assert plan[0].type == OperationType.UPLOAD
        assert plan[0].reason == "modified"
        assert plan[0].size == 20

    def test_extra_remote_ignored_without_delete_extra(self):
        """Remote-only objects produce no operation at all by default."""
        planner = SyncPlanner(NullComparator())
        plan = planner.plan({}, _index([_remote("extra.txt")]), "p/")
        assert plan == []

    def test_extra_remote_deleted_with_delete_extra(self):
        planner = SyncPlanner(NullComparator())
        plan = planner.plan({}, _index([_remote("extra.txt", size=7)]), "p/", delete_extra=True)

        assert len(plan) == 1
        assert plan[0].type == OperationType.DELETE
        assert plan[0].remote_key == "p/extra.txt"
        assert plan[0].local_path is None
        assert plan[0].size == 7
        assert plan[0].reason == "extra remote file"

    def test_join_completeness(self):
        """Every local path gets one upload/skip; remote-only paths get a delete."""
        local = _index([_local("a"), _local("b"), _local("c", size=99)])
        remote = _index([_remote("b"), _remote("c"), _remote("d"), _remote("e")])

        plan = SyncPlanner(SizeOnlyComparator()).plan(local, remote, "p/", delete_extra=True)
        by_path = {op.relative_path: op.type for op in plan}

        assert by_path == {
            "a": OperationType.UPLOAD,
            "b": OperationType.SKIP,
            "c": OperationType.UPLOAD,
            "d": OperationType.DELETE,
            "e": OperationType.DELETE,
        }
        assert len(plan) == len(by_path)

    def test_ordering(self):
        """Uploads by size class then path, then deletes, then skips."""
        local = _index(
            [
                _local("big.bin", size=200 * MB),
                _local("z-small.txt", size=10),
                _local("a-small.txt", size=10),
                _local("medium.bin", size=5 * MB),
                _local("same.txt", size=1),
            ]
        )
        remote = _index([_remote("same.txt", size=1), _remote("old.txt"), _remote("gone.txt")])

        plan = SyncPlanner(SizeOnlyComparator()).plan(local, remote, "p/", delete_extra=True)

        assert [op.relative_path for op in plan] == [
            "a-small.txt",
            "z-small.txt",
            "medium.bin",
            "big.bin",
            "gone.txt",
            "old.txt",
            "same.txt",
        ]

    def test_plan_is_deterministic(self):
        """The same inputs produce an identical plan regardless of dict order."""
        files = [_local(f"f{i}.txt", size=i * MB) for i in range(20)]
        forward = SyncPlanner(SizeOnlyComparator()).plan(_index(files), {}, "p/")
        backward = SyncPlanner(SizeOnlyComparator()).plan(_index(reversed(files)), {}, "p/")
        assert forward == backward

    def test_comparator_error_becomes_planning_error(self):
        comparator = Mock(spec=FileComparator)
        comparator.has_changed.side_effect = ComparatorError("hash failed")

        with pytest.raises(PlanningError, match="hash failed"):
            SyncPlanner(comparator).plan(_index([_local("a")]), _index([_remote("a")]), "p/")

    def test_comparator_not_called_for_one_sided_paths(self):
        comparator = Mock(spec=FileComparator)
        SyncPlanner(comparator).plan(
            _index([_local("a")]), _index([_remote("b")]), "p/", delete_extra=True
        )
        comparator.has_changed.assert_not_called()


class TestSizeClass:
    @pytest.mark.parametrize(
        "size,expected",
        [(0, 0), (MB - 1, 0), (MB, 1), (10 * MB - 1, 1), (10 * MB, 2), (100 * MB, 3)],
    )
    def test_boundaries(self, size, expected):
        assert size_class(size) == expected


class TestSummarize:
    def test_counts_and_bytes(self):
        plan = [
            Operation(OperationType.UPLOAD, "a", "p/a", size=5, local_path=Path("/a")),
            Operation(OperationType.UPLOAD, "b", "p/b", size=7, local_path=Path("/b")),
            Operation(OperationType.DELETE, "c", "p/c", size=3),
            Operation(OperationType.SKIP, "d", "p/d", size=1, local_path=Path("/d")),
        ]
        summary = summarize(plan)

        assert summary.uploads == 2
        assert summary.upload_bytes == 12
        assert summary.deletes == 1
        assert summary.delete_bytes == 3
        assert summary.skips == 1
        assert summary.total == 4
        assert summary.has_changes is True

    def test_empty_plan(self):
        summary = summarize([])
        assert summary.total == 0
        assert summary.has_changes is False


class TestValidatePlan:
    def test_valid_plan(self):
        validate_plan(
            [
                Operation(OperationType.UPLOAD, "a", "p/a", size=1, local_path=Path("/a")),
                Operation(OperationType.DELETE, "b", "p/b"),
            ]
        )

    def test_duplicate_path(self):
        plan = [
            Operation(OperationType.UPLOAD, "a", "p/a", local_path=Path("/a")),
            Operation(OperationType.DELETE, "a", "p/a"),
        ]
        with pytest.raises(PlanningError, match="more than once"):
            validate_plan(plan)

    def test_upload_without_local_path(self):
        with pytest.raises(PlanningError, match="no local path"):
            validate_plan([Operation(OperationType.UPLOAD, "a", "p/a")])

    def test_empty_key(self):
        with pytest.raises(PlanningError, match="no key"):
            validate_plan([Operation(OperationType.DELETE, "a", "")])
