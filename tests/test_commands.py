"""
End-to-end tests for DedupeCommand: load, walk, hash, enforce, save.
"""
import os
import threading
import pytest

from conftest import set_mtime
from dupekeep.commands import DedupeCommand
from dupekeep.core.cancel import CancellationToken
from dupekeep.core.errors import IndexStoreError
from dupekeep.core.hasher import HasherImpl
from dupekeep.core.models import DedupeParams, RunState
from dupekeep.services.index_store import PickleIndexStore


class CountingHasher(HasherImpl):
    def __init__(self):
        super().__init__()
        self.count = 0
        self._lock = threading.Lock()

    def compute_full_hash(self, record):
        with self._lock:
            self.count += 1
        return super().compute_full_hash(record)


def make_tree(root):
    """Same 5-byte content in three directories."""
    paths = []
    for directory, name in (("a", "1.txt"), ("b", "2.txt"), ("c", "3.txt")):
        (root / directory).mkdir()
        path = root / directory / name
        path.write_bytes(b"hello")
        paths.append(path)
    return paths


class TestDedupeCommand:
    def test_keep_first_deletes_other_copies(self, temp_dir):
        first, second, third = make_tree(temp_dir)
        params = DedupeParams.from_strings(roots=[str(temp_dir)], rule="keep-first", workers=2)

        command = DedupeCommand()
        report = command.execute(params)

        assert first.exists()
        assert not second.exists()
        assert not third.exists()
        assert report.deleted == [str(second), str(third)]
        assert report.reclaimed_bytes == 10
        assert report.state == RunState.DONE
        assert command.index.known_paths() == {str(first)}

    def test_no_rule_only_reports(self, temp_dir):
        paths = make_tree(temp_dir)
        report = DedupeCommand().execute(DedupeParams.from_strings(roots=[str(temp_dir)]))

        assert all(p.exists() for p in paths)
        assert len(report.decisions) == 1
        assert report.marked_count == 0

    def test_dry_run_keeps_files(self, temp_dir):
        paths = make_tree(temp_dir)
        params = DedupeParams.from_strings(roots=[str(temp_dir)], rule="keep-last", dry_run=True)

        report = DedupeCommand().execute(params)

        assert all(p.exists() for p in paths)
        assert report.would_delete == [str(paths[0]), str(paths[1])]
        assert report.deleted == []

    def test_keep_match_protects_directory(self, temp_dir):
        (temp_dir / "important").mkdir()
        keep = temp_dir / "important" / "x.dat"
        others = [temp_dir / "y.dat", temp_dir / "z.dat"]
        for path in [keep] + others:
            path.write_bytes(b"same bytes")
        params = DedupeParams.from_strings(roots=[str(temp_dir)], keep_match="/important/")

        DedupeCommand().execute(params)

        assert keep.exists()
        assert not any(p.exists() for p in others)

    def test_distinct_sizes_are_never_hashed(self, temp_dir):
        (temp_dir / "a").write_bytes(b"x" * 10)
        (temp_dir / "b").write_bytes(b"x" * 20)
        hasher = CountingHasher()

        report = DedupeCommand(hasher=hasher).execute(
            DedupeParams.from_strings(roots=[str(temp_dir)], rule="keep-first")
        )

        assert hasher.count == 0
        assert report.decisions == []


class TestPersistentIndex:
    def test_index_only_saves_and_deletes_nothing(self, temp_dir):
        data = temp_dir / "data"
        data.mkdir()
        paths = make_tree(data)
        index_path = temp_dir / "index.db"
        params = DedupeParams.from_strings(
            roots=[str(data)], index_path=str(index_path), index_only=True, rule="keep-first"
        )

        report = DedupeCommand().execute(params)

        assert all(p.exists() for p in paths)
        assert report.decisions == []
        assert index_path.exists()
        stored = PickleIndexStore(str(index_path)).read()
        assert len(stored.hash_bucket(next(iter(stored.duplicate_buckets()))[0])) == 3

    def test_second_run_reads_no_file(self, temp_dir):
        data = temp_dir / "data"
        data.mkdir()
        make_tree(data)
        index_path = str(temp_dir / "index.db")
        params = DedupeParams.from_strings(roots=[str(data)], index_path=index_path, index_only=True)

        DedupeCommand().execute(params)
        saved = PickleIndexStore(index_path).read()
        hasher = CountingHasher()
        DedupeCommand(hasher=hasher).execute(params)

        assert hasher.count == 0
        assert PickleIndexStore(index_path).read() == saved

    def test_modified_file_is_rehashed(self, temp_dir):
        data = temp_dir / "data"
        data.mkdir()
        first, second, third = make_tree(data)
        index_path = str(temp_dir / "index.db")
        params = DedupeParams.from_strings(roots=[str(data)], index_path=index_path, index_only=True)
        DedupeCommand().execute(params)

        third.write_bytes(b"world")
        set_mtime(third, os.lstat(third).st_mtime_ns + 5_000_000_000)
        hasher = CountingHasher()
        command = DedupeCommand(hasher=hasher)
        command.execute(params)

        assert hasher.count == 1
        buckets = command.index.duplicate_buckets()
        assert len(buckets) == 1
        assert sorted(r.path for r in buckets[0][1]) == [str(first), str(second)]

    def test_deleted_files_leave_the_index(self, temp_dir):
        data = temp_dir / "data"
        data.mkdir()
        first, _, _ = make_tree(data)
        index_path = str(temp_dir / "index.db")

        DedupeCommand().execute(
            DedupeParams.from_strings(roots=[str(data)], index_path=index_path, rule="keep-first")
        )

        stored = PickleIndexStore(index_path).read()
        assert stored.known_paths() == {str(first)}
        assert stored.check_consistency() == []

    def test_corrupt_index_is_fatal_and_left_alone(self, temp_dir):
        index_path = temp_dir / "index.db"
        index_path.write_bytes(b"garbage")

        with pytest.raises(IndexStoreError):
            DedupeCommand().execute(
                DedupeParams.from_strings(roots=[str(temp_dir)], index_path=str(index_path))
            )
        assert index_path.read_bytes() == b"garbage"

    def test_stop_still_saves_index(self, temp_dir):
        data = temp_dir / "data"
        data.mkdir()
        paths = make_tree(data)
        index_path = temp_dir / "index.db"
        token = CancellationToken()
        token.stop()
        params = DedupeParams.from_strings(roots=[str(data)], index_path=str(index_path), rule="keep-first")

        report = DedupeCommand().execute(params, token=token)

        assert report.stopped
        assert report.state == RunState.DONE
        assert index_path.exists()
        assert all(p.exists() for p in paths)

    def test_unwritable_index_reported(self, temp_dir):
        make_tree(temp_dir)
        params = DedupeParams.from_strings(
            roots=[str(temp_dir)], index_path=str(temp_dir / "missing" / "index.db")
        )

        report = DedupeCommand().execute(params)

        assert report.persist_error
        assert report.state == RunState.DONE


class TestSymlinkedRoots:
    @staticmethod
    def make_alias(temp_dir):
        real = temp_dir / "real"
        (real / "sub").mkdir(parents=True)
        alias = temp_dir / "alias"
        try:
            alias.symlink_to(real, target_is_directory=True)
        except (OSError, NotImplementedError):
            pytest.skip("Symlinks not supported on this platform")
        return real, alias

    def test_same_file_through_two_roots_is_never_deleted(self, temp_dir):
        real, alias = self.make_alias(temp_dir)
        only = real / "sub" / "only.txt"
        only.write_bytes(b"the one and only copy")
        params = DedupeParams.from_strings(
            roots=[str(alias / "sub"), str(real / "sub")], rule="keep-last"
        )

        command = DedupeCommand()
        report = command.execute(params)

        assert only.exists()
        assert report.deleted == []
        assert report.decisions == []
        assert command.index.known_paths() == {str(only)}

    def test_symlinked_root_is_scanned(self, temp_dir):
        real, alias = self.make_alias(temp_dir)
        (real / "one.txt").write_bytes(b"twin")
        (real / "two.txt").write_bytes(b"twin")

        report = DedupeCommand().execute(DedupeParams.from_strings(roots=[str(alias)]))

        assert report.new_files == 2
        assert len(report.decisions) == 1
        assert sorted(r.path for r in report.decisions[0].ordered) == [
            str(real / "one.txt"), str(real / "two.txt")
        ]
