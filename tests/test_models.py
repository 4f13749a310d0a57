"""
Unit tests for data models and DedupeParams validation.
Covers file kind classification, record refresh and parameter factory behaviour.
"""
import os
import re
import stat
import pytest

from dupekeep.core.models import (
    BucketDecision, DedupeParams, FileKind, FileRecord, FileStat,
    RetentionRule, RunMode, RunStats,
)


class TestFileKind:
    """Classification must never call an unknown entry a regular file."""

    @pytest.mark.parametrize("mode, expected", [
        (stat.S_IFREG | 0o644, FileKind.REGULAR),
        (stat.S_IFDIR | 0o755, FileKind.DIRECTORY),
        (stat.S_IFLNK | 0o777, FileKind.SYMLINK),
        (stat.S_IFIFO | 0o644, FileKind.OTHER),
        (stat.S_IFSOCK | 0o644, FileKind.OTHER),
        (0, FileKind.OTHER),
    ])
    def test_from_mode(self, mode, expected):
        assert FileKind.from_mode(mode) is expected

    def test_stat_result_of_real_file(self, temp_dir):
        path = temp_dir / "a.bin"
        path.write_bytes(b"12345")
        info = FileStat.from_stat_result(os.lstat(path))
        assert info.size == 5
        assert info.kind is FileKind.REGULAR
        assert info.mtime_ns == os.lstat(path).st_mtime_ns


class TestFileRecord:
    def test_new_record_is_unhashed(self, make_record):
        record = make_record("/x/a")
        assert not record.is_hashed
        assert record.kind is FileKind.REGULAR

    def test_refresh_clears_digest(self, make_record):
        record = make_record("/x/a", size=10, digest=b"\x01" * 8)
        record.refresh(FileStat(size=20, mtime_ns=5, mode=0o100644, kind=FileKind.REGULAR))
        assert record.size == 20
        assert record.mtime_ns == 5
        assert record.digest == b""


class TestBucketDecision:
    def test_kept_excludes_marked(self, make_record):
        a, b, c = make_record("/a"), make_record("/b"), make_record("/c")
        decision = BucketDecision(digest=b"d", ordered=[a, b, c], marked=[(b, "x"), (c, "y")])
        assert decision.kept == [a]
        assert decision.size == 10


class TestRunStats:
    def test_update_accumulates(self):
        stats = RunStats()
        stats.update_stage("hash", 1, 4, 0.5)
        stats.update_stage("hash", 2, 6, 0.5)
        assert stats.stage_stats["hash"] == {"groups": 3, "files": 10, "time": 1.0}
        assert "Hash Buckets" in stats.print_summary()


class TestDedupeParams:
    def test_defaults(self, temp_dir):
        params = DedupeParams(roots=[str(temp_dir)])
        assert params.mode == RunMode.ENFORCE
        assert params.workers >= 1
        assert not params.policy.is_active

    def test_zero_workers_rejected(self, temp_dir):
        with pytest.raises(ValueError, match="Worker count"):
            DedupeParams(roots=[str(temp_dir)], workers=0)

    def test_index_only_requires_index_path(self, temp_dir):
        with pytest.raises(ValueError, match="index path"):
            DedupeParams(roots=[str(temp_dir)], mode=RunMode.INDEX_ONLY)

    def test_index_only_requires_roots(self, temp_dir):
        with pytest.raises(ValueError, match="directory"):
            DedupeParams(roots=[], index_path=str(temp_dir / "idx"), mode=RunMode.INDEX_ONLY)

    def test_paths_made_absolute(self):
        params = DedupeParams(roots=["rel"], index_path="idx.db", excluded_dirs=["skip"])
        assert params.roots == [os.path.realpath("rel")]
        assert params.index_path == os.path.realpath("idx.db")
        assert params.excluded_dirs == [os.path.realpath("skip")]

    def test_symlinked_paths_are_resolved(self, temp_dir):
        real = temp_dir / "real"
        (real / "sub").mkdir(parents=True)
        alias = temp_dir / "alias"
        try:
            alias.symlink_to(real, target_is_directory=True)
        except (OSError, NotImplementedError):
            pytest.skip("Symlinks not supported on this platform")

        params = DedupeParams(
            roots=[str(alias / "sub"), str(real / "sub")],
            index_path=str(alias / "idx.db"),
            excluded_dirs=[str(alias / "sub")],
        )

        assert params.roots == [str(real / "sub"), str(real / "sub")]
        assert params.index_path == str(real / "idx.db")
        assert params.excluded_dirs == [str(real / "sub")]

    def test_from_strings_compiles_patterns_and_rule(self, temp_dir):
        params = DedupeParams.from_strings(
            roots=[str(temp_dir)], rule="keep-oldest", delete_match="/tmp/", keep_match="^/home"
        )
        assert params.rule is RetentionRule.KEEP_OLDEST
        assert isinstance(params.delete_pattern, re.Pattern)
        assert params.keep_pattern.pattern == "^/home"
        assert params.policy.is_active

    def test_from_strings_empty_index_becomes_none(self, temp_dir):
        params = DedupeParams.from_strings(roots=[str(temp_dir)], index_path="")
        assert params.index_path is None

    def test_from_strings_bad_regex(self, temp_dir):
        with pytest.raises(ValueError, match="regular expression"):
            DedupeParams.from_strings(roots=[str(temp_dir)], delete_match="(")

    def test_from_strings_unknown_rule(self, temp_dir):
        with pytest.raises(ValueError, match="Unknown retention rule"):
            DedupeParams.from_strings(roots=[str(temp_dir)], rule="keep-biggest")

    def test_from_strings_index_only(self, temp_dir):
        params = DedupeParams.from_strings(
            roots=[str(temp_dir)], index_path=str(temp_dir / "idx"), index_only=True, workers=2
        )
        assert params.mode == RunMode.INDEX_ONLY
        assert params.workers == 2
