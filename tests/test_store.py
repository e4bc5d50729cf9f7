"""Tests for the flat-file pool store."""

import pytest

from idpool.core.store import PoolExhaustedError, PoolLockedError, PoolParseError, PoolStore


class TestSave:
    def test_format_has_no_trailing_newline(self, tmp_path):
        store = PoolStore(tmp_path / "ids.txt")
        assert store.save([3, 1, 2]) == 3
        assert (tmp_path / "ids.txt").read_bytes() == b"3\n1\n2"

    def test_overwrites_previous_content(self, tmp_path):
        store = PoolStore(tmp_path / "ids.txt")
        store.save([10, 11, 12, 13])
        store.save([20])
        assert (tmp_path / "ids.txt").read_text() == "20"

    def test_tmp_file_does_not_linger(self, tmp_path):
        store = PoolStore(tmp_path / "ids.txt")
        store.save([1, 2, 3])
        assert list(tmp_path.glob("*.tmp")) == []

    def test_creates_parent_directories(self, tmp_path):
        store = PoolStore(tmp_path / "nested" / "dir" / "ids.txt")
        store.save([7])
        assert (tmp_path / "nested" / "dir" / "ids.txt").read_text() == "7"

    def test_empty_pool(self, tmp_path):
        store = PoolStore(tmp_path / "ids.txt")
        store.save([])
        assert (tmp_path / "ids.txt").read_text() == ""
        assert not store.exists()


class TestExists:
    def test_missing(self, tmp_path):
        assert not PoolStore(tmp_path / "ids.txt").exists()

    def test_present(self, tmp_path):
        store = PoolStore(tmp_path / "ids.txt")
        store.save([1])
        assert store.exists()


class TestLoad:
    def test_round_trip(self, tmp_path):
        ids = [100003, 100000, 100002, 100004, 100001]
        store = PoolStore(tmp_path / "ids.txt")
        store.save(ids)

        pool, buckets = store.load(1000, 5)
        assert pool == ids
        assert dict(buckets.items()) == {
            1000: 100003,
            1001: 100000,
            1002: 100002,
            1003: 100004,
            1004: 100001,
        }

    def test_map_covers_only_first_entries(self, tmp_path):
        store = PoolStore(tmp_path / "ids.txt")
        store.save([5, 6, 7, 8, 9])

        pool, buckets = store.load(50, 3)
        assert pool == [5, 6, 7, 8, 9]
        assert len(buckets) == 3
        assert buckets.get(52) == 7
        assert buckets.get(53) is None

    def test_underrun_raises(self, tmp_path):
        store = PoolStore(tmp_path / "ids.txt")
        store.save([1, 2])
        with pytest.raises(PoolExhaustedError) as exc_info:
            store.load(0, 5)
        assert exc_info.value.available == 2
        assert exc_info.value.required == 5

    def test_non_numeric_line_raises(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("1\n2\nabc\n4")
        with pytest.raises(PoolParseError) as exc_info:
            PoolStore(path).load(0, 4)
        assert exc_info.value.line_no == 3

    def test_zero_is_rejected(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("1\n0\n3")
        with pytest.raises(PoolParseError):
            PoolStore(path).read()

    def test_negative_and_blank_lines_rejected(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("1\n-2")
        with pytest.raises(PoolParseError):
            PoolStore(path).read()

        path.write_text("1\n\n3")
        with pytest.raises(PoolParseError):
            PoolStore(path).read()

    def test_tolerates_trailing_newline_and_crlf(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_bytes(b"1\r\n2\r\n3\n")
        assert PoolStore(path).read() == [1, 2, 3]

    def test_missing_file_raises_oserror(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PoolStore(tmp_path / "missing.txt").load(0, 1)

    def test_parse_error_is_value_error(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("x")
        with pytest.raises(ValueError):
            PoolStore(path).read()


class TestLock:
    def test_second_store_is_refused(self, tmp_path):
        owner = PoolStore(tmp_path / "ids.txt")
        owner.lock()
        owner.lock()
        assert owner.locked

        other = PoolStore(tmp_path / "ids.txt")
        with pytest.raises(PoolLockedError):
            other.lock()
        assert not other.locked

        owner.unlock()
        other.lock()
        assert other.locked
        other.unlock()

    def test_lock_file_sits_beside_pool(self, tmp_path):
        store = PoolStore(tmp_path / "nested" / "ids.txt")
        store.lock()
        assert (tmp_path / "nested" / "ids.txt.lock").exists()
        store.unlock()
        store.unlock()
