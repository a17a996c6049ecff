import pytest

from geoipfetch.file_lock import FileLock


def test_acquire_file_lock_repeatedly(tmp_path):
    path = tmp_path / ".geoipupdate.lock"
    fl = FileLock(path, False)
    other = FileLock(path, False)
    try:
        fl.acquire()
        with pytest.raises(TimeoutError, match="already acquired by another process"):
            other.acquire()

        # acquiring a second time from the same lock succeeds
        fl.acquire()
        with pytest.raises(TimeoutError):
            other.acquire()

        # a single release frees it completely
        fl.release()
        other.acquire()
        other.release()

        # a released lock can be acquired again
        fl.acquire()
        with pytest.raises(TimeoutError):
            other.acquire()
    finally:
        fl.release()


def test_creates_lock_directory(tmp_path):
    path = tmp_path / "a" / "b" / "x.lock"
    FileLock(path, True)
    assert path.parent.is_dir()


def test_context_manager(tmp_path):
    path = tmp_path / "ctx.lock"
    other = FileLock(path)
    with FileLock(path) as fl:
        assert fl.path == path
        with pytest.raises(TimeoutError):
            other.acquire()
    other.acquire()
    other.release()
    assert path.parent == tmp_path