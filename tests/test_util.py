from pathlib import Path

import pytest

from pynapi import util
from pynapi.errors import InvalidPathError


def test_remove_path_deletes_file(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")

    util.remove_path(target)

    assert not target.exists()


def test_remove_path_deletes_directory_tree(tmp_path):
    target = tmp_path / "tree"
    (target / "a" / "b").mkdir(parents=True)
    (target / "a" / "b" / "c.txt").write_text("x", encoding="utf-8")

    util.remove_path(target)

    assert not target.exists()


def test_remove_path_missing_raises(tmp_path):
    with pytest.raises(InvalidPathError, match="invalid path"):
        util.remove_path(tmp_path / "missing")


def test_remove_path_missing_ignored(tmp_path):
    util.remove_path(tmp_path / "missing", ignore_missing=True)


def test_remove_path_refuses_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))

    with pytest.raises(InvalidPathError, match="unsafe"):
        util.remove_path(home)

    assert home.exists()


@pytest.mark.parametrize("relative", [".", "src", "CMakeLists.txt", ".git"])
def test_remove_path_refuses_project_root_and_scaffold(tmp_path, relative):
    (tmp_path / "src").mkdir()
    (tmp_path / "CMakeLists.txt").write_text("x", encoding="utf-8")
    (tmp_path / ".git").mkdir()

    with pytest.raises(InvalidPathError, match="unsafe"):
        util.remove_path(tmp_path / relative, project_root=tmp_path)

    assert (tmp_path / "src").is_dir()
    assert (tmp_path / "CMakeLists.txt").is_file()
    assert (tmp_path / ".git").is_dir()


def test_remove_path_refuses_paths_outside_project(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    outside = tmp_path / "elsewhere"
    outside.mkdir()

    with pytest.raises(InvalidPathError, match="unsafe"):
        util.remove_path(root / ".." / "elsewhere", project_root=root)

    assert outside.exists()


def test_remove_path_allows_build_dir_inside_project(tmp_path):
    (tmp_path / "src").mkdir()
    build_dir = tmp_path / "out" / "build"
    build_dir.mkdir(parents=True)

    util.remove_path(build_dir, project_root=tmp_path)

    assert not build_dir.exists()
    assert (tmp_path / "src").is_dir()


def test_failure_handler_logs_and_removes_paths(tmp_path, capsys):
    first = tmp_path / "first"
    first.mkdir()
    second = tmp_path / "second.txt"
    second.write_text("x", encoding="utf-8")

    result = util.failure_handler([first, second, tmp_path / "never"])(
        RuntimeError("download failed")
    )

    assert result == 1
    assert not first.exists()
    assert not second.exists()
    captured = capsys.readouterr()
    assert "error: download failed" in captured.err
    assert "cleaning up" in captured.out


def test_failure_handler_accepts_single_path(tmp_path):
    target = tmp_path / "single"
    target.mkdir()

    util.failure_handler(str(target))(RuntimeError("boom"))

    assert not target.exists()


def test_failure_handler_quiet_prints_nothing(tmp_path, capsys):
    target = tmp_path / "quiet"
    target.mkdir()

    result = util.failure_handler(target, quiet=True)(RuntimeError("boom"))

    assert result == 1
    assert not target.exists()
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""


def test_failure_handler_reports_cleanup_errors(tmp_path, monkeypatch, capsys):
    target = tmp_path / "stuck"
    target.mkdir()

    def fail_remove(path, ignore_missing=False, project_root=None):
        raise OSError("permission denied")

    monkeypatch.setattr(util, "remove_path", fail_remove)

    result = util.failure_handler(target)(RuntimeError("boom"))

    assert result == 1
    assert "could not clean" in capsys.readouterr().err


def test_write_text_file_creates_parents_and_keeps_newlines(tmp_path):
    target = tmp_path / "src" / "module.c"

    util.write_text_file(target, "a\r\nb")

    assert target.read_bytes() == b"a\r\nb"
