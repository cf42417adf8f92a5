from __future__ import annotations

import os
import stat
from pathlib import Path

from nginx_buildpack.core import fs


def test_atomic_write_text_roundtrip_and_mode(tmp_path: Path) -> None:
    p = tmp_path / "d1" / "sample.txt"
    fs.atomic_write_text(p, "hello\n")
    assert p.read_text() == "hello\n"

    fs.atomic_write_text(p, "updated", mode=0o755)
    assert p.read_text() == "updated"
    assert stat.S_IMODE(os.stat(p).st_mode) == 0o755

    # no temp files left next to the target
    assert [x.name for x in p.parent.iterdir()] == ["sample.txt"]


def test_atomic_write_text_keeps_trailing_whitespace(tmp_path: Path) -> None:
    p = tmp_path / "value"
    fs.atomic_write_text(p, "--with-http_ssl_module  ")
    assert p.read_bytes() == b"--with-http_ssl_module  "


def test_relpath_and_copy_file_keeps_mode(tmp_path: Path) -> None:
    src = tmp_path / "a" / "tool"
    fs.ensure_parent(src)
    src.write_text("#!/bin/sh\n")
    src.chmod(0o755)

    dst = tmp_path / "b" / "c" / "tool"
    fs.copy_file(src, dst)
    assert dst.read_text() == "#!/bin/sh\n"
    assert os.access(dst, os.X_OK)
    assert fs.relpath_posix(dst, tmp_path) == "b/c/tool"


def test_copy_tree_merges_into_existing(tmp_path: Path) -> None:
    src = tmp_path / "src"
    (src / "bin").mkdir(parents=True)
    (src / "bin" / "nginx").write_text("new")

    dst = tmp_path / "dst"
    (dst / "bin").mkdir(parents=True)
    (dst / "bin" / "nginx").write_text("old")
    (dst / "keep.txt").write_text("kept")

    fs.copy_tree(src, dst)
    assert (dst / "bin" / "nginx").read_text() == "new"
    assert (dst / "keep.txt").read_text() == "kept"


def test_remove_tree_variants(tmp_path: Path) -> None:
    d = tmp_path / "dir"
    (d / "nested").mkdir(parents=True)
    (d / "nested" / "f").write_text("x")
    assert fs.remove_tree(d) is True
    assert not d.exists()

    assert fs.remove_tree(tmp_path / "missing") is False

    f = tmp_path / "file"
    f.write_text("x")
    assert fs.remove_tree(f) is True

    link = tmp_path / "dangling"
    link.symlink_to(tmp_path / "nowhere")
    assert fs.remove_tree(link) is True
    assert not link.is_symlink()


def test_make_tmp_dir_in_and_safe_unlink(tmp_path: Path) -> None:
    a = fs.make_tmp_dir_in(tmp_path / "parent", prefix=".work.")
    b = fs.make_tmp_dir_in(tmp_path / "parent", prefix=".work.")
    assert a != b
    assert a.parent == tmp_path / "parent"
    assert a.name.startswith(".work.")

    fs.safe_unlink(tmp_path / "never-existed")
    p = tmp_path / "x"
    p.write_text("1")
    fs.safe_unlink(p)
    assert not p.exists()
