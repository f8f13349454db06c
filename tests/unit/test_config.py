"""Tests for bcbuild.ini loading."""

from pathlib import Path

import pytest

from bcbuild.build.build_config import DEFAULT_EXCLUDE, DEFAULT_INCLUDE
from bcbuild.build.language_flags import Language
from bcbuild.config import load_config
from bcbuild.errors import BuildConfigError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "bcbuild.ini"
    path.write_text(text)
    return path


class TestLoadConfig:
    """Test parsing of the project file."""

    def test_full_group(self, tmp_path):
        path = _write(
            tmp_path,
            """
[bcbuild]
build_dir = out
llvm_dir = /opt/llvm
default_groups = runtime

[group:runtime]
src_root = runtime/src/main
target = mingw_x64
output_group = test
src_dirs = cpp extra
headers_dirs = headers /usr/include/extra
include = **/*.cpp **/*.mm
exclude = **/*Test.cpp
compiler_args = -DKONAN_MI=1 "-DNAME=a b"
linker_args = --only-needed
language = cpp
skip_link = yes
change_detection = mtime  ; fast mode
""",
        )

        project = load_config(path)
        group = project.groups["runtime"]

        assert project.build_dir == tmp_path / "out"
        assert project.llvm_dir == Path("/opt/llvm")
        assert project.default_groups == ("runtime",)
        assert group.src_root == tmp_path / "runtime" / "src" / "main"
        assert group.src_dirs == (group.src_root / "cpp", group.src_root / "extra")
        assert group.headers_dirs == (group.src_root / "headers", Path("/usr/include/extra"))
        assert group.include == ("**/*.cpp", "**/*.mm")
        assert group.exclude == ("**/*Test.cpp",)
        assert group.compiler_args == ("-DKONAN_MI=1", "-DNAME=a b")
        assert group.linker_args == ("--only-needed",)
        assert group.language == Language.CPP
        assert group.skip_link is True
        assert group.change_detection == "mtime"
        assert group.out_file == tmp_path / "out" / "bitcode" / "test" / "mingw_x64" / "runtime.bc"

    def test_defaults(self, tmp_path):
        path = _write(tmp_path, "[group:mm]\nsrc_root = mm\ntarget = linux_x64\n")

        project = load_config(path)
        group = project.groups["mm"]

        assert project.build_dir == tmp_path / "build"
        assert project.llvm_dir is None
        assert group.output_group == "main"
        assert group.include == DEFAULT_INCLUDE
        assert group.exclude == DEFAULT_EXCLUDE
        assert group.compiler_args == ()
        assert group.language is None
        assert group.skip_link is False
        assert group.change_detection == "content"

    def test_missing_file(self, tmp_path):
        with pytest.raises(BuildConfigError, match="not found"):
            load_config(tmp_path / "bcbuild.ini")

    def test_no_groups(self, tmp_path):
        with pytest.raises(BuildConfigError, match="No \\[group:"):
            load_config(_write(tmp_path, "[bcbuild]\nbuild_dir = build\n"))

    def test_missing_target(self, tmp_path):
        with pytest.raises(BuildConfigError, match="target is required"):
            load_config(_write(tmp_path, "[group:a]\nsrc_root = a\n"))

    def test_invalid_language(self, tmp_path):
        with pytest.raises(BuildConfigError, match="language"):
            load_config(_write(tmp_path, "[group:a]\nsrc_root = a\ntarget = t\nlanguage = rust\n"))

    def test_invalid_boolean(self, tmp_path):
        with pytest.raises(BuildConfigError, match="skip_link"):
            load_config(_write(tmp_path, "[group:a]\nsrc_root = a\ntarget = t\nskip_link = maybe\n"))

    def test_duplicate_section(self, tmp_path):
        with pytest.raises(BuildConfigError, match="Invalid configuration"):
            load_config(_write(tmp_path, "[group:a]\nsrc_root = a\ntarget = t\n[group:a]\nsrc_root = b\n"))


class TestSelectGroups:
    """Test choosing which groups to build."""

    @pytest.fixture
    def project(self, tmp_path):
        return load_config(
            _write(
                tmp_path,
                "[bcbuild]\ndefault_groups = b\n[group:a]\nsrc_root = a\ntarget = t\n[group:b]\nsrc_root = b\ntarget = t\n",
            )
        )

    def test_requested(self, project):
        assert [g.name for g in project.select(["a", "b"])] == ["a", "b"]

    def test_default_groups(self, project):
        assert [g.name for g in project.select()] == ["b"]

    def test_all_groups_without_defaults(self, tmp_path):
        project = load_config(_write(tmp_path, "[group:a]\nsrc_root = a\ntarget = t\n[group:b]\nsrc_root = b\ntarget = t\n"))
        assert [g.name for g in project.select()] == ["a", "b"]

    def test_unknown_group(self, project):
        with pytest.raises(BuildConfigError, match="Unknown build group"):
            project.select(["c"])
