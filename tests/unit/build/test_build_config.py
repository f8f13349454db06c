"""Tests for build group configuration."""

from pathlib import Path

import pytest

from bcbuild.build.build_config import DEFAULT_EXCLUDE, DEFAULT_INCLUDE, BuildGroupConfig
from bcbuild.build.language_flags import Language
from bcbuild.errors import BuildConfigError


class TestBuildGroupConfig:
    """Test path resolution and validation."""

    def test_derived_paths(self, tmp_path):
        config = BuildGroupConfig.create(name="runtime", src_root=tmp_path / "src", target="linux_x64", build_dir=tmp_path / "build", output_group="main")

        assert config.target_dir == tmp_path / "build" / "bitcode" / "main" / "linux_x64"
        assert config.obj_dir == config.target_dir / "runtime"
        assert config.out_file == config.target_dir / "runtime.bc"

    def test_default_dirs(self, tmp_path):
        config = BuildGroupConfig.create(name="runtime", src_root=tmp_path, target="linux_x64", build_dir=tmp_path / "build")

        assert config.src_dirs == (tmp_path / "cpp",)
        assert config.headers_dirs == (tmp_path / "headers",)
        assert config.include == DEFAULT_INCLUDE
        assert config.exclude == DEFAULT_EXCLUDE
        assert config.change_detection == "content"

    def test_relative_dirs_resolve_against_src_root(self, tmp_path):
        config = BuildGroupConfig.create(
            name="runtime",
            src_root=tmp_path,
            target="linux_x64",
            build_dir=tmp_path / "build",
            src_dirs=[Path("main/cpp")],
            headers_dirs=[Path("/abs/include")],
        )

        assert config.src_dirs == (tmp_path / "main" / "cpp",)
        assert config.headers_dirs == (Path("/abs/include"),)

    def test_default_patterns(self):
        assert "**/*.c" in DEFAULT_INCLUDE
        assert "**/*.mm" in DEFAULT_INCLUDE
        assert "**/*Test.cpp" in DEFAULT_EXCLUDE

    def test_compile_flags_for(self, tmp_path):
        config = BuildGroupConfig.create(name="g", src_root=tmp_path, target="linux_x64", build_dir=tmp_path, compiler_args=["-DKONAN=1"])
        flags = config.compile_flags_for(Language.CPP)

        assert flags[:3] == ["-c", "-emit-llvm", f"-I{tmp_path / 'headers'}"]
        assert flags[-1] == "-DKONAN=1"

    def test_invalid_change_detection(self, tmp_path):
        with pytest.raises(BuildConfigError, match="change_detection"):
            BuildGroupConfig.create(name="g", src_root=tmp_path, target="linux_x64", build_dir=tmp_path, change_detection="hash")

    def test_missing_target(self, tmp_path):
        with pytest.raises(BuildConfigError, match="no target"):
            BuildGroupConfig.create(name="g", src_root=tmp_path, target="", build_dir=tmp_path)

    def test_empty_name(self, tmp_path):
        with pytest.raises(BuildConfigError):
            BuildGroupConfig.create(name="", src_root=tmp_path, target="linux_x64", build_dir=tmp_path)
