"""Tests for executable lookup and permission checks."""

import stat

import pytest

from harbormaster.runtime import locator as locator_mod
from harbormaster.runtime.locator import (
    ExecutableLocator,
    is_wsl,
    locate_wsl_executable,
    verify_executable,
)


def no_path_lookup(monkeypatch, found: dict[str, str] | None = None):
    found = found or {}
    monkeypatch.setattr(locator_mod.shutil, "which", lambda name: found.get(name))


class TestLocate:
    def test_prefers_search_path(self, monkeypatch, tmp_path, write_fake_runtime):
        no_path_lookup(monkeypatch, {"docker": "/from/path/docker"})
        fallback = write_fake_runtime(tmp_path / "fallback")
        locator = ExecutableLocator({"linux": [str(fallback.parent)]}, platform="linux")
        assert str(locator.locate("docker")) == "/from/path/docker"

    def test_searches_fallback_directories_in_order(self, monkeypatch, tmp_path, write_fake_runtime):
        no_path_lookup(monkeypatch)
        first = tmp_path / "empty"
        first.mkdir()
        second = write_fake_runtime(tmp_path / "second")
        third = write_fake_runtime(tmp_path / "third")
        locator = ExecutableLocator({"linux": [str(first), str(second.parent), str(third.parent)]}, platform="linux")
        assert locator.locate("docker") == second

    def test_accepts_fallback_that_is_the_file(self, monkeypatch, tmp_path, write_fake_runtime):
        no_path_lookup(monkeypatch)
        exe = write_fake_runtime(tmp_path / "direct", name="podman")
        locator = ExecutableLocator({"linux": [str(exe)]}, platform="linux")
        assert locator.locate("podman") == exe

    def test_ignores_file_with_other_name(self, monkeypatch, tmp_path, write_fake_runtime):
        no_path_lookup(monkeypatch)
        other = write_fake_runtime(tmp_path / "other", name="nerdctl")
        locator = ExecutableLocator({"linux": [str(other)]}, platform="linux")
        assert locator.locate("docker") is None

    def test_windows_checks_exe_suffix(self, monkeypatch, tmp_path, write_fake_runtime):
        no_path_lookup(monkeypatch)
        exe = write_fake_runtime(tmp_path / "win", name="docker.exe")
        locator = ExecutableLocator({"windows": [str(exe.parent)]}, platform="windows")
        assert locator.locate("docker") == exe

    def test_uses_only_current_platform_paths(self, monkeypatch, tmp_path, write_fake_runtime):
        no_path_lookup(monkeypatch)
        exe = write_fake_runtime(tmp_path / "mac")
        locator = ExecutableLocator({"macos": [str(exe.parent)]}, platform="linux")
        assert locator.fallback_paths() == []
        assert locator.locate("docker") is None

    def test_not_found_returns_none(self, monkeypatch, tmp_path):
        no_path_lookup(monkeypatch)
        locator = ExecutableLocator({"linux": [str(tmp_path / "missing")]}, platform="linux")
        assert locator.locate("docker") is None


@pytest.mark.posix
class TestVerifyExecutable:
    def test_executable_file(self, tmp_path, write_fake_runtime):
        exe = write_fake_runtime(tmp_path)
        assert verify_executable(exe)

    def test_group_execute_bit_is_enough(self, tmp_path, write_fake_runtime):
        exe = write_fake_runtime(tmp_path)
        exe.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IXGRP)
        assert verify_executable(exe)

    def test_missing_execute_bits(self, tmp_path, write_fake_runtime):
        exe = write_fake_runtime(tmp_path)
        exe.chmod(0o644)
        assert not verify_executable(exe)

    def test_nonexistent_path(self, tmp_path):
        assert not verify_executable(tmp_path / "nope")

    def test_windows_only_needs_regular_file(self, tmp_path):
        plain = tmp_path / "docker.exe"
        plain.write_text("")
        plain.chmod(0o644)
        assert verify_executable(plain, platform="windows")
        assert not verify_executable(tmp_path, platform="windows")


class TestWsl:
    def test_detects_microsoft_kernel(self, tmp_path):
        proc = tmp_path / "version"
        proc.write_text("Linux version 5.15.133.1-Microsoft-standard-WSL2 (gcc)")
        assert is_wsl(proc)

    def test_plain_linux(self, tmp_path):
        proc = tmp_path / "version"
        proc.write_text("Linux version 6.5.0-14-generic (buildd@lcy02)")
        assert not is_wsl(proc)

    def test_missing_proc_version(self, tmp_path):
        assert not is_wsl(tmp_path / "missing")

    def test_finds_windows_docker_from_wsl(self, monkeypatch, tmp_path):
        proc = tmp_path / "version"
        proc.write_text("linux ... wsl2")
        no_path_lookup(monkeypatch, {"docker.exe": "/mnt/c/Program Files/Docker/docker.exe"})
        assert str(locate_wsl_executable("docker", proc)) == "/mnt/c/Program Files/Docker/docker.exe"

    def test_skips_lookup_outside_wsl(self, monkeypatch, tmp_path):
        proc = tmp_path / "version"
        proc.write_text("Linux version 6.5.0-generic")
        no_path_lookup(monkeypatch, {"docker.exe": "/somewhere/docker.exe"})
        assert locate_wsl_executable("docker", proc) is None
