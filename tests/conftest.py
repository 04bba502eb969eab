"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import stat
from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME at an empty temporary directory."""
    config_home = tmp_path / "xdg-config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home


def build_boot_sector(
    signature: bytes | None = None,
    volume_flags: int = 0,
    size: int = 512,
) -> bytes:
    """Build a minimal boot sector with an OEM signature and flag byte."""
    sector = bytearray(size)
    sector[0:3] = b"\xeb\x76\x90"
    if signature is not None:
        sector[3:11] = signature
    if size > 106:
        sector[106] = volume_flags
    if size >= 512:
        sector[510:512] = b"\x55\xaa"
    return bytes(sector)


@pytest.fixture
def boot_image(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a boot sector image to a temporary file."""

    def _make(
        name: str = "volume.img",
        signature: bytes | None = None,
        volume_flags: int = 0,
        size: int = 512,
    ) -> Path:
        path = tmp_path / name
        path.write_bytes(build_boot_sector(signature, volume_flags, size))
        return path

    return _make


@pytest.fixture
def ntfs_image(boot_image: Callable[..., Path]) -> Path:
    """Image carrying an NTFS signature."""
    return boot_image("ntfs.img", signature=b"NTFS    ")


@pytest.fixture
def exfat_image(boot_image: Callable[..., Path]) -> Path:
    """Image carrying an exFAT signature with a clean volume flag."""
    return boot_image("exfat.img", signature=b"EXFAT   ")


@pytest.fixture
def foreign_image(boot_image: Callable[..., Path]) -> Path:
    """Image with an ext-style empty OEM field."""
    return boot_image("foreign.img")


@pytest.fixture
def fake_checker(tmp_path: Path) -> Callable[[str], Path]:
    """Factory writing an executable shell script that stands in for a checker."""

    def _make(body: str, name: str = "fake-fsck") -> Path:
        script = tmp_path / name
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make
