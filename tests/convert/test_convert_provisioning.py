from __future__ import annotations

import os
import threading
from pathlib import Path

import pytest

from docmirror.convert import provisioning
from docmirror.convert.errors import BinaryNotFoundError, ProvisioningError


def _executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    path.chmod(0o755)
    return path


def test_scan_path_finds_first_candidate(tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    _executable(second / "pandoc-cli")
    _executable(second / "pandoc")
    first.mkdir()
    path_env = os.pathsep.join([str(first), "", str(second)])

    found = provisioning.scan_path_for_binary(path_env=path_env)

    assert found == second / "pandoc"


def test_scan_path_ignores_directories(tmp_path):
    (tmp_path / "pandoc").mkdir()

    assert provisioning.scan_path_for_binary(path_env=str(tmp_path)) is None


def test_unpack_embedded_binary_is_idempotent(tmp_path):
    target = tmp_path / "unpacked" / "pandoc"

    first = provisioning.unpack_embedded_binary(b"payload-1", target)
    second = provisioning.unpack_embedded_binary(b"payload-2", target)

    assert first == second == target
    assert target.read_bytes() == b"payload-1"
    if os.name != "nt":
        assert target.stat().st_mode & 0o777 == 0o755


def test_unpack_embedded_binary_wraps_write_errors(tmp_path, monkeypatch):
    target = tmp_path / "pandoc"

    def fail_write(self, data):
        raise PermissionError("denied")

    monkeypatch.setattr(type(target), "write_bytes", fail_write)

    with pytest.raises(ProvisioningError, match="denied"):
        provisioning.unpack_embedded_binary(b"x", target)


def test_locator_prefers_explicit_program(tmp_path, monkeypatch):
    explicit = _executable(tmp_path / "custom" / "my-pandoc")
    on_path = _executable(tmp_path / "bin" / "pandoc")
    monkeypatch.setenv("PATH", str(on_path.parent))

    locator = provisioning.BinaryLocator(program=explicit)

    assert locator.resolve() == explicit


def test_locator_missing_explicit_program(tmp_path, monkeypatch):
    monkeypatch.setattr(provisioning.shutil, "which", lambda name: None)
    locator = provisioning.BinaryLocator(program=tmp_path / "nope")

    with pytest.raises(BinaryNotFoundError, match="Configured converter"):
        locator.resolve()


def test_locator_scans_path(tmp_path, monkeypatch):
    binary = _executable(tmp_path / "bin" / "pandoc-bin")
    monkeypatch.setenv("PATH", str(binary.parent))

    assert provisioning.BinaryLocator().resolve() == binary


def test_locator_unpacks_embedded_payload(tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", str(tmp_path / "empty"))
    monkeypatch.setattr(provisioning.shutil, "which", lambda name: None)
    payload = tmp_path / "resources" / "pandoc_upx"
    payload.parent.mkdir()
    payload.write_bytes(b"binary")

    locator = provisioning.BinaryLocator(
        embedded_payload=payload, unpack_dir=tmp_path / "cache"
    )
    resolved = locator.resolve()

    assert resolved == tmp_path / "cache" / "pandoc_upx"
    assert resolved.read_bytes() == b"binary"


def test_locator_not_found(tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", str(tmp_path / "empty"))
    monkeypatch.setattr(provisioning.shutil, "which", lambda name: None)

    with pytest.raises(BinaryNotFoundError):
        provisioning.BinaryLocator().resolve()


def test_locator_resolves_once_across_threads(tmp_path, monkeypatch):
    binary = _executable(tmp_path / "bin" / "pandoc")
    monkeypatch.setenv("PATH", str(binary.parent))
    calls = []
    original = provisioning.scan_path_for_binary

    def counting_scan(*args, **kwargs):
        calls.append(1)
        return original(*args, **kwargs)

    monkeypatch.setattr(provisioning, "scan_path_for_binary", counting_scan)
    locator = provisioning.BinaryLocator()
    results = []
    threads = [
        threading.Thread(target=lambda: results.append(locator.resolve()))
        for _ in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == [binary] * 8
    assert len(calls) == 1
