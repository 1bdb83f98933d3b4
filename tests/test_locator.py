"""Tests for the application locator."""

from __future__ import annotations

from pathlib import Path

import pytest

from usbapp_hotplug.errors import NoCandidate
from usbapp_hotplug.locator import ApplicationLocator


def test_single_bundle_is_selected(volume: Path):
    (volume / "portable.app").write_text("bin")
    candidate = ApplicationLocator(".app").locate(str(volume))
    assert candidate.path == str(volume / "portable.app")


def test_lexicographically_first_bundle_wins(volume: Path):
    (volume / "b.app").write_text("bin")
    (volume / "a.app").write_text("bin")

    locator = ApplicationLocator(".app")
    for _ in range(3):
        assert locator.locate(str(volume)).path == str(volume / "a.app")


def test_searches_one_level_of_subdirectories(volume: Path):
    (volume / "electrum").mkdir()
    (volume / "electrum" / "electrum-4.5.AppImage").write_text("bin")

    candidate = ApplicationLocator(".AppImage", depth=2).locate(str(volume))
    assert candidate.path.endswith("electrum/electrum-4.5.AppImage")


def test_depth_limit_is_respected(volume: Path):
    deep = volume / "a" / "b"
    deep.mkdir(parents=True)
    (deep / "too-deep.app").write_text("bin")

    with pytest.raises(NoCandidate):
        ApplicationLocator(".app", depth=2).locate(str(volume))
    assert ApplicationLocator(".app", depth=3).find_all(str(volume)) == [
        str(deep / "too-deep.app")
    ]


def test_directories_with_bundle_suffix_are_skipped(volume: Path):
    (volume / "looks-like.app").mkdir()
    with pytest.raises(NoCandidate):
        ApplicationLocator(".app").locate(str(volume))


def test_extension_match_is_case_sensitive(volume: Path):
    (volume / "tool.appimage").write_text("bin")
    with pytest.raises(NoCandidate):
        ApplicationLocator(".AppImage").locate(str(volume))


def test_missing_mount_path_has_no_candidate(tmp_path: Path):
    with pytest.raises(NoCandidate):
        ApplicationLocator(".app").locate(str(tmp_path / "gone"))


def test_locate_does_not_touch_the_volume(volume: Path):
    bundle = volume / "portable.app"
    bundle.write_text("bin")
    mode = bundle.stat().st_mode

    ApplicationLocator(".app").locate(str(volume))

    assert bundle.stat().st_mode == mode
    assert sorted(p.name for p in volume.iterdir()) == ["portable.app"]
