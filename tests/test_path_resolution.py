"""Tests for local media path resolution."""

import os
from pathlib import Path

import pytest

from utils.path_resolution import (
    candidate_paths,
    expand_environment_variables,
    file_uri_to_path,
    is_path_allowed,
    normalize_path_input,
    resolve_local_path,
    strip_quotes,
)


@pytest.fixture
def media_file(tmp_path):
    path = tmp_path / "media" / "clip one.mp4"
    path.parent.mkdir()
    path.write_bytes(b"\x00" * 16)
    return path


def test_strip_quotes():
    assert strip_quotes('  "/tmp/a b.png" ') == "/tmp/a b.png"
    assert strip_quotes("'x.png'") == "x.png"
    assert strip_quotes('"unbalanced.png') == '"unbalanced.png'


def test_expand_environment_variables_all_syntaxes():
    env = {"MEDIA": "/srv/media", "USERPROFILE": "C:/Users/me"}
    assert expand_environment_variables("$MEDIA/a.png", env) == "/srv/media/a.png"
    assert expand_environment_variables("${MEDIA}/a.png", env) == "/srv/media/a.png"
    assert expand_environment_variables("%USERPROFILE%/a.png", env) == "C:/Users/me/a.png"


def test_unknown_variables_are_left_as_written():
    assert expand_environment_variables("$NOPE/${ALSO_NOPE}/%NOT_SET%", {}) == "$NOPE/${ALSO_NOPE}/%NOT_SET%"


def test_file_uri_decoding():
    assert file_uri_to_path("file:///tmp/my%20clip.mp4") == "/tmp/my clip.mp4"
    assert file_uri_to_path("file://localhost/tmp/a.png") == "/tmp/a.png"
    assert file_uri_to_path("file://fileserver/share/a.png") is None


def test_normalize_expands_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert normalize_path_input("~/pictures/cat.png", env={}) == str(tmp_path / "pictures" / "cat.png")


def test_normalize_rejects_blank_input():
    assert normalize_path_input("   ") is None
    assert normalize_path_input('""') is None


def test_candidate_paths_order(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    roots = [tmp_path / "library"]
    candidates = candidate_paths("clip.mp4", roots)
    assert candidates[0] == tmp_path / "clip.mp4"
    assert candidates[1] == tmp_path / "library" / "clip.mp4"
    assert len(candidates) == 3


def test_resolve_absolute_path(media_file):
    assert resolve_local_path(str(media_file)) == media_file


def test_resolve_quoted_path_with_spaces(media_file):
    assert resolve_local_path(f'"{media_file}"') == media_file


def test_resolve_file_uri(media_file):
    uri = media_file.as_uri()
    assert resolve_local_path(uri) == media_file


def test_resolve_env_variable_path(media_file):
    env = {"CLIPS": str(media_file.parent)}
    assert resolve_local_path("$CLIPS/clip one.mp4", env=env) == media_file


def test_resolve_relative_path_through_media_root(media_file, tmp_path, monkeypatch):
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)
    resolved = resolve_local_path("clip one.mp4", search_roots=[media_file.parent])
    assert resolved == media_file


def test_missing_file_returns_none_and_logs_attempts(tmp_path, caplog):
    with caplog.at_level("WARNING"):
        assert resolve_local_path(str(tmp_path / "missing.png")) is None
    assert "Tried:" in caplog.text


def test_directory_is_not_a_file(tmp_path):
    assert resolve_local_path(str(tmp_path)) is None


def test_overlong_path_returns_none(tmp_path, caplog):
    with caplog.at_level("WARNING"):
        assert resolve_local_path("a" * 5000 + ".png") is None
        assert resolve_local_path(str(tmp_path / ("b" * 5000)), allowed_roots=[tmp_path]) is None
    assert "Local file not found" in caplog.text


def test_overlong_path_is_not_allowed(tmp_path):
    assert not is_path_allowed(tmp_path / ("c" * 5000), [tmp_path / "allowed"])


def test_allow_list_blocks_outside_paths(media_file, tmp_path):
    other_root = tmp_path / "allowed"
    other_root.mkdir()
    assert resolve_local_path(str(media_file), allowed_roots=[other_root]) is None
    assert resolve_local_path(str(media_file), allowed_roots=[media_file.parent]) == media_file


def test_allow_list_resolves_traversal(media_file, tmp_path):
    allowed = tmp_path / "allowed"
    allowed.mkdir()
    sneaky = allowed / ".." / "media" / "clip one.mp4"
    assert not is_path_allowed(Path(os.path.normpath(sneaky)), [allowed])


def test_empty_allow_list_allows_everything(media_file):
    assert is_path_allowed(media_file, [])
