"""Tests for the skinmaxx CLI."""

import json
from pathlib import Path

import pytest
from PIL import Image

from skinmaxx import main
from skinmaxx.db import get_db
from skinmaxx.errors import NoFaceDetectedError, RateLimitError
from skinmaxx.gateway import FaceDetectionGateway
from skinmaxx.scoring import RawDetectionAttributes

RAW = RawDetectionAttributes(
    age=28,
    happiness=90,
    female_beauty=85,
    male_beauty=80,
    skin_status={
        "health": 90,
        "pore": 20,
        "oily": 30,
        "moisture": 70,
        "stain": 5,
        "dark_circle": 10,
        "acne": 5,
        "wrinkle": 10,
    },
)


@pytest.fixture(autouse=True)
def env(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("FACEPP_API_KEY", "key-1234567890abcd")
    monkeypatch.setenv("FACEPP_API_SECRET", "secret-1234567890ab")
    monkeypatch.setenv("SKINMAXX_DB", str(tmp_path / "env.db"))


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "journal.db"


@pytest.fixture
def user_id(db_path: Path) -> str:
    return get_db(db_path).create_user("ana@example.com", "Ana").id


@pytest.fixture
def photo(tmp_path: Path) -> Path:
    path = tmp_path / "face.png"
    Image.new("RGB", (120, 160), (190, 160, 140)).save(path)
    return path


@pytest.fixture
def detected(monkeypatch):
    """Replace the network call with a canned detection."""
    calls: list[str] = []

    def fake_detect_face(self, image_base64: str) -> RawDetectionAttributes:
        calls.append(image_base64)
        return RAW

    monkeypatch.setattr(FaceDetectionGateway, "detect_face", fake_detect_face)
    return calls


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_register(db_path: Path, capsys):
    assert main(["--db", str(db_path), "register", "ana@example.com", "--name", "Ana"]) == 0
    assert "ana@example.com" in capsys.readouterr().out
    assert get_db(db_path).get_user_by_email("ana@example.com") is not None


def test_register_duplicate(db_path: Path, user_id: str, capsys):
    assert main(["--db", str(db_path), "register", "ANA@example.com", "--name", "A"]) == 1
    assert "already registered" in capsys.readouterr().err


def test_status(db_path: Path, user_id: str, capsys):
    assert main(["--db", str(db_path), "status"]) == 0
    out = capsys.readouterr().out
    assert "Users: 1" in out
    assert "Face++ configured: yes" in out
    assert "key-1234..." in out
    assert "1234567890abcd" not in out


def test_db_from_env(tmp_path: Path, capsys):
    assert main(["register", "bo@example.com", "--name", "Bo"]) == 0
    assert get_db(tmp_path / "env.db").count_users() == 1


def test_analyze_json(db_path, user_id, photo, detected, capsys):
    assert main(["--db", str(db_path), "analyze", str(photo), "--user", user_id, "--json"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["score"] == 90
    assert data["skinType"] == "Normal"
    assert data["radianceScore"] == 94
    assert "scanId" not in data
    assert len(detected) == 1
    assert get_db(db_path).count_scans() == 0


def test_analyze_and_save(db_path, user_id, photo, detected, capsys):
    args = ["--db", str(db_path), "analyze", str(photo), "--user", user_id, "--save", "--json"]
    assert main(args) == 0

    data = json.loads(capsys.readouterr().out)
    history = get_db(db_path).get_history(user_id)
    assert [s.id for s in history] == [data["scanId"]]
    assert history[0].image_hash


def test_analyze_table_output(db_path, user_id, photo, detected, capsys):
    assert main(["--db", str(db_path), "analyze", str(photo), "--user", user_id]) == 0
    out = capsys.readouterr().out
    assert "Skin type: Normal" in out
    assert "Skin age: 28" in out


def test_analyze_dark_photo(db_path, user_id, tmp_path, detected, capsys):
    dark = tmp_path / "dark.png"
    Image.new("RGB", (100, 100), (12, 10, 8)).save(dark)

    assert main(["--db", str(db_path), "analyze", str(dark), "--user", user_id]) == 1
    assert "better lighting" in capsys.readouterr().err
    assert detected == []


def test_analyze_dark_photo_forced(db_path, user_id, tmp_path, detected):
    dark = tmp_path / "dark.png"
    Image.new("RGB", (100, 100), (12, 10, 8)).save(dark)

    args = ["--db", str(db_path), "analyze", str(dark), "--user", user_id, "--force"]
    assert main(args) == 0
    assert len(detected) == 1


def test_analyze_no_face(db_path, user_id, photo, monkeypatch, capsys):
    def no_face(self, image_base64):
        raise NoFaceDetectedError("No face detected in the image")

    monkeypatch.setattr(FaceDetectionGateway, "detect_face", no_face)

    assert main(["--db", str(db_path), "analyze", str(photo), "--user", user_id]) == 1
    err = capsys.readouterr().err
    assert "No face detected in the image" in err
    assert "retake" in err


def test_analyze_rate_limited(db_path, user_id, photo, monkeypatch, capsys):
    def limited(self, image_base64):
        raise RateLimitError("slow down")

    monkeypatch.setattr(FaceDetectionGateway, "detect_face", limited)

    assert main(["--db", str(db_path), "analyze", str(photo), "--user", user_id]) == 1
    assert "Too many requests" in capsys.readouterr().err


def test_analyze_not_configured(db_path, user_id, photo, monkeypatch, capsys):
    monkeypatch.setenv("FACEPP_API_SECRET", "")

    assert main(["--db", str(db_path), "analyze", str(photo), "--user", user_id]) == 1
    assert "not configured" in capsys.readouterr().err


def test_analyze_missing_file(db_path, user_id, tmp_path, capsys):
    missing = tmp_path / "nope.jpg"
    assert main(["--db", str(db_path), "analyze", str(missing), "--user", user_id]) == 1
    assert "is not a file" in capsys.readouterr().err


def test_history_and_delete(db_path, user_id, photo, detected, capsys):
    args = ["--db", str(db_path), "analyze", str(photo), "--user", user_id, "--save", "--json"]
    main(args)
    scan_id = json.loads(capsys.readouterr().out)["scanId"]

    assert main(["--db", str(db_path), "history", "--user", user_id, "--json"]) == 0
    scans = json.loads(capsys.readouterr().out)
    assert [s["id"] for s in scans] == [scan_id]

    assert main(["--db", str(db_path), "history", "--user", user_id]) == 0
    assert "1 scans" in capsys.readouterr().out

    assert main(["--db", str(db_path), "delete", scan_id, "--user", user_id]) == 0
    assert main(["--db", str(db_path), "delete", scan_id, "--user", user_id]) == 1
    assert "not found" in capsys.readouterr().err


def test_history_sort(db_path, user_id, photo, detected, capsys):
    args = ["--db", str(db_path), "analyze", str(photo), "--user", user_id, "--save", "--json"]
    main(args)
    first = json.loads(capsys.readouterr().out)["scanId"]
    main(args)
    second = json.loads(capsys.readouterr().out)["scanId"]

    history = ["--db", str(db_path), "history", "--user", user_id, "--json"]
    assert main(history + ["--sort", "oldest"]) == 0
    assert [s["id"] for s in json.loads(capsys.readouterr().out)] == [first, second]

    assert main(history) == 0
    assert [s["id"] for s in json.loads(capsys.readouterr().out)] == [second, first]

    with pytest.raises(SystemExit):
        main(history + ["--sort", "alphabetical"])


def test_history_unknown_user(db_path, capsys):
    assert main(["--db", str(db_path), "history", "--user", "user_nope"]) == 1
    assert "Unknown user" in capsys.readouterr().err


def test_remove_user(db_path, user_id, photo, detected, capsys):
    main(["--db", str(db_path), "analyze", str(photo), "--user", user_id, "--save", "--json"])
    capsys.readouterr()

    assert main(["--db", str(db_path), "remove-user", user_id]) == 0
    assert "1 scans" in capsys.readouterr().out
    assert get_db(db_path).count_scans() == 0
    assert main(["--db", str(db_path), "remove-user", user_id]) == 1
