"""Tests for skinmaxx.service module."""

import base64
import io
from pathlib import Path

import blake3
import pytest
from PIL import Image
from requests.structures import CaseInsensitiveDict

from skinmaxx.analyze import Analyzer
from skinmaxx.config import ProviderConfig
from skinmaxx.db import get_db
from skinmaxx.errors import NoFaceDetectedError, NotFoundError, UnauthorizedError
from skinmaxx.gateway import FaceDetectionGateway
from skinmaxx.scoring import RawDetectionAttributes
from skinmaxx.service import ScanService

RAW = RawDetectionAttributes(
    age=35,
    happiness=20,
    female_beauty=72,
    skin_status={"health": 70, "oily": 65, "moisture": 50, "acne": 20},
)


class FakeGateway:
    def __init__(self, raw=RAW, error=None) -> None:
        self.config = ProviderConfig(api_key="key", api_secret="secret")
        self.raw = raw
        self.error = error

    def detect_face(self, image_base64: str) -> RawDetectionAttributes:
        if self.error is not None:
            raise self.error
        return self.raw


def make_image_uri() -> str:
    buf = io.BytesIO()
    Image.new("RGB", (64, 64), (170, 140, 120)).save(buf, "PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


@pytest.fixture
def db(tmp_path: Path):
    return get_db(tmp_path / "journal.db")


@pytest.fixture
def user_id(db) -> str:
    return db.create_user("ana@example.com", "Ana").id


def make_service(db, gateway=None) -> ScanService:
    return ScanService(Analyzer(gateway or FakeGateway()), db)


class TestScanService:
    def test_analyze(self, db, user_id):
        result = make_service(db).analyze(user_id, make_image_uri())
        assert result.skin_type.value == "Oily"
        assert result.skin_age == 35

    def test_requires_user(self, db):
        service = make_service(db)
        with pytest.raises(UnauthorizedError):
            service.analyze(None, make_image_uri())
        with pytest.raises(UnauthorizedError):
            service.get_history("")

    def test_save_hashes_data_urls(self, db, user_id):
        service = make_service(db)
        uri = make_image_uri()
        result = service.analyze(user_id, uri)

        scan = service.save(user_id, result, uri)

        payload = base64.b64decode(uri.split("base64,", 1)[1])
        assert scan.image_hash == blake3.blake3(payload).hexdigest()
        assert service.get_history(user_id)[0].id == scan.id

    def test_save_remote_uri_not_hashed(self, db, user_id):
        service = make_service(db)
        result = service.analyze(user_id, make_image_uri())

        scan = service.save(user_id, result, "https://cdn.test/scan.jpg")

        assert scan.image_hash is None

    def test_delete(self, db, user_id):
        service = make_service(db)
        scan = service.save(
            user_id, service.analyze(user_id, make_image_uri()), "https://cdn.test/a.jpg"
        )

        service.delete(user_id, scan.id)

        assert service.get_history(user_id) == []
        with pytest.raises(NotFoundError):
            service.delete(user_id, scan.id)


class TestDispatch:
    def test_analyze_envelope(self, db, user_id):
        envelope = make_service(db).dispatch(
            "scans.analyze", user_id, {"imageUri": make_image_uri()}
        )
        assert set(envelope) == {"result"}
        assert envelope["result"]["skinType"] == "Oily"

    def test_error_envelope(self, db, user_id):
        service = make_service(db, FakeGateway(error=NoFaceDetectedError("No face detected in the image")))
        envelope = service.dispatch("scans.analyze", user_id, {"imageUri": make_image_uri()})
        assert envelope == {
            "error": {
                "code": "NO_FACE_DETECTED",
                "message": "No face detected in the image",
            }
        }

    def test_unauthorized(self, db):
        envelope = make_service(db).dispatch("scans.getHistory", None)
        assert envelope["error"]["code"] == "UNAUTHORIZED"

    def test_unknown_method(self, db, user_id):
        envelope = make_service(db).dispatch("scans.rename", user_id)
        assert envelope["error"]["code"] == "NOT_FOUND"

    def test_missing_field(self, db, user_id):
        envelope = make_service(db).dispatch("scans.analyze", user_id, {})
        assert envelope["error"] == {
            "code": "BAD_REQUEST",
            "message": "Missing field: imageUri",
        }

    def test_save_history_delete(self, db, user_id):
        service = make_service(db)
        uri = make_image_uri()
        result = service.dispatch("scans.analyze", user_id, {"imageUri": uri})["result"]

        saved = service.dispatch("scans.save", user_id, dict(result, imageUri=uri))
        scan = saved["result"]["scan"]
        assert saved["result"]["success"] is True
        assert scan["score"] == result["score"]

        history = service.dispatch("scans.getHistory", user_id)["result"]["scans"]
        assert [s["id"] for s in history] == [scan["id"]]

        deleted = service.dispatch("scans.delete", user_id, {"scanId": scan["id"]})
        assert deleted == {"result": {"success": True}}

    def test_save_malformed(self, db, user_id):
        envelope = make_service(db).dispatch(
            "scans.save", user_id, {"imageUri": "a", "score": 10}
        )
        assert envelope["error"]["code"] == "BAD_REQUEST"


class FakeResponse:
    def __init__(self, body: str) -> None:
        self.status_code = 200
        self.text = body
        self.headers = CaseInsensitiveDict({"Content-Type": "application/json"})


class FakeSession:
    """Answers every POST with the same JSON body."""

    def __init__(self, body: str) -> None:
        self.body = body

    def post(self, url: str, data: dict, timeout: float) -> FakeResponse:
        return FakeResponse(self.body)


@pytest.mark.parametrize(
    "body, code",
    [
        ('{"faces": {"a": 1}}', "PROVIDER_UNAVAILABLE"),
        ('{"faces": [null]}', "PROVIDER_UNAVAILABLE"),
        ('{"faces": [{"attributes": {"skinstatus": "n/a", "emotion": 55}}]}', None),
    ],
)
def test_malformed_provider_body_stays_in_envelope(db, user_id, body, code):
    gateway = FaceDetectionGateway(
        ProviderConfig(api_key="key", api_secret="secret"), session=FakeSession(body)
    )
    envelope = make_service(db, gateway).dispatch(
        "scans.analyze", user_id, {"imageUri": make_image_uri()}
    )

    if code is None:
        assert envelope["result"]["radianceScore"] == 70
    else:
        assert envelope["error"]["code"] == code
