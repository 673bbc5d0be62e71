import json

from fastapi.testclient import TestClient

from tryon_engine.image_io import decode_data_url, encode
from tryon_engine.main import app
from tryon_engine.regions import fallback_landmarks

client = TestClient(app)


def _png(buffer):
    return ("face.png", encode(buffer, fmt="png"), "image/png")


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_apply_returns_encoded_image_and_reports(white_buffer):
    config = {
        "effects": [
            {"kind": "hairStyle", "parameter": "wavy"},
            {"kind": "lipstick", "parameter": "Classic Red"},
        ],
        "landmarks": fallback_landmarks(100, 100).model_dump(),
    }
    r = client.post(
        "/api/tryon/apply",
        files={"image": _png(white_buffer)},
        data={"tryOnConfig": json.dumps(config)},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["image"].startswith("data:image/")
    assert decode_data_url(body["image"]).shape == (100, 100, 4)
    assert [(e["kind"], e["status"]) for e in body["effects"]] == [
        ("lipstick", "applied"),
        ("hairStyle", "noop"),
    ]
    assert body["landmarksDetected"] is False
    assert body["regions"]["hairBand"]["width"] == 100


def test_apply_without_config_is_pass_through(white_buffer):
    r = client.post("/api/tryon/apply", files={"image": _png(white_buffer)})
    assert r.status_code == 200
    assert r.json()["effects"] == []


def test_apply_rejects_undecodable_image():
    r = client.post(
        "/api/tryon/apply",
        files={"image": ("bad.jpg", b"12345", "image/jpeg")},
        data={"tryOnConfig": json.dumps({"effects": []})},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Could not process image"


def test_apply_rejects_empty_upload():
    r = client.post("/api/tryon/apply", files={"image": ("empty.png", b"", "image/png")})
    assert r.status_code == 400


def test_apply_rejects_invalid_config(white_buffer):
    r = client.post(
        "/api/tryon/apply",
        files={"image": _png(white_buffer)},
        data={"tryOnConfig": json.dumps({"effects": [{"kind": "blush"}]})},
    )
    assert r.status_code == 400
    r = client.post(
        "/api/tryon/apply",
        files={"image": _png(white_buffer)},
        data={"tryOnConfig": "{not json"},
    )
    assert r.status_code == 400


def test_regions_endpoint_substitutes_fallback_for_degenerate_face():
    landmarks = fallback_landmarks(200, 100).model_dump()
    landmarks["detected"] = True
    landmarks["face"] = {"x": 0, "y": 0, "width": 0, "height": 0}
    r = client.post("/api/tryon/regions", json=landmarks)
    assert r.status_code == 200
    face = r.json()["face"]
    assert face["width"] > 0
    assert face["height"] > 0


def test_regions_endpoint_validates_payload():
    r = client.post("/api/tryon/regions", json={"detected": True})
    assert r.status_code == 422


def test_apply_reports_fallback_for_degenerate_detected_face(white_buffer):
    landmarks = fallback_landmarks(100, 100).model_dump()
    landmarks["detected"] = True
    landmarks["face"] = {"x": 0, "y": 0, "width": 0, "height": 0}
    r = client.post(
        "/api/tryon/apply",
        files={"image": _png(white_buffer)},
        data={"tryOnConfig": json.dumps({"effects": [], "landmarks": landmarks})},
    )
    assert r.status_code == 200
    assert r.json()["landmarksDetected"] is False


def test_apply_rejects_non_finite_landmark_boxes(white_buffer):
    landmarks = fallback_landmarks(100, 100).model_dump()
    landmarks["detected"] = True
    landmarks["lips"]["x"] = float("-inf")
    r = client.post(
        "/api/tryon/apply",
        files={"image": _png(white_buffer)},
        data={
            "tryOnConfig": json.dumps(
                {"effects": [{"kind": "lipstick", "parameter": "red"}], "landmarks": landmarks}
            )
        },
    )
    assert r.status_code == 400
    assert r.json()["detail"].startswith("Invalid tryOnConfig")
