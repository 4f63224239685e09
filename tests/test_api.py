"""
HTTP API Tests
End-to-end scenarios over the FastAPI app with a stubbed provider.

Run with:
    python -m pytest tests/test_api.py -v
"""

import base64
import hashlib
import hmac
import json
import time

import pytest

from app.core.config import settings
from app.models.job import VideoJob
from conftest import VIDEO_URL, count_jobs, deferred_body, sync_body

GENERATE = "/api/v1/video/generate"
STATUS = "/api/v1/video/status"
WEBHOOK = "/api/v1/video/webhook"

SIGNING_SECRET = "whsec_" + base64.b64encode(b"test-signing-key").decode()


def signed_headers(raw: bytes, msg_id: str = "msg_1", timestamp=None, signature=None) -> dict:
    """Standard Webhooks headers as the provider sends them."""
    timestamp = str(timestamp if timestamp is not None else int(time.time()))
    if signature is None:
        signed = f"{msg_id}.{timestamp}.".encode() + raw
        digest = hmac.new(b"test-signing-key", signed, hashlib.sha256).digest()
        signature = "v1," + base64.b64encode(digest).decode()
    return {
        "Content-Type": "application/json",
        "webhook-id": msg_id,
        "webhook-timestamp": timestamp,
        "webhook-signature": signature,
    }


class TestGenerate:

    def test_sync_provider_returns_video_url(self, client, provider_stub, db):
        provider_stub.response = (201, sync_body())

        response = client.post(GENERATE, json={"prompt": "neon sneaker ad", "durationSeconds": 6})

        assert response.status_code == 200
        body = response.json()
        assert body["videoUrl"] == VIDEO_URL
        assert "error" not in body

        status = client.get(STATUS, params={"jobId": body["jobId"]}).json()
        assert status["job"]["status"] == "completed"
        assert status["job"]["result_url"] == VIDEO_URL
        assert provider_stub.last_payload["input"]["duration"] == 6

    def test_image_url_forwarded(self, client, provider_stub):
        provider_stub.response = (201, deferred_body())
        client.post(GENERATE, json={"prompt": "ad", "imageUrl": "https://img.test/p.png"})
        assert provider_stub.last_payload["input"]["image"] == "https://img.test/p.png"

    def test_async_provider_returns_job_id_then_webhook_completes(self, client, provider_stub):
        provider_stub.response = (201, deferred_body("pred_123"))

        response = client.post(GENERATE, json={"prompt": "neon sneaker ad"})
        assert response.status_code == 202
        body = response.json()
        assert set(body) == {"jobId"}
        job_id = body["jobId"]

        status = client.get(STATUS, params={"jobId": job_id}).json()
        assert status["job"]["status"] == "processing"
        assert status["job"]["result_url"] is None

        hook = client.post(WEBHOOK, json={
            "provider_job_id": "pred_123",
            "status": "completed",
            "video_url": VIDEO_URL,
        })
        assert hook.status_code == 200
        assert hook.json() == {"ok": True}

        status = client.get(STATUS, params={"jobId": job_id}).json()
        assert status["job"]["status"] == "completed"
        assert status["job"]["result_url"] == VIDEO_URL

    def test_rate_limited(self, client, provider_stub, db):
        provider_stub.response = (429, {"detail": "throttled"})

        response = client.post(GENERATE, json={"prompt": "neon sneaker ad"})

        assert response.status_code == 429
        assert response.json()["error"]
        db.expire_all()
        assert db.query(VideoJob).filter(VideoJob.status.in_(["pending", "processing"])).count() == 0

    def test_payment_required(self, client, provider_stub):
        provider_stub.response = (402, {"detail": "out of credit"})
        response = client.post(GENERATE, json={"prompt": "ad"})
        assert response.status_code == 402
        assert "billing" in response.json()["error"]

    def test_upstream_error_hides_body(self, client, provider_stub):
        provider_stub.response = (500, "secret upstream stack trace")
        response = client.post(GENERATE, json={"prompt": "ad"})

        assert response.status_code == 502
        assert response.json() == {"error": "Provider error"}

    @pytest.mark.parametrize("payload", [{"prompt": ""}, {"prompt": "   "}, {}])
    def test_empty_prompt_rejected(self, client, provider_stub, db, payload):
        response = client.post(GENERATE, json=payload)

        assert response.status_code == 400
        assert "error" in response.json()
        assert count_jobs(db) == 0
        assert provider_stub.requests == []

    def test_missing_token(self, client, provider_stub, db):
        from app.api.deps import get_provider
        from app.main import app
        app.dependency_overrides[get_provider] = lambda: provider_stub.provider(api_token="")

        response = client.post(GENERATE, json={"prompt": "ad"})

        assert response.status_code == 500
        assert response.json() == {"error": "Server not configured"}
        assert count_jobs(db) == 0

    def test_imagekit_url(self, client, provider_stub, monkeypatch):
        monkeypatch.setattr(settings, "IMAGEKIT_BASE_URL", "https://ik.imagekit.io/advid")
        provider_stub.response = (201, sync_body("https://files.test/files/videos/1-abc.mp4"))

        body = client.post(GENERATE, json={"prompt": "ad"}).json()
        assert body["imageKitUrl"] == "https://ik.imagekit.io/advid/videos/1-abc.mp4"


class TestStatus:

    def test_unknown_job_404(self, client):
        response = client.get(STATUS, params={"jobId": "vjob_doesnotexist"})
        assert response.status_code == 404
        assert "error" in response.json()

    def test_missing_job_id_400(self, client):
        assert client.get(STATUS).status_code == 400
        assert client.post(STATUS, json={}).status_code == 400

    def test_job_id_in_body(self, client, provider_stub):
        provider_stub.response = (201, deferred_body())
        job_id = client.post(GENERATE, json={"prompt": "ad"}).json()["jobId"]

        response = client.post(STATUS, json={"jobId": job_id})
        assert response.status_code == 200
        assert response.json()["job"]["id"] == job_id

    def test_snake_case_job_id_in_body(self, client, provider_stub):
        provider_stub.response = (201, deferred_body())
        job_id = client.post(GENERATE, json={"prompt": "ad"}).json()["jobId"]

        response = client.post(STATUS, json={"job_id": job_id})
        assert response.status_code == 200
        assert response.json()["job"]["id"] == job_id

    def test_malformed_status_body_400(self, client):
        response = client.post(STATUS, content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_job_id_in_query_on_post(self, client, provider_stub):
        provider_stub.response = (201, deferred_body())
        job_id = client.post(GENERATE, json={"prompt": "ad"}).json()["jobId"]

        response = client.post(STATUS, params={"jobId": job_id})
        assert response.status_code == 200

    def test_jobs_routes(self, client, provider_stub):
        provider_stub.response = (201, deferred_body())
        job_id = client.post(GENERATE, json={"prompt": "ad"}).json()["jobId"]

        assert client.get(f"/api/v1/jobs/{job_id}").json()["status"] == "processing"
        assert client.get("/api/v1/jobs/vjob_nope").status_code == 404

        listing = client.get("/api/v1/jobs", params={"status": "processing"}).json()
        assert [j["id"] for j in listing["jobs"]] == [job_id]


class TestWebhook:

    @pytest.fixture
    def job_id(self, client, provider_stub):
        provider_stub.response = (201, deferred_body("pred_123"))
        return client.post(GENERATE, json={"prompt": "ad"}).json()["jobId"]

    def test_no_matching_job_400(self, client):
        response = client.post(WEBHOOK, json={"provider_job_id": "unknown", "status": "completed", "video_url": VIDEO_URL})
        assert response.status_code == 400
        assert response.json() == {"error": "no matching job"}

    def test_our_job_id_in_query(self, client, job_id):
        response = client.post(f"{WEBHOOK}?our_job_id={job_id}", json={"status": "succeeded", "output": [VIDEO_URL]})
        assert response.status_code == 200

        job = client.get(STATUS, params={"jobId": job_id}).json()["job"]
        assert job["status"] == "completed"
        assert job["result_url"] == VIDEO_URL

    def test_replicate_prediction_body(self, client, job_id):
        response = client.post(WEBHOOK, json={
            "id": "pred_123",
            "status": "failed",
            "output": None,
            "error": "model crashed",
        })
        assert response.status_code == 200

        job = client.get(STATUS, params={"jobId": job_id}).json()["job"]
        assert job["status"] == "failed"
        assert job["error_text"] == "model crashed"
        assert job["result_url"] is None

    def test_duplicate_delivery_is_idempotent(self, client, job_id):
        payload = {"provider_job_id": "pred_123", "status": "completed", "result_url": VIDEO_URL}
        assert client.post(WEBHOOK, json=payload).status_code == 200
        first = client.get(STATUS, params={"jobId": job_id}).json()["job"]

        assert client.post(WEBHOOK, json=payload).status_code == 200
        second = client.get(STATUS, params={"jobId": job_id}).json()["job"]

        assert first == second

    def test_late_failure_does_not_unterminalize(self, client, job_id):
        client.post(WEBHOOK, json={"provider_job_id": "pred_123", "status": "completed", "video_url": VIDEO_URL})
        client.post(WEBHOOK, json={"provider_job_id": "pred_123", "status": "failed", "error": "late"})

        job = client.get(STATUS, params={"jobId": job_id}).json()["job"]
        assert job["status"] == "completed"
        assert job["error_text"] is None

    def test_completed_without_url_rejected(self, client, job_id):
        response = client.post(WEBHOOK, json={"provider_job_id": "pred_123", "status": "completed"})
        assert response.status_code == 400

    def test_signature_required_when_secret_set(self, client, job_id, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", SIGNING_SECRET)
        raw = json.dumps({"provider_job_id": "pred_123", "status": "completed", "video_url": VIDEO_URL}).encode()

        unsigned = client.post(WEBHOOK, content=raw, headers={"Content-Type": "application/json"})
        assert unsigned.status_code == 401

        bad = client.post(WEBHOOK, content=raw, headers=signed_headers(raw, signature="v1,AAAA"))
        assert bad.status_code == 401

        good = client.post(WEBHOOK, content=raw, headers=signed_headers(raw))
        assert good.status_code == 200
        assert client.get(STATUS, params={"jobId": job_id}).json()["job"]["status"] == "completed"

    def test_signature_over_tampered_body_rejected(self, client, job_id, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", SIGNING_SECRET)
        raw = json.dumps({"provider_job_id": "pred_123", "status": "failed", "error": "x"}).encode()
        headers = signed_headers(raw)

        tampered = raw.replace(b"failed", b"completed")
        assert client.post(WEBHOOK, content=tampered, headers=headers).status_code == 401

    def test_stale_timestamp_rejected(self, client, job_id, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", SIGNING_SECRET)
        raw = json.dumps({"provider_job_id": "pred_123", "status": "completed", "video_url": VIDEO_URL}).encode()

        response = client.post(WEBHOOK, content=raw, headers=signed_headers(raw, timestamp=int(time.time()) - 3600))
        assert response.status_code == 401

    def test_any_matching_signature_accepted(self, client, job_id, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", SIGNING_SECRET)
        raw = json.dumps({"id": "pred_123", "status": "succeeded", "output": [VIDEO_URL]}).encode()
        sent_at = int(time.time())
        valid = signed_headers(raw, msg_id="msg_2", timestamp=sent_at)["webhook-signature"]
        headers = signed_headers(raw, msg_id="msg_2", timestamp=sent_at, signature=f"v1,bm90LXRoaXMtb25l {valid}")

        assert client.post(WEBHOOK, content=raw, headers=headers).status_code == 200

    def test_invalid_json_400(self, client):
        response = client.post(WEBHOOK, content=b"not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400


def test_health(client):
    body = client.get("/health").json()
    assert body["services"]["provider"] == "configured"
