import json

import pytest

from fakes import XTTS_HOST, read_frames, text_frames

LONG_TEXT = " ".join(f"This is sentence number {i} of a long passage." for i in range(30))


def _speak(client, **overrides):
    payload = {"text": "Hello world.", "language": "en"}
    payload.update(overrides)
    return client.post("/api/tts", json=payload)


def test_short_text_returns_wav(client, upstream):
    response = _speak(client)

    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/wav"
    assert "speech.wav" in response.headers["content-disposition"]
    assert response.headers["x-audio-chunks"] == "1"
    assert response.headers["x-audio-skipped-chunks"] == "0"
    assert read_frames(response.content) == text_frames("Hello world.")

    call = json.loads(upstream.calls_to(XTTS_HOST, "/tts")[0].content)
    assert call["language"] == "en"
    assert call["speaker_embedding"] == [0.1, 0.2, 0.3]


def test_trailing_slash_route(client):
    response = client.post("/api/tts/", json={"text": "Hello.", "language": "en"})

    assert response.status_code == 200


def test_long_text_is_chunked_under_the_xtts_limit(client, upstream):
    response = _speak(client, text=LONG_TEXT, speaker="Daisy Studious")

    assert response.status_code == 200
    calls = [json.loads(r.content) for r in upstream.calls_to(XTTS_HOST, "/tts")]
    assert len(calls) > 1
    assert all(len(call["text"]) <= 240 for call in calls)
    assert response.headers["x-audio-chunks"] == str(len(calls))
    assert read_frames(response.content) == b"".join(text_frames(call["text"]) for call in calls)


def test_speaker_profiles_are_fetched_once(client, upstream):
    _speak(client)
    _speak(client, speaker="Gracie Wise")

    assert len(upstream.calls_to(XTTS_HOST, "/studio_speakers")) == 1


def test_language_is_case_insensitive(client, upstream):
    response = _speak(client, language="PL")

    assert response.status_code == 200
    assert json.loads(upstream.calls_to(XTTS_HOST, "/tts")[0].content)["language"] == "pl"


@pytest.mark.parametrize("overrides", [
    {"text": ""},
    {"text": "   "},
    {"language": "fr"},
    {"speed": 3.0},
    {"speed": 0.1},
])
def test_invalid_requests_are_rejected_before_synthesis(client, upstream, overrides):
    response = _speak(client, **overrides)

    assert response.status_code == 400
    assert response.json()["detail"]["error"]["type"] == "invalid_request_error"
    assert upstream.calls_to(XTTS_HOST, "/tts") == []


def test_missing_language_is_rejected(client):
    response = client.post("/api/tts", json={"text": "Hello."})

    assert response.status_code == 400


def test_text_over_maximum_length_is_rejected(client):
    response = _speak(client, text="a" * 50001)

    assert response.status_code == 400
    assert "Text too long" in response.json()["detail"]["error"]["message"]


def test_unknown_speaker_is_rejected(client):
    response = _speak(client, speaker="Nobody Known")

    assert response.status_code == 400
    assert "Nobody Known" in response.json()["detail"]["error"]["message"]


def test_xtts_error_fails_the_request(client, upstream):
    upstream.tts_status = 500

    response = _speak(client, text=LONG_TEXT)

    assert response.status_code == 500
    error = response.json()["detail"]["error"]
    assert error["type"] == "upstream_error"
    assert "model crashed" in error["message"]


def test_unreachable_xtts_fails_the_request(client, upstream):
    upstream.xtts_available = False

    response = _speak(client)

    assert response.status_code == 500
    assert "not reachable" in response.json()["detail"]["error"]["message"]


def test_voices_come_from_xtts(client):
    response = client.get("/api/tts/voices")

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "xtts"
    assert sorted(body["voices"]) == ["Claribel Dervla", "Daisy Studious", "Gracie Wise"]
    assert body["default"] == "Claribel Dervla"


def test_voices_fall_back_when_xtts_is_down(client, upstream, settings):
    upstream.xtts_available = False

    response = client.get("/api/tts/voices")

    assert response.status_code == 200
    assert response.json()["source"] == "fallback"
    assert response.json()["voices"] == settings.xtts.fallback_speakers


def test_speaker_refresh_requires_admin(client, upstream, user_headers, admin_headers):
    client.get("/api/tts/voices")
    upstream.speakers["New Voice"] = {"speaker_embedding": [2.0], "gpt_cond_latent": [[2.1]]}

    anonymous = client.post("/api/tts/speakers/refresh")
    as_user = client.post("/api/tts/speakers/refresh", headers=user_headers)
    as_admin = client.post("/api/tts/speakers/refresh", headers=admin_headers)

    assert anonymous.status_code == 401
    assert as_user.status_code == 403
    assert as_admin.status_code == 200
    assert as_admin.json()["speakers"] == 4
    assert "New Voice" in client.get("/api/tts/voices").json()["voices"]


def test_responses_carry_security_headers(client):
    response = _speak(client)

    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "SAMEORIGIN"


def test_voices_fall_back_when_xtts_answers_with_html(client, upstream, settings):
    upstream.html_hosts.add(XTTS_HOST)

    response = client.get("/api/tts/voices")

    assert response.status_code == 200
    assert response.json()["source"] == "fallback"
    assert response.json()["voices"] == settings.xtts.fallback_speakers


def test_html_speaker_table_is_reported_as_upstream_error(client, upstream):
    upstream.html_hosts.add(XTTS_HOST)

    response = _speak(client)

    assert response.status_code == 500
    error = response.json()["detail"]["error"]
    assert error["type"] == "upstream_error"
    assert "invalid JSON" in error["message"]
