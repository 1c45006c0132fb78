import json

from fakes import LIBRETRANSLATE_HOST, LOCALAI_HOST, OLLAMA_HOST


def test_ollama_chat_splits_out_system_prompt(client, upstream):
    response = client.post("/api/chat", json={
        "messages": [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hi"},
        ],
        "temperature": 0.2,
        "max_tokens": 50,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["content"] == "Hello from Ollama"
    assert body["model"] == "llama2"
    assert body["usage"] == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

    payload = json.loads(upstream.calls_to(OLLAMA_HOST, "/api/chat")[0].content)
    assert payload["system"] == "Be brief."
    assert payload["messages"] == [{"role": "user", "content": "Hi"}]
    assert payload["stream"] is False
    assert payload["options"]["temperature"] == 0.2
    assert payload["options"]["num_predict"] == 50


def test_localai_chat_reports_usage(client):
    response = client.post("/api/chat", json={
        "messages": [{"role": "user", "content": "Hi"}],
        "provider": "localai",
        "model": "mistral",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["content"] == "Hello from LocalAI"
    assert body["model"] == "mistral"
    assert body["usage"]["total_tokens"] == 9


def test_chat_rejects_unknown_provider_and_empty_messages(client):
    unknown = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hi"}], "provider": "openai"})
    empty = client.post("/api/chat", json={"messages": []})

    assert unknown.status_code == 400
    assert empty.status_code == 400


def test_chat_backend_error_is_500(client, upstream):
    upstream.localai_status = 503

    response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hi"}], "provider": "localai"})

    assert response.status_code == 500
    assert "LocalAI is loading" in response.json()["detail"]["error"]["message"]


def test_localai_images(client, upstream):
    response = client.post("/api/images", json={"prompt": "a red fox", "provider": "localai", "size": "512x512", "n": 2})

    assert response.status_code == 200
    assert response.json()["images"] == ["data:image/png;base64,aW1hZ2U=", "http://localai.test/img.png"]
    payload = json.loads(upstream.calls_to(LOCALAI_HOST, "/v1/images/generations")[0].content)
    assert payload["size"] == "512x512"
    assert payload["n"] == 2


def test_localai_image_failure_degrades_to_placeholder(client, upstream):
    upstream.localai_status = 500

    response = client.post("/api/images", json={"prompt": "a red fox", "provider": "localai"})

    assert response.status_code == 200
    assert response.json()["images"][0].startswith("data:image/svg+xml;base64,")


def test_other_image_providers_get_placeholder(client, upstream):
    response = client.post("/api/images", json={"prompt": "a red fox"})

    assert response.status_code == 200
    assert response.json()["images"][0].startswith("data:image/svg+xml;base64,")
    assert upstream.calls_to(LOCALAI_HOST) == []


def test_image_request_validation(client):
    assert client.post("/api/images", json={"prompt": "fox", "size": "100x100"}).status_code == 400
    assert client.post("/api/images", json={"prompt": "fox", "n": 11}).status_code == 400
    assert client.post("/api/images", json={"prompt": ""}).status_code == 400


def test_translate_with_auto_detection(client):
    response = client.post("/api/translate", json={"text": "Hello", "target": "pl"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "translation": "[pl] Hello",
        "source": "en",
        "target": "pl",
        "confidence": 92.0,
    }


def test_translate_same_language_skips_backend(client, upstream):
    response = client.post("/api/translate", json={"text": "Hello", "source": "en", "target": "en"})

    assert response.json()["translation"] == "Hello"
    assert upstream.calls_to(LIBRETRANSLATE_HOST) == []


def test_batch_translation_keeps_order(client):
    response = client.post("/api/translate/batch", json={"texts": ["one", "two", "three"], "source": "en", "target": "pl"})

    assert response.status_code == 200
    assert response.json()["translations"] == ["[pl] one", "[pl] two", "[pl] three"]


def test_detect_and_languages(client):
    detected = client.post("/api/translate/detect", json={"text": "Dzień dobry"})
    languages = client.get("/api/translate/languages")

    assert detected.json()["language"] == "pl"
    assert detected.json()["confidence"] == 87.5
    assert [lang["code"] for lang in languages.json()["languages"]] == ["en", "pl"]


def test_translation_backend_error_is_500(client, upstream):
    upstream.translate_status = 502

    response = client.post("/api/translate", json={"text": "Hello", "source": "en", "target": "pl"})

    assert response.status_code == 500
    assert response.json()["detail"]["error"]["type"] == "upstream_error"


def test_translation_rejects_unsupported_target(client):
    response = client.post("/api/translate", json={"text": "Hello", "target": "de"})

    assert response.status_code == 400


def test_non_json_translation_reply_is_an_upstream_error(client, upstream):
    upstream.html_hosts.add(LIBRETRANSLATE_HOST)

    translate = client.post("/api/translate", json={"text": "Hello", "source": "en", "target": "pl"})
    detect = client.post("/api/translate/detect", json={"text": "Hello"})
    languages = client.get("/api/translate/languages")

    for response in (translate, detect, languages):
        assert response.status_code == 500
        assert response.json()["detail"]["error"]["type"] == "upstream_error"


def test_detection_without_language_is_an_upstream_error(client, upstream):
    upstream.detect_results = [{"confidence": 10.0}]

    response = client.post("/api/translate/detect", json={"text": "Hello"})

    assert response.status_code == 500
    assert "Could not detect language" in response.json()["detail"]["error"]["message"]


def test_non_json_chat_reply_is_an_upstream_error(client, upstream):
    upstream.html_hosts.add(OLLAMA_HOST)

    response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hi"}]})

    assert response.status_code == 500
    assert "invalid JSON" in response.json()["detail"]["error"]["message"]


def test_non_json_image_reply_degrades_to_placeholder(client, upstream):
    upstream.html_hosts.add(LOCALAI_HOST)

    response = client.post("/api/images", json={"prompt": "a red fox", "provider": "localai"})

    assert response.status_code == 200
    assert response.json()["images"][0].startswith("data:image/svg+xml;base64,")
