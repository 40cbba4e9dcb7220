"""AI API with the providers replaced."""
import pytest

from advent_sphere.ai import client as ai_client
from advent_sphere.rooms.models import MAX_GENERATE_COUNT, Room


@pytest.fixture
def fake_image(monkeypatch):
    calls = []

    def generate_image(prompt, seed=None):
        calls.append(prompt)
        return "aW1hZ2U="

    monkeypatch.setattr(ai_client, "generate_image", generate_image)
    return calls


def test_create_photo_counts_generations(client, db, make_room, fake_image):
    room_id, _ = make_room()

    response = client.post("/ai/create-photo", json={"prompt": "snowy town", "room_id": room_id})

    assert response.status_code == 201
    assert response.json() == {"image_data": "data:image/jpeg;charset=utf-8;base64,aW1hZ2U="}
    assert fake_image == ["snowy town"]
    assert db.get(Room, room_id).generate_count == 1


def test_create_photo_limit(client, db, make_room, fake_image):
    room_id, _ = make_room()
    for _ in range(MAX_GENERATE_COUNT):
        assert client.post(
            "/ai/create-photo", json={"prompt": "x", "room_id": room_id}
        ).status_code == 201

    response = client.post("/ai/create-photo", json={"prompt": "x", "room_id": room_id})

    assert response.status_code == 403
    assert response.json()["category"] == "security"
    assert len(fake_image) == MAX_GENERATE_COUNT


def test_create_photo_unknown_room(client, fake_image):
    response = client.post("/ai/create-photo", json={"prompt": "x", "room_id": 999})
    assert response.status_code == 404
    assert fake_image == []


def test_failed_generation_is_not_counted(client, db, make_room, monkeypatch):
    def broken(prompt, seed=None):
        raise ai_client.AIServiceError("upstream said no: token=abc")

    monkeypatch.setattr(ai_client, "generate_image", broken)
    room_id, _ = make_room()

    response = client.post("/ai/create-photo", json={"prompt": "x", "room_id": room_id})

    assert response.status_code == 500
    assert "token=abc" not in response.json()["error"]
    assert "Error ID" in response.json()["error"]
    assert db.get(Room, room_id).generate_count == 0


def test_create_prompt(client, monkeypatch):
    seen = {}

    def generate_prompt(theme, history):
        seen["theme"] = theme
        seen["history"] = history
        return {"prompt": "A cozy cabin in the snow", "feedback": "いいですね"}

    monkeypatch.setattr(ai_client, "generate_prompt", generate_prompt)

    response = client.post("/ai/create-prompt", json={
        "prompt": "cabin",
        "history": [{"role": "user", "content": "winter"}, {"role": "model", "content": "ok"}],
    })

    assert response.status_code == 200
    assert response.json() == {"prompt": "A cozy cabin in the snow", "feedback": "いいですね"}
    assert seen["history"][1] == {"role": "model", "content": "ok"}


def test_create_prompt_rejects_unknown_roles(client):
    response = client.post("/ai/create-prompt", json={
        "prompt": "cabin", "history": [{"role": "system", "content": "x"}],
    })
    assert response.status_code == 422


class _Completion:
    def __init__(self, text):
        self.text = text


class _Models:
    def __init__(self, text):
        self.text = text
        self.kwargs = None

    def generate_content(self, **kwargs):
        self.kwargs = kwargs
        return _Completion(self.text)


class _GenaiClient:
    def __init__(self, text):
        self.models = _Models(text)


def test_generate_prompt_fills_missing_keys(monkeypatch):
    fake = _GenaiClient('{"query": "A glowing tree"}')
    monkeypatch.setattr(ai_client, "GOOGLE_GEMINI_API_KEY", "key")
    monkeypatch.setattr(ai_client.genai, "Client", lambda api_key: fake)

    result = ai_client.generate_prompt("tree", [{"role": "user", "content": "hi"}])

    assert result == {"prompt": "A glowing tree", "feedback": ""}
    config = fake.models.kwargs["config"]
    assert config.response_mime_type == "application/json"
    assert len(fake.models.kwargs["contents"]) == 2


def test_generate_image_requires_configuration(monkeypatch):
    monkeypatch.setattr(ai_client, "CLOUDFLARE_ACCOUNT_ID", None)
    with pytest.raises(ai_client.AIServiceError):
        ai_client.generate_image("x")
