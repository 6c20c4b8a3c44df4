"""Tests for backend selection at startup."""

from fastapi.testclient import TestClient

from dating_sim.main import create_app


def test_no_database_url_uses_memory(settings_factory):
    with TestClient(create_app(settings_factory())) as client:
        assert client.get("/api/health").json()["storage"] == "memory"
        assert len(client.get("/api/characters").json()) == 4


def test_unreachable_database_degrades_to_memory(settings_factory):
    app = create_app(settings_factory(DATABASE_URL="sqlite:////nonexistent-dir/dating.db"))
    with TestClient(app) as client:
        assert client.get("/api/health").json()["storage"] == "memory"
        assert len(client.get("/api/characters").json()) == 4
        assert client.post("/api/users/sign-in", json={"username": "Birdperson"}).status_code == 200


def test_database_persists_across_restarts(settings_factory, tmp_path):
    url = f"sqlite:///{tmp_path / 'dating.db'}"

    with TestClient(create_app(settings_factory(DATABASE_URL=url))) as client:
        assert client.get("/api/health").json()["storage"] == "database"
        user = client.post("/api/users/sign-in", json={"username": "Unity"}).json()

    with TestClient(create_app(settings_factory(DATABASE_URL=url))) as client:
        assert len(client.get("/api/characters").json()) == 4
        assert client.get("/api/users/by-username/Unity").json()["id"] == user["id"]


def test_frontend_served_from_static_dir(settings_factory, tmp_path):
    (tmp_path / "index.html").write_text("<html>portal</html>")
    (tmp_path / "favicon.ico").write_text("icon")

    with TestClient(create_app(settings_factory(STATIC_DIR=str(tmp_path)))) as client:
        assert client.get("/").text == "<html>portal</html>"
        assert client.get("/some/client/route").text == "<html>portal</html>"
        assert client.get("/favicon.ico").text == "icon"
        assert client.get("/api/unknown").status_code == 404
        assert client.get("/api/health").status_code == 200
