"""
测试 HTTP 接口 (api/battle_api.py) 与命令行入口 (main.py)
"""

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from duelsim.api.battle_api import app
import main as cli

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def client(monkeypatch):
    """接口按相对路径读取 data/ 与 config/, 需在项目根目录运行"""
    monkeypatch.chdir(PROJECT_ROOT)
    return TestClient(app)


class TestBattleApi:
    """战斗模拟接口"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_simulate(self, client):
        response = client.post("/battle/simulate", json={
            "fighter_a_id": "aang", "fighter_b_id": "azula",
            "location_id": "fire_nation_courtyard", "seed": 7,
        })
        assert response.status_code == 200

        data = response.json()
        assert data["winner_id"] in ("aang", "azula", None)
        assert data["is_draw"] == (data["winner_id"] is None)
        assert data["end_reason"] in ("knockout", "turn_cap", "stalemate")
        assert data["battle_log"][-1]["type"] in ("VICTORY", "DRAW")
        assert data["narration"]

    def test_same_seed_same_response(self, client):
        body = {"fighter_a_id": "zuko", "fighter_b_id": "toph",
                "location_id": "ba_sing_se_catacombs", "seed": 11}
        first = client.post("/battle/simulate", json=body).json()
        second = client.post("/battle/simulate", json=body).json()
        assert first == second

    def test_mirror_match(self, client):
        response = client.post("/battle/simulate", json={
            "fighter_a_id": "katara", "fighter_b_id": "katara",
            "location_id": "north_pole", "seed": 3,
        })
        assert response.status_code == 200
        ids = [f["id"] for f in response.json()["fighters"]]
        assert ids == ["katara_a", "katara_b"]

    def test_unknown_character(self, client):
        response = client.post("/battle/simulate", json={
            "fighter_a_id": "aang", "fighter_b_id": "sokka",
            "location_id": "air_temple",
        })
        assert response.status_code == 404
        assert "sokka" in response.json()["detail"]

    def test_missing_field(self, client):
        response = client.post("/battle/simulate", json={"fighter_a_id": "aang"})
        assert response.status_code == 422


class TestCommandLine:
    """命令行入口"""

    def test_text_report(self, monkeypatch, capsys):
        monkeypatch.chdir(PROJECT_ROOT)
        assert cli.main(["aang", "azula", "fire_nation_courtyard", "--seed", "3"]) == 0

        out = capsys.readouterr().out
        assert "Aang vs Azula @ fire_nation_courtyard" in out
        assert "WINNER:" in out or "DRAW" in out

    def test_json_report(self, monkeypatch, capsys):
        monkeypatch.chdir(PROJECT_ROOT)
        assert cli.main(["toph", "katara", "north_pole", "--seed", "5", "--json", "--max-turns", "10"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["turns"] <= 10
        assert data["location_id"] == "north_pole"

    def test_unknown_id_exit_code(self, monkeypatch, capsys):
        monkeypatch.chdir(PROJECT_ROOT)
        assert cli.main(["aang", "nobody"]) == 2
        assert "aang" in capsys.readouterr().err

    def test_missing_data_dir(self, tmp_path, capsys):
        assert cli.main(["--data-dir", str(tmp_path)]) == 1
