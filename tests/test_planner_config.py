from pathlib import Path

from src.planner.config import PROJECT_ROOT, Config


def test_from_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("PLANNER_DB_PATH", raising=False)
    config_path = tmp_path / "app_config.yaml"
    config_path.write_text(
        "\n".join(
            [
                "database:",
                "  path: data/test.db",
                "server:",
                "  host: 0.0.0.0",
                "  port: 5000",
                "gantt:",
                "  day_width: 24",
                "log:",
                "  level: DEBUG",
                "seed_demo: true",
            ]
        ),
        encoding="utf-8",
    )

    config = Config.from_yaml(config_path)

    assert config.database.path == str(PROJECT_ROOT / "data/test.db")
    assert config.server.host == "0.0.0.0"
    assert config.server.port == 5000
    assert config.gantt.day_width == 24
    assert config.gantt.row_height == 48
    assert config.log_level == "DEBUG"
    assert config.seed_demo is True


def test_from_env(monkeypatch, tmp_path):
    db_path = tmp_path / "env.db"
    monkeypatch.setenv("PLANNER_DB_PATH", str(db_path))
    monkeypatch.setenv("PLANNER_PORT", "4100")
    monkeypatch.setenv("PLANNER_SEED_DEMO", "true")

    config = Config.from_env()

    assert config.database.path == str(db_path)
    assert config.server.port == 4100
    assert config.seed_demo is True


def test_load_falls_back_to_env(monkeypatch, tmp_path):
    db_path = tmp_path / "override.db"
    monkeypatch.setenv("PLANNER_DB_PATH", str(db_path))

    config = Config.load(tmp_path / "missing.yaml")

    assert Path(config.database.path) == db_path
    assert config.server.port == 4000
