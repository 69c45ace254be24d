"""
設定管理モジュール

config/app_config.yaml（PyYAML）または環境変数から読み込む。
関連クラス:
  - database.Database: database.path を使用
  - server.app.create_app: server / log / seed_demo を使用
  - gantt.layout.LayoutSettings: gantt の寸法を使用
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "app_config.yaml"
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "planner.db"


@dataclass
class DatabaseConfig:
    """SQLite設定"""

    path: str = str(DEFAULT_DB_PATH)


@dataclass
class ServerConfig:
    """APIサーバー設定"""

    host: str = "127.0.0.1"
    port: int = 4000


@dataclass
class GanttConfig:
    """ガントチャートの寸法（px）

    row_height はサイドバーの実際の行の高さと一致させること。
    """

    day_width: float = 40
    row_height: float = 48
    row_gap: float = 0


@dataclass
class Config:
    """アプリケーション設定クラス"""

    database: DatabaseConfig = None  # type: ignore
    server: ServerConfig = None  # type: ignore
    gantt: GanttConfig = None  # type: ignore

    # ログ設定
    log_level: str = "INFO"
    log_file: str = "logs/planner.log"

    # 起動時にデモデータを投入するか
    seed_demo: bool = False

    def __post_init__(self):
        """デフォルト値の初期化"""
        if self.database is None:
            self.database = DatabaseConfig()
        if self.server is None:
            self.server = ServerConfig()
        if self.gantt is None:
            self.gantt = GanttConfig()
        env_db_path = os.getenv("PLANNER_DB_PATH")
        if env_db_path:
            self.database.path = env_db_path

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "Config":
        """YAMLファイルから設定を読み込む

        Args:
            config_path: 設定ファイルパス（省略時はconfig/app_config.yamlを使用）

        Returns:
            Config: 設定インスタンス
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data: Dict[str, Any] = yaml.safe_load(f) or {}

        database_data = yaml_data.get("database", {})
        server_data = yaml_data.get("server", {})
        gantt_data = yaml_data.get("gantt", {})
        log_data = yaml_data.get("log", {})

        db_path = database_data.get("path", str(DEFAULT_DB_PATH))
        if not Path(db_path).is_absolute():
            db_path = str(PROJECT_ROOT / db_path)

        return cls(
            database=DatabaseConfig(path=db_path),
            server=ServerConfig(
                host=server_data.get("host", "127.0.0.1"),
                port=int(server_data.get("port", 4000)),
            ),
            gantt=GanttConfig(
                day_width=gantt_data.get("day_width", 40),
                row_height=gantt_data.get("row_height", 48),
                row_gap=gantt_data.get("row_gap", 0),
            ),
            log_level=log_data.get("level", "INFO"),
            log_file=log_data.get("file", "logs/planner.log"),
            seed_demo=bool(yaml_data.get("seed_demo", False)),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """環境変数から設定を読み込む"""
        return cls(
            database=DatabaseConfig(path=os.getenv("PLANNER_DB_PATH", str(DEFAULT_DB_PATH))),
            server=ServerConfig(
                host=os.getenv("PLANNER_HOST", "127.0.0.1"),
                port=int(os.getenv("PLANNER_PORT", "4000")),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/planner.log"),
            seed_demo=os.getenv("PLANNER_SEED_DEMO", "").lower() in ("1", "true", "yes"),
        )

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """YAMLがあればYAML、無ければ環境変数から読み込む"""
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        if path.exists():
            return cls.from_yaml(path)
        return cls.from_env()
