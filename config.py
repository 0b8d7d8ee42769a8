import os
import yaml

APP_VERSION = "1.0.0"
STORAGE_PREFIX = "minmax_"


class YamlConfig:
    """Load and save settings to a YAML file."""

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping")
        return data

    def save(self, data: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f)


def default_db_path() -> str:
    return os.environ.get("DB_PATH", "workout.db")


def default_program_path() -> str:
    return os.environ.get(
        "PROGRAM_PATH",
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "program.json"),
    )
