"""Конфигурация masterysim: правила боя, БД, логирование."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field

ExplosionRule = Literal["running_total", "last_face"]


class ShopCostConfig(BaseModel):
    """Цены Initiative Shop (в очках инициативы)."""

    movement_per_step: int = 1
    movement_step_m: int = 2
    swap: int = 3
    extra_attack: int = 5


class RulesConfig(BaseModel):
    """Числовые константы правил."""

    die_faces: int = 8
    explode_value: int = 8
    # "running_total": делимость на 8 проверяется по накопленной сумме кости
    # (как в исходных правилах); "last_face": по последней выпавшей грани.
    explosion_rule: ExplosionRule = "running_total"
    raise_increment: int = 4

    default_mastery_rank: int = 2
    base_actions: int = 1
    burn_stone_charges: int = 2

    shop: ShopCostConfig = Field(default_factory=ShopCostConfig)


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///./masterysim.sqlite3"
    echo: bool = False


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    title: str = "Mastery System Combat Engine"
    rules: RulesConfig = Field(default_factory=RulesConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {path}")
    return data


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """
    Порядок: дефолты -> YAML (path или $MASTERYSIM_CONFIG) -> env-переменные.
    """
    raw: dict[str, Any] = {}

    cfg_path = path or os.environ.get("MASTERYSIM_CONFIG")
    if cfg_path:
        p = Path(cfg_path)
        if p.exists():
            raw = _read_yaml(p)

    config = AppConfig.model_validate(raw)

    db_url = os.environ.get("MASTERYSIM_DATABASE_URL")
    if db_url:
        config.database.url = db_url

    log_level = os.environ.get("MASTERYSIM_LOG_LEVEL")
    if log_level:
        config.logging.level = log_level.upper()

    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config(config: Optional[AppConfig] = None) -> None:
    """Сбросить (или подменить) закешированный конфиг для тестов."""
    global _config
    _config = config


def rules() -> RulesConfig:
    return get_config().rules
