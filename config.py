from decimal import Decimal
from functools import lru_cache
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    服務設定（可由環境變數或 .env 覆寫，前綴 MINES_）

    範例：
        MINES_ROUND_PERIOD_SECONDS=20
        MINES_BETTING_WINDOW_SECONDS=12
    """
    model_config = SettingsConfigDict(env_file=".env", env_prefix="MINES_", extra="ignore")

    # 回合節奏：每 round_period 開一局，開局後 betting_window 秒收盤
    round_period_seconds: float = Field(default=15.0, gt=0)
    betting_window_seconds: float = Field(default=10.0, gt=0)

    win_multiplier: Decimal = Field(default=Decimal("1.45"), gt=0)
    two_cell_ratio_threshold: Decimal = Field(default=Decimal("1.7"), gt=0)

    # 單筆下注上限與最小單位（小數位數）
    max_stake: Decimal = Field(default=Decimal("1000000000"), gt=0)
    stake_decimal_places: int = Field(default=8, ge=0)

    outbound_queue_size: int = Field(default=100, gt=0)

    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 3000

    @model_validator(mode="after")
    def _check_round_timing(self) -> "Settings":
        # 收盤後必須留有結果展示的空檔
        if self.betting_window_seconds >= self.round_period_seconds:
            raise ValueError(
                f"betting_window_seconds ({self.betting_window_seconds}) must be shorter "
                f"than round_period_seconds ({self.round_period_seconds})"
            )
        return self

    @property
    def betting_window_ms(self) -> int:
        return int(self.betting_window_seconds * 1000)


@lru_cache()
def get_settings():
    return Settings()
