from typing import List, Optional

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()  # .env 파일 로드


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./globalmoves.db"
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_hours: int = 24
    debug: bool = False

    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Redis (설정 시 워커 간 룸 이벤트 중계)
    redis_url: Optional[str] = None
    redis_max_connections: int = 20
    redis_channel_prefix: str = "breakout:room"

    # Presence heartbeat
    presence_timeout_seconds: int = 60
    presence_sweep_interval_seconds: int = 15

    # 비공개 룸 정원
    default_max_members: int = 10
    min_max_members: int = 2
    max_max_members: int = 50

    message_max_length: int = 4000
    seed_public_rooms: bool = True
    log_dir: Optional[str] = "logs"

    class Config:
        env_file = ".env"


settings = Settings()
