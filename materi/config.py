from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str
    DB_URL: str = "sqlite:///./materi.db"
    DB_ECHO: bool = False
    JWT_ISS: str = "materi"
    JWT_EXP_MIN: int = 7*24*60
    COOKIE_NAME: str = "token"
    # comma separated; entries wrapped in slashes are treated as regexes
    CORS_ORIGINS: str = "http://localhost:5173"
    DEFAULT_GLOBAL_MARGIN: float = 20.0
    PRICING_STRICT: bool = False
    PRICING_TOLERANCE: float = 0.005
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str | None = None
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
settings = Settings()
