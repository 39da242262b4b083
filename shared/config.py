from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = ""

    # Data providers
    ETHERSCAN_API_KEY: str = ""
    ALCHEMY_API_KEY: str = ""
    NEYNAR_API_KEY: str = ""
    WEBACY_API_KEY: str = ""
    CLANKER_API_KEY: str = ""
    GOPLUS_API_URL: str = "https://api.gopluslabs.io/api/v1"
    GECKOTERMINAL_API_URL: str = "https://api.geckoterminal.com/api/v2"

    # Publishing
    ALERT_CHANNEL: str = "telegram"  # 'telegram' or 'farcaster'
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_ALERT_CHAT_ID: int = 0
    FARCASTER_SIGNER_UUID: str = ""

    # Outcome ledger
    OUTCOME_LOG_ENABLED: bool = True
    OUTCOME_LOG_DIR: str = "data"

    # Application
    API_SECRET_KEY: str = "dev-secret-key"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
