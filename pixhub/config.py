from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Banco do Brasil PIX API
    BB_API_BASE_URL: str = "https://api.bb.com.br/pix"
    BB_OAUTH_URL: str = "https://oauth.bb.com.br/oauth/token"
    BB_CLIENT_ID: str = ""
    BB_CLIENT_SECRET: str = ""
    BB_DEVELOPER_APPLICATION_KEY: str = ""
    BB_PIX_KEY: str = ""  # receiving key attached to every charge

    # Gateway transport
    USE_BANK_GATEWAY: bool = False             # False -> in-memory gateway
    GATEWAY_TIMEOUT_SECONDS: float = 30.0
    GATEWAY_TOKEN_REFRESH_MARGIN_SECONDS: float = 60.0
    GATEWAY_BACKOFF_BASE_SECONDS: float = 0.5  # only HTTP 429 is retried
    GATEWAY_BACKOFF_MAX_SECONDS: float = 10.0
    GATEWAY_MAX_RETRIES: int = 2

    # Charges
    CHARGE_DEFAULT_EXPIRATION_MINUTES: int = 60
    CHARGE_MAX_EXPIRATION_MINUTES: int = 43_200  # 30 days
    CHARGE_MAX_AMOUNT: int = 1_000_000

    # HTTP rate limiting (per client address)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: float = 900.0  # 15 minutes
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # Transfer execution
    TRANSFER_TIMEOUT_SECONDS: float = 5.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def missing_bank_credentials(self) -> list[str]:
        required = {
            "BB_CLIENT_ID": self.BB_CLIENT_ID,
            "BB_CLIENT_SECRET": self.BB_CLIENT_SECRET,
            "BB_DEVELOPER_APPLICATION_KEY": self.BB_DEVELOPER_APPLICATION_KEY,
            "BB_PIX_KEY": self.BB_PIX_KEY,
        }
        return [name for name, value in required.items() if not value]


settings = Settings()
