from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("rental-invoice-parse-api", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # OpenAI (vision extraction + chat assistant)
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(default=None, alias="OPENAI_BASE_URL")
    openai_model: str = Field("gpt-4o", alias="OPENAI_MODEL")
    openai_chat_model: str = Field("gpt-4o", alias="OPENAI_CHAT_MODEL")
    openai_max_tokens: int = Field(2000, alias="OPENAI_MAX_TOKENS")
    openai_timeout_seconds: float = Field(60.0, alias="OPENAI_TIMEOUT_SECONDS")

    # Supabase
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_KEY")
    supabase_invoices_table: str = Field("parsed_invoices", alias="SUPABASE_INVOICES_TABLE")

    # Market comparison
    market_region: str = Field("Cleveland", alias="MARKET_REGION")

    # Fee rules
    high_fee_percentage: float = Field(25.0, alias="HIGH_FEE_PERCENTAGE")
    rental_vendor_keywords: str = Field(
        "herc,sunbelt,united rentals,ohio cat,admar,skyworks,caterpillar,rental",
        alias="RENTAL_VENDOR_KEYWORDS",
    )  # Comma-separated, matched against the lower-cased vendor name

    # Chat assistant
    chat_max_tool_rounds: int = Field(5, alias="CHAT_MAX_TOOL_ROUNDS")

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    def rental_keywords(self) -> list[str]:
        return [kw.strip().lower() for kw in self.rental_vendor_keywords.split(",") if kw.strip()]

settings = Settings()
