"""
PURPOSE: Configuration settings for the strategy graph engine.

This module uses Pydantic Settings to manage configuration from environment
variables and .env files. All settings are validated and typed.
"""

from pydantic_settings import BaseSettings

_PROVIDER_BASE_URLS: dict[str, str] = {
    "openai": "https://api.openai.com/v1/chat/completions",
    "perplexity": "https://api.perplexity.ai/chat/completions",
}


class Settings(BaseSettings):
    """
    PURPOSE: Central configuration class for the strategy graph engine.

    Manages the database connection, DSL catalog location, validator limits,
    LLM provider credentials, and the external code generator / backtester
    paths. Settings are loaded from environment variables and .env file.
    """

    # System Settings
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    # JSON lines in production; coloured console output when False
    LOG_JSON: bool = True
    # Comma-separated list of allowed browser origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Rate limits per route tier (slowapi limit strings)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_LLM: str = "10/minute"
    RATE_LIMIT_WRITE: str = "30/minute"
    RATE_LIMIT_READ: str = "60/minute"

    # Database Configuration
    DATABASE_URL: str = "sqlite+aiosqlite:///./stratgraph.db"

    # DSL catalog (empty means the JSON bundled with the package)
    DSL_SPEC_PATH: str = ""

    # Validator limits
    MAX_OPERAND_DEPTH: int = 32
    ALLOW_CYCLES: bool = False

    # LLM Configuration (OpenAI-compatible chat completions)
    LLM_PROVIDER: str = "openai"
    LLM_API_KEY: str = ""
    LLM_MODEL: str = "gpt-3.5-turbo"
    LLM_BASE_URL: str = ""
    LLM_TEMPERATURE: float = 0.3
    LLM_MAX_TOKENS: int = 2000
    LLM_TIMEOUT_SECONDS: float = 60.0
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_BASE_DELAY: float = 3.0

    # External code generator / backtester
    BACKTEST_DIR: str = "./cppBacktester"
    CODEGEN_EXE: str = "./cppBacktester/codegen"
    BACKTEST_EXE: str = "./cppBacktester/backtest"
    # Shell command run between code generation and the backtest; empty skips it
    BACKTEST_COMPILE_CMD: str = ""
    BACKTEST_TIMEOUT_SECONDS: float = 600.0

    def is_development(self) -> bool:
        """
        PURPOSE: Determine whether the app is running in development mode.

        Returns:
            bool: True when APP_ENV indicates development or debug is on.
        """
        return self.APP_ENV.strip().lower() in {"dev", "development"} or self.DEBUG

    def cors_origins(self) -> list[str]:
        """Allowed CORS origins parsed from CORS_ORIGINS."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def llm_configured(self) -> bool:
        """Whether an LLM API key has been provided."""
        return bool(self.LLM_API_KEY.strip())

    def resolve_llm_base_url(self) -> str:
        """
        PURPOSE: Return the chat completions URL for the configured provider.

        An explicit LLM_BASE_URL wins; otherwise the provider's default
        endpoint is used, falling back to OpenAI for unknown providers.
        """
        if self.LLM_BASE_URL:
            return self.LLM_BASE_URL
        provider = self.LLM_PROVIDER.strip().lower()
        return _PROVIDER_BASE_URLS.get(provider, _PROVIDER_BASE_URLS["openai"])

    class Config:
        """Pydantic model configuration."""

        env_file: str = ".env"
        env_file_encoding: str = "utf-8"
        case_sensitive: bool = True


settings: Settings = Settings()
