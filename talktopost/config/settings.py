from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = """You are an editor for startup/tech Twitter.
- Remove filler, hedging, repetition.
- Output either a single tweet or a thread (1 idea per tweet).
- Max 280 chars per tweet. The first tweet must hook the reader.
- Keep proper nouns, product references and personal insights as-is.
- Do not add emojis, hashtags, or "follow me" calls to action.
- Never mention that you are an AI.

OUTPUT FORMAT:
Respond ONLY in valid JSON:
{
  "mode": "tweet" | "thread",
  "tweets": [
    { "text": "Tweet 1 text here", "char_count": 123 }
  ]
}"""


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "talktopost"
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )
    explicit_url: Optional[str] = Field(default=None, validation_alias="DB_URL")

    @property
    def url(self) -> str:
        """Get database URL"""
        if self.explicit_url:
            return self.explicit_url
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class S3Config(BaseSettings):
    """Object storage configuration (any S3-compatible endpoint)."""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    recordings_bucket: str = "audio-recordings"
    attachments_bucket: str = "attachments"
    upload_url_expires_seconds: int = Field(default=3600, ge=60)

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class TranscriptionConfig(BaseSettings):
    """OpenAI Whisper configuration."""

    api_key: SecretStr = Field(default=SecretStr(""))
    model: str = "whisper-1"
    language: str = "en"
    timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class LlmConfig(BaseSettings):
    """OpenRouter chat-completion configuration used for drafting."""

    api_key: SecretStr = Field(default=SecretStr(""))
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "anthropic/claude-3.5-sonnet"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1, le=32000)
    referer: str = "http://localhost:3000"
    title: str = "TalkToPost"
    timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="OPENROUTER_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class TwitterConfig(BaseSettings):
    """Twitter OAuth2 application and API configuration."""

    client_id: str = ""
    client_secret: SecretStr = Field(default=SecretStr(""))
    redirect_uri: str = "http://localhost:8000/auth/twitter/callback"
    scopes: list[str] = ["tweet.read", "tweet.write", "users.read", "offline.access"]
    authorize_url: str = "https://twitter.com/i/oauth2/authorize"
    api_base_url: str = "https://api.twitter.com"
    frontend_url: str = "http://localhost:3000"
    oauth_session_ttl_seconds: int = Field(default=600, ge=60)
    token_timeout_seconds: float = Field(default=15.0, gt=0)
    post_timeout_seconds: float = Field(default=10.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="TWITTER_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class SecurityConfig(BaseSettings):
    """JWT and session cookie configuration."""

    jwt_secret_key: SecretStr = Field(
        default=SecretStr("change-me"),
        validation_alias="JWT_SECRET",
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    access_token_expires_minutes: int = Field(
        default=60 * 24 * 30,
        validation_alias="JWT_EXPIRATION_MINUTES",
        ge=1,
    )
    session_cookie_name: str = Field(
        default="talktopost_session",
        validation_alias="SESSION_COOKIE_NAME",
    )
    cookie_secure: bool = Field(default=False, validation_alias="COOKIE_SECURE")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PipelineConfig(BaseSettings):
    """Recording pipeline behaviour: prompt, auto-post and posting cadence."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    auto_post_default: bool = False
    custom_system_prompts: bool = False
    max_prompt_length: int = Field(default=2000, ge=1)
    max_tweet_length: int = Field(default=280, ge=1)
    post_delay_seconds: float = Field(default=0.5, ge=0.0)
    rate_limit_backoff_seconds: float = Field(default=5.0, ge=0.0)

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "TalkToPost Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/pipeline.log"

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # Object storage
    s3: S3Config = Field(default_factory=S3Config)

    # Speech-to-text
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)

    # Drafting LLM
    llm: LlmConfig = Field(default_factory=LlmConfig)

    # Twitter
    twitter: TwitterConfig = Field(default_factory=TwitterConfig)

    # Security
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    # Pipeline
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
