from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Order Service"
    API_V1_STR: str = "/api/v1"

    POSTGRES_SERVER: str
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""

    # Redis (payment worker deduplication)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None
    PROCESSED_EVENT_TTL: int = 604800  # 7 days

    # Kafka
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_TOPIC_ORDER_CREATED: str = "order-generated"

    # Topic layout, applied when the order service creates the topic
    KAFKA_CREATE_TOPICS: bool = True
    KAFKA_TOPIC_PARTITIONS: int = 2
    KAFKA_TOPIC_REPLICAS: int = 2
    KAFKA_TOPIC_RETENTION_MS: int = 604800000  # 7 days
    KAFKA_TOPIC_SEGMENT_BYTES: int = 1073741824  # 1 GiB
    KAFKA_TOPIC_MAX_MESSAGE_BYTES: int = 10485760  # 10 MiB

    # Producer reliability
    KAFKA_PRODUCER_ACKS: str = "all"
    KAFKA_PRODUCER_IDEMPOTENCE: bool = True
    KAFKA_PRODUCER_RETRIES: int = 3
    KAFKA_PRODUCER_RETRY_BACKOFF_MS: int = 100
    KAFKA_REQUEST_TIMEOUT_MS: int = 30000
    KAFKA_DELIVERY_TIMEOUT_MS: int = 120000

    # Payment consumer
    KAFKA_CONSUMER_GROUP_ID: str = "payment-service-group"
    PAYMENT_CONSUMER_MAX_ATTEMPTS: int = 1
    PAYMENT_CONSUMER_RETRY_BACKOFF_SECONDS: float = 1.0
    PAYMENT_CONSUMER_COMMIT_ON_FAILURE: bool = True

    # External Services
    PRODUCT_SERVICE_URL: str = "http://localhost:8081"
    PRODUCT_SERVICE_TIMEOUT_SECONDS: float = 10.0

    # Token verification (identity provider)
    JWT_ALGORITHMS: list[str] = ["RS256"]
    JWT_VERIFICATION_KEY: str | None = None  # PEM public key or shared secret
    JWT_JWKS_URL: str | None = None
    JWT_ISSUER: str | None = None
    JWT_AUDIENCE: str | None = None
    JWT_RESOURCE_ID: str = "marketplace-client"
    JWT_LEEWAY_SECONDS: int = 0
    ADMIN_ROLE: str = "admin_client_role"
    BUYER_ROLE: str = "buyer_client_role"

    # Metrics Configuration
    ENABLE_METRICS: bool = True
    METRICS_PORT: int = 8000

    # Logging Configuration
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FORMAT: str = "json"  # json or console
    ENVIRONMENT: str = "development"  # development, staging, production
    SERVICE_NAME: str = "order-service"
    SERVICE_VERSION: str = "v1.0.0"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        return f"postgresql+psycopg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def REDIS_URL(self) -> str:
        """Construct Redis connection URL"""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


settings = Settings()  # type: ignore
