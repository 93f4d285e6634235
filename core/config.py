from decouple import config, Csv

class Settings:
    # Database Configuration
    DATABASE_URL: str = config("DATABASE_URL", default="sqlite:///./cargomate.db")

    # Security Configuration
    SECRET_KEY: str = config("SECRET_KEY", default="your-secret-key-here-change-in-production")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = config("ACCESS_TOKEN_EXPIRE_MINUTES", default=30, cast=int)

    # Email Configuration
    FROM_EMAIL: str = config("FROM_EMAIL", default="noreply@cargomate.in")
    SUPPORT_EMAIL: str = config("SUPPORT_EMAIL", default="support@cargomate.in")
    EMAIL_ENABLED: bool = config("EMAIL_ENABLED", default=True, cast=bool)

    # Pricing Configuration (INR)
    PRICING_BASE_RATE: int = config("PRICING_BASE_RATE", default=100, cast=int)
    PRICING_RATE_PER_KG: int = config("PRICING_RATE_PER_KG", default=10, cast=int)

    # Payment simulation
    PAYMENT_SUCCESS_RATE: float = config("PAYMENT_SUCCESS_RATE", default=0.9, cast=float)

    # Rate limiting
    RATE_LIMIT_CALLS: int = config("RATE_LIMIT_CALLS", default=100, cast=int)
    RATE_LIMIT_PERIOD: int = config("RATE_LIMIT_PERIOD", default=60, cast=int)

    # URL Configuration
    FRONTEND_BASE_URL: str = config("FRONTEND_BASE_URL", default="http://localhost:5173")
    CORS_ORIGINS: list = config(
        "CORS_ORIGINS",
        default="http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173",
        cast=Csv()
    )

    # Environment
    ENVIRONMENT: str = config("ENVIRONMENT", default="development")
    DEBUG: bool = config("DEBUG", default=True, cast=bool)

    # Logging
    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")

settings = Settings()
