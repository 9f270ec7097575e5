"""
Application configuration
12-factor app principles: all config from environment variables
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # App configuration
    APP_NAME: str = "GenZEd LMS"
    APP_URL: str = "http://localhost:3000"
    API_URL: str = "http://localhost:5001"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./lms.db"

    # JWT Authentication
    JWT_SECRET: str = "your-super-secret-jwt-key-change-this-in-production"
    JWT_REFRESH_SECRET: str = "your-super-secret-refresh-key-change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 10080  # 7 days
    JWT_REFRESH_EXPIRE_MINUTES: int = 43200  # 30 days

    # Account lockout
    MAX_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 30

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Payment gateways (tried in this order)
    PAYMENT_GATEWAY_PRIORITY: List[str] = ["cashfree", "razorpay"]
    PAYMENT_ORDER_EXPIRY_MINUTES: int = 30
    PAYMENT_MAX_RETRIES: int = 3

    # Razorpay
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_WEBHOOK_SECRET: str = ""
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"

    # Cashfree Payment Gateway
    CASHFREE_APP_ID: str = ""
    CASHFREE_SECRET_KEY: str = ""
    CASHFREE_ENVIRONMENT: str = "sandbox"  # "sandbox" or "production"
    CASHFREE_API_VERSION: str = "2023-08-01"

    # Cashfree Payouts
    CASHFREE_PAYOUT_CLIENT_ID: str = ""
    CASHFREE_PAYOUT_CLIENT_SECRET: str = ""
    CASHFREE_PAYOUT_ENVIRONMENT: str = "test"  # "test" or "production"

    # Commission / payouts
    PLATFORM_COMMISSION_RATE: float = 0.40  # platform-sourced students
    TEACHER_SOURCED_COMMISSION_RATE: float = 0.60  # teacher-sourced students
    MIN_PAYOUT_AMOUNT: float = 1000.0

    # Batches / live classes
    DEFAULT_STUDENT_LIMIT: int = 30
    LIVE_SESSION_JOIN_WINDOW_MINUTES: int = 10
    CLASS_REMINDER_MINUTES: int = 15

    # Email (SMTP)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_FROM_EMAIL: str = "noreply@genzed.com"
    SMTP_FROM_NAME: str = "GenZEd LMS"

    # Push notifications (Firebase Cloud Messaging service account)
    FIREBASE_CREDENTIALS_FILE: str = ""
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_CLIENT_EMAIL: str = ""
    FIREBASE_PRIVATE_KEY: str = ""

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
