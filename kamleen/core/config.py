"""
Application configuration and settings
"""
import os
from dotenv import load_dotenv

load_dotenv()


# Database / cache
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./kamleen.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Public URLs
APP_URL = os.getenv("APP_URL", "http://127.0.0.1:8000")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

# Secrets
SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY", "")
CRON_SECRET = os.getenv("CRON_SECRET", "")

# Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")

# Payzone
PAYZONE_SECRET_KEY = os.getenv("PAYZONE_SECRET_KEY", "")
PAYZONE_GATEWAY_URL = os.getenv("PAYZONE_GATEWAY_URL", "https://payment.payzone.ma/pwthree/launch")

# CMI
CMI_CLIENT_ID = os.getenv("CMI_CLIENT_ID", "")
CMI_SECRET_KEY = os.getenv("CMI_SECRET_KEY", "")
CMI_GATEWAY_URL = os.getenv("CMI_GATEWAY_URL", "https://payment.cmi.co.ma/fim/est3Dgate")

# PayPal
PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID", "")
PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET", "")
PAYPAL_LIVE_URL = "https://api-m.paypal.com"
PAYPAL_SANDBOX_URL = "https://api-m.sandbox.paypal.com"

# Razorpay
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")
RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class Settings:
    PROJECT_NAME: str = "Kamleen Booking API"
    VERSION: str = "1.0.0"
    DATABASE_URL = DATABASE_URL
    REDIS_URL = REDIS_URL
    APP_URL = APP_URL
    CORS_ORIGINS = CORS_ORIGINS
    SECRET_KEY = SECRET_KEY
    ACCESS_TOKEN_EXPIRE_MINUTES = ACCESS_TOKEN_EXPIRE_MINUTES
    ENCRYPTION_KEY = ENCRYPTION_KEY
    CRON_SECRET = CRON_SECRET
    STRIPE_SECRET_KEY = STRIPE_SECRET_KEY
    STRIPE_WEBHOOK_SECRET = STRIPE_WEBHOOK_SECRET
    PAYZONE_SECRET_KEY = PAYZONE_SECRET_KEY
    PAYZONE_GATEWAY_URL = PAYZONE_GATEWAY_URL
    CMI_CLIENT_ID = CMI_CLIENT_ID
    CMI_SECRET_KEY = CMI_SECRET_KEY
    CMI_GATEWAY_URL = CMI_GATEWAY_URL
    PAYPAL_CLIENT_ID = PAYPAL_CLIENT_ID
    PAYPAL_CLIENT_SECRET = PAYPAL_CLIENT_SECRET
    RAZORPAY_KEY_ID = RAZORPAY_KEY_ID
    RAZORPAY_KEY_SECRET = RAZORPAY_KEY_SECRET
    RAZORPAY_WEBHOOK_SECRET = RAZORPAY_WEBHOOK_SECRET
    LOG_LEVEL = LOG_LEVEL


settings = Settings()
