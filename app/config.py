import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clickink.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "clickink")
# Public bucket domain, e.g. https://media.clickink.app - uploaded images are served from here
R2_PUBLIC_URL = os.getenv("R2_PUBLIC_URL", "https://media.clickink.app")

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "ClickInk <noreply@clickink.app>")

# Image generation provider (OpenAI images API compatible)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
IMAGE_GENERATION_URL = os.getenv(
    "IMAGE_GENERATION_URL", "https://api.openai.com/v1/images/generations"
)
IMAGE_GENERATION_SIZE = os.getenv("IMAGE_GENERATION_SIZE", "512x512")
IMAGE_GENERATION_TIMEOUT = float(os.getenv("IMAGE_GENERATION_TIMEOUT", "60"))
