import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    # Containers nested deeper than this are reported, not scanned
    SCAN_MAX_DEPTH: int = int(os.getenv("SCAN_MAX_DEPTH", "100"))


settings = Settings()
