"""Configuration management from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))
SALES_FILE = Path(os.getenv("SALES_FILE", str(DATA_DIR / "vendas.json")))
STATE_FILE = Path(os.getenv("STATE_FILE", str(DATA_DIR / "state.json")))
REPORTS_DIR = Path(os.getenv("REPORTS_DIR", str(DATA_DIR / "reports")))

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
REPORTS_DIR.mkdir(parents=True, exist_ok=True)


class Config:
    """Application configuration."""

    # Extraction cycle
    MAX_PAGES: int = int(os.getenv("MAX_PAGES", "3"))
    EXTRACT_TIMEOUT: float = float(os.getenv("EXTRACT_TIMEOUT", "70"))
    SCRAPE_EVERY: float = float(os.getenv("SCRAPE_EVERY", "30"))
    REPORT_EVERY: float = float(os.getenv("REPORT_EVERY", "600"))

    # Bounded identity cache kept in state.json
    KNOWN_IDS_CAP: int = int(os.getenv("KNOWN_IDS_CAP", "50000"))

    # Webhook delivery (empty URL disables it)
    WEBHOOK_URL: str = os.getenv("WEBHOOK_URL", "").strip()
    WEBHOOK_RETRIES: int = int(os.getenv("WEBHOOK_RETRIES", "3"))
    WEBHOOK_RETRY_DELAY: float = float(os.getenv("WEBHOOK_RETRY_DELAY", "1.0"))
    WEBHOOK_TIMEOUT: float = float(os.getenv("WEBHOOK_TIMEOUT", "30"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        errors = []
        if cls.MAX_PAGES < 1:
            errors.append("MAX_PAGES must be >= 1")
        if cls.EXTRACT_TIMEOUT <= 0:
            errors.append("EXTRACT_TIMEOUT must be > 0")
        if cls.KNOWN_IDS_CAP < 1:
            errors.append("KNOWN_IDS_CAP must be >= 1")
        if cls.WEBHOOK_RETRIES < 1:
            errors.append("WEBHOOK_RETRIES must be >= 1")
        if cls.WEBHOOK_URL and not cls.WEBHOOK_URL.startswith(("http://", "https://")):
            errors.append("WEBHOOK_URL must be an http(s) URL")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


config = Config()
