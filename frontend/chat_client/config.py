"""Configuration for the Scoper chat client."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Relay Configuration
CHAT_API_URL = os.getenv("CHAT_API_URL", "http://localhost:8787")
REQUEST_TIMEOUT = float(os.getenv("CHAT_REQUEST_TIMEOUT", "60"))  # seconds

# Persistence Configuration
CHAT_STORAGE_PATH = os.getenv(
    "CHAT_STORAGE_PATH",
    str(Path.home() / ".scoper-chat" / "storage.json")
)

# Retry Configuration
MAX_RETRIES = 3
BASE_RETRY_DELAY = 1.0  # seconds, doubled per attempt
HEALTH_CHECK_ATTEMPTS = 3  # first probe plus two retries
HEALTH_CHECK_DELAY = 2.0  # seconds, grows linearly per attempt

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
