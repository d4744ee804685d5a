"""Environment driven settings for the Amadeus flight server."""

import os

from dotenv import load_dotenv

load_dotenv()

AMADEUS_API_KEY = os.getenv("AMADEUS_API_KEY", "")
AMADEUS_API_SECRET = os.getenv("AMADEUS_API_SECRET", "")
AMADEUS_ENVIRONMENT = os.getenv("AMADEUS_ENVIRONMENT", "test")

BASE_URLS = {
    "test": "https://test.api.amadeus.com",
    "production": "https://api.amadeus.com",
}
API_BASE_URL = BASE_URLS["production"] if AMADEUS_ENVIRONMENT == "production" else BASE_URLS["test"]

DEFAULT_TIMEOUT = float(os.getenv("AMADEUS_TIMEOUT", "30"))

# Vendor caps each offer search at this many results
MAX_SEARCH_RESULTS = 10

SSE_HOST = os.getenv("HOST", "127.0.0.1")
SSE_PORT = int(os.getenv("PORT", "3000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
