from dotenv import load_dotenv
import os

load_dotenv()

PORT = int(os.getenv("PORT", "5000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "info")

REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "5"))
FETCH_RETRIES = int(os.getenv("FETCH_RETRIES", "2"))
ASSET_TIMEOUT = int(os.getenv("ASSET_TIMEOUT", "10"))
USER_AGENT = os.getenv("USER_AGENT", "Mozilla/5.0 (compatible; LinkPreviewBot/1.0)")

CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))
CACHE_MAXSIZE = int(os.getenv("CACHE_MAXSIZE", "10000"))
