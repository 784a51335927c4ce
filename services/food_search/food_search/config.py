import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
FOOD_TABLE = os.getenv("FOOD_TABLE", "foods")
TRANSFORMERS_CACHE = os.getenv(
    "TRANSFORMERS_CACHE",
    os.path.join(os.getcwd(), ".cache", "transformers"),
)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
REMOTE_TIMEOUT = float(os.getenv("REMOTE_TIMEOUT", "20"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

# --- Batch job ---
EMBEDDING_BATCH_SIZE = int(os.getenv("EMBEDDING_BATCH_SIZE", "128"))

# --- Search ---
SEARCH_MAX_TOP_K = int(os.getenv("SEARCH_MAX_TOP_K", "100"))
SEARCH_TOP_K = int(os.getenv("SEARCH_TOP_K", "100"))
# seconds a search waits for an unloaded model; 0 answers 503 right away
SEARCH_READY_TIMEOUT = float(os.getenv("SEARCH_READY_TIMEOUT", "0"))
# seconds a failed model load is reported before the next search retries it
MODEL_LOAD_RETRY_AFTER = float(os.getenv("MODEL_LOAD_RETRY_AFTER", "30"))

if SEARCH_TOP_K > SEARCH_MAX_TOP_K:
    SEARCH_TOP_K = SEARCH_MAX_TOP_K

# --- HTTP ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if o.strip()
]
