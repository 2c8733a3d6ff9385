# civicvote/config.py
# Central place for settings and constants
import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "../.env"))

# --- Database ---
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "voting_system")

VOTERS_COLLECTION_NAME = "voters"
CANDIDATES_COLLECTION_NAME = "candidates"
ELECTIONS_COLLECTION_NAME = "elections"
BALLOTS_COLLECTION_NAME = "ballots"

# --- Security & JWT ---
# No default: issuing a token without a configured secret is an error.
SECRET_KEY = os.getenv("JWT_SECRET")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(24 * 60)))

# --- Voting rules ---
MINIMUM_VOTING_AGE = int(os.getenv("MINIMUM_VOTING_AGE", "18"))

# --- Candidate images ---
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads/candidate_photos")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")

# --- HTTP ---
CORS_ORIGINS = [
    origin.strip().rstrip("/")
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
