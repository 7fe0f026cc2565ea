import os
from dotenv import load_dotenv

load_dotenv()

def get_env(key):
    value = os.getenv(key)
    if not value:
        raise ValueError(f"{key} not set in environment variables")
    return value

def get_optional_env(key, default=None):
    value = os.getenv(key)
    return value if value else default

MONGO_URI = get_optional_env("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = get_optional_env("MONGO_DB_NAME", "skill_matcher_db")

# Generative fallback is only enabled when every Azure setting is present
AZURE_OPENAI_API_KEY = get_optional_env("AZURE_OPENAI_API_KEY")
AZURE_OPENAI_ENDPOINT = get_optional_env("AZURE_OPENAI_ENDPOINT")
AZURE_OPENAI_DEPLOYMENT = get_optional_env("AZURE_OPENAI_DEPLOYMENT_NAME")
AZURE_OPENAI_API_VERSION = get_optional_env("AZURE_OPENAI_API_VERSION")
AZURE_CONCURRENCY = int(get_optional_env("AZURE_CONCURRENCY", "5"))   # max parallel calls

LOG_LEVEL = get_optional_env("LOG_LEVEL", "INFO")
LOG_FILE = get_optional_env("LOG_FILE")

MATCH_LIMIT = int(get_optional_env("MATCH_LIMIT", "10"))

API_HOST = get_optional_env("API_HOST", "0.0.0.0")
API_PORT = int(get_optional_env("API_PORT", "8000"))

RESUME_INPUT_DIR = get_optional_env("RESUME_INPUT_DIR", "data/input/resumes")


def llm_fallback_enabled():
    return all([
        AZURE_OPENAI_API_KEY,
        AZURE_OPENAI_ENDPOINT,
        AZURE_OPENAI_DEPLOYMENT,
        AZURE_OPENAI_API_VERSION,
    ])
