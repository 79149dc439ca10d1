"""Score sheet OCR pipeline: recognition, extraction, validation and record linking."""

from dotenv import load_dotenv

from scoresheet_pipeline.config import ENV_FILE_PATH

# Exposes the local .env to boto3 as well as to Settings; variables already set in the environment win
if ENV_FILE_PATH.exists():
    load_dotenv(ENV_FILE_PATH, override=False)
