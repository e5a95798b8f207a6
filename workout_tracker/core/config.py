import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    # Environment setting
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    # Durable map storage (local profiles, active profile pointer)
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./workout_tracker.db")
    # How often the API server looks for profile writes made by other processes
    DURABLE_MAP_POLL_SECONDS = float(os.getenv("DURABLE_MAP_POLL_SECONDS", "2"))

    # Logging
    LOG_DIR = os.getenv("LOG_DIR", "logs")

    # OpenAI plan generator
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    PLAN_MODEL = os.getenv("PLAN_MODEL", "gpt-4o-mini")

    # Google Drive / Google Fit
    GOOGLE_DRIVE_FILENAME = os.getenv("GOOGLE_DRIVE_FILENAME", "workout-tracker-data.json")
    GOOGLE_API_TIMEOUT = float(os.getenv("GOOGLE_API_TIMEOUT", "15"))
    FIT_APPLICATION_NAME = os.getenv("FIT_APPLICATION_NAME", "Workout Tracker")
    FIT_DATA_SOURCE_ID = os.getenv(
        "FIT_DATA_SOURCE_ID", "raw:com.google.weight:com.workout-tracker.app"
    )

    # Seconds before the sync status indicator falls back to idle
    SYNC_STATUS_RESET_SECONDS = float(os.getenv("SYNC_STATUS_RESET_SECONDS", "3"))
    SYNC_ERROR_RESET_SECONDS = float(os.getenv("SYNC_ERROR_RESET_SECONDS", "5"))

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

settings = Settings()
