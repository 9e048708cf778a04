import os

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./jobtrack.db")

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")

# ✅ Cleanup job trigger (HTTP trigger disabled when unset)
CLEANUP_ADMIN_TOKEN = os.getenv("CLEANUP_ADMIN_TOKEN")
