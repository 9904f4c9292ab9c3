import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv


# ---------------------------------------------------------
# Load .env from project root (same folder as app.py)
# ---------------------------------------------------------
ROOT = Path(__file__).resolve().parents[1]  # project root
load_dotenv(ROOT / ".env", override=False)

# ---------------------------------------------------------
# Keep the import-time engine away from the developer's app.db.
# Individual suites still override get_db with their own temp file.
# ---------------------------------------------------------
if os.getenv("DATABASE_URL") is None:
    _tmp_dir = tempfile.mkdtemp(prefix="verification-tests-")
    os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_dir}/app.db"

# Deterministic defaults for the pipeline under test
os.environ.setdefault("STRICT_CHECK_ERRORS", "true")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "10")
