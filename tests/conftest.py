import os
import sys
from pathlib import Path

# Configure the app before any willow module is imported
TEST_DB_PATH = Path(__file__).parent / "test_willow.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["CALCOM_WEBHOOK_SECRET"] = "cal_test_secret"
os.environ["FRONTEND_URL"] = "https://willowandwater.test"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("ADMIN_NOTIFICATION_EMAIL", None)

sys.path.insert(0, str(Path(__file__).parent))


def pytest_sessionfinish(session, exitstatus):
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()
