import pytest
import sys
import os
from datetime import datetime, timedelta, timezone

import jwt

# Add the parent directory to Python path so we can import backend modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import JWT_ALGORITHM, JWT_SECRET_KEY  # noqa: E402


@pytest.fixture
def make_token():
    """Sign a token the way the external token service would."""
    def _make(user_id: str, expires_in: timedelta = timedelta(hours=1), secret: str = JWT_SECRET_KEY) -> str:
        payload = {"sub": user_id, "exp": datetime.now(timezone.utc) + expires_in}
        return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)
    return _make
