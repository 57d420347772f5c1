import os

# Demo default only. Set TTT_SECRET_KEY in production.
SECRET_KEY = os.environ.get("TTT_SECRET_KEY", "tictactoe-secret")
ALGORITHM = os.environ.get("TTT_TOKEN_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("TTT_TOKEN_EXPIRE_MINUTES", "120"))

# Pause before the computer answers, in seconds.
COMPUTER_MOVE_DELAY = float(os.environ.get("TTT_COMPUTER_MOVE_DELAY", "0.52"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("TTT_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("TTT_LOG_LEVEL", "INFO").upper()
