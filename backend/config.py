import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///mathdash.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # How long score/time/level-up feedback stays visible (seconds)
    FEEDBACK_DISPLAY_SEC = float(os.environ.get('FEEDBACK_DISPLAY_SEC', '1.5'))
    # Server-side session clock. Off means clients call /tick themselves.
    SERVER_CLOCK = os.environ.get('SERVER_CLOCK', 'true').lower() == 'true'
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '1'))
    LEADERBOARD_LIMIT = int(os.environ.get('LEADERBOARD_LIMIT', '10'))
    # Finished or idle sessions untouched this long are dropped on the next /start
    SESSION_IDLE_TTL_SEC = float(os.environ.get('SESSION_IDLE_TTL_SEC', '600'))
