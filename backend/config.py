import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///neurolink.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Leaderboard fetch caps (rows)
    LEADERBOARD_FETCH_SIZE = int(os.environ.get('LEADERBOARD_FETCH_SIZE', '50'))
    DAILY_LEADERBOARD_FETCH_SIZE = int(os.environ.get('DAILY_LEADERBOARD_FETCH_SIZE', '100'))
    # Daily entries older than this drop off the daily boards (hours)
    DAILY_STALE_HOURS = int(os.environ.get('DAILY_STALE_HOURS', '24'))
    # Server decides mandatory answer fields from the stored tier. Off keeps
    # the "judge what the client sent" behaviour.
    ENFORCE_TIER_FIELDS = os.environ.get('ENFORCE_TIER_FIELDS', '0') == '1'
    PIN_LENGTH = int(os.environ.get('PIN_LENGTH', '4'))
