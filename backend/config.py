import os


def _origins(raw):
    if not raw or raw.strip() == '*':
        return '*'
    return [o.strip() for o in raw.split(',') if o.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of allowed origins, '*' allows any
    CORS_ORIGINS = _origins(os.environ.get('CORS_ORIGINS', '*'))
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '8080'))
    # Sessions older than this are evicted regardless of status (seconds)
    SESSION_RETENTION_SEC = int(os.environ.get('SESSION_RETENTION_SEC', '7200'))
    # How often the sweeper looks for expired sessions (seconds)
    SWEEP_INTERVAL_SEC = int(os.environ.get('SWEEP_INTERVAL_SEC', '600'))
