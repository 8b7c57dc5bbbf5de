import os


def _database_uri():
    url = os.environ.get('DATABASE_URL')
    if url:
        # Hosted providers still hand out the legacy scheme
        if url.startswith('postgres://'):
            url = 'postgresql://' + url[len('postgres://'):]
        return url
    host = os.environ.get('DB_HOST', 'localhost')
    user = os.environ.get('DB_USER', 'postgres')
    password = os.environ.get('DB_PASSWORD', 'password')
    name = os.environ.get('DB_NAME', 'codeclicker')
    port = os.environ.get('DB_PORT', '5432')
    return f'postgresql://{user}:{password}@{host}:{port}/{name}'


def _engine_options(uri):
    if not uri.startswith('postgresql'):
        return {}
    connect_args = {
        'connect_timeout': int(os.environ.get('DB_CONNECT_TIMEOUT_SEC', '10')),
        'options': f"-c statement_timeout={int(os.environ.get('DB_STATEMENT_TIMEOUT_MS', '15000'))}",
    }
    sslmode = os.environ.get('DB_SSLMODE') or ('require' if os.environ.get('DATABASE_URL') else None)
    if sslmode:
        connect_args['sslmode'] = sslmode
    return {
        'pool_pre_ping': True,
        'pool_size': int(os.environ.get('DB_POOL_SIZE', '5')),
        'pool_timeout': int(os.environ.get('DB_POOL_TIMEOUT_SEC', '30')),
        'connect_args': connect_args,
    }


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Token signing secret; shares SECRET_KEY when not set separately
    JWT_SECRET = os.environ.get('JWT_SECRET') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    TOKEN_EXPIRES_DAYS = int(os.environ.get('TOKEN_EXPIRES_DAYS', '30'))
    BCRYPT_LOG_ROUNDS = int(os.environ.get('BCRYPT_LOG_ROUNDS', '10'))
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            'CORS_ORIGINS',
            'https://ericliucs.github.io,http://localhost:3000,http://localhost:3001',
        ).split(',')
        if o.strip()
    ]
    # Front-end build output served next to the API
    STATIC_FOLDER = os.environ.get('STATIC_FOLDER') or os.path.abspath(
        os.path.join(os.path.dirname(__file__), '..', 'build')
    )
    PORT = int(os.environ.get('PORT', '3001'))
    DEFAULT_GAME_VERSION = '0.1'
    LEADERBOARD_LIMIT = int(os.environ.get('LEADERBOARD_LIMIT', '50'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
