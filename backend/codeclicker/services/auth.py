"""Player registration, login and stateless bearer tokens.

Tokens are HS256 JWTs bound to ``{id, username}``; verification needs
nothing but the token and the configured secret.
"""

from datetime import timedelta

from flask import current_app, g
from flask_login import UserMixin
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError

from codeclicker import bcrypt, db
from codeclicker.errors import Conflict, Forbidden, Unauthenticated, Unauthorized, ValidationFailure
from codeclicker.models import User, utcnow
from codeclicker.services.saves import default_save

MAX_USERNAME_LENGTH = 64
# bcrypt only looks at the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


class TokenPrincipal(UserMixin):
    """Authenticated caller decoded from a token, without a database lookup."""

    def __init__(self, id: int, username: str):
        self.id = id
        self.username = username

    def to_dict(self):
        return {'id': self.id, 'username': self.username}


def _credentials(data):
    username = data.get('username')
    password = data.get('password')
    if not isinstance(username, str) or not username.strip():
        raise ValidationFailure('Username is required')
    if not isinstance(password, str) or not password:
        raise ValidationFailure('Password is required')
    return username, password


def issue_token(user) -> str:
    cfg = current_app.config
    now = utcnow()
    claims = {
        'id': user.id,
        'username': user.username,
        'iat': now,
        'exp': now + timedelta(days=int(cfg.get('TOKEN_EXPIRES_DAYS', 30))),
    }
    return jwt.encode(claims, cfg['JWT_SECRET'], algorithm=cfg.get('JWT_ALGORITHM', 'HS256'))


def verify_token(token: str) -> TokenPrincipal:
    cfg = current_app.config
    try:
        claims = jwt.decode(token, cfg['JWT_SECRET'], algorithms=[cfg.get('JWT_ALGORITHM', 'HS256')])
    except JWTError as exc:
        raise Forbidden() from exc
    user_id = claims.get('id')
    username = claims.get('username')
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(username, str):
        raise Forbidden()
    return TokenPrincipal(user_id, username)


def token_from_header(header) -> str:
    if not header:
        raise Unauthenticated()
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        raise Unauthenticated()
    return parts[1]


def load_principal_from_request(req):
    """Flask-Login request loader.

    Returns None on failure and leaves the reason on ``g`` so the
    unauthorized handler can tell a missing token from a rejected one.
    """
    try:
        return verify_token(token_from_header(req.headers.get('Authorization')))
    except (Unauthenticated, Forbidden) as exc:
        if isinstance(exc, Forbidden):
            current_app.logger.warning(f"[auth] rejected token path={req.path}")
        g.auth_failure = exc
        return None


def register_user(data):
    """Create a user and their default save in one transaction."""
    username, password = _credentials(data)
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationFailure(f'Username must be at most {MAX_USERNAME_LENGTH} characters')
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValidationFailure(f'Password must be at most {MAX_PASSWORD_BYTES} bytes')

    if User.query.filter_by(username=username).first():
        raise Conflict()

    password_hash = bcrypt.generate_password_hash(password).decode('utf-8')
    user = User(username=username, password_hash=password_hash)
    db.session.add(user)
    try:
        db.session.flush()
        db.session.add(default_save(user.id))
        db.session.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration of the same name
        db.session.rollback()
        raise Conflict() from exc
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(f"[register] user={user.id} username={user.username}")
    return user, issue_token(user)


def authenticate(data):
    try:
        username, password = _credentials(data)
    except ValidationFailure as exc:
        raise Unauthorized() from exc

    user = User.query.filter_by(username=username).first()
    if (
        user is None
        or len(password.encode('utf-8')) > MAX_PASSWORD_BYTES
        or not bcrypt.check_password_hash(user.password_hash, password)
    ):
        current_app.logger.warning(f"[login] failed username={username}")
        raise Unauthorized()

    current_app.logger.info(f"[login] user={user.id}")
    return user, issue_token(user)
