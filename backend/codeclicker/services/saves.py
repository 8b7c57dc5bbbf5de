import json
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy.dialects import postgresql, sqlite

from codeclicker import db
from codeclicker.errors import ValidationFailure
from codeclicker.models import GameSave, LeaderboardEntry, format_number, utcnow

DEFAULT_GAME_VERSION = '0.1'
MAX_GAME_VERSION_LENGTH = GameSave.__table__.c.game_version.type.length

_UPSERT_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def _game_version(value=None) -> str:
    """Client-reported version as stored text; blank or unusable means the baseline."""
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str) and value.strip():
        version = value.strip()
        if len(version) > MAX_GAME_VERSION_LENGTH:
            # Cut to the column width; the save itself still goes through
            current_app.logger.warning(f"[save] gameVersion longer than {MAX_GAME_VERSION_LENGTH} chars, truncating")
            version = version[:MAX_GAME_VERSION_LENGTH]
        return version
    return current_app.config.get('DEFAULT_GAME_VERSION', DEFAULT_GAME_VERSION)


def default_save(user_id: int) -> GameSave:
    return GameSave(
        user_id=user_id,
        loc=Decimal(0),
        loc_per_second=Decimal(0),
        loc_per_click=Decimal(1),
        upgrades=[],
        buildings=[],
        game_version=_game_version(),
        last_updated=utcnow(),
    )


def coerce_counter(name: str, value) -> Decimal:
    """Accept ints, floats and numeric strings; anything else is a payload error."""
    if value is None or isinstance(value, bool):
        raise ValidationFailure(f'{name} must be a number')
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    elif isinstance(value, str):
        raw = value.strip()
    else:
        raise ValidationFailure(f'{name} must be a number')
    try:
        number = Decimal(raw)
    except InvalidOperation as exc:
        raise ValidationFailure(f'{name} must be a number') from exc
    if not number.is_finite():
        raise ValidationFailure(f'{name} must be a finite number')
    return number


def normalize_collection(name: str, value):
    """Bring upgrades/buildings to one structured form.

    Structured input is kept as is; a string is parsed as JSON. A string that
    does not parse to a list or object collapses to an empty list so a client
    bug never costs the player their save.
    """
    if value is None:
        return []
    if isinstance(value, (list, dict)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8', errors='replace')
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            current_app.logger.warning(f"[save] invalid {name} JSON string, storing empty collection")
            return []
        if isinstance(parsed, (list, dict)):
            return parsed
        if parsed is None:
            return []
    current_app.logger.warning(f"[save] unexpected {name} type {type(value).__name__}, storing empty collection")
    return []


def _upsert(model, values: dict, update_columns) -> None:
    dialect = db.session.get_bind().dialect.name
    make_insert = _UPSERT_INSERTS.get(dialect)
    if make_insert is None:
        # No native upsert: the select and the write still share one transaction
        row = model.query.filter_by(user_id=values['user_id']).with_for_update().first()
        if row is None:
            db.session.add(model(**values))
        else:
            for column in update_columns:
                setattr(row, column, values[column])
        db.session.flush()
        return
    stmt = make_insert(model.__table__).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[model.__table__.c.user_id],
        set_={column: getattr(stmt.excluded, column) for column in update_columns},
    )
    db.session.execute(stmt)


def save_progress(user_id: int, data) -> None:
    """Persist a full snapshot and refresh the leaderboard row atomically."""
    if not isinstance(data, dict):
        raise ValidationFailure('Save payload must be a JSON object')
    loc = coerce_counter('loc', data.get('loc'))
    loc_per_second = coerce_counter('locPerSecond', data.get('locPerSecond'))
    loc_per_click = coerce_counter('locPerClick', data.get('locPerClick'))
    upgrades = normalize_collection('upgrades', data.get('upgrades'))
    buildings = normalize_collection('buildings', data.get('buildings'))
    now = utcnow()

    try:
        _upsert(
            GameSave,
            {
                'user_id': user_id,
                'loc': loc,
                'loc_per_second': loc_per_second,
                'loc_per_click': loc_per_click,
                'upgrades': upgrades,
                'buildings': buildings,
                'game_version': _game_version(data.get('gameVersion')),
                'last_updated': now,
            },
            ('loc', 'loc_per_second', 'loc_per_click', 'upgrades', 'buildings', 'game_version', 'last_updated'),
        )
        _upsert(
            LeaderboardEntry,
            {
                'user_id': user_id,
                'total_loc': loc,
                'loc_per_second': loc_per_second,
                'last_updated': now,
            },
            ('total_loc', 'loc_per_second', 'last_updated'),
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        f"[save] user={user_id} loc={format_number(loc)} upgrades={len(upgrades)} buildings={len(buildings)}"
    )


def _stored_collection(value):
    # Rows written by older clients hold the collection as JSON text
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            current_app.logger.warning("[load] unreadable stored collection, returning empty")
            return []
    if isinstance(value, (list, dict)):
        return value
    return []


def save_view(save: GameSave) -> dict:
    return {
        'loc': format_number(save.loc),
        'locPerSecond': format_number(save.loc_per_second),
        'locPerClick': format_number(save.loc_per_click),
        'upgrades': _stored_collection(save.upgrades),
        'buildings': _stored_collection(save.buildings),
        'gameVersion': save.game_version or _game_version(),
    }


def load_progress(user_id: int) -> dict:
    """Return the player's save, creating the default one on first access."""
    save = GameSave.query.filter_by(user_id=user_id).first()
    if save is not None:
        return save_view(save)

    current_app.logger.info(f"[load] no save found, creating default for user={user_id}")
    fresh = default_save(user_id)
    dialect = db.session.get_bind().dialect.name
    make_insert = _UPSERT_INSERTS.get(dialect)
    try:
        if make_insert is None:
            db.session.add(fresh)
        else:
            values = {c.name: getattr(fresh, c.name) for c in GameSave.__table__.columns if c.name != 'id'}
            stmt = make_insert(GameSave.__table__).values(**values)
            db.session.execute(stmt.on_conflict_do_nothing(index_elements=[GameSave.__table__.c.user_id]))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    # A concurrent first load may have won the insert
    save = GameSave.query.filter_by(user_id=user_id).first()
    return save_view(save if save is not None else fresh)
