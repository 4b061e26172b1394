from sqlalchemy.exc import IntegrityError

from gridiron import db


def upsert(model, keys: dict, **values):
    """Insert or update the single ``model`` row identified by ``keys``.

    ``keys`` must cover a unique constraint. A concurrent insert that wins
    the race surfaces as an IntegrityError; the loser then updates the
    winner's row, so repeated submissions stay idempotent.
    """
    row = model.query.filter_by(**keys).first()
    if row is None:
        row = model(**keys, **values)
        db.session.add(row)
        try:
            db.session.commit()
            return row
        except IntegrityError:
            db.session.rollback()
            row = model.query.filter_by(**keys).one()
    for field, value in values.items():
        setattr(row, field, value)
    db.session.commit()
    return row
