from typing import Optional

from sqlalchemy import update

from neurolink import db
from neurolink.models import AnswerKey, utcnow


class RoundKeyStore:
    """One answer-key slot per user.

    Writing a key replaces whatever the slot held before, active or not, so
    keys never accumulate; a superseded round simply stops being judgeable.
    Nothing here commits: callers own the transaction.
    """

    def __init__(self, session=None):
        self._session = session or db.session

    def get(self, user_id: str) -> Optional[AnswerKey]:
        return self._session.get(AnswerKey, user_id)

    def get_active(self, user_id: str) -> Optional[AnswerKey]:
        key = self.get(user_id)
        if key is None or not key.active:
            return None
        return key

    def put(self, user_id: str, **fields) -> AnswerKey:
        key = self.get(user_id)
        if key is None:
            key = AnswerKey(user_id=user_id)
        for name, value in fields.items():
            setattr(key, name, value)
        key.created_at = utcnow()
        key.active = True
        self._session.add(key)
        return key

    def claim(self, user_id: str, salt: str) -> bool:
        """Deactivate the active key carrying ``salt``.

        Returns False when another request already consumed it. This is a
        single conditional UPDATE, so two submissions racing for the same key
        cannot both see True.
        """
        result = self._session.execute(
            update(AnswerKey)
            .where(
                AnswerKey.user_id == user_id,
                AnswerKey.active.is_(True),
                AnswerKey.session_salt == salt,
            )
            .values(active=False)
            .execution_options(synchronize_session='fetch')
        )
        return result.rowcount == 1
