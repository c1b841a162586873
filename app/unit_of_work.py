# app/unit_of_work.py
"""
Ordered effects applied on one session and committed once.

    uow = UnitOfWork(db)
    uow.add("update_appointment", lambda s: ...)
    uow.add("create_conversion", lambda s: ...)
    results = uow.commit()

If any effect raises, the session is rolled back and nothing is persisted.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Tuple

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

Effect = Callable[[Session], Any]


class UnitOfWork:
    def __init__(self, db: Session):
        self.db = db
        self._effects: List[Tuple[str, Effect]] = []

    def add(self, name: str, effect: Effect) -> None:
        self._effects.append((name, effect))

    @property
    def effect_names(self) -> List[str]:
        return [name for name, _ in self._effects]

    def commit(self) -> Dict[str, Any]:
        results: Dict[str, Any] = {}
        current = None
        try:
            for name, effect in self._effects:
                current = name
                results[name] = effect(self.db)
            self.db.commit()
        except Exception:
            logger.exception("Unit of work failed at effect '%s', rolling back", current)
            self.db.rollback()
            raise
        return results
