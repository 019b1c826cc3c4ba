"""
app/repositories/model_repository.py

Read-only existence checks against the models table.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.repositories.storage_errors import translate_read_error
from db.models.llm_model import LLMModel


class ModelRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def model_exists(self, model_id: uuid.UUID) -> bool:
        stmt = select(LLMModel.id).where(LLMModel.id == model_id).limit(1)
        try:
            return self._session.scalar(stmt) is not None
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise translate_read_error(exc) from exc
