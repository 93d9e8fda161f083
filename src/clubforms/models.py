from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class FormModel(Base):
    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text)
    fields = Column(Text, nullable=False)
    created_at = Column(DateTime, index=True)


class ResponseModel(Base):
    __tablename__ = "responses"

    id = Column(String, primary_key=True)
    form_id = Column(
        String,
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    answers = Column(Text, nullable=False)
    submitter_name = Column(String, nullable=True)
    submitter_email = Column(String, nullable=True)
    submitted_at = Column(DateTime, index=True)
